from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Any


@dataclass(frozen=True, slots=True, order=True)
class Target:
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def dirname(self) -> str:
        return f"{self.owner}_{self.name}"

    @property
    def remote_name(self) -> str:
        return f"github_{self.owner}_{self.name}"

    @property
    def wiki_remote_name(self) -> str:
        return f"{self.remote_name}.wiki"

    @property
    def is_wiki(self) -> bool:
        return self.name.endswith(".wiki")

    def clone_url(self, host: str = "github.com") -> str:
        return f"https://{host}/{self.owner}/{self.name}.git"

    def wiki_url(self, host: str = "github.com") -> str:
        return f"https://{host}/{self.owner}/{self.name}.wiki.git"

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Target:
        owner = payload.get("owner") or {}
        login = owner.get("login") if isinstance(owner, dict) else None
        name = payload.get("name")
        if not login or not name:
            full_name = str(payload.get("full_name") or "")
            login, _, name = full_name.partition("/")
        if not login or not name:
            raise ValueError(f"repository payload has no owner/name: {payload!r}")
        return cls(str(login), str(name))

    @classmethod
    def from_url(cls, url: str, host: str = "github.com") -> Target | None:
        for prefix in url_prefixes(host):
            if not url.startswith(prefix):
                continue
            bits = url[len(prefix):].split("/")
            if len(bits) != 2 or not bits[0] or not bits[1]:
                return None
            name = bits[1]
            if name.endswith(".git"):
                name = name[: -len(".git")]
            if not name:
                return None
            return cls(bits[0], name)
        return None


def url_prefixes(host: str = "github.com") -> list[str]:
    # longest ssh form first so "~/" is not taken as the owner
    return [
        f"git@{host}:",
        f"git://{host}/",
        f"https://{host}/",
        f"http://{host}/",
        f"ssh://git@{host}/~/",
        f"ssh://git@{host}/",
    ]


class Operation(str, Enum):
    USERREPO = "userrepo"
    WATCHERS = "watchers"
    PULLREQUESTS = "pullrequests"
    PULLREQUEST = "pullrequest"
    MILESTONES = "milestones"
    ISSUES = "issues"
    ISSUECOMMENTS = "issuecomments"
    FORKS = "forks"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True, order=True)
class RequestBase:
    operation: Operation
    target: Target


@total_ordering
@dataclass(frozen=True, slots=True)
class Request:
    """A named API operation against one target, optionally numbered.

    Simple requests run once per target; numbered requests run once per
    item discovered by another request (a pull request or issue number).
    """

    base: RequestBase
    number: int | None = None

    @classmethod
    def simple(cls, operation: Operation, target: Target) -> Request:
        return cls(RequestBase(operation, target))

    @classmethod
    def numbered(cls, operation: Operation, target: Target, number: int) -> Request:
        return cls(RequestBase(operation, target), int(number))

    @property
    def operation(self) -> Operation:
        return self.base.operation

    @property
    def target(self) -> Target:
        return self.base.target

    @property
    def is_numbered(self) -> bool:
        return self.number is not None

    def sort_key(self) -> tuple[str, str, str, int, int]:
        if self.number is None:
            return (self.operation.value, self.target.owner, self.target.name, 0, 0)
        return (self.operation.value, self.target.owner, self.target.name, 1, self.number)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Request):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        if self.number is None:
            return f"{self.operation.value} {self.target.slug}"
        return f"{self.operation.value} {self.target.slug}#{self.number}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "operation": self.operation.value,
            "owner": self.target.owner,
            "name": self.target.name,
        }
        if self.number is not None:
            data["number"] = self.number
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Request:
        operation = Operation(data["operation"])
        owner = data["owner"]
        name = data["name"]
        if not isinstance(owner, str) or not isinstance(name, str):
            raise ValueError(f"bad request target: {data!r}")
        target = Target(owner, name)
        number = data.get("number")
        if number is None:
            return cls.simple(operation, target)
        if isinstance(number, bool) or not isinstance(number, int):
            raise ValueError(f"bad request number: {data!r}")
        return cls.numbered(operation, target, number)


@dataclass(frozen=True, slots=True)
class Remote:
    name: str
    url: str
