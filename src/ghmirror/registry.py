from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from .models import Operation, Request, Target

if TYPE_CHECKING:
    from .backup import Backup


class InternalError(RuntimeError):
    pass


class BadRequestError(InternalError):
    def __init__(self, req: Request):
        super().__init__(f"internal error: bad request type {req}")
        self.request = req


Storer = Callable[["Backup", Request], None]
Handler = Callable[["Backup", Request, Any], None]


def simple_helper(call: str, handle: Handler) -> Storer:
    def storer(backup: Backup, req: Request) -> None:
        if req.is_numbered:
            raise BadRequestError(req)
        owner, name = req.target.owner, req.target.name
        backup.call_api(req, lambda gh: getattr(gh, call)(owner, name), handle)

    return storer


def with_helper(call: str, extra: Any, handle: Handler) -> Storer:
    def storer(backup: Backup, req: Request) -> None:
        if req.is_numbered:
            raise BadRequestError(req)
        owner, name = req.target.owner, req.target.name
        backup.call_api(req, lambda gh: getattr(gh, call)(owner, name, extra), handle)

    return storer


def num_helper(call: str, handle: Callable[[int], Handler]) -> Storer:
    def storer(backup: Backup, req: Request) -> None:
        if req.number is None:
            raise BadRequestError(req)
        owner, name, number = req.target.owner, req.target.name, req.number
        backup.call_api(req, lambda gh: getattr(gh, call)(owner, name, number), handle(number))

    return storer


def for_values(handle: Handler) -> Handler:
    def each(backup: Backup, req: Request, values: list[Any]) -> None:
        for value in values:
            handle(backup, req, value)

    return each


def _field(key: str) -> Callable[[dict[str, Any]], str]:
    return lambda item: str(item.get(key) or "")


def _login(item: dict[str, Any]) -> str:
    return str(item.get("login") or "")


def _repo_target(req: Request, repo: dict[str, Any]) -> Target:
    try:
        return Target.from_api(repo)
    except ValueError:
        return req.target


def _userrepo(backup: Backup, req: Request, repo: dict[str, Any]) -> None:
    if repo.get("has_wiki") is True:
        backup.update_wiki(_repo_target(req, repo))
    backup.store("repo", req, repo)


def _watchers(backup: Backup, req: Request, watchers: list[Any]) -> None:
    backup.store_sorted("watchers", req, watchers, key=_login)


def _pullrequest_entry(backup: Backup, req: Request, pull: dict[str, Any]) -> None:
    backup.run_request(Request.numbered(Operation.PULLREQUEST, req.target, int(pull["number"])))


def _pullrequest(number: int) -> Handler:
    def handle(backup: Backup, req: Request, pull: dict[str, Any]) -> None:
        backup.store(f"pullrequest/{number}", req, pull)

    return handle


def _milestone(backup: Backup, req: Request, milestone: dict[str, Any]) -> None:
    backup.store(f"milestone/{int(milestone['number'])}", req, milestone)


def _issue(backup: Backup, req: Request, issue: dict[str, Any]) -> None:
    number = int(issue["number"])
    backup.store(f"issue/{number}", req, issue)
    backup.run_request(Request.numbered(Operation.ISSUECOMMENTS, req.target, number))


def _issuecomments(number: int) -> Handler:
    def handle(backup: Backup, req: Request, comment: dict[str, Any]) -> None:
        backup.store(f"issue/{number}_comment/{int(comment['id'])}", req, comment)

    return for_values(handle)


def _forks(backup: Backup, req: Request, forks: list[Any]) -> None:
    backup.store_sorted("forks", req, forks, key=_field("full_name"))
    for fork in forks:
        target = Target.from_api(fork)
        if backup.add_fork(target):
            backup.gather_metadata(target)


@dataclass(frozen=True, slots=True)
class OperationEntry:
    operation: Operation
    storer: Storer
    toplevel: bool


CATALOG: tuple[OperationEntry, ...] = (
    OperationEntry(Operation.USERREPO, simple_helper("user_repo", _userrepo), True),
    OperationEntry(Operation.WATCHERS, simple_helper("watchers_for", _watchers), True),
    OperationEntry(
        Operation.PULLREQUESTS,
        simple_helper("pull_requests_for", for_values(_pullrequest_entry)),
        True,
    ),
    OperationEntry(Operation.PULLREQUEST, num_helper("pull_request", _pullrequest), False),
    OperationEntry(Operation.MILESTONES, simple_helper("milestones", for_values(_milestone)), True),
    OperationEntry(
        Operation.ISSUES,
        with_helper("issues_for_repo", "all", for_values(_issue)),
        True,
    ),
    OperationEntry(Operation.ISSUECOMMENTS, num_helper("issue_comments", _issuecomments), False),
    # last, because it recurses on into the forks
    OperationEntry(Operation.FORKS, simple_helper("forks_for", _forks), True),
)

_STORERS: dict[Operation, Storer] = {entry.operation: entry.storer for entry in CATALOG}


def lookup(operation: Operation) -> Storer:
    try:
        return _STORERS[operation]
    except KeyError:
        raise InternalError(f"internal error: bad api call: {operation}") from None


def toplevel_operations() -> list[Operation]:
    return [entry.operation for entry in CATALOG if entry.toplevel]
