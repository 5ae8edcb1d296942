from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class GhError(RuntimeError):
    cmd: list[str]
    exit_code: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        return (
            f"GitHub CLI command failed ({self.exit_code}): {' '.join(self.cmd)}\n"
            f"stderr: {self.stderr.strip()}"
        )

    @property
    def message(self) -> str:
        return self.stderr.strip() or self.stdout.strip()


def _decode_pages(raw: str) -> list[Any]:
    # `gh api --paginate` prints one JSON document per page back to back
    decoder = json.JSONDecoder()
    docs: list[Any] = []
    pos = 0
    end = len(raw)
    while True:
        while pos < end and raw[pos].isspace():
            pos += 1
        if pos >= end:
            return docs
        doc, pos = decoder.raw_decode(raw, pos)
        docs.append(doc)


class GhClient:
    def __init__(self, gh_cmd: str = "gh", hostname: str | None = None, per_page: int = 100):
        self.gh_cmd = gh_cmd
        self.hostname = hostname
        self.per_page = per_page

    def _run(self, args: list[str]) -> str:
        cmd = [self.gh_cmd, *args]
        proc = subprocess.run(
            cmd,
            text=True,
            capture_output=True,
            check=False,
        )
        if proc.returncode != 0:
            raise GhError(
                cmd=cmd,
                exit_code=proc.returncode,
                stdout=proc.stdout or "",
                stderr=proc.stderr or "",
            )
        return proc.stdout or ""

    def _api_args(self, path: str, paginate: bool) -> list[str]:
        args = ["api"]
        if self.hostname and self.hostname != "github.com":
            args.extend(["--hostname", self.hostname])
        if paginate:
            args.append("--paginate")
        args.extend(["-H", "Accept: application/vnd.github+json", path])
        return args

    def api(self, path: str) -> Any:
        raw = self._run(self._api_args(path, paginate=False))
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GhError(["api", path], 1, raw, f"Invalid JSON from gh: {exc}") from exc

    def api_list(self, path: str) -> list[Any]:
        sep = "&" if "?" in path else "?"
        paged = f"{path}{sep}per_page={self.per_page}"
        raw = self._run(self._api_args(paged, paginate=True))
        try:
            pages = _decode_pages(raw)
        except json.JSONDecodeError as exc:
            raise GhError(["api", paged], 1, raw, f"Invalid JSON from gh: {exc}") from exc
        items: list[Any] = []
        for page in pages:
            if not isinstance(page, list):
                raise GhError(["api", paged], 1, raw, "Unexpected list payload")
            items.extend(page)
        return items

    def user_repo(self, owner: str, name: str) -> dict[str, Any]:
        data = self.api(f"repos/{owner}/{name}")
        if not isinstance(data, dict):
            raise GhError(["api", f"repos/{owner}/{name}"], 1, str(data), "Unexpected repo payload")
        return data

    def watchers_for(self, owner: str, name: str) -> list[Any]:
        return self.api_list(f"repos/{owner}/{name}/subscribers")

    def pull_requests_for(self, owner: str, name: str) -> list[Any]:
        return self.api_list(f"repos/{owner}/{name}/pulls?state=all")

    def pull_request(self, owner: str, name: str, number: int) -> dict[str, Any]:
        data = self.api(f"repos/{owner}/{name}/pulls/{number}")
        if not isinstance(data, dict):
            raise GhError(
                ["api", f"repos/{owner}/{name}/pulls/{number}"],
                1,
                str(data),
                "Unexpected pull request payload",
            )
        return data

    def milestones(self, owner: str, name: str) -> list[Any]:
        return self.api_list(f"repos/{owner}/{name}/milestones?state=all")

    def issues_for_repo(self, owner: str, name: str, state: str) -> list[Any]:
        return self.api_list(f"repos/{owner}/{name}/issues?state={state}")

    def issue_comments(self, owner: str, name: str, number: int) -> list[Any]:
        return self.api_list(f"repos/{owner}/{name}/issues/{number}/comments")

    def forks_for(self, owner: str, name: str) -> list[Any]:
        return self.api_list(f"repos/{owner}/{name}/forks")

    def auth_status(self) -> tuple[bool, str]:
        args = ["auth", "status"]
        if self.hostname:
            args.extend(["--hostname", self.hostname])
        try:
            out = self._run(args)
        except GhError as exc:
            return False, exc.message or "authentication check failed"
        return True, out.strip() or "authenticated"
