from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any

import pytest

from ghmirror.backup import Backup
from ghmirror.config import Config
from ghmirror.gh import GhError
from ghmirror.models import Remote, Target

_DEFAULTS: dict[str, Any] = {
    "user_repo": {},
    "watchers_for": [],
    "pull_requests_for": [],
    "pull_request": {},
    "milestones": [],
    "issues_for_repo": [],
    "issue_comments": [],
    "forks_for": [],
}


def gh_error(message: str = "gh: Server Error (HTTP 502)") -> GhError:
    return GhError(cmd=["gh", "api"], exit_code=1, stdout="", stderr=message)


def disabled_error(feature: str = "Issues") -> GhError:
    return gh_error(f"gh: {feature} are disabled for this repo (HTTP 410)")


class FakeGh:
    """In-memory stand-in for GhClient, answering from canned responses."""

    def __init__(self) -> None:
        self.responses: dict[tuple[Any, ...], Any] = {}
        self.calls: list[tuple[Any, ...]] = []

    def respond(self, method: str, slug: str, value: Any, *extra: Any) -> None:
        self.responses[(method, slug, *extra)] = value

    def calls_for(self, method: str, slug: str | None = None) -> list[tuple[Any, ...]]:
        return [
            call for call in self.calls if call[0] == method and (slug is None or call[1] == slug)
        ]

    def _answer(self, method: str, owner: str, name: str, *extra: Any) -> Any:
        slug = f"{owner}/{name}"
        self.calls.append((method, slug, *extra))
        value = self.responses.get((method, slug, *extra), _DEFAULTS[method])
        if isinstance(value, Exception):
            raise value
        return value

    def user_repo(self, owner: str, name: str) -> Any:
        return self._answer("user_repo", owner, name)

    def watchers_for(self, owner: str, name: str) -> Any:
        return self._answer("watchers_for", owner, name)

    def pull_requests_for(self, owner: str, name: str) -> Any:
        return self._answer("pull_requests_for", owner, name)

    def pull_request(self, owner: str, name: str, number: int) -> Any:
        return self._answer("pull_request", owner, name, number)

    def milestones(self, owner: str, name: str) -> Any:
        return self._answer("milestones", owner, name)

    def issues_for_repo(self, owner: str, name: str, state: str) -> Any:
        return self._answer("issues_for_repo", owner, name)

    def issue_comments(self, owner: str, name: str, number: int) -> Any:
        return self._answer("issue_comments", owner, name, number)

    def forks_for(self, owner: str, name: str) -> Any:
        return self._answer("forks_for", owner, name)


class FakeRepo:
    """In-memory repository: remotes live in a list instead of git config."""

    def __init__(self, git_dir: Path, remotes: list[Remote] | None = None) -> None:
        self.git_dir = git_dir
        self._remotes: list[Remote] = list(remotes or [])
        self.branch: str | None = "main"
        self.fetched: list[str] = []
        self.added: list[tuple[str, str]] = []
        self.removed: list[str] = []
        self.failing_adds: set[str] = set()
        self.failing_fetches: set[str] = set()

    def remotes(self) -> list[Remote]:
        return list(self._remotes)

    def github_remotes(self, host: str = "github.com") -> list[tuple[Remote, Target]]:
        pairs = []
        for remote in self._remotes:
            target = Target.from_url(remote.url, host)
            if target is not None and not target.is_wiki:
                pairs.append((remote, target))
        return pairs

    def github_targets(self, host: str = "github.com") -> list[Target]:
        return [target for _, target in self.github_remotes(host)]

    def has_remote(self, name: str) -> bool:
        return any(remote.name == name for remote in self._remotes)

    def current_branch(self) -> str | None:
        return self.branch

    def add_remote(self, name: str, url: str, fetch: bool = True) -> bool:
        self.added.append((name, url))
        if self.has_remote(name):
            return False
        self._remotes.append(Remote(name, url))
        # `git remote add -f` keeps the remote even when the fetch fails
        return name not in self.failing_adds

    def remove_remote(self, name: str) -> bool:
        self.removed.append(name)
        before = len(self._remotes)
        self._remotes = [remote for remote in self._remotes if remote.name != name]
        return len(self._remotes) != before

    def fetch(self, name: str) -> bool:
        self.fetched.append(name)
        return name not in self.failing_fetches


def fork_payload(owner: str, name: str) -> dict[str, Any]:
    return {"owner": {"login": owner}, "name": name, "full_name": f"{owner}/{name}"}


@pytest.fixture
def widgets() -> Target:
    return Target("acme", "widgets")


@pytest.fixture
def fake_gh() -> FakeGh:
    return FakeGh()


@pytest.fixture
def fake_repo(tmp_path: Path) -> FakeRepo:
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    return FakeRepo(git_dir, [Remote("origin", "https://github.com/acme/widgets.git")])


@pytest.fixture
def commits(monkeypatch: pytest.MonkeyPatch) -> list[tuple[Path, str]]:
    recorded: list[tuple[Path, str]] = []

    def fake_commit(repo: Any, scratch: Path, branch: str, message: str) -> bool:
        recorded.append((scratch, branch))
        return scratch.is_dir()

    monkeypatch.setattr("ghmirror.backup.commit_workdir", fake_commit)
    return recorded


@pytest.fixture
def backup(fake_repo: FakeRepo, fake_gh: FakeGh, commits: list[tuple[Path, str]]) -> Backup:
    return Backup(config=Config(), repo=fake_repo, gh=fake_gh)


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=True,
    )
    return proc.stdout


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    global_config = tmp_path / "gitconfig"
    global_config.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


@pytest.fixture
def git_repo(tmp_path: Path, git_env: None) -> Path:
    root = tmp_path / "mirror"
    root.mkdir()
    git(root, "init", "-q")
    git(root, "symbolic-ref", "HEAD", "refs/heads/main")
    (root / "README").write_text("mirror\n", encoding="utf-8")
    git(root, "add", "README")
    git(root, "commit", "-q", "-m", "init")
    git(root, "remote", "add", "origin", "https://github.com/acme/widgets.git")
    return root
