from __future__ import annotations

import json
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .gh import GhClient
from .git import GitError, GitRepo


@dataclass(slots=True)
class CheckResult:
    name: str
    ok: bool
    message: str


def _run(cmd: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        cmd,
        cwd=cwd,
        text=True,
        capture_output=True,
        check=False,
    )


def _check_binary(name: str, cmd: str, hint: str) -> CheckResult:
    path = shutil.which(cmd)
    if path:
        return CheckResult(name, True, path)
    return CheckResult(name, False, f"{cmd!r} not found in PATH; {hint}")


def run_doctor(config: Config, repo_root: Path) -> tuple[list[CheckResult], bool]:
    git_check = _check_binary("git binary", "git", "install git")
    gh_check = _check_binary("gh binary", config.gh_cmd, "set gh_cmd or install GitHub CLI")
    results = [git_check, gh_check]

    if git_check.ok:
        proc = _run(["git", "rev-parse", "--show-toplevel"], cwd=repo_root)
        inside = proc.returncode == 0
        detail = proc.stdout if inside else proc.stderr or "not a git repository"
        results.append(CheckResult("git repository", inside, detail.strip()))
        if inside:
            _check_repository(config, GitRepo(repo_root), results)

    if gh_check.ok:
        ok, message = GhClient(gh_cmd=config.gh_cmd, hostname=config.host).auth_status()
        results.append(CheckResult("gh auth", ok, "authenticated" if ok else message))

    return results, all(item.ok for item in results)


def _check_repository(config: Config, repo: GitRepo, results: list[CheckResult]) -> None:
    try:
        remotes = repo.github_remotes(config.host)
    except GitError as exc:
        results.append(CheckResult("github remotes", False, str(exc)))
        return
    if remotes:
        names = ", ".join(target.slug for _, target in remotes)
        results.append(CheckResult("github remotes", True, f"{len(remotes)} found: {names}"))
    else:
        results.append(CheckResult("github remotes", False, f"no {config.host} remotes configured"))

    if repo.current_branch() == config.branch:
        results.append(
            CheckResult("backup branch", False, f"{config.branch} is checked out; switch away first")
        )
    else:
        where = "exists" if repo.ref_exists(f"refs/heads/{config.branch}") else "will be created"
        results.append(CheckResult("backup branch", True, f"{config.branch} {where}"))

    retry_path = config.retry_path(repo.git_dir)
    if not retry_path.exists():
        results.append(CheckResult("retry file", True, "no requests pending"))
        return
    try:
        payload = json.loads(retry_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        results.append(CheckResult("retry file", False, f"unreadable, will be ignored: {exc}"))
        return
    count = len(payload) if isinstance(payload, list) else 0
    results.append(CheckResult("retry file", True, f"{count} requests pending at {retry_path}"))


def print_doctor_report(results: list[CheckResult]) -> None:
    for item in results:
        status = "PASS" if item.ok else "FAIL"
        print(f"[{status}] {item.name}: {item.message}")
