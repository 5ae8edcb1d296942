from __future__ import annotations

import json
import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .git import GitRepo
from .models import Target

log = logging.getLogger(__name__)


class UnsafeBranchError(RuntimeError):
    pass


def render(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def location(scratch: Path, target: Target, filebase: str) -> Path:
    return scratch / target.dirname / filebase


def store(scratch: Path, target: Target, filebase: str, value: Any) -> Path:
    path = location(scratch, target, filebase)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render(value), encoding="utf-8")
    return path


@contextmanager
def staging_index(repo: GitRepo) -> Iterator[dict[str, str]]:
    """Yield a git environment that stages into a private index file.

    The user's index and work tree are never read or written, so the
    mirror can be committed while the repository is in use.
    """
    index = repo.git_dir / "ghmirror.index"
    index.unlink(missing_ok=True)
    try:
        yield {"GIT_INDEX_FILE": str(index)}
    finally:
        index.unlink(missing_ok=True)


def commit_workdir(repo: GitRepo, scratch: Path, branch: str, message: str) -> bool:
    """Commit everything under `scratch` to `branch`, then delete it.

    The commit is built from a private index and the branch ref is moved
    with `update-ref`; nothing is checked out. Returns False when there
    was nothing in the scratch directory to commit.
    """
    if not scratch.is_dir() or not any(scratch.iterdir()):
        log.info("nothing to commit scratch=%s", scratch)
        return False
    if repo.current_branch() == branch:
        raise UnsafeBranchError(
            f"it's not currently safe to run ghmirror while the {branch} branch is checked out!"
        )
    ref = f"refs/heads/{branch}"
    parent = repo.resolve(ref)
    scoped = ["--git-dir", str(repo.git_dir), "--work-tree", str(scratch)]
    with staging_index(repo) as env:
        if parent is not None:
            repo.git([*scoped, "read-tree", parent], cwd=scratch, env=env)
        # files from earlier runs are absent from the scratch tree; keep them
        repo.git([*scoped, "add", "--ignore-removal", "."], cwd=scratch, env=env)
        tree = repo.git_output([*scoped, "write-tree"], cwd=scratch, env=env).strip()
    if parent is not None and repo.resolve(f"{parent}^{{tree}}") == tree:
        log.info("no metadata changes branch=%s", branch)
    else:
        args = ["commit-tree", tree, "-m", message]
        if parent is not None:
            args.extend(["-p", parent])
        commit = repo.git_output(args).strip()
        update = ["update-ref", "-m", message, ref, commit]
        if parent is not None:
            update.append(parent)
        repo.git(update)
        log.info("committed metadata branch=%s commit=%s", branch, commit)
    shutil.rmtree(scratch)
    return True
