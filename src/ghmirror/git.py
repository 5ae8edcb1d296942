from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from .models import Remote, Target


class GitError(RuntimeError):
    pass


class GitRepo:
    """The local repository that receives the mirror.

    Remotes are always read back from git config so that every check sees
    the durable state, including remotes added earlier in the same run.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.log = logging.getLogger(__name__)
        self._git_dir: Path | None = None

    @property
    def git_dir(self) -> Path:
        if self._git_dir is None:
            raw = self.git_output(["rev-parse", "--git-dir"]).strip()
            path = Path(raw)
            if not path.is_absolute():
                path = (self.root / path).resolve()
            self._git_dir = path
        return self._git_dir

    def _env(self, env: dict[str, str] | None) -> dict[str, str] | None:
        return {**os.environ, **env} if env else None

    def git(
        self,
        args: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        cmd = ["git", *args]
        proc = subprocess.run(
            cmd,
            cwd=cwd or self.root,
            env=self._env(env),
            text=True,
            capture_output=True,
            check=False,
        )
        if proc.returncode != 0:
            raise GitError(f"Command failed ({proc.returncode}): {' '.join(cmd)}\n{proc.stderr}")
        return proc

    def git_output(
        self,
        args: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> str:
        return self.git(args, cwd=cwd, env=env).stdout or ""

    def git_bool(
        self,
        args: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> bool:
        proc = subprocess.run(
            ["git", *args],
            cwd=cwd or self.root,
            env=self._env(env),
            text=True,
            capture_output=True,
            check=False,
        )
        if proc.returncode != 0:
            self.log.debug(
                "git command failed args=%s exit_code=%s stderr=%s",
                " ".join(args),
                proc.returncode,
                (proc.stderr or "").strip(),
            )
        return proc.returncode == 0

    def remotes(self) -> list[Remote]:
        proc = subprocess.run(
            ["git", "config", "--get-regexp", r"^remote\..*\.url$"],
            cwd=self.root,
            text=True,
            capture_output=True,
            check=False,
        )
        # exit code 1 means no remote is configured at all
        if proc.returncode not in (0, 1):
            raise GitError(proc.stderr.strip() or "git config --get-regexp failed")
        remotes: list[Remote] = []
        for line in (proc.stdout or "").splitlines():
            key, _, url = line.partition(" ")
            if not key.startswith("remote.") or not key.endswith(".url"):
                continue
            name = key[len("remote."): -len(".url")]
            remotes.append(Remote(name=name, url=url.strip()))
        return remotes

    def github_remotes(self, host: str = "github.com") -> list[tuple[Remote, Target]]:
        pairs: list[tuple[Remote, Target]] = []
        for remote in self.remotes():
            target = Target.from_url(remote.url, host)
            if target is None or target.is_wiki:
                continue
            pairs.append((remote, target))
        return pairs

    def github_targets(self, host: str = "github.com") -> list[Target]:
        return [target for _, target in self.github_remotes(host)]

    def has_remote(self, name: str) -> bool:
        return any(remote.name == name for remote in self.remotes())

    def current_branch(self) -> str | None:
        proc = subprocess.run(
            ["git", "symbolic-ref", "-q", "--short", "HEAD"],
            cwd=self.root,
            text=True,
            capture_output=True,
            check=False,
        )
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def resolve(self, rev: str) -> str | None:
        proc = subprocess.run(
            ["git", "rev-parse", "-q", "--verify", rev],
            cwd=self.root,
            text=True,
            capture_output=True,
            check=False,
        )
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def ref_exists(self, ref: str) -> bool:
        return self.git_bool(["show-ref", "--verify", "--quiet", ref])

    def add_remote(self, name: str, url: str, fetch: bool = True) -> bool:
        args = ["remote", "add"]
        if fetch:
            args.append("-f")
        args.extend([name, url])
        return self.git_bool(args)

    def remove_remote(self, name: str) -> bool:
        return self.git_bool(["remote", "rm", name])

    def fetch(self, name: str) -> bool:
        return self.git_bool(["fetch", name])
