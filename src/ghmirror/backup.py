from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from . import registry
from .config import Config
from .gh import GhClient, GhError
from .git import GitRepo
from .models import Request, Target
from .retry import load_retry, store_retry
from .state import RunState
from .workdir import commit_workdir, store

IGNORABLE_MARKER = "disabled for this repo"


class BackupError(RuntimeError):
    pass


class IncompleteBackupError(BackupError):
    def __init__(self, count: int):
        super().__init__(f"Backup may be incomplete; {count} requests failed. Run again later.")
        self.count = count


def is_ignorable(exc: GhError) -> bool:
    return IGNORABLE_MARKER in exc.message


class Backup:
    def __init__(
        self,
        config: Config,
        repo: GitRepo,
        gh: GhClient,
        state: RunState | None = None,
    ):
        self.config = config
        self.repo = repo
        self.gh = gh
        self.state = state if state is not None else RunState(repo=repo)
        self.log = logging.getLogger(__name__)

    @property
    def scratch(self) -> Path:
        return self.config.scratch_path(self.repo.git_dir)

    @property
    def retry_path(self) -> Path:
        return self.config.retry_path(self.repo.git_dir)

    def run_request(self, req: Request) -> None:
        if req in self.state.retried:
            self.log.debug("request already retried this run request=%s", req)
            return
        storer = registry.lookup(req.operation)
        self.state.dispatching(req)
        storer(self, req)

    def call_api(
        self,
        req: Request,
        fetch: Callable[[GhClient], Any],
        handle: Callable[[Backup, Request, Any], None],
    ) -> None:
        try:
            value = fetch(self.gh)
        except GhError as exc:
            self.failed_request(req, exc)
            return
        handle(self, req, value)

    def failed_request(self, req: Request, exc: GhError) -> None:
        if is_ignorable(exc):
            self.log.debug("ignoring disabled feature request=%s error=%s", req, exc.message)
            return
        self.log.warning("request failed request=%s error=%s", req, exc.message)
        self.state.record_failure(req)

    def store(self, filebase: str, req: Request, value: Any) -> None:
        path = store(self.scratch, req.target, filebase, value)
        self.log.debug("stored request=%s path=%s", req, path)

    def store_sorted(
        self,
        filebase: str,
        req: Request,
        values: list[Any],
        key: Callable[[Any], Any],
    ) -> None:
        self.store(filebase, req, sorted(values, key=key))

    def gather_metadata(self, target: Target) -> None:
        if target in self.state.gathered:
            self.log.debug("metadata already gathered this run target=%s", target.slug)
            return
        self.state.gathered.add(target)
        self.log.info("gathering metadata target=%s", target.slug)
        for operation in registry.toplevel_operations():
            self.run_request(Request.simple(operation, target))

    def add_fork(self, fork: Target) -> bool:
        """Register `fork` as a mirrored remote.

        Returns True only when the fork was not mirrored before and its
        remote is now configured, which is when it should be crawled.
        """
        host = self.config.host
        if fork in self.repo.github_targets(host):
            return False
        url = fork.clone_url(host)
        self.log.info("new fork url=%s", url)
        self.repo.add_remote(fork.remote_name, url, fetch=True)
        if fork in self.repo.github_targets(host):
            return True
        self.log.warning("could not add fork remote remote=%s url=%s", fork.remote_name, url)
        return False

    def update_wiki(self, target: Target) -> None:
        if not self.config.mirror_wikis:
            return
        remote = target.wiki_remote_name
        if self.repo.has_remote(remote):
            if not self.repo.fetch(remote):
                self.log.debug("wiki fetch failed remote=%s", remote)
            return
        # often advertised without existing; do not leave a dead remote behind
        if not self.repo.add_remote(remote, target.wiki_url(self.config.host), fetch=True):
            self.log.debug("no wiki available target=%s", target.slug)
            self.repo.remove_remote(remote)

    def retry(self) -> set[Request]:
        todo = load_retry(self.retry_path)
        if todo:
            self.log.info("retrying requests that failed last time count=%s", len(todo))
            self.state.begin_replay(todo)
            for req in todo:
                self.run_request(req)
        return self.state.begin_main_pass()

    def run(self) -> None:
        host = self.config.host
        if not self.repo.github_remotes(host):
            raise BackupError("no github remotes found")
        if self.repo.current_branch() == self.config.branch:
            raise BackupError(
                f"it's not currently safe to run ghmirror while the "
                f"{self.config.branch} branch is checked out!"
            )

        self.retry()
        for remote, target in self.repo.github_remotes(host):
            if self.config.fetch_remotes and not self.repo.fetch(remote.name):
                self.log.warning("fetch failed remote=%s", remote.name)
            self.gather_metadata(target)
        self.save()

    def save(self) -> list[Request]:
        """Record what must be retried, then commit the gathered files.

        Requests that were retried this run and failed again go last, so
        that a run always makes progress on newer failures first. The list
        is on disk before the commit starts.
        """
        pending = self.state.pending()
        store_retry(self.retry_path, pending)
        commit_workdir(self.repo, self.scratch, self.config.branch, self.config.commit_message)
        if pending:
            raise IncompleteBackupError(len(pending))
        self.log.info("backup complete")
        return pending
