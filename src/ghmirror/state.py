from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import Request, Target


@dataclass(slots=True)
class RunState:
    """Mutable state of a single backup run.

    `failed` only grows while requests are dispatched. `replaying` holds the
    requests loaded from the previous run while they are replayed; each one
    moves into `retried` as it is dispatched, and dispatch skips anything in
    `retried`, so no pending request runs twice. `gathered` is per pass.
    """

    repo: Any
    failed: set[Request] = field(default_factory=set)
    replaying: frozenset[Request] = field(default_factory=frozenset)
    retried: set[Request] = field(default_factory=set)
    retried_failed: set[Request] = field(default_factory=set)
    gathered: set[Target] = field(default_factory=set)

    def record_failure(self, req: Request) -> None:
        self.failed.add(req)

    def begin_replay(self, todo: list[Request]) -> None:
        self.replaying = frozenset(todo)

    def dispatching(self, req: Request) -> None:
        if req in self.replaying:
            self.retried.add(req)
        # dispatched again in the main pass: this attempt decides its tier
        self.retried_failed.discard(req)

    def begin_main_pass(self) -> set[Request]:
        self.retried_failed = set(self.failed)
        self.failed = set()
        self.retried |= self.replaying
        self.replaying = frozenset()
        self.gathered = set()
        return set(self.retried_failed)

    def pending(self) -> list[Request]:
        # fresh failures first so chronic failures cannot starve them
        return sorted(self.failed) + sorted(self.retried_failed - self.failed)
