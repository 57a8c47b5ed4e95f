"""Dependency bookkeeping shared by observables and watchers."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pystatetree.reactivity.watcher import Watcher

_ids = itertools.count()

# Watchers currently evaluating, innermost last.
_target_stack: list[Watcher] = []


def current_target() -> Watcher | None:
    return _target_stack[-1] if _target_stack else None


def push_target(watcher: Watcher | None) -> None:
    _target_stack.append(watcher)  # type: ignore[arg-type]


def pop_target() -> None:
    _target_stack.pop()


class Dep:
    """A readable slot that watchers can subscribe to."""

    __slots__ = ("id", "_subs")

    def __init__(self) -> None:
        self.id = next(_ids)
        self._subs: list[Watcher] = []

    def add_sub(self, watcher: Watcher) -> None:
        self._subs.append(watcher)

    def remove_sub(self, watcher: Watcher) -> None:
        try:
            self._subs.remove(watcher)
        except ValueError:
            pass

    def depend(self) -> None:
        """Record a read against the watcher being evaluated, if any."""
        target = current_target()
        if target is not None:
            target.add_dep(self)

    def notify(self) -> None:
        # Stable snapshot: subscribers may (un)subscribe while updating.
        subs = sorted(self._subs, key=lambda sub: sub.id)
        # Computed values go stale before any watcher re-reads them.
        for watcher in subs:
            if watcher.lazy:
                watcher.update()
        for watcher in subs:
            if not watcher.lazy:
                watcher.update()
