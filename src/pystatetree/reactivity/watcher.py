"""Watchers, computed values and the flush scheduler."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from typing import Any

from pystatetree.reactivity.dep import Dep, current_target, pop_target, push_target
from pystatetree.reactivity.observer import ReactiveDict, ReactiveList

_ids = itertools.count()


def traverse(value: Any, seen: set[int] | None = None) -> None:
    """Read every slot reachable from *value* so a deep watcher depends on all of them."""
    if seen is None:
        seen = set()
    if isinstance(value, ReactiveDict):
        if id(value) in seen:
            return
        seen.add(id(value))
        value._dep.depend()
        for key in list(dict.keys(value)):
            traverse(value[key], seen)
    elif isinstance(value, ReactiveList):
        if id(value) in seen:
            return
        seen.add(id(value))
        value._dep.depend()
        for item in list(list.__iter__(value)):
            traverse(item, seen)


class Scheduler:
    """Queue for non-sync watchers and ``next_tick`` callbacks.

    Queued work runs on :meth:`flush`.  When an asyncio loop is running
    the flush is scheduled with ``loop.call_soon``; otherwise the owner
    calls :meth:`flush` explicitly.
    """

    def __init__(self) -> None:
        self._queue: list[Watcher] = []
        self._queued_ids: set[int] = set()
        self._callbacks: list[Callable[[], Any]] = []
        self._flush_scheduled = False
        self._flushing = False

    @property
    def pending(self) -> bool:
        return bool(self._queue or self._callbacks)

    def queue_watcher(self, watcher: Watcher) -> None:
        if watcher.id in self._queued_ids:
            return
        self._queued_ids.add(watcher.id)
        self._queue.append(watcher)
        self._schedule()

    def next_tick(self, callback: Callable[[], Any]) -> None:
        self._callbacks.append(callback)
        self._schedule()

    def _schedule(self) -> None:
        if self._flush_scheduled or self._flushing:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._flush_scheduled = True
        loop.call_soon(self._scheduled_flush)

    def _scheduled_flush(self) -> None:
        self._flush_scheduled = False
        self.flush()

    def flush(self) -> None:
        """Run queued watchers (creation order) then deferred callbacks."""
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._queue or self._callbacks:
                while self._queue:
                    self._queue.sort(key=lambda w: w.id)
                    watcher = self._queue.pop(0)
                    self._queued_ids.discard(watcher.id)
                    watcher.run()
                callbacks, self._callbacks = self._callbacks, []
                for callback in callbacks:
                    callback()
        finally:
            self._flushing = False


class Watcher:
    """Evaluate *getter*, track what it reads, and react when that changes.

    * ``sync``: run the callback inside the write that triggered it.
    * ``deep``: also depend on everything nested inside the returned value.
    * ``lazy``: do not evaluate until asked (used by :class:`Computed`).
    """

    def __init__(
        self,
        scheduler: Scheduler,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], Any] | None = None,
        *,
        deep: bool = False,
        sync: bool = False,
        lazy: bool = False,
    ) -> None:
        self.id = next(_ids)
        self._scheduler = scheduler
        self._getter = getter
        self._callback = callback
        self.deep = deep
        self.sync = sync
        self.lazy = lazy
        self.dirty = lazy
        self.active = True
        self._deps: dict[int, Dep] = {}
        self._new_deps: dict[int, Dep] = {}
        self.value: Any = None if lazy else self.get()

    def get(self) -> Any:
        push_target(self)
        try:
            value = self._getter()
            if self.deep:
                traverse(value)
        finally:
            pop_target()
            self._cleanup_deps()
        return value

    def add_dep(self, dep: Dep) -> None:
        if dep.id in self._new_deps:
            return
        self._new_deps[dep.id] = dep
        if dep.id not in self._deps:
            dep.add_sub(self)

    def _cleanup_deps(self) -> None:
        for dep_id, dep in self._deps.items():
            if dep_id not in self._new_deps:
                dep.remove_sub(self)
        self._deps, self._new_deps = self._new_deps, {}

    def update(self) -> None:
        if self.lazy:
            self.dirty = True
        elif self.sync:
            self.run()
        else:
            self._scheduler.queue_watcher(self)

    def run(self) -> None:
        if not self.active:
            return
        value = self.get()
        if self.deep or isinstance(value, (dict, list)) or value != self.value:
            old_value, self.value = self.value, value
            if self._callback is not None:
                self._callback(value, old_value)

    def evaluate(self) -> None:
        self.value = self.get()
        self.dirty = False

    def depend(self) -> None:
        """Make the watcher being evaluated depend on everything this one depends on."""
        for dep in list(self._deps.values()):
            dep.depend()

    def teardown(self) -> None:
        if not self.active:
            return
        for dep in self._deps.values():
            dep.remove_sub(self)
        self._deps = {}
        self.active = False


class Computed:
    """A lazily evaluated, memoised value recomputed when its inputs change."""

    def __init__(self, scheduler: Scheduler, getter: Callable[[], Any]) -> None:
        self._watcher = Watcher(scheduler, getter, lazy=True)

    def get(self) -> Any:
        watcher = self._watcher
        if watcher.dirty:
            watcher.evaluate()
        if current_target() is not None:
            watcher.depend()
        return watcher.value

    def teardown(self) -> None:
        self._watcher.teardown()
