"""Observation backend interface and the bundled implementation.

The store never touches dependency tracking directly.  It depends on the
small :class:`ObservationBackend` capability set below, so any backend
(a signal library, a UI toolkit's property system, ...) can be plugged
in by satisfying the protocol.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from pystatetree.reactivity.observer import ReactiveDict, delete_property, observe, set_property
from pystatetree.reactivity.watcher import Computed, Scheduler, Watcher

Unwatch = Callable[[], None]


class ReactiveRootLike(Protocol):
    """The reactive wrapper around a store's root state and getters."""

    state: Any

    def computed_value(self, key: str) -> Any:
        ...

    def watch(
        self,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], Any],
        *,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unwatch:
        ...

    def stop_watchers(self) -> None:
        ...

    def detach(self) -> None:
        ...

    def destroy(self) -> None:
        ...


@runtime_checkable
class ObservationBackend(Protocol):
    """Capabilities the store needs from the host's observation system."""

    def observe(self, value: Any) -> Any:
        ...

    def install_property(self, target: Any, key: Any, value: Any) -> Any:
        ...

    def delete_property(self, target: Any, key: Any) -> None:
        ...

    def create_root(
        self,
        state: Any,
        computed: Mapping[str, Callable[[], Any]],
        previous: ReactiveRootLike | None = None,
    ) -> ReactiveRootLike:
        ...

    def watch(
        self,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], Any],
        *,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unwatch:
        ...

    def next_tick(self, callback: Callable[[], Any]) -> None:
        ...


def _start_watcher(
    scheduler: Scheduler,
    getter: Callable[[], Any],
    callback: Callable[[Any, Any], Any],
    *,
    deep: bool,
    sync: bool,
    immediate: bool,
) -> Watcher:
    watcher = Watcher(scheduler, getter, callback, deep=deep, sync=sync)
    if immediate:
        callback(watcher.value, None)
    return watcher


class ReactiveRoot:
    """Root state holder plus memoised getters.

    The state lives at ``data["$$state"]`` so replacing the whole tree is
    itself an observed write.  Passing the previous root's ``data`` keeps
    one cell across resets, so watchers that read ``state`` before a reset
    still see later replacements.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        state: Any,
        computed: Mapping[str, Callable[[], Any]],
        data: ReactiveDict | None = None,
    ) -> None:
        self._scheduler = scheduler
        if data is None:
            data = ReactiveDict()
        data["$$state"] = state
        self._data = data
        self._computed = {key: Computed(scheduler, getter) for key, getter in computed.items()}
        self._watchers: list[Watcher] = []
        self.destroyed = False

    @property
    def data(self) -> ReactiveDict:
        return self._data

    @property
    def state(self) -> Any:
        return self._data["$$state"]

    @state.setter
    def state(self, value: Any) -> None:
        self._data["$$state"] = value

    def computed_value(self, key: str) -> Any:
        return self._computed[key].get()

    def watch(
        self,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], Any],
        *,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unwatch:
        """Watch *getter* for as long as this root lives."""
        watcher = _start_watcher(self._scheduler, getter, callback, deep=deep, sync=sync, immediate=immediate)
        self._watchers.append(watcher)
        return watcher.teardown

    def stop_watchers(self) -> None:
        for watcher in self._watchers:
            watcher.teardown()
        self._watchers.clear()

    def detach(self) -> None:
        """Stop watching and let go of the shared state cell; ``state`` reads ``None`` afterwards."""
        self.stop_watchers()
        self._data = ReactiveDict({"$$state": None})

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.stop_watchers()
        for computed in self._computed.values():
            computed.teardown()
        self.destroyed = True


class ReactiveBackend:
    """In-process observation backend built on :mod:`pystatetree.reactivity`.

    Non-sync watchers and ``next_tick`` callbacks are batched.  Inside a
    running asyncio loop the batch is flushed on the next loop iteration;
    without a loop call :meth:`flush`.
    """

    def __init__(self) -> None:
        self._scheduler = Scheduler()

    @property
    def pending(self) -> bool:
        return self._scheduler.pending

    def observe(self, value: Any) -> Any:
        return observe(value)

    def install_property(self, target: Any, key: Any, value: Any) -> Any:
        return set_property(target, key, value)

    def delete_property(self, target: Any, key: Any) -> None:
        delete_property(target, key)

    def create_root(
        self,
        state: Any,
        computed: Mapping[str, Callable[[], Any]],
        previous: ReactiveRootLike | None = None,
    ) -> ReactiveRoot:
        data = previous.data if isinstance(previous, ReactiveRoot) else None
        return ReactiveRoot(self._scheduler, observe(state), computed, data)

    def watch(
        self,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], Any],
        *,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unwatch:
        watcher = _start_watcher(self._scheduler, getter, callback, deep=deep, sync=sync, immediate=immediate)
        return watcher.teardown

    def next_tick(self, callback: Callable[[], Any]) -> None:
        self._scheduler.next_tick(callback)

    def flush(self) -> None:
        """Run batched watchers and deferred callbacks now."""
        self._scheduler.flush()
