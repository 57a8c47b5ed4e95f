"""Observable containers.

:class:`ReactiveDict` and :class:`ReactiveList` are ``dict`` / ``list``
subclasses, so state stays JSON-serialisable and compares equal to
plain containers.  Reads made while a watcher is evaluating are recorded
as dependencies; writes notify the watchers that read the slot.

Only exact ``dict`` and ``list`` instances are converted.  Other objects
are stored as opaque values: replacing them is observed, mutating their
insides is not.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator
from typing import Any, SupportsIndex

from pystatetree.reactivity.dep import Dep, current_target


def observe(value: Any) -> Any:
    """Return a reactive version of *value* (containers are converted recursively)."""
    if isinstance(value, (ReactiveDict, ReactiveList)):
        return value
    if type(value) is dict:
        return ReactiveDict(value)
    if type(value) is list:
        return ReactiveList(value)
    return value


def is_reactive(value: Any) -> bool:
    return isinstance(value, (ReactiveDict, ReactiveList))


def _child_dep(value: Any) -> Dep | None:
    if isinstance(value, (ReactiveDict, ReactiveList)):
        return value._dep
    return None


class ReactiveDict(dict):  # type: ignore[type-arg]
    """A ``dict`` whose reads are tracked and whose writes notify."""

    __slots__ = ("_dep", "_key_deps")

    def __init__(self, data: Any = (), /, **kwargs: Any) -> None:
        super().__init__()
        # Structural dep: key added/removed, iteration, len.
        self._dep = Dep()
        self._key_deps: dict[Any, Dep] = {}
        for key, value in dict(data, **kwargs).items():
            dict.__setitem__(self, key, observe(value))

    def __reduce__(self) -> tuple[Any, ...]:
        return (ReactiveDict, (dict(self.items()),))

    def __copy__(self) -> dict[Any, Any]:
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> dict[Any, Any]:
        return {key: copy.deepcopy(value, memo) for key, value in dict.items(self)}

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def _track(self, key: Any, value: Any) -> None:
        if current_target() is None:
            return
        dep = self._key_deps.get(key)
        if dep is None:
            dep = self._key_deps[key] = Dep()
        dep.depend()
        child = _child_dep(value)
        if child is not None:
            child.depend()

    def _track_all(self) -> None:
        if current_target() is None:
            return
        self._dep.depend()
        for key, value in dict.items(self):
            self._track(key, value)

    def __getitem__(self, key: Any) -> Any:
        try:
            value = dict.__getitem__(self, key)
        except KeyError:
            self._dep.depend()
            raise
        self._track(key, value)
        return value

    def get(self, key: Any, default: Any = None) -> Any:
        if dict.__contains__(self, key):
            return self[key]
        self._dep.depend()
        return default

    def __contains__(self, key: object) -> bool:
        self._dep.depend()
        return dict.__contains__(self, key)

    def __iter__(self) -> Iterator[Any]:
        self._dep.depend()
        return dict.__iter__(self)

    def __len__(self) -> int:
        self._dep.depend()
        return dict.__len__(self)

    def keys(self):  # type: ignore[override]
        self._dep.depend()
        return dict.keys(self)

    def values(self):  # type: ignore[override]
        self._track_all()
        return dict.values(self)

    def items(self):  # type: ignore[override]
        self._track_all()
        return dict.items(self)

    def copy(self) -> dict[Any, Any]:  # type: ignore[override]
        self._track_all()
        return dict(dict.items(self))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def __setitem__(self, key: Any, value: Any) -> None:
        value = observe(value)
        is_new = not dict.__contains__(self, key)
        if not is_new and dict.__getitem__(self, key) is value:
            return
        dict.__setitem__(self, key, value)
        dep = self._key_deps.get(key)
        if dep is not None:
            dep.notify()
        if is_new:
            self._dep.notify()

    def __delitem__(self, key: Any) -> None:
        dict.__delitem__(self, key)
        dep = self._key_deps.pop(key, None)
        if dep is not None:
            dep.notify()
        self._dep.notify()

    def update(self, other: Any = (), /, **kwargs: Any) -> None:  # type: ignore[override]
        for key, value in dict(other, **kwargs).items():
            self[key] = value

    def __ior__(self, other: Any) -> ReactiveDict:  # type: ignore[override,misc]
        self.update(other)
        return self

    def setdefault(self, key: Any, default: Any = None) -> Any:
        if not dict.__contains__(self, key):
            self[key] = default
        return self[key]

    _MISSING = object()

    def pop(self, key: Any, default: Any = _MISSING) -> Any:
        if dict.__contains__(self, key):
            value = dict.__getitem__(self, key)
            del self[key]
            return value
        if default is ReactiveDict._MISSING:
            raise KeyError(key)
        return default

    def popitem(self) -> tuple[Any, Any]:
        if not dict.__len__(self):
            raise KeyError("popitem(): dictionary is empty")
        key = next(reversed(dict.keys(self)))
        return key, self.pop(key)

    def clear(self) -> None:
        for key in list(dict.keys(self)):
            del self[key]


class ReactiveList(list):  # type: ignore[type-arg]
    """A ``list`` whose reads are tracked and whose writes notify.

    The list has a single dependency slot: any write notifies every
    watcher that read any part of the list.
    """

    __slots__ = ("_dep",)

    def __init__(self, data: Iterable[Any] = (), /) -> None:
        self._dep = Dep()
        super().__init__(observe(item) for item in data)

    def __reduce__(self) -> tuple[Any, ...]:
        return (ReactiveList, (list(list.__iter__(self)),))

    def __copy__(self) -> list[Any]:
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> list[Any]:
        return [copy.deepcopy(item, memo) for item in list.__iter__(self)]

    def _depend(self) -> None:
        if current_target() is None:
            return
        self._dep.depend()
        for item in list.__iter__(self):
            child = _child_dep(item)
            if child is not None:
                child.depend()

    def __getitem__(self, index: Any) -> Any:
        self._depend()
        return list.__getitem__(self, index)

    def __iter__(self) -> Iterator[Any]:
        self._depend()
        return list.__iter__(self)

    def __len__(self) -> int:
        self._dep.depend()
        return list.__len__(self)

    def __contains__(self, item: object) -> bool:
        self._depend()
        return list.__contains__(self, item)

    def index(self, *args: Any) -> int:
        self._depend()
        return list.index(self, *args)

    def count(self, item: Any) -> int:
        self._depend()
        return list.count(self, item)

    def copy(self) -> list[Any]:
        self._depend()
        return list(list.__iter__(self))

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            value = [observe(item) for item in value]
        else:
            value = observe(value)
        list.__setitem__(self, index, value)
        self._dep.notify()

    def __delitem__(self, index: Any) -> None:
        list.__delitem__(self, index)
        self._dep.notify()

    def __iadd__(self, other: Iterable[Any]) -> ReactiveList:  # type: ignore[override,misc]
        self.extend(other)
        return self

    def __imul__(self, count: SupportsIndex) -> ReactiveList:  # type: ignore[override,misc]
        list.__imul__(self, count)
        self._dep.notify()
        return self

    def append(self, item: Any) -> None:
        list.append(self, observe(item))
        self._dep.notify()

    def extend(self, items: Iterable[Any]) -> None:
        list.extend(self, [observe(item) for item in items])
        self._dep.notify()

    def insert(self, index: SupportsIndex, item: Any) -> None:
        list.insert(self, index, observe(item))
        self._dep.notify()

    def pop(self, index: SupportsIndex = -1) -> Any:
        item = list.pop(self, index)
        self._dep.notify()
        return item

    def remove(self, item: Any) -> None:
        list.remove(self, item)
        self._dep.notify()

    def clear(self) -> None:
        list.clear(self)
        self._dep.notify()

    def sort(self, *args: Any, **kwargs: Any) -> None:
        list.sort(self, *args, **kwargs)
        self._dep.notify()

    def reverse(self) -> None:
        list.reverse(self)
        self._dep.notify()


def set_property(target: Any, key: Any, value: Any) -> Any:
    """Store *value* under *key* and return the (possibly converted) stored value."""
    if isinstance(target, ReactiveDict):
        target[key] = value
        return dict.__getitem__(target, key)
    if isinstance(target, ReactiveList):
        target[key] = value
        return list.__getitem__(target, key)
    target[key] = value
    return value


def delete_property(target: Any, key: Any) -> None:
    """Remove *key* from *target* (no-op when absent) and notify watchers."""
    if isinstance(target, list):
        del target[key]
        return
    if key not in target:
        return
    del target[key]
