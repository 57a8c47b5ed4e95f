"""Namespace-relative views handed to module handlers.

A handler never needs to know where its module is mounted: its local
``commit``/``dispatch`` prefix types with the module namespace, its local
``getters`` strip that prefix, and its local ``state`` is the module's own
subtree.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pystatetree._util import get_nested_state
from pystatetree.models.records import CommitOptions, unify_object_style

if TYPE_CHECKING:
    from pystatetree.store import Store

_logger = logging.getLogger(__name__)


class _AttributeMapping(Mapping[str, Any]):
    """Read-only mapping that also answers ``view.name`` for ``view["name"]``."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None


class GettersView(_AttributeMapping):
    """The store's ``getters``: every registered getter, read through the reactive root."""

    def __init__(self, store: Store, types: Sequence[str]) -> None:
        self._store = store
        self._types = tuple(types)
        self._known = frozenset(types)

    def __getitem__(self, key: str) -> Any:
        if key not in self._known:
            raise KeyError(key)
        return self._store._root.computed_value(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, key: object) -> bool:
        return key in self._known

    def __repr__(self) -> str:
        return f"GettersView({list(self._types)!r})"


class LocalGetters(_AttributeMapping):
    """Getters of one namespace, keyed without the namespace prefix.

    Each read goes to the global getter, so the local view shares its
    memoisation.
    """

    def __init__(self, getters: Mapping[str, Any], namespace: str) -> None:
        self._getters = getters
        split = len(namespace)
        self._types = {key[split:]: key for key in getters if key.startswith(namespace)}

    def __getitem__(self, key: str) -> Any:
        return self._getters[self._types[key]]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, key: object) -> bool:
        return key in self._types

    def __repr__(self) -> str:
        return f"LocalGetters({list(self._types)!r})"


@dataclass(frozen=True, slots=True)
class ActionContext:
    """First argument of every action handler."""

    dispatch: Callable[..., Any]
    commit: Callable[..., Any]
    getters: Mapping[str, Any]
    state: Any
    root_getters: Mapping[str, Any]
    root_state: Any


class LocalContext:
    """Local ``dispatch``/``commit``/``getters``/``state`` of a module.

    Without a namespace ``dispatch`` and ``commit`` are the store's own
    methods.  ``getters`` and ``state`` are computed on every access because
    the store may have reset its getters or replaced its state since the
    context was built.
    """

    def __init__(self, store: Store, namespace: str, path: Sequence[str]) -> None:
        self._store = store
        self.namespace = namespace
        self.path = tuple(path)
        self.dispatch: Callable[..., Any]
        self.commit: Callable[..., Any]
        if namespace:
            self.dispatch = self._namespaced_dispatch
            self.commit = self._namespaced_commit
        else:
            self.dispatch = store.dispatch
            self.commit = store.commit

    def _namespaced_dispatch(
        self,
        type_: Any,
        payload: Any = None,
        options: CommitOptions | Mapping[str, Any] | None = None,
    ) -> Any:
        store = self._store
        local_type, payload, opts = unify_object_style(type_, payload, options)
        type_ = local_type
        if not opts.root:
            type_ = self.namespace + local_type
            if type_ not in store._actions:
                if store._dev:
                    _logger.error("unknown local action type: %s, global type: %s", local_type, type_)
                return None
        return store.dispatch(type_, payload)

    def _namespaced_commit(
        self,
        type_: Any,
        payload: Any = None,
        options: CommitOptions | Mapping[str, Any] | None = None,
    ) -> None:
        store = self._store
        local_type, payload, opts = unify_object_style(type_, payload, options)
        type_ = local_type
        if not opts.root:
            type_ = self.namespace + local_type
            if type_ not in store._mutations:
                if store._dev:
                    _logger.error("unknown local mutation type: %s, global type: %s", local_type, type_)
                return
        store.commit(type_, payload, opts)

    @property
    def getters(self) -> Mapping[str, Any]:
        if not self.namespace:
            return self._store.getters
        return self._store._local_getters(self.namespace)

    @property
    def state(self) -> Any:
        return get_nested_state(self._store.state, self.path)
