"""Binding helpers for components.

Each ``map_*`` helper returns a ``{name: function}`` dict.  The functions
take the component (anything carrying a ``store`` attribute, see
:func:`pystatetree.mixin.inject_store`) or the store itself as first
argument::

    computed = map_getters("cart/", ["total", "count"])
    computed["total"](component)

    methods = map_actions("cart/", {"buy": "checkout"})
    await methods["buy"](component, products)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any

from pystatetree._util import fit_arguments

if TYPE_CHECKING:
    from pystatetree.module.module import Module
    from pystatetree.store import Store

_logger = logging.getLogger(__name__)

Names = Sequence[str] | Mapping[str, Any]


def _resolve_store(target: Any) -> Store:
    store = getattr(target, "store", None)
    return target if store is None else store


def _normalize_namespace(namespace: str | Names, names: Names | None) -> tuple[str, Names]:
    if names is None:
        if isinstance(namespace, str):
            raise TypeError("a list or mapping of names is required")
        return "", namespace
    if not isinstance(namespace, str):
        raise TypeError("namespace must be a string")
    if namespace and not namespace.endswith("/"):
        namespace += "/"
    return namespace, names


def _normalize_map(names: Names) -> list[tuple[str, Any]]:
    if isinstance(names, Mapping):
        return list(names.items())
    return [(name, name) for name in names]


def _module_by_namespace(store: Store, helper: str, namespace: str) -> Module | None:
    module = store._modules_namespace_map.get(namespace)
    if module is None and store._dev:
        _logger.error("module namespace not found in %s(): %s", helper, namespace)
    return module


def map_state(namespace: str | Names, states: Names | None = None) -> dict[str, Callable[[Any], Any]]:
    """Map state keys (or ``fn(state, getters)``) of a module."""
    namespace, states = _normalize_namespace(namespace, states)
    mapped: dict[str, Callable[[Any], Any]] = {}
    for key, value in _normalize_map(states):

        def mapped_state(target: Any, value: Any = value) -> Any:
            store = _resolve_store(target)
            state: Any = store.state
            getters: Mapping[str, Any] = store.getters
            if namespace:
                module = _module_by_namespace(store, "map_state", namespace)
                if module is None or module.context is None:
                    return None
                state = module.context.state
                getters = module.context.getters
            if callable(value):
                return fit_arguments(value)(state, getters)
            return state[value]

        mapped[key] = mapped_state
    return mapped


def map_getters(namespace: str | Names, getters: Names | None = None) -> dict[str, Callable[[Any], Any]]:
    """Map getters, by local name, of a module."""
    namespace, getters = _normalize_namespace(namespace, getters)
    mapped: dict[str, Callable[[Any], Any]] = {}
    for key, value in _normalize_map(getters):
        type_ = namespace + value

        def mapped_getter(target: Any, type_: str = type_) -> Any:
            store = _resolve_store(target)
            if namespace and _module_by_namespace(store, "map_getters", namespace) is None:
                return None
            if type_ not in store.getters:
                if store._dev:
                    _logger.error("unknown getter: %s", type_)
                return None
            return store.getters[type_]

        mapped[key] = mapped_getter
    return mapped


def map_mutations(namespace: str | Names, mutations: Names | None = None) -> dict[str, Callable[..., Any]]:
    """Map commit shortcuts; a callable value receives ``(commit, *args)``."""
    namespace, mutations = _normalize_namespace(namespace, mutations)
    mapped: dict[str, Callable[..., Any]] = {}
    for key, value in _normalize_map(mutations):

        def mapped_mutation(target: Any, *args: Any, value: Any = value) -> Any:
            store = _resolve_store(target)
            commit = store.commit
            if namespace:
                module = _module_by_namespace(store, "map_mutations", namespace)
                if module is None or module.context is None:
                    return None
                commit = module.context.commit
            if callable(value):
                return value(commit, *args)
            return commit(value, *args)

        mapped[key] = mapped_mutation
    return mapped


def map_actions(namespace: str | Names, actions: Names | None = None) -> dict[str, Callable[..., Any]]:
    """Map dispatch shortcuts; a callable value receives ``(dispatch, *args)``."""
    namespace, actions = _normalize_namespace(namespace, actions)
    mapped: dict[str, Callable[..., Any]] = {}
    for key, value in _normalize_map(actions):

        def mapped_action(target: Any, *args: Any, value: Any = value) -> Any:
            store = _resolve_store(target)
            dispatch = store.dispatch
            if namespace:
                module = _module_by_namespace(store, "map_actions", namespace)
                if module is None or module.context is None:
                    return None
                dispatch = module.context.dispatch
            if callable(value):
                return value(dispatch, *args)
            return dispatch(value, *args)

        mapped[key] = mapped_action
    return mapped


@dataclass(frozen=True, slots=True)
class NamespacedHelpers:
    map_state: Callable[..., dict[str, Callable[..., Any]]]
    map_getters: Callable[..., dict[str, Callable[..., Any]]]
    map_mutations: Callable[..., dict[str, Callable[..., Any]]]
    map_actions: Callable[..., dict[str, Callable[..., Any]]]


def create_namespaced_helpers(namespace: str) -> NamespacedHelpers:
    """Helpers pre-bound to *namespace*."""
    return NamespacedHelpers(
        map_state=partial(map_state, namespace),
        map_getters=partial(map_getters, namespace),
        map_mutations=partial(map_mutations, namespace),
        map_actions=partial(map_actions, namespace),
    )
