"""Wire a module tree into a store.

:func:`install_module` walks the tree and, for every module, attaches its
state to the parent state, builds its local context and registers its
mutations, actions and getters under namespaced types.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from pystatetree._util import fit_arguments, get_nested_state
from pystatetree.context import ActionContext, LocalContext
from pystatetree.module.module import Module

if TYPE_CHECKING:
    from pystatetree.store import DevtoolHook, Store

_logger = logging.getLogger(__name__)


def install_module(
    store: Store,
    root_state: Any,
    path: Sequence[str],
    module: Module,
    hot: bool = False,
) -> None:
    """Install *module* (mounted at *path*) and its children.

    ``hot`` skips attaching state: the state is already in the tree
    (store resets, hot updates, preserved state).
    """
    path = tuple(path)
    namespace = store._modules.get_namespace(path)

    if module.namespaced:
        if namespace in store._modules_namespace_map and store._dev:
            _logger.error("duplicate namespace %s for the namespaced module %s", namespace, "/".join(path))
        store._modules_namespace_map[namespace] = module

    if path and not hot:
        attach_state(store, root_state, path, module)

    local = module.context = LocalContext(store, namespace, path)

    for key, mutation in module.mutations.items():
        register_mutation(store, namespace + key, mutation, local)

    for key, action in module.actions.items():
        action_type = key if action.root else namespace + key
        register_action(store, action_type, action.handler, local)

    for key, getter in module.getters.items():
        register_getter(store, namespace + key, getter, local)

    for key, child in store._modules.children(module):
        install_module(store, root_state, path + (key,), child, hot)


def attach_state(store: Store, root_state: Any, path: Sequence[str], module: Module) -> None:
    """Store the module's state under its name in the parent state."""
    parent_state = get_nested_state(root_state, path[:-1])
    module_name = path[-1]
    with store._with_commit():
        if store._dev and module_name in parent_state:
            _logger.warning(
                'state field "%s" was overridden by a module with the same name at "%s"',
                module_name,
                ".".join(path),
            )
        module.state = store._backend.install_property(parent_state, module_name, module.state)


def attach_subtree_state(store: Store, root_state: Any, path: Sequence[str], module: Module) -> None:
    """:func:`attach_state` for *module* and, recursively, all its children."""
    path = tuple(path)
    attach_state(store, root_state, path, module)
    for key, child in store._modules.children(module):
        attach_subtree_state(store, root_state, path + (key,), child)


def register_mutation(store: Store, type_: str, handler: Callable[..., Any], local: LocalContext) -> None:
    call = fit_arguments(handler)

    def wrapped_mutation_handler(payload: Any) -> None:
        call(local.state, payload)

    store._mutations.setdefault(type_, []).append(wrapped_mutation_handler)


def register_action(store: Store, type_: str, handler: Callable[..., Any], local: LocalContext) -> None:
    call = fit_arguments(handler)

    def wrapped_action_handler(payload: Any) -> asyncio.Future[Any]:
        context = ActionContext(
            dispatch=local.dispatch,
            commit=local.commit,
            getters=local.getters,
            state=local.state,
            root_getters=store.getters,
            root_state=store.state,
        )
        try:
            result = call(context, payload)
        except Exception as exc:
            future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
            future.set_exception(exc)
        else:
            future = _as_future(result)

        hook = store._devtool_hook
        if hook is not None:
            return asyncio.ensure_future(_emit_rejection(hook, future))
        return future

    store._actions.setdefault(type_, []).append(wrapped_action_handler)


def register_getter(store: Store, type_: str, raw_getter: Callable[..., Any], local: LocalContext) -> None:
    if type_ in store._wrapped_getters:
        if store._dev:
            _logger.error("duplicate getter key: %s", type_)
        return

    call = fit_arguments(raw_getter)

    def wrapped_getter(store: Store) -> Any:
        return call(
            local.state,
            local.getters,
            store.state,
            store.getters,
        )

    store._wrapped_getters[type_] = wrapped_getter


def _as_future(result: Any) -> asyncio.Future[Any]:
    """Coerce an action result into a future (plain values resolve immediately)."""
    if inspect.isawaitable(result):
        return asyncio.ensure_future(result)
    future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
    future.set_result(result)
    return future


async def _emit_rejection(hook: DevtoolHook, future: asyncio.Future[Any]) -> Any:
    try:
        return await future
    except Exception as err:
        hook.emit("store:error", err)
        raise
