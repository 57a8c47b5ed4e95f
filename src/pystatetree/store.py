"""The store: single source of truth and the only sanctioned way to change state.

Usage::

    store = Store({
        "state": {"count": 1},
        "mutations": {"increment": lambda state, amount: state.update(count=state["count"] + amount)},
        "actions": {"increment_later": increment_later},
        "modules": {"cart": cart_module},
    })

    store.commit("increment", 1)
    await store.dispatch("cart/checkout", products)
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import functools
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any, Literal, Protocol

from pystatetree._install import attach_subtree_state, install_module
from pystatetree._util import fit_arguments, get_nested_state, normalize_path
from pystatetree.config import StoreConfig
from pystatetree.context import GettersView, LocalGetters
from pystatetree.exceptions import StoreUsageError
from pystatetree.models.module import StoreOptions
from pystatetree.models.records import (
    Action,
    ActionSubscriber,
    CommitOptions,
    Mutation,
    unify_object_style,
)
from pystatetree.module.collection import ModuleCollection
from pystatetree.module.module import Module
from pystatetree.reactivity.backend import ObservationBackend, ReactiveBackend, ReactiveRootLike, Unwatch

_logger = logging.getLogger(__name__)

MutationSubscriber = Callable[[Mutation, Any], Any]
Unsubscribe = Callable[[], None]


class DevtoolHook(Protocol):
    """Anything that accepts diagnostic events (``emit("store:error", err)``)."""

    def emit(self, event: str, *args: Any) -> Any:
        ...


class StorePhase(enum.StrEnum):
    CONSTRUCTING = "constructing"
    INSTALLED = "installed"
    INSTALLING = "installing"
    DESTROYING = "destroying"


def _generic_subscribe(fn: Any, subs: list[Any]) -> Unsubscribe:
    if not any(sub is fn for sub in subs):
        subs.append(fn)

    def unsubscribe() -> None:
        for index, sub in enumerate(subs):
            if sub is fn:
                del subs[index]
                return

    return unsubscribe


class Store:
    """Hierarchical state container with mutation-gated writes.

    Parameters
    ----------
    options : mapping or StoreOptions, optional
        Root module descriptor (``state``, ``getters``, ``mutations``,
        ``actions``, ``modules``) plus ``plugins``, ``strict`` and
        ``devtools``.
    config : StoreConfig, optional
        Defaults for ``strict``/``devtools`` and the production switch
        that silences diagnostics.
    backend : ObservationBackend, optional
        Observation backend used for state, getters and watchers.
        Defaults to a new :class:`~pystatetree.reactivity.ReactiveBackend`.
    devtool_hook : DevtoolHook, optional
        Receives ``"store:error"`` for every rejected action when devtools
        are enabled.
    """

    def __init__(
        self,
        options: StoreOptions | Mapping[str, Any] | None = None,
        *,
        config: StoreConfig | None = None,
        backend: ObservationBackend | None = None,
        devtool_hook: DevtoolHook | None = None,
    ) -> None:
        self._config = config or StoreConfig()
        self._dev = not self._config.production

        if backend is None:
            backend = ReactiveBackend()
        if not isinstance(backend, ObservationBackend):
            raise StoreUsageError(
                "the observation backend must provide observe, install_property, delete_property, "
                "create_root, watch and next_tick."
            )
        self._backend: ObservationBackend = backend

        opts = StoreOptions.parse(options)

        self.phase = StorePhase.CONSTRUCTING
        self._committing = False
        self._actions: dict[str, list[Callable[[Any], asyncio.Future[Any]]]] = {}
        self._action_subscribers: list[ActionSubscriber] = []
        self._mutations: dict[str, list[Callable[[Any], None]]] = {}
        self._wrapped_getters: dict[str, Callable[[Store], Any]] = {}
        self._modules = ModuleCollection(opts, dev=self._dev)
        self._modules_namespace_map: dict[str, Module] = {}
        self._subscribers: list[MutationSubscriber] = []
        self._local_getters_cache: dict[str, LocalGetters] = {}
        self._root: ReactiveRootLike | None = None
        self._getters = GettersView(self, ())

        self.strict = self._config.strict if opts.strict is None else opts.strict
        use_devtools = self._config.devtools if opts.devtools is None else opts.devtools
        self._devtool_hook = devtool_hook if use_devtools else None

        root = self._modules.root
        root.state = self._backend.observe(root.state)

        install_module(self, root.state, (), root)
        self._reset_root(root.state)
        self.phase = StorePhase.INSTALLED

        for plugin in opts.plugins:
            plugin(self)

    # ------------------------------------------------------------------
    # State & getters
    # ------------------------------------------------------------------

    @property
    def state(self) -> Any:
        assert self._root is not None  # noqa: S101
        return self._root.state

    @state.setter
    def state(self, value: Any) -> None:
        if self._dev:
            _logger.error("use store.replace_state() to explicitly replace store state.")

    @property
    def getters(self) -> GettersView:
        return self._getters

    def _local_getters(self, namespace: str) -> LocalGetters:
        cached = self._local_getters_cache.get(namespace)
        if cached is None:
            cached = self._local_getters_cache[namespace] = LocalGetters(self._getters, namespace)
        return cached

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def commit(
        self,
        type_: Any,
        payload: Any = None,
        options: CommitOptions | Mapping[str, Any] | None = None,
    ) -> None:
        """Run every mutation handler registered under *type_*, then notify subscribers."""
        type_, payload, opts = unify_object_style(type_, payload, options)

        mutation = Mutation(type=type_, payload=payload)
        entry = self._mutations.get(type_)
        if not entry:
            if self._dev:
                _logger.error("unknown mutation type: %s", type_)
            return

        with self._with_commit():
            for handler in list(entry):
                handler(payload)

        for sub in list(self._subscribers):
            sub(mutation, self.state)

        if self._dev and opts.silent:
            _logger.warning(
                "mutation type: %s. The silent option has no effect; filter mutations in your subscribers instead.",
                type_,
            )

    @contextlib.contextmanager
    def _with_commit(self) -> Iterator[None]:
        """Committing region: state writes inside it are sanctioned."""
        committing = self._committing
        self._committing = True
        try:
            yield
        finally:
            self._committing = committing

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def dispatch(self, type_: Any, payload: Any = None) -> asyncio.Future[Any] | None:
        """Run the action(s) registered under *type_*.

        Returns a future resolving to the handler's result (a list of
        results when several modules registered the same root type), or
        ``None`` for an unknown type.  Must be called with a running event
        loop.
        """
        type_, payload, _ = unify_object_style(type_, payload)

        action = Action(type=type_, payload=payload)
        entry = self._actions.get(type_)
        if not entry:
            if self._dev:
                _logger.error("unknown action type: %s", type_)
            return None

        self._require_loop()
        self._notify_action_subscribers("before", action)

        handlers = list(entry)
        if len(handlers) > 1:
            result: asyncio.Future[Any] = asyncio.gather(*(handler(payload) for handler in handlers))
        else:
            result = handlers[0](payload)

        return asyncio.ensure_future(self._settle_action(action, result))

    async def _settle_action(self, action: Action, result: asyncio.Future[Any]) -> Any:
        res = await result
        self._notify_action_subscribers("after", action)
        return res

    def _notify_action_subscribers(self, phase: Literal["before", "after"], action: Action) -> None:
        for sub in list(self._action_subscribers):
            hook = sub.before if phase == "before" else sub.after
            if hook is None:
                continue
            try:
                hook(action, self.state)
            except Exception:
                if self._dev:
                    _logger.warning("error in %s action subscriber for %s", phase, action.type, exc_info=True)

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise StoreUsageError("dispatch requires a running asyncio event loop.") from exc

    # ------------------------------------------------------------------
    # Subscriptions & watchers
    # ------------------------------------------------------------------

    def subscribe(self, fn: MutationSubscriber) -> Unsubscribe:
        """Call ``fn(mutation, state)`` after every commit."""
        return _generic_subscribe(fn, self._subscribers)

    def subscribe_action(
        self,
        fn: Callable[[Action, Any], Any] | ActionSubscriber | Mapping[str, Any],
    ) -> Unsubscribe:
        """Register action hooks; a bare callable is a ``before`` hook."""
        if isinstance(fn, ActionSubscriber):
            subscriber = fn
        elif isinstance(fn, Mapping):
            subscriber = ActionSubscriber.model_validate(dict(fn))
        else:
            subscriber = ActionSubscriber(before=fn)
        return _generic_subscribe(subscriber, self._action_subscribers)

    def watch(
        self,
        getter: Callable[..., Any],
        callback: Callable[[Any, Any], Any],
        *,
        deep: bool = False,
        sync: bool = False,
        immediate: bool = False,
    ) -> Unwatch:
        """Call ``callback(new, old)`` whenever ``getter(state, getters)`` changes."""
        if not callable(getter):
            raise StoreUsageError("store.watch only accepts a function.")
        call = fit_arguments(getter)
        return self._backend.watch(
            lambda: call(self.state, self.getters),
            callback,
            deep=deep,
            sync=sync,
            immediate=immediate,
        )

    def replace_state(self, state: Any) -> None:
        """Swap the whole root state (hydration, time travel)."""
        assert self._root is not None  # noqa: S101
        with self._with_commit():
            self._root.state = state

    # ------------------------------------------------------------------
    # Dynamic modules
    # ------------------------------------------------------------------

    def register_module(
        self,
        path: str | Sequence[str],
        raw_module: Any,
        *,
        preserve_state: bool = False,
    ) -> None:
        """Add a module at *path* and make it live.

        ``preserve_state=True`` keeps the state already present at *path*
        (for example after hydrating from a snapshot) instead of attaching
        the module's declared state.
        """
        path = normalize_path(path)
        if not path:
            raise StoreUsageError("cannot register the root module by using register_module.")

        with self._installing():
            created = self._modules.register(path, raw_module, root_state=self.state)
            module = self._modules.get(created)
            assert module is not None  # noqa: S101
            if not preserve_state:
                attach_subtree_state(self, self.state, created, module)
            self._reset_store()

    def unregister_module(self, path: str | Sequence[str]) -> None:
        """Remove a dynamically registered module, its state and its handlers."""
        path = normalize_path(path)

        with self._installing():
            removed = self._modules.unregister(path)
            if removed is None:
                return
            with self._with_commit():
                parent_state = get_nested_state(self.state, removed[:-1])
                self._backend.delete_property(parent_state, removed[-1])
            self._reset_store()

    def has_module(self, path: str | Sequence[str]) -> bool:
        return self._modules.has(normalize_path(path))

    def hot_update(self, new_options: StoreOptions | Mapping[str, Any]) -> None:
        """Swap handler definitions in place, keeping all existing state."""
        with self._installing():
            self._modules.update(StoreOptions.parse(new_options))
            self._reset_store(hot=True)

    @contextlib.contextmanager
    def _installing(self) -> Iterator[None]:
        if self.phase is not StorePhase.INSTALLED:
            raise StoreUsageError(f"cannot change the module tree while the store is {self.phase}.")
        self.phase = StorePhase.INSTALLING
        try:
            yield
        finally:
            self.phase = StorePhase.INSTALLED

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def _reset_store(self, hot: bool = False) -> None:
        self._actions = {}
        self._mutations = {}
        self._wrapped_getters = {}
        self._modules_namespace_map = {}
        state = self.state
        install_module(self, state, (), self._modules.root, True)
        self._reset_root(state, hot)

    def _reset_root(self, state: Any, hot: bool = False) -> None:
        old_root = self._root

        self._local_getters_cache = {}
        wrapped_getters = self._wrapped_getters
        # partial keeps only the store in the closure, not the old root
        computed = {key: functools.partial(fn, self) for key, fn in wrapped_getters.items()}
        self._getters = GettersView(self, tuple(wrapped_getters))
        self._root = self._backend.create_root(state, computed, old_root)

        if self.strict:
            self._enable_strict_mode(self._root)

        if old_root is not None:
            # The old strict watcher must not outlive this call; only getter disposal waits.
            if hot:
                old_root.detach()
            else:
                old_root.stop_watchers()
            self._backend.next_tick(functools.partial(self._destroy_root, old_root))

    def _destroy_root(self, root: ReactiveRootLike) -> None:
        phase = self.phase
        self.phase = StorePhase.DESTROYING
        try:
            root.destroy()
        finally:
            self.phase = phase

    def _enable_strict_mode(self, root: ReactiveRootLike) -> None:
        def check(_new: Any, _old: Any) -> None:
            if self._dev and not self._committing:
                _logger.error("do not mutate store state outside mutation handlers.")

        root.watch(lambda: root.state, check, deep=True, sync=True)
