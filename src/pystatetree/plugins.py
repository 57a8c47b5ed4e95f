"""Bundled store plugins."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from pystatetree._redact import DEFAULT_SENSITIVE_KEYS, redact_for_log
from pystatetree.models.records import Action, Mutation

if TYPE_CHECKING:
    from pystatetree.store import Store


def _identity(value: Any) -> Any:
    return value


def create_logger(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    filter: Callable[[Mutation, Any, Any], bool] | None = None,  # noqa: A002
    transformer: Callable[[Any], Any] = _identity,
    mutation_transformer: Callable[[Mutation], Any] = _identity,
    action_filter: Callable[[Action, Any], bool] | None = None,
    action_transformer: Callable[[Action], Any] = _identity,
    log_mutations: bool = True,
    log_actions: bool = True,
    sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS,
) -> Callable[[Store], None]:
    """Build a plugin that logs mutations (with state before/after) and actions.

    Parameters
    ----------
    logger : logging.Logger, optional
        Destination logger. Defaults to ``pystatetree.logger``.
    level : int
        Log level for every record.
    filter : callable, optional
        ``filter(mutation, state_before, state_after)``; return ``False``
        to skip a mutation.
    transformer : callable
        Applied to state snapshots before logging.
    mutation_transformer, action_transformer : callable
        Applied to the mutation/action record before logging.
    action_filter : callable, optional
        ``action_filter(action, state)``; return ``False`` to skip an action.
    sensitive_keys : iterable of str
        Payload/state keys replaced by ``<redacted>``.
    """
    log = logger or logging.getLogger("pystatetree.logger")
    keys = frozenset(sensitive_keys)

    def _redact(value: Any) -> Any:
        return redact_for_log(value, sensitive_keys=keys)

    def plugin(store: Store) -> None:
        prev_state = copy.deepcopy(store.state)

        if log_mutations:

            def on_mutation(mutation: Mutation, state: Any) -> None:
                nonlocal prev_state
                next_state = copy.deepcopy(state)
                if filter is None or filter(mutation, prev_state, next_state):
                    formatted = mutation_transformer(mutation)
                    log.log(
                        level,
                        "mutation %s prev=%s payload=%s next=%s",
                        mutation.type,
                        _redact(transformer(prev_state)),
                        _redact(getattr(formatted, "payload", formatted)),
                        _redact(transformer(next_state)),
                    )
                prev_state = next_state

            store.subscribe(on_mutation)

        if log_actions:

            def on_action(action: Action, state: Any) -> None:
                if action_filter is None or action_filter(action, state):
                    formatted = action_transformer(action)
                    log.log(
                        level,
                        "action %s payload=%s",
                        action.type,
                        _redact(getattr(formatted, "payload", formatted)),
                    )

            store.subscribe_action(on_action)

    return plugin
