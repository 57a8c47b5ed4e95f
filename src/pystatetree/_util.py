"""Small internal helpers shared by the installer, the store and the helpers."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from typing import Any

from pystatetree.exceptions import StoreUsageError

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def positional_arity(fn: Callable[..., Any]) -> int | None:
    """Number of positional arguments *fn* accepts, or ``None`` if unbounded/unknown."""
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in _POSITIONAL:
            count += 1
    return count


def fit_arguments(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap *fn* so extra trailing positional arguments are dropped.

    Lets handlers declare only what they use: a getter may be written as
    ``lambda state: ...`` although it is always called with
    ``(state, getters, root_state, root_getters)``.
    """
    limit = positional_arity(fn)
    if limit is None:
        return fn

    def call(*args: Any) -> Any:
        return fn(*args[:limit])

    return call


def get_nested_state(state: Any, path: Sequence[str]) -> Any:
    for key in path:
        state = state[key]
    return state


def normalize_path(path: str | Sequence[str]) -> tuple[str, ...]:
    """Accept ``"cart"`` or ``["cart", "items"]``; reject anything else."""
    if isinstance(path, str):
        return (path,)
    if not isinstance(path, Sequence) or not all(isinstance(key, str) for key in path):
        raise StoreUsageError("module path must be a string or a sequence of strings.")
    return tuple(path)
