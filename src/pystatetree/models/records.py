"""Mutation/action records, call options and subscriber definitions."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import model_validator

from pystatetree.exceptions import StoreUsageError
from pystatetree.models._base import StoreBaseModel


class Mutation(StoreBaseModel):
    """A committed mutation, as seen by mutation subscribers."""

    type: str
    payload: Any = None


class Action(StoreBaseModel):
    """A dispatched action, as seen by action subscribers."""

    type: str
    payload: Any = None


class CommitOptions(StoreBaseModel):
    """Options accepted by ``commit`` and ``dispatch``.

    ``root`` only matters for namespaced local contexts: the type is then
    used as-is instead of being prefixed with the module namespace.
    ``silent`` is accepted for compatibility and otherwise ignored.
    """

    root: bool = False
    silent: bool = False

    @classmethod
    def coerce(cls, value: CommitOptions | Mapping[str, Any] | None) -> CommitOptions:
        if value is None:
            return _DEFAULT_OPTIONS
        if isinstance(value, cls):
            return value
        return cls.model_validate(dict(value))


_DEFAULT_OPTIONS = CommitOptions()


class ActionSubscriber(StoreBaseModel):
    """Hooks run around every dispatched action.

    ``before`` runs before the handler starts; ``after`` runs once the
    action's result has resolved successfully.  Both receive
    ``(action, state)``.
    """

    before: Callable[..., Any] | None = None
    after: Callable[..., Any] | None = None

    @model_validator(mode="after")
    def _require_a_hook(self) -> ActionSubscriber:
        if self.before is None and self.after is None:
            raise ValueError("an action subscriber needs a 'before' or an 'after' hook")
        return self


def unify_object_style(
    type_: Any,
    payload: Any = None,
    options: CommitOptions | Mapping[str, Any] | None = None,
) -> tuple[str, Any, CommitOptions]:
    """Normalise the supported call shapes to ``(type, payload, options)``.

    ``commit("add", 2)``, ``commit({"type": "add", "amount": 2})`` and
    ``commit(Mutation(type="add", payload=2))`` are all accepted.  In the
    mapping form the whole mapping is the payload and the second argument
    is the options.
    """
    if isinstance(type_, (Mutation, Action)):
        options = payload
        payload = type_.payload
        type_ = type_.type
    elif isinstance(type_, Mapping) and type_.get("type"):
        options = payload
        payload = type_
        type_ = type_["type"]

    if not isinstance(type_, str):
        raise StoreUsageError(f"expects string as the type, but found {type(type_).__name__}.")

    return type_, payload, CommitOptions.coerce(options)
