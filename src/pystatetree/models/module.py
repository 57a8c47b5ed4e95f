"""Raw module descriptors.

A descriptor is what users write: the initial state of a subtree plus
its getters, mutations, actions and nested modules.  Plain mappings are
accepted everywhere and normalised through :meth:`ModuleDescriptor.parse`.

Example::

    counter = {
        "namespaced": True,
        "state": lambda: {"count": 0},
        "getters": {"double": lambda state: state["count"] * 2},
        "mutations": {"increment": lambda state, amount: ...},
        "actions": {"reset": {"handler": reset, "root": True}},
    }
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import Field, ValidationError, field_validator

from pystatetree.exceptions import ModuleDefinitionError
from pystatetree.models._base import StoreBaseModel


class ActionDefinition(StoreBaseModel):
    """An action handler and its scope.

    ``root=True`` registers the action under its bare key even inside a
    namespaced module.
    """

    handler: Callable[..., Any]
    root: bool = False


class ModuleDescriptor(StoreBaseModel):
    """Normalised raw module definition."""

    namespaced: bool = False
    state: Any = None
    getters: dict[str, Callable[..., Any]] = Field(default_factory=dict)
    mutations: dict[str, Callable[..., Any]] = Field(default_factory=dict)
    actions: dict[str, ActionDefinition] = Field(default_factory=dict)
    modules: dict[str, ModuleDescriptor] = Field(default_factory=dict)

    @field_validator("actions", mode="before")
    @classmethod
    def _wrap_bare_actions(cls, value: Any) -> Any:
        """Accept ``{"name": fn}`` as shorthand for ``{"name": {"handler": fn}}``."""
        if not isinstance(value, Mapping):
            return value
        return {key: {"handler": action} if callable(action) else action for key, action in value.items()}

    @field_validator("modules", mode="before")
    @classmethod
    def _drop_empty_modules(cls, value: Any) -> Any:
        if value is None:
            return {}
        return value

    @classmethod
    def parse(cls, raw: Any, path: Sequence[str] = ()) -> ModuleDescriptor:
        """Validate *raw* into a descriptor, reporting failures against *path*."""
        if isinstance(raw, cls):
            return raw
        if raw is None:
            return cls()
        if isinstance(raw, ModuleDescriptor):
            raw = {name: getattr(raw, name) for name in ModuleDescriptor.model_fields}
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            where = ".".join(path) or "<root>"
            raise ModuleDefinitionError(f"invalid module definition at {where}: {exc}", path=path) from exc

    def initial_state(self) -> Any:
        """Evaluate the declared state.

        A callable is treated as a factory so the same descriptor can be
        registered more than once without sharing state.
        """
        state = self.state
        if callable(state):
            state = state()
        return {} if state is None else state

    def with_definitions(self, other: ModuleDescriptor) -> ModuleDescriptor:
        """Return a copy carrying *other*'s handler definitions.

        State and nested modules stay as declared here; hot updates never
        replace them.
        """
        return self.model_copy(
            update={
                "namespaced": other.namespaced,
                "getters": other.getters,
                "mutations": other.mutations,
                "actions": other.actions,
            }
        )


class StoreOptions(ModuleDescriptor):
    """Root descriptor plus store-level options.

    ``strict`` and ``devtools`` override :class:`~pystatetree.config.StoreConfig`
    when set.
    """

    plugins: list[Callable[..., Any]] = Field(default_factory=list)
    strict: bool | None = None
    devtools: bool | None = None
