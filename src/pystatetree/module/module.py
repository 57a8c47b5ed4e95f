"""A single node of the module tree."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pystatetree.models.module import ActionDefinition, ModuleDescriptor

if TYPE_CHECKING:
    from pystatetree.context import LocalContext


class Module:
    """Runtime node wrapping a :class:`ModuleDescriptor`.

    Nodes live in the flat table of a
    :class:`~pystatetree.module.collection.ModuleCollection`; ``parent``
    and ``children`` hold table indices, not node references.

    ``state`` starts as the descriptor's initial state.  Once installed,
    it is the (reactive) object stored in the parent's state, so the
    module and the root state tree share it.
    """

    def __init__(
        self,
        descriptor: ModuleDescriptor,
        *,
        index: int,
        runtime: bool,
        parent: int | None = None,
        name: str | None = None,
        implicit: bool = False,
    ) -> None:
        self.index = index
        self.parent = parent
        self.name = name
        self.runtime = runtime
        # created empty to reach a deeper registration path
        self.implicit = implicit
        # False when the state is a mapping that was already in the tree
        self.owns_state = True
        self.descriptor = descriptor
        self.state: Any = descriptor.initial_state()
        self.children: dict[str, int] = {}
        self.context: LocalContext | None = None

    def __repr__(self) -> str:
        return f"Module(name={self.name!r}, namespaced={self.namespaced}, children={list(self.children)})"

    @property
    def namespaced(self) -> bool:
        return self.descriptor.namespaced

    @property
    def mutations(self) -> dict[str, Callable[..., Any]]:
        return self.descriptor.mutations

    @property
    def actions(self) -> dict[str, ActionDefinition]:
        return self.descriptor.actions

    @property
    def getters(self) -> dict[str, Callable[..., Any]]:
        return self.descriptor.getters

    def update(self, descriptor: ModuleDescriptor) -> None:
        """Swap in *descriptor*'s handler definitions, keeping state and children."""
        self.descriptor = self.descriptor.with_definitions(descriptor)
