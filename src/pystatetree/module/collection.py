"""Path-addressed module tree.

Paths are tuples of module names from the root; the root itself is the
empty path.  Modules are kept in a flat table indexed by an integer so a
node never references its parent or children directly.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from pystatetree.models.module import ModuleDescriptor
from pystatetree.module.module import Module

_logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = "/"


class ModuleCollection:
    """Builds, mutates and navigates the module tree."""

    def __init__(self, raw_root: Any, *, dev: bool = True) -> None:
        self._dev = dev
        self._ids = itertools.count()
        self._modules: dict[int, Module] = {}
        self.root: Module
        self.register((), raw_root, runtime=False)

    def __len__(self) -> int:
        return len(self._modules)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def child(self, module: Module, name: str) -> Module | None:
        index = module.children.get(name)
        return None if index is None else self._modules[index]

    def children(self, module: Module) -> Iterator[tuple[str, Module]]:
        for name, index in list(module.children.items()):
            yield name, self._modules[index]

    def parent(self, module: Module) -> Module | None:
        return None if module.parent is None else self._modules[module.parent]

    def get(self, path: Sequence[str]) -> Module | None:
        module: Module | None = self.root
        for key in path:
            if module is None:
                return None
            module = self.child(module, key)
        return module

    def has(self, path: Sequence[str]) -> bool:
        return self.get(path) is not None

    def get_namespace(self, path: Sequence[str]) -> str:
        """Concatenate ``name + "/"`` for every namespaced module along *path*."""
        module = self.root
        namespace = ""
        for key in path:
            child = self.child(module, key)
            if child is None:
                break
            module = child
            if module.namespaced:
                namespace += key + NAMESPACE_SEPARATOR
        return namespace

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _add(
        self,
        descriptor: ModuleDescriptor,
        *,
        runtime: bool,
        parent: Module | None,
        name: str | None,
        implicit: bool = False,
    ) -> Module:
        module = Module(
            descriptor,
            index=next(self._ids),
            runtime=runtime,
            parent=None if parent is None else parent.index,
            name=name,
            implicit=implicit,
        )
        self._modules[module.index] = module
        if parent is not None and name is not None:
            previous = self.child(parent, name)
            if previous is not None:
                self._drop(previous)
            parent.children[name] = module.index
        return module

    def _drop(self, module: Module) -> None:
        for _name, child in self.children(module):
            self._drop(child)
        self._modules.pop(module.index, None)

    def register(
        self,
        path: Sequence[str],
        raw: Any,
        runtime: bool = True,
        *,
        root_state: Any = None,
    ) -> tuple[str, ...]:
        """Insert *raw* at *path* together with its nested modules.

        Missing intermediate modules are created empty.  When *root_state*
        already holds a mapping where an intermediate goes, that mapping
        becomes the intermediate's state instead (``owns_state`` is
        ``False``).  Returns the path of the topmost created module whose
        state still has to be attached.
        """
        path = tuple(path)
        descriptor = ModuleDescriptor.parse(raw, path)

        created: tuple[str, ...] | None = None
        if not path:
            self.root = self._add(descriptor, runtime=runtime, parent=None, name=None)
            created = ()
        else:
            parent = self.root
            for depth, key in enumerate(path[:-1]):
                child = self.child(parent, key)
                if child is None:
                    child = self._add(ModuleDescriptor(), runtime=runtime, parent=parent, name=key, implicit=True)
                    existing = _existing_mapping(root_state, path[: depth + 1]) if created is None else None
                    if existing is not None:
                        child.state = existing
                        child.owns_state = False
                    elif created is None:
                        created = path[: depth + 1]
                parent = child
            self._add(descriptor, runtime=runtime, parent=parent, name=path[-1])
            if created is None:
                created = path

        for key, raw_child in descriptor.modules.items():
            self.register(path + (key,), raw_child, runtime)
        return created

    def unregister(self, path: Sequence[str]) -> tuple[str, ...] | None:
        """Remove the module at *path*.

        Empty intermediates that were only created to reach *path* are
        pruned as well.  Returns the topmost path whose state should be
        removed, or ``None`` when nothing was removed.  An intermediate
        that adopted existing state loses its module but keeps its state.
        """
        path = tuple(path)
        if not path:
            if self._dev:
                _logger.error("cannot unregister the root module")
            return None

        parent = self.get(path[:-1])
        key = path[-1]
        child = None if parent is None else self.child(parent, key)
        if parent is None or child is None:
            if self._dev:
                _logger.error(
                    "trying to unregister module '%s', which is not registered",
                    "/".join(path),
                )
            return None
        if not child.runtime:
            if self._dev:
                _logger.error(
                    "cannot unregister module '%s': it was declared when the store was created",
                    "/".join(path),
                )
            return None

        del parent.children[key]
        self._drop(child)

        removed = path
        owned = True
        while parent is not self.root and parent.implicit and not parent.children:
            grand = self.parent(parent)
            assert grand is not None and parent.name is not None  # noqa: S101
            del grand.children[parent.name]
            self._modules.pop(parent.index, None)
            owned = owned and parent.owns_state
            if owned:
                removed = removed[:-1]
            parent = grand
        return removed

    def update(self, raw_root: Any) -> None:
        """Hot-swap handler definitions from a new descriptor tree.

        State and existing children are kept.  Modules present only in the
        new tree cannot be hot-added; they are reported and skipped while
        their siblings still update.
        """
        self._update((), self.root, ModuleDescriptor.parse(raw_root))

    def _update(self, path: tuple[str, ...], target: Module, new: ModuleDescriptor) -> None:
        target.update(new)
        for key, raw_child in new.modules.items():
            child = self.child(target, key)
            if child is None:
                if self._dev:
                    _logger.warning(
                        "trying to add a new module '%s' on hot reloading, manual reload is needed",
                        "/".join(path + (key,)),
                    )
                continue
            self._update(path + (key,), child, ModuleDescriptor.parse(raw_child, path + (key,)))


def _existing_mapping(root_state: Any, path: Sequence[str]) -> Mapping[str, Any] | None:
    state = root_state
    for key in path:
        if not isinstance(state, Mapping) or key not in state:
            return None
        state = state[key]
    return state if isinstance(state, Mapping) else None
