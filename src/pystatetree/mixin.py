"""Host framework injection point.

UI frameworks call :func:`inject_store` once per component instance,
while the component is being created, so every component in a tree can
reach the store through ``component.store``.
"""

from __future__ import annotations

from typing import Any


def inject_store(component: Any, *, store: Any = None, parent: Any = None) -> Any:
    """Expose a store on *component* and return it.

    An explicit *store* wins (a zero-argument factory is called first);
    otherwise the store is inherited from *parent*.  Components with
    neither are left untouched and ``None`` is returned.
    """
    if store is not None:
        if callable(store):
            store = store()
        component.store = store
        return store
    inherited = getattr(parent, "store", None) if parent is not None else None
    if inherited is not None:
        component.store = inherited
    return inherited
