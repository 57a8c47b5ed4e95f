"""Custom exception hierarchy for pystatetree."""

from __future__ import annotations

from collections.abc import Sequence


class StoreError(Exception):
    """Base exception for all pystatetree errors."""


class StoreConfigError(StoreError):
    """Invalid or missing configuration."""


class StoreUsageError(StoreError):
    """The store was used in a way it does not support.

    Raised for fatal usage violations: a missing or incomplete observation
    backend, a non-string mutation/action type, an invalid module path,
    dispatching without a running event loop, or a structural change
    requested while another one is still installing.
    """


class ModuleDefinitionError(StoreError):
    """A raw module descriptor could not be normalised.

    ``path`` is the module path (empty for the root module) whose
    descriptor failed validation.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Sequence[str] = (),
    ) -> None:
        self.path = tuple(path)
        super().__init__(message)
