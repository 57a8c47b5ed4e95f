"""Observation backend: observable containers, watchers and computed values."""

from pystatetree.reactivity.backend import (
    ObservationBackend,
    ReactiveBackend,
    ReactiveRoot,
    ReactiveRootLike,
    Unwatch,
)
from pystatetree.reactivity.observer import ReactiveDict, ReactiveList, is_reactive, observe
from pystatetree.reactivity.watcher import Computed, Watcher

__all__ = [
    "Computed",
    "ObservationBackend",
    "ReactiveBackend",
    "ReactiveDict",
    "ReactiveList",
    "ReactiveRoot",
    "ReactiveRootLike",
    "Unwatch",
    "Watcher",
    "is_reactive",
    "observe",
]
