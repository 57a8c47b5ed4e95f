"""pystatetree - hierarchical, mutation-gated state container."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pystatetree")
except PackageNotFoundError:
    __version__ = "0+local"
from pystatetree.config import StoreConfig
from pystatetree.context import ActionContext, LocalContext
from pystatetree.exceptions import (
    ModuleDefinitionError,
    StoreConfigError,
    StoreError,
    StoreUsageError,
)
from pystatetree.helpers import (
    create_namespaced_helpers,
    map_actions,
    map_getters,
    map_mutations,
    map_state,
)
from pystatetree.mixin import inject_store
from pystatetree.models import (
    Action,
    ActionDefinition,
    ActionSubscriber,
    CommitOptions,
    ModuleDescriptor,
    Mutation,
    StoreOptions,
)
from pystatetree.plugins import create_logger
from pystatetree.reactivity import ObservationBackend, ReactiveBackend
from pystatetree.store import Store, StorePhase

__all__ = [
    "__version__",
    "Action",
    "ActionContext",
    "ActionDefinition",
    "ActionSubscriber",
    "CommitOptions",
    "LocalContext",
    "ModuleDefinitionError",
    "ModuleDescriptor",
    "Mutation",
    "ObservationBackend",
    "ReactiveBackend",
    "Store",
    "StoreConfig",
    "StoreConfigError",
    "StoreError",
    "StoreOptions",
    "StorePhase",
    "StoreUsageError",
    "create_logger",
    "create_namespaced_helpers",
    "inject_store",
    "map_actions",
    "map_getters",
    "map_mutations",
    "map_state",
]
