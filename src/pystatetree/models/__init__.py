"""Pydantic models for descriptors and records."""

from pystatetree.models._base import StoreBaseModel
from pystatetree.models.module import ActionDefinition, ModuleDescriptor, StoreOptions
from pystatetree.models.records import (
    Action,
    ActionSubscriber,
    CommitOptions,
    Mutation,
    unify_object_style,
)

__all__ = [
    "Action",
    "ActionDefinition",
    "ActionSubscriber",
    "CommitOptions",
    "ModuleDescriptor",
    "Mutation",
    "StoreBaseModel",
    "StoreOptions",
    "unify_object_style",
]
