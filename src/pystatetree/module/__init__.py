"""Module tree: nodes and the path-addressed collection."""

from pystatetree.module.collection import NAMESPACE_SEPARATOR, ModuleCollection
from pystatetree.module.module import Module

__all__ = ["NAMESPACE_SEPARATOR", "Module", "ModuleCollection"]
