"""Topology Domain Module"""
from .entities.resource_spec import ResourceSpec
from .entities.topology import Topology
from .exceptions import (
    DependencyCycleError,
    DuplicateResourceError,
    MissingPropertyError,
    TopologyError,
    UnknownDependencyError,
    UnknownResourceError,
)
from .value_objects import (
    AccessGrant,
    CapacityRange,
    GrantAccess,
    IngressRule,
    InvalidCapacityError,
    Ref,
    ResourceKind,
)

__all__ = [
    "ResourceSpec",
    "Topology",
    "TopologyError",
    "DuplicateResourceError",
    "UnknownResourceError",
    "UnknownDependencyError",
    "DependencyCycleError",
    "MissingPropertyError",
    "AccessGrant",
    "CapacityRange",
    "GrantAccess",
    "IngressRule",
    "InvalidCapacityError",
    "Ref",
    "ResourceKind",
]
