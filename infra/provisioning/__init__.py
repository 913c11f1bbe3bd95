"""Topology Provisioning"""
from .engine import Provisioner, UnsupportedResourceKindError
from .registry import ProvisionedResource, ProvisionedTopology, UnresolvedReferenceError

__all__ = [
    "Provisioner",
    "UnsupportedResourceKindError",
    "ProvisionedResource",
    "ProvisionedTopology",
    "UnresolvedReferenceError",
]
