"""Topology Value Objects"""
from .access_grant import GRANTABLE_ACCESS, AccessGrant, GrantAccess
from .capacity_range import CapacityRange, InvalidCapacityError
from .ingress_rule import IngressRule
from .reference import Ref
from .resource_kind import SERVICE_PREFIXES, ResourceKind

__all__ = [
    "AccessGrant",
    "GrantAccess",
    "GRANTABLE_ACCESS",
    "CapacityRange",
    "InvalidCapacityError",
    "IngressRule",
    "Ref",
    "ResourceKind",
    "SERVICE_PREFIXES",
]
