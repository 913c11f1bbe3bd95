"""Synthesized Template Verification"""
from .template_audit import (
    Finding,
    audit_ephemeral_storage,
    audit_fleet_capacity,
    audit_function_policy,
    audit_peering_routes,
    audit_platform_stack,
    audit_route_authorizer,
    logical_id_of,
)

__all__ = [
    "Finding",
    "audit_ephemeral_storage",
    "audit_fleet_capacity",
    "audit_function_policy",
    "audit_peering_routes",
    "audit_platform_stack",
    "audit_route_authorizer",
    "logical_id_of",
]
