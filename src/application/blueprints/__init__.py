"""Topology Blueprints"""
from .platform_blueprint import (
    API_SERVICE,
    FLEET_SERVICE,
    SHARED_SERVICE,
    OverlappingNetworkError,
    build_platform_topology,
)

__all__ = [
    "API_SERVICE",
    "FLEET_SERVICE",
    "SHARED_SERVICE",
    "OverlappingNetworkError",
    "build_platform_topology",
]
