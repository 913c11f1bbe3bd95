"""Topology Entities"""
from .resource_spec import ResourceSpec
from .topology import Topology

__all__ = ["ResourceSpec", "Topology"]
