"""
Materializers

リソース種別ごとに ResourceSpec を CDK コンストラクトへ変換する関数の登録。
"""
from typing import Callable

from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology

from . import api, compute, data, identity, messaging, network, secrets

Materializer = Callable[[Construct, ResourceSpec, ProvisionedTopology], ProvisionedResource]

MATERIALIZERS: dict[ResourceKind, Materializer] = {
    **identity.MATERIALIZERS,
    **network.MATERIALIZERS,
    **data.MATERIALIZERS,
    **messaging.MATERIALIZERS,
    **secrets.MATERIALIZERS,
    **compute.MATERIALIZERS,
    **api.MATERIALIZERS,
}

__all__ = ["MATERIALIZERS", "Materializer"]
