"""
Provisioned Resource Registry

プロビジョニング済みリソースと Ref の解決。
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from constructs import Construct

from src.domain.topology import Ref, ResourceSpec, Topology


class UnresolvedReferenceError(Exception):
    """参照解決エラー"""

    def __init__(self, ref: Ref, reason: str):
        super().__init__(f"Cannot resolve {ref}: {reason}")
        self.ref = ref


@dataclass(frozen=True)
class ProvisionedResource:
    """マテリアライズ済みのリソース"""

    spec: ResourceSpec
    construct: Construct
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def attribute(self, name: str) -> Any:
        if name == "resource":
            return self.construct
        return self.attributes[name]


class ProvisionedTopology:
    """
    プロビジョニング結果

    トポロジカル順に登録されるため、参照先は常に登録済みになる。
    """

    def __init__(self, topology: Topology):
        self.topology = topology
        self._resources: dict[str, ProvisionedResource] = {}

    def register(self, resource: ProvisionedResource) -> None:
        self._resources[resource.spec.logical_id] = resource

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def __getitem__(self, logical_id: str) -> ProvisionedResource:
        return self._resources[logical_id]

    def construct(self, logical_id: str) -> Any:
        return self.attribute(Ref(logical_id))

    def spec(self, logical_id: str) -> ResourceSpec:
        return self.topology.get(logical_id)

    def attribute(self, ref: Ref) -> Any:
        """Ref をプロビジョニング済みリソースの属性に解決"""
        resource = self._resources.get(ref.logical_id)
        if resource is None:
            raise UnresolvedReferenceError(ref, "resource has not been provisioned")
        try:
            return resource.attribute(ref.attribute)
        except KeyError:
            raise UnresolvedReferenceError(
                ref, f"{resource.spec.kind.value} does not expose {ref.attribute}"
            ) from None

    def resolve(self, value: Any) -> Any:
        """値に含まれる Ref を再帰的に解決（タプルはリストになる）"""
        if isinstance(value, Ref):
            return self.attribute(value)
        if isinstance(value, Mapping):
            return {key: self.resolve(item) for key, item in value.items()}
        if isinstance(value, (tuple, list)):
            return [self.resolve(item) for item in value]
        return value
