"""
Provisioning Engine

トポロジ記述子を CDK コンストラクトにマテリアライズする。
"""
from __future__ import annotations

from collections.abc import Mapping

import structlog
from aws_cdk import Tags
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec, Topology

from infra.provisioning.materializers import MATERIALIZERS, Materializer
from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology

logger = structlog.get_logger()


class UnsupportedResourceKindError(Exception):
    """マテリアライザ未登録エラー"""

    def __init__(self, spec: ResourceSpec):
        super().__init__(
            f"No materializer registered for {spec.kind.value} ({spec.logical_id})"
        )
        self.spec = spec


class Provisioner:
    """
    プロビジョニングエンジン

    topology.provisioning_order() の順にリソースを生成するため、
    Ref の参照先は必ず生成済みになる。明示的な depends_on は
    CloudFormation の DependsOn として反映する。
    """

    def __init__(
        self,
        scope: Construct,
        materializers: Mapping[ResourceKind, Materializer] | None = None,
        service_versions: Mapping[str, str] | None = None,
    ):
        self._scope = scope
        self._materializers = dict(MATERIALIZERS if materializers is None else materializers)
        self._service_versions = dict(service_versions or {})

    def provision(self, topology: Topology) -> ProvisionedTopology:
        """トポロジ全体をプロビジョニング"""
        log = logger.bind(topology=topology.name)
        log.info("provisioning_started", resource_count=len(topology))

        provisioned = ProvisionedTopology(topology)
        for logical_id in topology.provisioning_order():
            spec = topology.get(logical_id)
            resource = self._materialize(spec, provisioned)
            self._link_dependencies(spec, resource, provisioned)
            self._tag(spec, resource)
            provisioned.register(resource)

        log.info("provisioning_completed", services=sorted(topology.services()))
        return provisioned

    def _materialize(
        self, spec: ResourceSpec, provisioned: ProvisionedTopology
    ) -> ProvisionedResource:
        materializer = self._materializers.get(spec.kind)
        if materializer is None:
            raise UnsupportedResourceKindError(spec)

        resource = materializer(self._scope, spec, provisioned)
        logger.info(
            "resource_materialized",
            logical_id=spec.logical_id,
            kind=spec.kind.value,
            service=spec.service,
        )
        return resource

    def _link_dependencies(
        self,
        spec: ResourceSpec,
        resource: ProvisionedResource,
        provisioned: ProvisionedTopology,
    ) -> None:
        # Ref による依存は CloudFormation が参照から導出する
        for dependency in spec.depends_on:
            resource.construct.node.add_dependency(provisioned[dependency].construct)

    def _tag(self, spec: ResourceSpec, resource: ProvisionedResource) -> None:
        tags = Tags.of(resource.construct)
        tags.add("Service", spec.service)
        version = self._service_versions.get(spec.service)
        if version:
            tags.add("ServiceVersion", version)
