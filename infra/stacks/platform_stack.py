"""
Comprehensive API Platform Stack

Cognito + API Gateway + Lambda と ALB + EC2 ASG の 2 つの入口を持つメインスタック。
リソースはトポロジ記述子として宣言し、検証後にプロビジョニングする。
"""
from __future__ import annotations

from aws_cdk import Stack
from constructs import Construct

from src.application.blueprints import API_SERVICE, FLEET_SERVICE, build_platform_topology
from src.application.blueprints.platform_blueprint import REST_API
from src.application.use_cases.verify_topology import VerifyTopologyUseCase
from src.domain.topology import Ref, Topology
from src.infrastructure.config import Settings, get_settings

from infra.provisioning import Provisioner, ProvisionedTopology


class PlatformStack(Stack):
    """Comprehensive API Platform のメインスタック。"""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: Settings | None = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        settings = settings or get_settings()

        # トポロジの構築と検証 (不正な構成はここで合成ごと失敗する)
        self.topology: Topology = build_platform_topology(settings)
        VerifyTopologyUseCase().execute(self.topology)

        provisioner = Provisioner(
            self,
            service_versions={
                API_SERVICE: settings.api_service_version,
                FLEET_SERVICE: settings.fleet_service_version,
            },
        )
        self.resources: ProvisionedTopology = provisioner.provision(self.topology)

    @property
    def api_url(self) -> str:
        return self.resources.attribute(Ref(REST_API, "url"))
