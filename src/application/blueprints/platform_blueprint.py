"""
Platform Blueprint

Settings から Comprehensive API Platform のトポロジ記述子を組み立てる。

- api:    Cognito → API Gateway (POST /action) → Lambda
- fleet:  ALB → EC2 Auto Scaling Group
- shared: VPC (+ Peer VPC), DynamoDB, S3, SNS, SQS, Secrets Manager

api と fleet は同じネットワークを共有する独立した 2 つのサービスとして扱い、
それぞれ別のバージョンでタグ付けされる。
"""
from __future__ import annotations

import ipaddress

from src.domain.topology import (
    AccessGrant,
    CapacityRange,
    GrantAccess,
    IngressRule,
    Ref,
    ResourceKind,
    ResourceSpec,
    Topology,
)
from src.infrastructure.config import Settings, get_settings

API_SERVICE = "api"
FLEET_SERVICE = "fleet"
SHARED_SERVICE = "shared"

# Logical IDs
USER_POOL = "UserPool"
AUTHORIZER = "APIAuthorizer"
REST_API = "Api"
ACTION_ROUTE = "ActionRoute"
TABLE = "MetadataTable"
BUCKET = "FilesBucket"
TOPIC = "NotificationsTopic"
QUEUE = "MessagesQueue"
SECRET = "MySecret"
VPC = "MyVpc"
PEER_VPC = "PeerVpc"
PEERING = "VpcPeering"
ROUTES_TO_PEER = "RoutesToPeer"
ROUTES_FROM_PEER = "RoutesFromPeer"
FLEET_SECURITY_GROUP = "EC2SecurityGroup"
FLEET = "MyASG"
LB_SECURITY_GROUP = "LBSecurityGroup"
LOAD_BALANCER = "ALB"
FUNCTION = "LambdaFunction"
API_ENDPOINT_OUTPUT = "APIEndpoint"

EXPLICIT_POLICY_SID = "ExplicitLeastPrivilege"

WEB_INGRESS = (
    IngressRule(80, "Allow HTTP"),
    IngressRule(443, "Allow HTTPS"),
)


class OverlappingNetworkError(ValueError):
    """ピアリング対象ネットワークのアドレス重複エラー"""

    pass


def build_platform_topology(settings: Settings | None = None) -> Topology:
    """
    プラットフォーム全体のトポロジを構築

    Raises:
        InvalidCapacityError: フリートの min > max
        OverlappingNetworkError: VPC と Peer VPC の CIDR が重複
    """
    settings = settings or get_settings()

    ensure_disjoint_networks(settings.vpc_cidr, settings.peer_vpc_cidr)
    capacity = CapacityRange(
        minimum=settings.fleet_min_capacity,
        maximum=settings.fleet_max_capacity,
    )

    resources = [
        *_identity_resources(),
        *_storage_resources(),
        *_messaging_resources(),
        _secret_resource(settings),
        *_network_resources(settings),
    ]
    if settings.enable_fleet_ingress:
        resources.extend(_fleet_resources(settings, capacity))
    resources.append(_function_resource(settings))
    resources.extend(_api_resources(settings))

    return Topology(name=settings.stack_name, resources=tuple(resources))


def ensure_disjoint_networks(cidr: str, peer_cidr: str) -> None:
    """ピアリングする 2 つのネットワークが重ならないことを確認"""
    if ipaddress.ip_network(cidr).overlaps(ipaddress.ip_network(peer_cidr)):
        raise OverlappingNetworkError(
            f"VPC CIDR {cidr} overlaps peer VPC CIDR {peer_cidr}; peering requires disjoint ranges"
        )


def function_grants() -> tuple[AccessGrant, ...]:
    """Lambda に与える権限エッジ（粗粒度 grant と明示ポリシーの共通ソース）"""
    return (
        AccessGrant(
            Ref(TABLE, "arn"),
            GrantAccess.READ_WRITE,
            ("dynamodb:PutItem", "dynamodb:GetItem"),
        ),
        AccessGrant(
            Ref(BUCKET, "arn"),
            GrantAccess.READ_WRITE,
            ("s3:PutObject", "s3:GetObject"),
            resource_suffix="/*",
        ),
        AccessGrant(Ref(TOPIC, "arn"), GrantAccess.PUBLISH, ("sns:Publish",)),
        AccessGrant(Ref(QUEUE, "arn"), GrantAccess.SEND, ("sqs:SendMessage",)),
        AccessGrant(
            Ref(SECRET, "arn"),
            GrantAccess.READ,
            ("secretsmanager:GetSecretValue",),
        ),
    )


# =================================================================
# Resource groups
# =================================================================


def _identity_resources() -> list[ResourceSpec]:
    return [
        ResourceSpec(
            USER_POOL,
            ResourceKind.IDENTITY_PROVIDER,
            {
                "self_sign_up_enabled": True,
                "sign_in_aliases": ["email"],
                "verification": "code",
            },
            service=API_SERVICE,
        ),
        ResourceSpec(
            AUTHORIZER,
            ResourceKind.AUTHORIZER,
            {"identity_providers": [Ref(USER_POOL)]},
            service=API_SERVICE,
        ),
    ]


def _storage_resources() -> list[ResourceSpec]:
    # dev 用途: スタック削除時にデータごと破棄する
    return [
        ResourceSpec(
            TABLE,
            ResourceKind.TABLE,
            {
                "partition_key": {"name": "id", "type": "string"},
                "removal_policy": "destroy",
            },
        ),
        ResourceSpec(
            BUCKET,
            ResourceKind.BUCKET,
            {
                "removal_policy": "destroy",
                "auto_delete_objects": True,
            },
        ),
    ]


def _messaging_resources() -> list[ResourceSpec]:
    return [
        ResourceSpec(TOPIC, ResourceKind.TOPIC),
        ResourceSpec(QUEUE, ResourceKind.QUEUE),
    ]


def _secret_resource(settings: Settings) -> ResourceSpec:
    return ResourceSpec(
        SECRET,
        ResourceKind.SECRET,
        {
            "secret_name": settings.secret_name,
            "template": {"username": settings.secret_username},
            "generate_key": "password",
        },
    )


def _network_resources(settings: Settings) -> list[ResourceSpec]:
    network_props = {
        "max_azs": settings.max_azs,
        "nat_gateways": settings.nat_gateways,
    }
    return [
        ResourceSpec(VPC, ResourceKind.NETWORK, {"cidr": settings.vpc_cidr, **network_props}),
        # Lambda と EC2 フリートで共有するセキュリティグループ
        ResourceSpec(
            FLEET_SECURITY_GROUP,
            ResourceKind.SECURITY_GROUP,
            {
                "network": Ref(VPC),
                "description": "SecurityGroup for ec2 Instances",
                "allow_all_outbound": True,
                "ingress": WEB_INGRESS,
            },
        ),
        ResourceSpec(
            PEER_VPC,
            ResourceKind.NETWORK,
            {"cidr": settings.peer_vpc_cidr, **network_props},
        ),
        ResourceSpec(
            PEERING,
            ResourceKind.PEERING,
            {"network": Ref(VPC, "id"), "peer_network": Ref(PEER_VPC, "id")},
        ),
        ResourceSpec(
            ROUTES_TO_PEER,
            ResourceKind.PEERING_ROUTES,
            {
                "source": Ref(VPC),
                "destination_cidr": Ref(PEER_VPC, "cidr"),
                "peering": Ref(PEERING, "id"),
                "route_id_prefix": "RouteToPeer",
            },
        ),
        ResourceSpec(
            ROUTES_FROM_PEER,
            ResourceKind.PEERING_ROUTES,
            {
                "source": Ref(PEER_VPC),
                "destination_cidr": Ref(VPC, "cidr"),
                "peering": Ref(PEERING, "id"),
                "route_id_prefix": "RouteFromPeer",
            },
        ),
    ]


def _fleet_resources(settings: Settings, capacity: CapacityRange) -> list[ResourceSpec]:
    return [
        ResourceSpec(
            FLEET,
            ResourceKind.FLEET,
            {
                "network": Ref(VPC),
                "security_group": Ref(FLEET_SECURITY_GROUP),
                "instance_type": settings.fleet_instance_type,
                "machine_image": "amazon_linux",
                "capacity": capacity,
                "target_cpu_utilization": settings.fleet_target_cpu_utilization,
            },
            service=FLEET_SERVICE,
        ),
        ResourceSpec(
            LB_SECURITY_GROUP,
            ResourceKind.SECURITY_GROUP,
            {
                "network": Ref(VPC),
                "allow_all_outbound": True,
                "ingress": WEB_INGRESS,
            },
            service=FLEET_SERVICE,
        ),
        ResourceSpec(
            LOAD_BALANCER,
            ResourceKind.LOAD_BALANCER,
            {
                "network": Ref(VPC),
                "security_group": Ref(LB_SECURITY_GROUP),
                "internet_facing": True,
                "listener_port": 80,
                "listener_open": True,
                "target_port": 80,
                "targets": [Ref(FLEET)],
            },
            service=FLEET_SERVICE,
        ),
    ]


def _function_resource(settings: Settings) -> ResourceSpec:
    return ResourceSpec(
        FUNCTION,
        ResourceKind.FUNCTION,
        {
            "runtime": settings.function_runtime,
            "handler": settings.function_handler,
            "code_path": settings.function_code_path,
            "network": Ref(VPC),
            "security_groups": [Ref(FLEET_SECURITY_GROUP)],
            "environment": {
                "DYNAMODB_TABLE": Ref(TABLE, "name"),
                "S3_BUCKET": Ref(BUCKET, "name"),
                "SNS_TOPIC_ARN": Ref(TOPIC, "arn"),
                "SQS_QUEUE_URL": Ref(QUEUE, "url"),
                "SECRET_ID": Ref(SECRET, "arn"),
            },
            "grants": function_grants(),
            "policy_sid": EXPLICIT_POLICY_SID,
        },
        service=API_SERVICE,
    )


def _api_resources(settings: Settings) -> list[ResourceSpec]:
    return [
        ResourceSpec(
            REST_API,
            ResourceKind.REST_API,
            {
                "name": settings.api_name,
                "description": settings.api_description,
                "cors_allow_origins": "*",
                "cors_allow_methods": "*",
            },
            service=API_SERVICE,
        ),
        ResourceSpec(
            ACTION_ROUTE,
            ResourceKind.API_ROUTE,
            {
                "api": Ref(REST_API),
                "path": "action",
                "method": "POST",
                "integration": Ref(FUNCTION),
                "authorization": "cognito",
                "authorizer": Ref(AUTHORIZER),
            },
            service=API_SERVICE,
        ),
        ResourceSpec(
            API_ENDPOINT_OUTPUT,
            ResourceKind.OUTPUT,
            {"value": Ref(REST_API, "url"), "description": "Comprehensive API base URL"},
            service=API_SERVICE,
        ),
    ]
