"""Resource Kind Value Object"""
from __future__ import annotations

from enum import Enum


class ResourceKind(str, Enum):
    """トポロジが宣言できるリソース種別"""

    IDENTITY_PROVIDER = "identity_provider"
    AUTHORIZER = "authorizer"
    REST_API = "rest_api"
    API_ROUTE = "api_route"
    TABLE = "table"
    BUCKET = "bucket"
    TOPIC = "topic"
    QUEUE = "queue"
    SECRET = "secret"
    NETWORK = "network"
    SECURITY_GROUP = "security_group"
    FLEET = "fleet"
    LOAD_BALANCER = "load_balancer"
    PEERING = "peering"
    PEERING_ROUTES = "peering_routes"
    FUNCTION = "function"
    OUTPUT = "output"


# IAM アクションのサービスプレフィックス
SERVICE_PREFIXES: dict[ResourceKind, str] = {
    ResourceKind.TABLE: "dynamodb",
    ResourceKind.BUCKET: "s3",
    ResourceKind.TOPIC: "sns",
    ResourceKind.QUEUE: "sqs",
    ResourceKind.SECRET: "secretsmanager",
}
