"""
Template Audit

合成済み CloudFormation テンプレート (dict) に対する検証。
トポロジ検証と同じ性質を、実際にデプロイされる成果物のレベルで確認する。
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from aws_cdk import Stack
from constructs import IConstruct

PRIVATE_SUBNET_TAG = "aws-cdk:subnet-type"

# grant 対象になるリソースタイプと IAM サービスプレフィックス
GRANTABLE_TYPES = {
    "AWS::DynamoDB::Table": "dynamodb",
    "AWS::S3::Bucket": "s3",
    "AWS::SNS::Topic": "sns",
    "AWS::SQS::Queue": "sqs",
    "AWS::SecretsManager::Secret": "secretsmanager",
}


@dataclass(frozen=True)
class Finding:
    """監査結果"""

    audit: str
    logical_id: str
    message: str

    def __str__(self) -> str:
        return f"[{self.audit}] {self.logical_id}: {self.message}"


def logical_id_of(construct: IConstruct) -> str:
    """L1 コンストラクトのテンプレート上の論理IDを取得"""
    return Stack.of(construct).resolve(construct.logical_id)


def _resources(template: Mapping[str, Any], resource_type: str) -> dict[str, dict]:
    return {
        logical_id: resource
        for logical_id, resource in template.get("Resources", {}).items()
        if resource.get("Type") == resource_type
    }


def _references(expression: Any) -> Iterator[str]:
    """式中の Ref / Fn::GetAtt が指す論理IDを列挙"""
    if isinstance(expression, Mapping):
        if "Ref" in expression and isinstance(expression["Ref"], str):
            yield expression["Ref"]
        getatt = expression.get("Fn::GetAtt")
        if isinstance(getatt, list) and getatt:
            yield getatt[0]
        for value in expression.values():
            yield from _references(value)
    elif isinstance(expression, list):
        for item in expression:
            yield from _references(item)


def _ref(expression: Any) -> str | None:
    if isinstance(expression, Mapping) and isinstance(expression.get("Ref"), str):
        return expression["Ref"]
    return None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else [value]


def _tags(resource: Mapping[str, Any]) -> dict[str, Any]:
    return {tag["Key"]: tag["Value"] for tag in resource.get("Properties", {}).get("Tags", [])}


# =================================================================
# Function policy
# =================================================================


def audit_function_policy(template: Mapping[str, Any], policy_sid: str) -> list[Finding]:
    """
    明示ステートメントと粗粒度 grant の対応を検証

    明示ステートメントの各リソースに grant があり、grant された各リソースが
    明示ステートメントに含まれ、そのサービスのアクションが列挙されていること。
    """
    audit = "function-policy"
    findings: list[Finding] = []
    resources = template.get("Resources", {})

    def grantable(logical_id: str) -> str | None:
        return GRANTABLE_TYPES.get(resources.get(logical_id, {}).get("Type"))

    policies = _resources(template, "AWS::IAM::Policy")
    matched = False
    for policy_id, policy in policies.items():
        statements = policy["Properties"]["PolicyDocument"]["Statement"]
        explicit = [statement for statement in statements if statement.get("Sid") == policy_sid]
        if not explicit:
            continue
        matched = True
        if len(explicit) > 1:
            findings.append(Finding(audit, policy_id, f"statement {policy_sid} appears more than once"))

        statement = explicit[0]
        actions = _as_list(statement.get("Action", []))
        explicit_ids = {
            logical_id
            for logical_id in _references(statement.get("Resource", []))
            if grantable(logical_id)
        }
        granted_ids = {
            logical_id
            for other in statements
            if other is not statement
            for logical_id in _references(other.get("Resource", []))
            if grantable(logical_id)
        }

        for logical_id in sorted(explicit_ids - granted_ids):
            findings.append(
                Finding(audit, logical_id, f"listed in {policy_sid} without a coarse grant")
            )
        for logical_id in sorted(granted_ids - explicit_ids):
            findings.append(
                Finding(audit, logical_id, f"granted but missing from {policy_sid}")
            )
        for logical_id in sorted(explicit_ids):
            prefix = grantable(logical_id)
            if not any(action.startswith(f"{prefix}:") for action in actions):
                findings.append(
                    Finding(audit, logical_id, f"{policy_sid} lists no {prefix} actions")
                )

    if not matched:
        findings.append(Finding(audit, policy_sid, "explicit statement not found in any policy"))
    return findings


# =================================================================
# Route authorizer
# =================================================================


def audit_route_authorizer(
    template: Mapping[str, Any], path: str = "action", method: str = "POST"
) -> list[Finding]:
    """ルートが Cognito Authorizer 経由で同じテンプレートの User Pool を参照すること"""
    audit = "route-authorizer"
    findings: list[Finding] = []

    path_ids = {
        logical_id
        for logical_id, resource in _resources(template, "AWS::ApiGateway::Resource").items()
        if resource["Properties"].get("PathPart") == path
    }
    methods = {
        logical_id: resource
        for logical_id, resource in _resources(template, "AWS::ApiGateway::Method").items()
        if resource["Properties"].get("HttpMethod") == method
        and _ref(resource["Properties"].get("ResourceId")) in path_ids
    }
    if not methods:
        return [Finding(audit, f"{method} /{path}", "route not found")]

    authorizers = _resources(template, "AWS::ApiGateway::Authorizer")
    user_pools = _resources(template, "AWS::Cognito::UserPool")

    for logical_id, resource in methods.items():
        properties = resource["Properties"]
        if properties.get("AuthorizationType") != "COGNITO_USER_POOLS":
            findings.append(Finding(audit, logical_id, "route does not require Cognito authorization"))
            continue

        authorizer_id = _ref(properties.get("AuthorizerId"))
        authorizer = authorizers.get(authorizer_id)
        if authorizer is None:
            findings.append(Finding(audit, logical_id, "route has no authorizer"))
            continue

        providers = set(_references(authorizer["Properties"].get("ProviderARNs", [])))
        if authorizer["Properties"].get("Type") != "COGNITO_USER_POOLS" or not providers & set(user_pools):
            findings.append(
                Finding(audit, authorizer_id, "authorizer does not reference the stack's user pool")
            )

    return findings


# =================================================================
# Peering routes
# =================================================================


def _private_route_tables(template: Mapping[str, Any], vpc_id: str) -> set[str]:
    subnets = {
        logical_id
        for logical_id, resource in _resources(template, "AWS::EC2::Subnet").items()
        if _ref(resource["Properties"].get("VpcId")) == vpc_id
        and _tags(resource).get(PRIVATE_SUBNET_TAG) == "Private"
    }
    return {
        _ref(association["Properties"]["RouteTableId"])
        for association in _resources(template, "AWS::EC2::SubnetRouteTableAssociation").values()
        if _ref(association["Properties"].get("SubnetId")) in subnets
    }


def audit_peering_routes(template: Mapping[str, Any]) -> list[Finding]:
    """
    各ピアリング方向で、プライベートサブネットのルートテーブルごとに
    相手 VPC の CIDR 宛ルートがちょうど 1 本あること
    """
    audit = "peering-routes"
    findings: list[Finding] = []

    peerings = _resources(template, "AWS::EC2::VPCPeeringConnection")
    if not peerings:
        return [Finding(audit, "-", "no VPC peering connection")]

    routes = _resources(template, "AWS::EC2::Route")
    for peering_id, peering in peerings.items():
        vpc_id = _ref(peering["Properties"].get("VpcId"))
        peer_id = _ref(peering["Properties"].get("PeerVpcId"))

        for source, destination in ((vpc_id, peer_id), (peer_id, vpc_id)):
            route_tables = _private_route_tables(template, source)
            if not route_tables:
                findings.append(Finding(audit, source, "network has no private subnets"))
                continue

            counts = Counter(
                _ref(route["Properties"]["RouteTableId"])
                for route in routes.values()
                if _ref(route["Properties"].get("VpcPeeringConnectionId")) == peering_id
                and destination in set(_references(route["Properties"].get("DestinationCidrBlock")))
            )
            for route_table in sorted(route_tables):
                if counts.get(route_table, 0) != 1:
                    findings.append(
                        Finding(
                            audit,
                            route_table,
                            f"expected 1 route to {destination} via {peering_id}, "
                            f"found {counts.get(route_table, 0)}",
                        )
                    )
            for route_table in sorted(set(counts) - route_tables):
                findings.append(
                    Finding(audit, route_table, f"peering route outside the private subnets of {source}")
                )

    return findings


# =================================================================
# Fleet capacity
# =================================================================


def audit_fleet_capacity(
    template: Mapping[str, Any], minimum: int = 1, maximum: int = 3
) -> list[Finding]:
    audit = "fleet-capacity"
    groups = _resources(template, "AWS::AutoScaling::AutoScalingGroup")
    if not groups:
        return [Finding(audit, "-", "no auto scaling group")]

    findings: list[Finding] = []
    for logical_id, group in groups.items():
        actual_min = int(group["Properties"]["MinSize"])
        actual_max = int(group["Properties"]["MaxSize"])
        if actual_min > actual_max:
            findings.append(Finding(audit, logical_id, f"MinSize {actual_min} exceeds MaxSize {actual_max}"))
        if (actual_min, actual_max) != (minimum, maximum):
            findings.append(
                Finding(
                    audit,
                    logical_id,
                    f"expected {minimum}..{maximum}, found {actual_min}..{actual_max}",
                )
            )
    return findings


# =================================================================
# Ephemeral storage
# =================================================================


def audit_ephemeral_storage(template: Mapping[str, Any]) -> list[Finding]:
    """テーブルとバケットが削除ポリシー Delete で、バケットがオブジェクトを自動削除すること"""
    audit = "ephemeral-storage"
    findings: list[Finding] = []

    storage = {
        **_resources(template, "AWS::DynamoDB::Table"),
        **_resources(template, "AWS::S3::Bucket"),
    }
    for logical_id, resource in storage.items():
        if resource.get("DeletionPolicy") != "Delete":
            findings.append(
                Finding(audit, logical_id, f"DeletionPolicy is {resource.get('DeletionPolicy', 'unset')}")
            )

    auto_deleted = {
        _ref(resource["Properties"].get("BucketName"))
        for resource in _resources(template, "Custom::S3AutoDeleteObjects").values()
    }
    for logical_id in _resources(template, "AWS::S3::Bucket"):
        if logical_id not in auto_deleted:
            findings.append(Finding(audit, logical_id, "bucket does not auto-delete objects"))

    return findings


def audit_platform_stack(
    template: Mapping[str, Any],
    policy_sid: str,
    route_path: str = "action",
    route_method: str = "POST",
    fleet_capacity: tuple[int, int] | None = (1, 3),
) -> list[Finding]:
    """プラットフォームスタックの全監査を実行"""
    findings = [
        *audit_function_policy(template, policy_sid),
        *audit_route_authorizer(template, route_path, route_method),
        *audit_peering_routes(template),
        *audit_ephemeral_storage(template),
    ]
    if fleet_capacity is not None:
        findings.extend(audit_fleet_capacity(template, *fleet_capacity))
    return findings
