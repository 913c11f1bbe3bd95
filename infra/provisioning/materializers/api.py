"""
API Materializers

API Gateway REST API, Route (Lambda 統合 + Cognito 認可), Stack Output
"""
from aws_cdk import (
    CfnOutput,
    aws_apigateway as apigw,
)
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology

AUTHORIZATION_TYPES = {
    "none": apigw.AuthorizationType.NONE,
    "iam": apigw.AuthorizationType.IAM,
    "cognito": apigw.AuthorizationType.COGNITO,
}


def _cors_values(value: str, wildcard: list[str]) -> list[str]:
    if value == "*":
        return wildcard
    return [value]


def materialize_rest_api(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    api = apigw.RestApi(
        scope, spec.logical_id,
        rest_api_name=spec["name"],
        description=spec.get("description"),
        default_cors_preflight_options=apigw.CorsOptions(
            allow_origins=_cors_values(spec.get("cors_allow_origins", "*"), apigw.Cors.ALL_ORIGINS),
            allow_methods=_cors_values(spec.get("cors_allow_methods", "*"), apigw.Cors.ALL_METHODS),
        ),
    )

    return ProvisionedResource(
        spec=spec,
        construct=api,
        attributes={
            "id": api.rest_api_id,
            "url": api.url,
        },
    )


def materialize_route(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    """
    ルートの追加

    API Gateway の Method は RestApi 配下に作成されるため、
    construct には Method を登録する。
    """
    api: apigw.RestApi = provisioned.resolve(spec["api"])
    authorization = spec.get("authorization", "none")
    authorizer = spec.get("authorizer")

    resource = api.root.resource_for_path(spec["path"])
    method = resource.add_method(
        spec["method"],
        apigw.LambdaIntegration(provisioned.resolve(spec["integration"])),
        authorization_type=AUTHORIZATION_TYPES[authorization],
        authorizer=provisioned.resolve(authorizer) if authorizer is not None else None,
    )

    return ProvisionedResource(
        spec=spec,
        construct=method,
        attributes={"id": method.method_id},
    )


def materialize_output(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    output = CfnOutput(
        scope, spec.logical_id,
        value=provisioned.resolve(spec["value"]),
        description=spec.get("description"),
    )
    return ProvisionedResource(spec=spec, construct=output)


MATERIALIZERS = {
    ResourceKind.REST_API: materialize_rest_api,
    ResourceKind.API_ROUTE: materialize_route,
    ResourceKind.OUTPUT: materialize_output,
}
