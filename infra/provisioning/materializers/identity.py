"""
Identity Materializers

Cognito User Pool, API Gateway Cognito Authorizer
"""
from aws_cdk import (
    aws_apigateway as apigw,
    aws_cognito as cognito,
)
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology

VERIFICATION_STYLES = {
    "code": cognito.VerificationEmailStyle.CODE,
    "link": cognito.VerificationEmailStyle.LINK,
}


def materialize_user_pool(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    """メール確認コード付きセルフサインアップの User Pool"""
    aliases = {alias: True for alias in spec.get("sign_in_aliases", ())}

    user_pool = cognito.UserPool(
        scope, spec.logical_id,
        self_sign_up_enabled=spec.get("self_sign_up_enabled", False),
        user_verification=cognito.UserVerificationConfig(
            email_style=VERIFICATION_STYLES[spec.get("verification", "code")],
        ),
        sign_in_aliases=cognito.SignInAliases(**aliases),
    )

    return ProvisionedResource(
        spec=spec,
        construct=user_pool,
        attributes={
            "arn": user_pool.user_pool_arn,
            "id": user_pool.user_pool_id,
        },
    )


def materialize_authorizer(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    authorizer = apigw.CognitoUserPoolsAuthorizer(
        scope, spec.logical_id,
        cognito_user_pools=provisioned.resolve(spec["identity_providers"]),
    )
    return ProvisionedResource(spec=spec, construct=authorizer)


MATERIALIZERS = {
    ResourceKind.IDENTITY_PROVIDER: materialize_user_pool,
    ResourceKind.AUTHORIZER: materialize_authorizer,
}
