"""
Secrets Materializers

Secrets Manager (生成済み認証情報ペア, ローテーションなし)
"""
import json

from aws_cdk import aws_secretsmanager as secretsmanager
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology


def materialize_secret(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    secret = secretsmanager.Secret(
        scope, spec.logical_id,
        secret_name=spec.get("secret_name"),
        generate_secret_string=secretsmanager.SecretStringGenerator(
            secret_string_template=json.dumps(dict(spec["template"])),
            generate_string_key=spec["generate_key"],
        ),
    )

    return ProvisionedResource(
        spec=spec,
        construct=secret,
        attributes={
            "arn": secret.secret_arn,
            "name": secret.secret_name,
        },
    )


MATERIALIZERS = {
    ResourceKind.SECRET: materialize_secret,
}
