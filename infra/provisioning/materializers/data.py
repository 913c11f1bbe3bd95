"""
Data Materializers

DynamoDB (Metadata Table), S3 (Files Bucket)
"""
from aws_cdk import (
    RemovalPolicy,
    aws_dynamodb as dynamodb,
    aws_s3 as s3,
)
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology

REMOVAL_POLICIES = {
    "destroy": RemovalPolicy.DESTROY,
    "retain": RemovalPolicy.RETAIN,
    "snapshot": RemovalPolicy.SNAPSHOT,
}

ATTRIBUTE_TYPES = {
    "string": dynamodb.AttributeType.STRING,
    "number": dynamodb.AttributeType.NUMBER,
    "binary": dynamodb.AttributeType.BINARY,
}


def materialize_table(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    partition_key = spec["partition_key"]

    table = dynamodb.Table(
        scope, spec.logical_id,
        partition_key=dynamodb.Attribute(
            name=partition_key["name"],
            type=ATTRIBUTE_TYPES[partition_key["type"]],
        ),
        removal_policy=REMOVAL_POLICIES[spec.get("removal_policy", "retain")],
    )

    return ProvisionedResource(
        spec=spec,
        construct=table,
        attributes={
            "arn": table.table_arn,
            "name": table.table_name,
        },
    )


def materialize_bucket(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    bucket = s3.Bucket(
        scope, spec.logical_id,
        removal_policy=REMOVAL_POLICIES[spec.get("removal_policy", "retain")],
        auto_delete_objects=spec.get("auto_delete_objects", False),
    )

    return ProvisionedResource(
        spec=spec,
        construct=bucket,
        attributes={
            "arn": bucket.bucket_arn,
            "name": bucket.bucket_name,
        },
    )


MATERIALIZERS = {
    ResourceKind.TABLE: materialize_table,
    ResourceKind.BUCKET: materialize_bucket,
}
