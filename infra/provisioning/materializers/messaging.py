"""
Messaging Materializers

SNS (Notifications Topic), SQS (Messages Queue)

どちらもプロバイダのデフォルト設定のまま作成する。
"""
from aws_cdk import (
    aws_sns as sns,
    aws_sqs as sqs,
)
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology


def materialize_topic(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    topic = sns.Topic(scope, spec.logical_id)
    return ProvisionedResource(
        spec=spec,
        construct=topic,
        attributes={
            "arn": topic.topic_arn,
            "name": topic.topic_name,
        },
    )


def materialize_queue(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    queue = sqs.Queue(scope, spec.logical_id)
    return ProvisionedResource(
        spec=spec,
        construct=queue,
        attributes={
            "arn": queue.queue_arn,
            "name": queue.queue_name,
            "url": queue.queue_url,
        },
    )


MATERIALIZERS = {
    ResourceKind.TOPIC: materialize_topic,
    ResourceKind.QUEUE: materialize_queue,
}
