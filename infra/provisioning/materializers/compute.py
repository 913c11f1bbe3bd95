"""
Compute Materializers

Lambda (Action Function), EC2 Auto Scaling Group, Application Load Balancer
"""
from aws_cdk import (
    aws_autoscaling as autoscaling,
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
    aws_lambda as lambda_,
)
from constructs import Construct

from src.domain.topology import GrantAccess, ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology

RUNTIMES = {
    "python3.11": lambda_.Runtime.PYTHON_3_11,
    "python3.12": lambda_.Runtime.PYTHON_3_12,
    "python3.13": lambda_.Runtime.PYTHON_3_13,
}

# (リソース種別, アクセスレベル) → 粗粒度 grant メソッド名
GRANT_METHODS = {
    (ResourceKind.TABLE, GrantAccess.READ): "grant_read_data",
    (ResourceKind.TABLE, GrantAccess.READ_WRITE): "grant_read_write_data",
    (ResourceKind.BUCKET, GrantAccess.READ): "grant_read",
    (ResourceKind.BUCKET, GrantAccess.READ_WRITE): "grant_read_write",
    (ResourceKind.TOPIC, GrantAccess.PUBLISH): "grant_publish",
    (ResourceKind.QUEUE, GrantAccess.SEND): "grant_send_messages",
    (ResourceKind.SECRET, GrantAccess.READ): "grant_read",
}

MACHINE_IMAGES = {
    "amazon_linux": ec2.MachineImage.latest_amazon_linux2023,
}


def materialize_function(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    """
    VPC 内の Lambda 関数

    宣言された AccessGrant ごとに粗粒度 grant を付与し、
    同じ grant 群から明示的な最小権限ステートメントを 1 つ追加する。
    """
    function = lambda_.Function(
        scope, spec.logical_id,
        runtime=RUNTIMES[spec["runtime"]],
        handler=spec["handler"],
        code=lambda_.Code.from_asset(spec["code_path"]),
        vpc=provisioned.resolve(spec["network"]),
        security_groups=provisioned.resolve(spec.get("security_groups", ())),
        environment=provisioned.resolve(spec.get("environment", {})),
    )

    grants = spec.get("grants", ())
    for grant in grants:
        target = provisioned[grant.target]
        method = GRANT_METHODS[(target.spec.kind, grant.access)]
        getattr(target.construct, method)(function)

    if grants:
        actions: list[str] = []
        for grant in grants:
            actions.extend(action for action in grant.actions if action not in actions)
        function.add_to_role_policy(
            iam.PolicyStatement(
                sid=spec.get("policy_sid"),
                effect=iam.Effect.ALLOW,
                actions=actions,
                resources=[
                    provisioned.attribute(grant.resource) + grant.resource_suffix
                    for grant in grants
                ],
            )
        )

    return ProvisionedResource(
        spec=spec,
        construct=function,
        attributes={
            "arn": function.function_arn,
            "name": function.function_name,
        },
    )


def materialize_fleet(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    """プライベートサブネット上の EC2 Auto Scaling Group"""
    capacity = spec["capacity"]

    fleet = autoscaling.AutoScalingGroup(
        scope, spec.logical_id,
        vpc=provisioned.resolve(spec["network"]),
        instance_type=ec2.InstanceType(spec["instance_type"]),
        machine_image=MACHINE_IMAGES[spec["machine_image"]](),
        security_group=provisioned.resolve(spec["security_group"]),
        min_capacity=capacity.minimum,
        max_capacity=capacity.maximum,
        desired_capacity=capacity.desired,
    )

    target_cpu = spec.get("target_cpu_utilization")
    if target_cpu is not None:
        fleet.scale_on_cpu_utilization(
            "CpuScaling",
            target_utilization_percent=target_cpu,
        )

    return ProvisionedResource(
        spec=spec,
        construct=fleet,
        attributes={"name": fleet.auto_scaling_group_name},
    )


def materialize_load_balancer(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    load_balancer = elbv2.ApplicationLoadBalancer(
        scope, spec.logical_id,
        vpc=provisioned.resolve(spec["network"]),
        internet_facing=spec.get("internet_facing", False),
        security_group=provisioned.resolve(spec["security_group"]),
    )

    listener = load_balancer.add_listener(
        "Listener",
        port=spec["listener_port"],
        open=spec.get("listener_open", False),
    )
    listener.add_targets(
        "Target",
        port=spec["target_port"],
        targets=provisioned.resolve(spec["targets"]),
    )

    return ProvisionedResource(
        spec=spec,
        construct=load_balancer,
        attributes={
            "arn": load_balancer.load_balancer_arn,
            "dns_name": load_balancer.load_balancer_dns_name,
        },
    )


MATERIALIZERS = {
    ResourceKind.FUNCTION: materialize_function,
    ResourceKind.FLEET: materialize_fleet,
    ResourceKind.LOAD_BALANCER: materialize_load_balancer,
}
