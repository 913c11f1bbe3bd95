"""
Network Materializers

VPC, Security Group, VPC Peering, Peering Routes
"""
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from src.domain.topology import ResourceKind, ResourceSpec

from infra.provisioning.registry import ProvisionedResource, ProvisionedTopology


def materialize_network(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    """パブリック + プライベートサブネット構成の VPC"""
    vpc = ec2.Vpc(
        scope, spec.logical_id,
        ip_addresses=ec2.IpAddresses.cidr(spec["cidr"]),
        max_azs=spec.get("max_azs", 2),
        nat_gateways=spec.get("nat_gateways", 1),
    )

    return ProvisionedResource(
        spec=spec,
        construct=vpc,
        attributes={
            "id": vpc.vpc_id,
            "cidr": vpc.vpc_cidr_block,
        },
    )


def materialize_security_group(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    security_group = ec2.SecurityGroup(
        scope, spec.logical_id,
        vpc=provisioned.resolve(spec["network"]),
        description=spec.get("description"),
        allow_all_outbound=spec.get("allow_all_outbound", True),
    )

    for rule in spec.get("ingress", ()):
        security_group.add_ingress_rule(
            ec2.Peer.any_ipv4(),
            ec2.Port.tcp(rule.port),
            rule.description,
        )

    return ProvisionedResource(
        spec=spec,
        construct=security_group,
        attributes={"id": security_group.security_group_id},
    )


def materialize_peering(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    peering = ec2.CfnVPCPeeringConnection(
        scope, spec.logical_id,
        vpc_id=provisioned.resolve(spec["network"]),
        peer_vpc_id=provisioned.resolve(spec["peer_network"]),
    )
    return ProvisionedResource(
        spec=spec,
        construct=peering,
        attributes={"id": peering.ref},
    )


def materialize_peering_routes(
    scope: Construct, spec: ResourceSpec, provisioned: ProvisionedTopology
) -> ProvisionedResource:
    """
    送信元 VPC の各プライベートサブネットにピア CIDR 宛のルートを追加

    ルートは "{route_id_prefix}{index}" の ID でサブネット順に作成する。
    """
    source: ec2.Vpc = provisioned.resolve(spec["source"])
    destination_cidr = provisioned.resolve(spec["destination_cidr"])
    peering_id = provisioned.resolve(spec["peering"])
    prefix = spec["route_id_prefix"]

    container = Construct(scope, spec.logical_id)
    for index, subnet in enumerate(source.private_subnets):
        ec2.CfnRoute(
            container, f"{prefix}{index}",
            route_table_id=subnet.route_table.route_table_id,
            destination_cidr_block=destination_cidr,
            vpc_peering_connection_id=peering_id,
        )

    return ProvisionedResource(spec=spec, construct=container)


MATERIALIZERS = {
    ResourceKind.NETWORK: materialize_network,
    ResourceKind.SECURITY_GROUP: materialize_security_group,
    ResourceKind.PEERING: materialize_peering,
    ResourceKind.PEERING_ROUTES: materialize_peering_routes,
}
