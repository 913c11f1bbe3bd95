"""Verify Topology Use Case"""
from __future__ import annotations

import ipaddress
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from src.domain.topology import (
    AccessGrant,
    CapacityRange,
    Ref,
    ResourceKind,
    Topology,
)
from src.domain.topology.value_objects import GRANTABLE_ACCESS, SERVICE_PREFIXES

logger = structlog.get_logger()


@dataclass(frozen=True)
class Violation:
    """検証違反"""

    rule: str
    logical_id: str
    message: str

    def __str__(self) -> str:
        return f"[{self.rule}] {self.logical_id}: {self.message}"


class TopologyVerificationError(Exception):
    """トポロジ検証エラー"""

    def __init__(self, violations: list[Violation]):
        summary = "; ".join(str(violation) for violation in violations)
        super().__init__(f"{len(violations)} topology violation(s): {summary}")
        self.violations = violations


def _kind_of(topology: Topology, ref: Ref) -> ResourceKind | None:
    if ref.logical_id not in topology:
        return None
    return topology.get(ref.logical_id).kind


# =================================================================
# Grant / policy parity
# =================================================================


def check_grant_policy_parity(topology: Topology) -> list[Violation]:
    """
    各関数の権限エッジを検証

    - 対象が宣言済みで、アクセスレベルが対象の種別に適合すること
    - 明示ステートメントのアクションが対象サービスのものであること
    - 同じ対象への grant が重複しないこと
    - 環境変数で渡したリソースには必ず grant があること
    """
    rule = "grant-policy-parity"
    violations: list[Violation] = []

    for spec in topology.of_kind(ResourceKind.FUNCTION):
        grants: tuple[AccessGrant, ...] = spec.get("grants", ())
        if grants and not spec.get("policy_sid"):
            violations.append(
                Violation(rule, spec.logical_id, "grants declared without an explicit policy statement")
            )

        granted: set[str] = set()
        for grant in grants:
            kind = _kind_of(topology, grant.resource)
            if kind is None:
                violations.append(
                    Violation(rule, spec.logical_id, f"grant targets undeclared resource {grant.target}")
                )
                continue

            if grant.access not in GRANTABLE_ACCESS.get(kind, frozenset()):
                violations.append(
                    Violation(
                        rule,
                        spec.logical_id,
                        f"{grant.access.value} access cannot be granted on {kind.value} {grant.target}",
                    )
                )

            expected_service = SERVICE_PREFIXES.get(kind)
            foreign = sorted(grant.services - {expected_service})
            if foreign:
                violations.append(
                    Violation(
                        rule,
                        spec.logical_id,
                        f"actions {foreign} do not belong to {kind.value} {grant.target}",
                    )
                )

            if grant.target in granted:
                violations.append(
                    Violation(rule, spec.logical_id, f"{grant.target} is granted more than once")
                )
            granted.add(grant.target)

        environment = spec.get("environment", {})
        for name, value in environment.items():
            if isinstance(value, Ref) and value.logical_id not in granted:
                violations.append(
                    Violation(
                        rule,
                        spec.logical_id,
                        f"binding {name} exposes {value.logical_id} without a grant",
                    )
                )

    return violations


# =================================================================
# Route authorizers
# =================================================================


def check_route_authorizers(topology: Topology) -> list[Violation]:
    """認可付きルートの authorizer が宣言済み Identity Provider を参照すること"""
    rule = "route-authorizer"
    violations: list[Violation] = []

    for spec in topology.of_kind(ResourceKind.API_ROUTE):
        integration = spec.get("integration")
        if not isinstance(integration, Ref) or _kind_of(topology, integration) != ResourceKind.FUNCTION:
            violations.append(Violation(rule, spec.logical_id, "route is not integrated with a function"))

        if spec.get("authorization", "none") == "none":
            continue

        authorizer = spec.get("authorizer")
        if not isinstance(authorizer, Ref) or _kind_of(topology, authorizer) != ResourceKind.AUTHORIZER:
            violations.append(Violation(rule, spec.logical_id, "authorized route has no authorizer"))
            continue

        providers = topology.get(authorizer.logical_id).get("identity_providers", ())
        if not providers:
            violations.append(
                Violation(rule, authorizer.logical_id, "authorizer references no identity provider")
            )
        for provider in providers:
            if _kind_of(topology, provider) != ResourceKind.IDENTITY_PROVIDER:
                violations.append(
                    Violation(
                        rule,
                        authorizer.logical_id,
                        f"{provider.logical_id} is not a declared identity provider",
                    )
                )

    return violations


# =================================================================
# Peering routes
# =================================================================


def check_peering_routes(topology: Topology) -> list[Violation]:
    """
    ピアリングごとに両方向のルート宣言がちょうど 1 つずつあること

    ルート宣言はソース側のすべてのプライベートサブネットに 1 本ずつ
    ルートを張るため、方向ごとのルート数はサブネット数と一致する。
    """
    rule = "peering-routes"
    violations: list[Violation] = []
    route_specs = topology.of_kind(ResourceKind.PEERING_ROUTES)

    for spec in topology.of_kind(ResourceKind.PEERING):
        network = spec["network"].logical_id
        peer = spec["peer_network"].logical_id

        networks = [topology.get(network), topology.get(peer)]
        if any(item.kind != ResourceKind.NETWORK for item in networks):
            violations.append(Violation(rule, spec.logical_id, "peering must join two networks"))
            continue

        cidrs = [ipaddress.ip_network(item["cidr"]) for item in networks]
        if cidrs[0].overlaps(cidrs[1]):
            violations.append(
                Violation(rule, spec.logical_id, f"networks overlap: {cidrs[0]} and {cidrs[1]}")
            )

        for source, destination in ((network, peer), (peer, network)):
            matching = [
                route
                for route in route_specs
                if route["peering"].logical_id == spec.logical_id
                and route["source"].logical_id == source
                and route["destination_cidr"].logical_id == destination
            ]
            if len(matching) != 1:
                violations.append(
                    Violation(
                        rule,
                        spec.logical_id,
                        f"expected exactly one route declaration {source} -> {destination}, "
                        f"found {len(matching)}",
                    )
                )

    return violations


# =================================================================
# Fleet capacity
# =================================================================


def check_fleet_capacity(topology: Topology) -> list[Violation]:
    """フリートが常時 1 台以上を維持する範囲で宣言されていること"""
    rule = "fleet-capacity"
    violations: list[Violation] = []

    for spec in topology.of_kind(ResourceKind.FLEET):
        capacity = spec.get("capacity")
        if not isinstance(capacity, CapacityRange):
            violations.append(Violation(rule, spec.logical_id, "fleet has no capacity range"))
            continue
        if capacity.minimum < 1:
            violations.append(
                Violation(rule, spec.logical_id, "fleet must keep at least one instance running")
            )

    return violations


# =================================================================
# Ephemeral storage
# =================================================================


def check_ephemeral_storage(topology: Topology) -> list[Violation]:
    """テーブルとバケットがスタック削除時に破棄されること"""
    rule = "ephemeral-storage"
    violations: list[Violation] = []

    for spec in topology.of_kind(ResourceKind.TABLE) + topology.of_kind(ResourceKind.BUCKET):
        if spec.get("removal_policy") != "destroy":
            violations.append(
                Violation(rule, spec.logical_id, "removal policy must be destroy")
            )
        if spec.kind == ResourceKind.BUCKET and not spec.get("auto_delete_objects", False):
            violations.append(
                Violation(rule, spec.logical_id, "bucket must auto-delete objects")
            )

    return violations


CHECKS: tuple[Callable[[Topology], list[Violation]], ...] = (
    check_grant_policy_parity,
    check_route_authorizers,
    check_peering_routes,
    check_fleet_capacity,
    check_ephemeral_storage,
)


class VerifyTopologyUseCase:
    """
    トポロジ検証 ユースケース

    プロビジョニング前に記述子レベルの不変条件をすべて検証する。
    """

    def __init__(self, checks: tuple[Callable[[Topology], list[Violation]], ...] = CHECKS):
        self._checks = checks

    def execute(self, topology: Topology) -> None:
        """ユースケースを実行"""
        log = logger.bind(topology=topology.name, resource_count=len(topology))
        log.info("topology_verification_started")

        violations = [violation for check in self._checks for violation in check(topology)]
        for violation in violations:
            log.warning(
                "topology_violation",
                rule=violation.rule,
                logical_id=violation.logical_id,
                message=violation.message,
            )

        if violations:
            raise TopologyVerificationError(violations)

        log.info("topology_verification_completed")
