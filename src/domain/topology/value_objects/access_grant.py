"""Access Grant Value Object"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .reference import Ref
from .resource_kind import ResourceKind


class GrantAccess(str, Enum):
    """粗粒度のアクセスレベル"""

    READ = "read"
    READ_WRITE = "read_write"
    PUBLISH = "publish"
    SEND = "send"


# リソース種別ごとに許可されるアクセスレベル
GRANTABLE_ACCESS: dict[ResourceKind, frozenset[GrantAccess]] = {
    ResourceKind.TABLE: frozenset([GrantAccess.READ, GrantAccess.READ_WRITE]),
    ResourceKind.BUCKET: frozenset([GrantAccess.READ, GrantAccess.READ_WRITE]),
    ResourceKind.TOPIC: frozenset([GrantAccess.PUBLISH]),
    ResourceKind.QUEUE: frozenset([GrantAccess.SEND]),
    ResourceKind.SECRET: frozenset([GrantAccess.READ]),
}


@dataclass(frozen=True)
class AccessGrant:
    """
    関数からリソースへの権限エッジ（値オブジェクト）

    同じエッジから粗粒度の grant と明示的な最小権限ステートメントの
    両方を導出する。
    """

    resource: Ref
    access: GrantAccess
    actions: tuple[str, ...]
    resource_suffix: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", tuple(self.actions))
        self._validate()

    def _validate(self) -> None:
        """値の妥当性を検証"""
        if self.resource.attribute != "arn":
            raise ValueError(f"Grant must reference an ARN, got {self.resource}")

        if not self.actions:
            raise ValueError(f"Grant on {self.target} must enumerate at least one action")

        for action in self.actions:
            service, _, name = action.partition(":")
            if not service or not name:
                raise ValueError(f"Invalid IAM action: {action}")

        if len(set(self.actions)) != len(self.actions):
            raise ValueError(f"Duplicate actions in grant on {self.target}")

    @property
    def target(self) -> str:
        """対象リソースの論理ID"""
        return self.resource.logical_id

    @property
    def services(self) -> frozenset[str]:
        return frozenset(action.split(":", 1)[0] for action in self.actions)
