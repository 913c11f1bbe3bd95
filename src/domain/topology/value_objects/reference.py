"""Resource Reference Value Object"""
from __future__ import annotations

from dataclasses import dataclass

# "resource" はプロビジョニング済みのリソース本体を指す
KNOWN_ATTRIBUTES = frozenset(["resource", "arn", "name", "url", "id", "cidr", "dns_name"])


@dataclass(frozen=True)
class Ref:
    """
    他リソースの属性への参照（値オブジェクト）

    プロパティ内に現れる Ref は、そのまま依存グラフの辺になる。
    """

    logical_id: str
    attribute: str = "resource"

    def __post_init__(self) -> None:
        if not self.logical_id:
            raise ValueError("Reference must name a logical id")
        if self.attribute not in KNOWN_ATTRIBUTES:
            raise ValueError(
                f"Unknown attribute: {self.attribute}. "
                f"Must be one of: {sorted(KNOWN_ATTRIBUTES)}"
            )

    def __str__(self) -> str:
        return f"{self.logical_id}.{self.attribute}"
