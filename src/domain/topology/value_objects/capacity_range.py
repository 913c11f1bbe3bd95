"""Capacity Range Value Object"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class InvalidCapacityError(ValueError):
    """不正なキャパシティ範囲エラー"""

    pass


@dataclass(frozen=True)
class CapacityRange:
    """
    インスタンス数の範囲（値オブジェクト）

    min > max の範囲は生成時点で拒否し、プロビジョニングまで到達させない。
    """

    minimum: int
    maximum: int
    desired: int | None = None

    def __post_init__(self) -> None:
        """バリデーション"""
        if self.minimum < 0:
            raise InvalidCapacityError("Minimum capacity cannot be negative")

        if self.minimum > self.maximum:
            raise InvalidCapacityError(
                f"Minimum capacity {self.minimum} exceeds maximum capacity {self.maximum}"
            )

        if self.desired is not None and not self.contains(self.desired):
            raise InvalidCapacityError(
                f"Desired capacity {self.desired} is outside "
                f"[{self.minimum}, {self.maximum}]"
            )

    def contains(self, count: int) -> bool:
        return self.minimum <= count <= self.maximum

    @property
    def is_fixed(self) -> bool:
        """固定サイズかどうか"""
        return self.minimum == self.maximum

    def to_dict(self) -> dict[str, Any]:
        """辞書に変換"""
        return {
            "minimum": self.minimum,
            "maximum": self.maximum,
            "desired": self.desired,
        }
