"""Ingress Rule Value Object"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IngressRule:
    """任意の IPv4 アドレスからの TCP インバウンド許可"""

    port: int
    description: str = ""

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")
