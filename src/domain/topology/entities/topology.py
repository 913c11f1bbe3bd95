"""Topology Aggregate Root"""
from __future__ import annotations

import heapq
from dataclasses import dataclass
from functools import cached_property

from ..exceptions import (
    DependencyCycleError,
    DuplicateResourceError,
    UnknownDependencyError,
    UnknownResourceError,
)
from ..value_objects.resource_kind import ResourceKind
from .resource_spec import ResourceSpec


@dataclass(frozen=True)
class Topology:
    """
    トポロジ記述子（集約ルート）

    リソース宣言と依存関係の辺からなる不変の有向グラフ。
    生成時に重複・未宣言依存・循環を検証し、プロビジョニング順序
    （トポロジカル順）と削除順序（その逆順）を提供する。
    """

    name: str
    resources: tuple[ResourceSpec, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "resources", tuple(self.resources))
        self._validate()

    def _validate(self) -> None:
        seen: set[str] = set()
        for spec in self.resources:
            if spec.logical_id in seen:
                raise DuplicateResourceError(spec.logical_id)
            seen.add(spec.logical_id)

        for spec in self.resources:
            for dependency in spec.dependencies():
                if dependency not in seen:
                    raise UnknownDependencyError(spec.logical_id, dependency)

        # 循環があればここで DependencyCycleError
        _ = self._order

    # === Queries ===

    @cached_property
    def _index(self) -> dict[str, ResourceSpec]:
        return {spec.logical_id: spec for spec in self.resources}

    @cached_property
    def _dependents(self) -> dict[str, tuple[str, ...]]:
        dependents: dict[str, list[str]] = {spec.logical_id: [] for spec in self.resources}
        for spec in self.resources:
            for dependency in spec.dependencies():
                dependents[dependency].append(spec.logical_id)
        return {key: tuple(value) for key, value in dependents.items()}

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._index

    def __len__(self) -> int:
        return len(self.resources)

    def get(self, logical_id: str) -> ResourceSpec:
        """論理IDでリソース宣言を取得"""
        try:
            return self._index[logical_id]
        except KeyError:
            raise UnknownResourceError(logical_id) from None

    def of_kind(self, kind: ResourceKind) -> tuple[ResourceSpec, ...]:
        return tuple(spec for spec in self.resources if spec.kind == kind)

    def dependencies_of(self, logical_id: str) -> tuple[str, ...]:
        return self.get(logical_id).dependencies()

    def dependents_of(self, logical_id: str) -> tuple[str, ...]:
        self.get(logical_id)
        return self._dependents[logical_id]

    def services(self) -> dict[str, tuple[str, ...]]:
        """サービス名ごとの論理ID"""
        grouped: dict[str, list[str]] = {}
        for spec in self.resources:
            grouped.setdefault(spec.service, []).append(spec.logical_id)
        return {service: tuple(ids) for service, ids in grouped.items()}

    # === Ordering ===

    def provisioning_order(self) -> tuple[str, ...]:
        """依存先が必ず先に来る順序（同順位は宣言順）"""
        return self._order

    def teardown_order(self) -> tuple[str, ...]:
        """依存元が必ず先に来る削除順序"""
        return tuple(reversed(self._order))

    @cached_property
    def _order(self) -> tuple[str, ...]:
        position = {spec.logical_id: i for i, spec in enumerate(self.resources)}
        pending = {
            spec.logical_id: len(spec.dependencies()) for spec in self.resources
        }
        ready = [position[key] for key, count in pending.items() if count == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            logical_id = self.resources[heapq.heappop(ready)].logical_id
            order.append(logical_id)
            for dependent in self._dependents[logical_id]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(order) != len(self.resources):
            remaining = {key for key, count in pending.items() if count > 0}
            raise DependencyCycleError(self._find_cycle(remaining))

        return tuple(order)

    def _find_cycle(self, remaining: set[str]) -> list[str]:
        """未解決ノードから循環経路を一つ取り出す"""
        start = min(remaining, key=lambda key: self._index_position(key))
        path: list[str] = []
        visited: dict[str, int] = {}
        current = start
        while current not in visited:
            visited[current] = len(path)
            path.append(current)
            current = next(
                dependency
                for dependency in self._index[current].dependencies()
                if dependency in remaining
            )
        return path[visited[current]:] + [current]

    def _index_position(self, logical_id: str) -> int:
        return next(
            i for i, spec in enumerate(self.resources) if spec.logical_id == logical_id
        )
