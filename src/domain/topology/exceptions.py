"""Topology Errors"""
from __future__ import annotations


class TopologyError(Exception):
    """トポロジ記述子のエラー基底クラス"""

    pass


class DuplicateResourceError(TopologyError):
    """論理IDの重複エラー"""

    def __init__(self, logical_id: str):
        super().__init__(f"Resource {logical_id} is declared more than once")
        self.logical_id = logical_id


class UnknownResourceError(TopologyError):
    """未宣言リソースの参照エラー"""

    def __init__(self, logical_id: str):
        super().__init__(f"Resource {logical_id} is not declared")
        self.logical_id = logical_id


class UnknownDependencyError(TopologyError):
    """未宣言リソースへの依存エラー"""

    def __init__(self, logical_id: str, dependency: str):
        super().__init__(f"Resource {logical_id} depends on undeclared resource {dependency}")
        self.logical_id = logical_id
        self.dependency = dependency


class DependencyCycleError(TopologyError):
    """依存関係の循環エラー"""

    def __init__(self, cycle: list[str]):
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class MissingPropertyError(TopologyError):
    """必須プロパティ欠落エラー"""

    def __init__(self, logical_id: str, key: str):
        super().__init__(f"Resource {logical_id} is missing required property {key}")
        self.logical_id = logical_id
        self.key = key
