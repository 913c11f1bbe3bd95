"""Shared fixtures"""
import pytest

from src.infrastructure.config import Settings


@pytest.fixture
def settings() -> Settings:
    """.env を読まないデフォルト設定"""
    return Settings(_env_file=None)
