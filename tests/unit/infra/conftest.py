"""CDK synthesis fixtures"""
import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Template

from infra.stacks.platform_stack import PlatformStack
from src.infrastructure.config import Settings


def synth_platform_stack(**overrides) -> PlatformStack:
    app = cdk.App()
    settings = Settings(_env_file=None, **overrides)
    return PlatformStack(app, settings.stack_name, settings=settings)


@pytest.fixture(scope="session")
def platform_stack() -> PlatformStack:
    return synth_platform_stack()


@pytest.fixture(scope="session")
def platform_template(platform_stack) -> Template:
    return Template.from_stack(platform_stack)


@pytest.fixture(scope="session")
def stack_factory():
    """設定を上書きしてスタックを合成する"""
    return synth_platform_stack
