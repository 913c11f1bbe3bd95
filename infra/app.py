#!/usr/bin/env python3
"""
CDK Application Entry Point

Comprehensive API Platform - Cognito 認証付き API Gateway + Lambda と
ALB + EC2 Auto Scaling Group をピアリング済み VPC 上にデプロイ。
"""
import os

import aws_cdk as cdk

from infra.stacks.platform_stack import PlatformStack
from src.infrastructure.config import get_settings
from src.infrastructure.log_config import configure_logging


def build_app() -> cdk.App:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = cdk.App()

    # 環境設定
    env = cdk.Environment(
        account=os.environ.get('CDK_DEFAULT_ACCOUNT'),
        region=os.environ.get('CDK_DEFAULT_REGION', settings.aws_region),
    )

    PlatformStack(
        app,
        settings.stack_name,
        settings=settings,
        env=env,
        description='Comprehensive API Platform - Cognito + API Gateway + Lambda, ALB + EC2 ASG',
    )
    return app


if __name__ == '__main__':
    build_app().synth()
