"""Platform Settings"""
import ipaddress
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Lambda アセット（src/handlers/action）
DEFAULT_FUNCTION_CODE_PATH = Path(__file__).resolve().parents[2] / "handlers" / "action"


class Settings(BaseSettings):
    """
    プラットフォーム設定

    12-Factor App の Config 原則に従い、
    すべての設定は環境変数（PLATFORM_ プレフィックス）から取得する。
    """

    model_config = SettingsConfigDict(
        env_prefix="PLATFORM_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    service_name: str = "comprehensive-api"
    environment: str = "development"
    log_level: str = "INFO"

    # AWS
    aws_region: str = "us-east-1"
    stack_name: str = "AwsLambdaComprehensiveStack"

    # API Gateway
    api_name: str = "Comprehensive API"
    api_description: str = "API Gateway with Lambda integration."
    api_service_version: str = "1.0.0"

    # Network
    vpc_cidr: str = "10.0.0.0/16"
    peer_vpc_cidr: str = "10.1.0.0/16"
    max_azs: int = 2
    nat_gateways: int = 1

    # Compute Fleet (ALB ingress)
    enable_fleet_ingress: bool = True
    fleet_service_version: str = "1.0.0"
    fleet_instance_type: str = "t3.micro"
    fleet_min_capacity: int = 1
    fleet_max_capacity: int = 3
    # None: スケーリングトリガーなし（固定範囲）
    fleet_target_cpu_utilization: int | None = None

    # Secrets Manager
    secret_name: str = "MySecret"
    secret_username: str = "user"

    # Lambda
    function_runtime: str = "python3.12"
    function_handler: str = "handler.lambda_handler"
    function_code_path: str = str(DEFAULT_FUNCTION_CODE_PATH)

    @field_validator("vpc_cidr", "peer_vpc_cidr")
    @classmethod
    def _validate_cidr(cls, value: str) -> str:
        network = ipaddress.ip_network(value, strict=True)
        if network.version != 4:
            raise ValueError(f"VPC CIDR must be IPv4: {value}")
        return value

    @field_validator("fleet_target_cpu_utilization")
    @classmethod
    def _validate_cpu_target(cls, value: int | None) -> int | None:
        if value is not None and not 0 < value <= 100:
            raise ValueError("Target CPU utilization must be within (0, 100]")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """設定のシングルトンインスタンスを取得"""
    return Settings()
