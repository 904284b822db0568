from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .defaults import (
    API_DEFAULT_TIMEOUT_SECONDS,
    API_DEFAULT_URL,
    DEFAULT_INSTANCE_TYPE,
)
from ..core.types import OutputFormat


class ApiSettings(BaseSettings):
    """控制平面连接设置"""

    model_config = SettingsConfigDict(
        env_prefix="POOLCTL_API_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default=API_DEFAULT_URL, description="控制平面 API 地址")
    token: Optional[SecretStr] = Field(default=None, description="访问令牌")
    timeout: float = Field(default=API_DEFAULT_TIMEOUT_SECONDS, gt=0, description="请求超时(秒)")


class AwsSettings(BaseSettings):
    """云厂商 SDK 设置"""

    model_config = SettingsConfigDict(
        env_prefix="POOLCTL_AWS_",
        case_sensitive=False,
        extra="ignore",
    )

    profile: Optional[str] = Field(default=None, description="AWS 配置文件名")
    region: Optional[str] = Field(default=None, description="覆盖集群区域")


class AppSettings(BaseSettings):
    """全局应用设置（可由环境变量/配置文件覆盖）"""

    model_config = SettingsConfigDict(
        env_prefix="POOLCTL_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 全局
    verbose: bool = Field(default=False, description="详细日志输出")
    output: OutputFormat = Field(default=OutputFormat.TEXT, description="默认输出格式")
    default_instance_type: str = Field(default=DEFAULT_INSTANCE_TYPE, description="默认实例类型")

    api: ApiSettings = Field(default_factory=ApiSettings)
    aws: AwsSettings = Field(default_factory=AwsSettings)

    # 配置文件（若 CLI 未提供，可通过环境变量指向）
    config_file: Optional[Path] = Field(default=None, description="配置文件路径，可选")


__all__ = ["AppSettings", "ApiSettings", "AwsSettings"]
