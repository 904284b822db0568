"""
Models 包 - 数据模型

集群、用户选项与创建请求。
"""

# 基础
from .base import BaseConfig, DraftConfig

# 集群
from .cluster import Cluster

# 用户输入
from .options import UserOptions, FLAG_NAMES, SECURITY_GROUP_FLAG

# 创建请求
from .request import (
    CreationRequest,
    FixedScaling, Autoscaling,
    MultiAZ, SingleAZ, SingleSubnet,
    SpotDisabled, SpotOnDemand, SpotMaxPrice,
    Taint,
)

__all__ = [
    # 基础
    "BaseConfig",
    "DraftConfig",
    "Cluster",
    # 用户输入
    "UserOptions",
    "FLAG_NAMES",
    "SECURITY_GROUP_FLAG",
    # 创建请求
    "CreationRequest",
    "FixedScaling",
    "Autoscaling",
    "MultiAZ",
    "SingleAZ",
    "SingleSubnet",
    "SpotDisabled",
    "SpotOnDemand",
    "SpotMaxPrice",
    "Taint",
]
