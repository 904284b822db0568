"""
类型定义模块
集群拓扑、网络模式、标志来源等基础枚举与约束类型
"""

from __future__ import annotations

import re
from enum import Enum

# 机器池名称必须是安全的标识符
MACHINE_POOL_NAME_PATTERN = r"^[a-z]([-a-z0-9]*[a-z0-9])?$"
MACHINE_POOL_NAME_RE = re.compile(MACHINE_POOL_NAME_PATTERN)


class Topology(str, Enum):
    """集群拓扑"""
    CLASSIC = "classic"
    HOSTED = "hosted"


class NetworkMode(str, Enum):
    """集群网络模式"""
    MANAGED = "managed"
    BYO_VPC = "byo-vpc"


class ClusterState(str, Enum):
    """集群状态（只列出关心的值，其余按字符串保留）"""
    READY = "ready"
    INSTALLING = "installing"
    PENDING = "pending"
    ERROR = "error"
    UNINSTALLING = "uninstalling"


class FlagSource(str, Enum):
    """标志来源：未设置 / 默认值 / 用户显式设置"""
    UNSET = "unset"
    DEFAULT = "default"
    EXPLICIT = "explicit"


class TaintEffect(str, Enum):
    NO_SCHEDULE = "NoSchedule"
    PREFER_NO_SCHEDULE = "PreferNoSchedule"
    NO_EXECUTE = "NoExecute"


class OutputFormat(str, Enum):
    """输出格式"""
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"


class RuleStage(str, Enum):
    """校验规则所属阶段，每个阶段在依赖它的解析步骤之前执行"""
    PREFLIGHT = "preflight"
    PLACEMENT = "placement"
    SCALING = "scaling"
    REPLICAS = "replicas"
    SPOT = "spot"


__all__ = [
    "MACHINE_POOL_NAME_PATTERN",
    "MACHINE_POOL_NAME_RE",
    "Topology",
    "NetworkMode",
    "ClusterState",
    "FlagSource",
    "TaintEffect",
    "OutputFormat",
    "RuleStage",
]
