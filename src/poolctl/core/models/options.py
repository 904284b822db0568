"""用户输入选项（来自命令行）

每个标志都记录来源（未设置/默认/显式），后续校验只依据来源判断
"用户是否设置了该标志"，而不是拿取值和默认值比较。
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from .base import BaseConfig
from ..types import FlagSource
from ...config.defaults import (
    DEFAULT_AUTOREPAIR,
    DEFAULT_AUTOSCALING,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_MULTI_AVAILABILITY_ZONE,
    DEFAULT_REPLICAS,
)

# 选项字段名 -> 命令行标志名
FLAG_NAMES: Dict[str, str] = {
    "name": "name",
    "instance_type": "instance-type",
    "replicas": "replicas",
    "autoscaling_enabled": "enable-autoscaling",
    "min_replicas": "min-replicas",
    "max_replicas": "max-replicas",
    "labels": "labels",
    "taints": "taints",
    "use_spot_instances": "use-spot-instances",
    "spot_max_price": "spot-max-price",
    "multi_availability_zone": "multi-availability-zone",
    "availability_zone": "availability-zone",
    "subnet": "subnet",
    "version": "version",
    "autorepair": "autorepair",
    "tuning_configs": "tuning-configs",
    "kubelet_configs": "kubelet-configs",
    "root_disk_size": "disk-size",
    "security_group_ids": "additional-security-group-ids",
    "node_drain_grace_period": "node-drain-grace-period",
    "tags": "tags",
}

SECURITY_GROUP_FLAG = FLAG_NAMES["security_group_ids"]


class UserOptions(BaseConfig):
    """create machinepool 的原始输入"""

    name: str = ""
    instance_type: str = DEFAULT_INSTANCE_TYPE
    replicas: int = DEFAULT_REPLICAS
    autoscaling_enabled: bool = DEFAULT_AUTOSCALING
    min_replicas: int = 0
    max_replicas: int = 0
    labels: str = ""
    taints: str = ""
    use_spot_instances: bool = False
    spot_max_price: str = "on-demand"
    multi_availability_zone: bool = DEFAULT_MULTI_AVAILABILITY_ZONE
    availability_zone: str = ""
    subnet: str = ""
    version: str = ""
    autorepair: bool = DEFAULT_AUTOREPAIR
    tuning_configs: str = ""
    kubelet_configs: str = ""
    root_disk_size: str = ""
    security_group_ids: List[str] = Field(default_factory=list)
    node_drain_grace_period: str = ""
    tags: List[str] = Field(default_factory=list)

    sources: Dict[str, FlagSource] = Field(default_factory=dict, description="字段名 -> 来源")

    def source(self, field: str) -> FlagSource:
        return self.sources.get(field, FlagSource.UNSET)

    def is_set(self, field: str) -> bool:
        """标志是否由用户显式设置"""
        return self.source(field) == FlagSource.EXPLICIT

    def explicit_flags(self) -> List[str]:
        return [FLAG_NAMES[f] for f, s in self.sources.items() if s == FlagSource.EXPLICIT and f in FLAG_NAMES]

    @classmethod
    def with_flags(cls, **values) -> UserOptions:
        """构造一组选项，传入的字段视为显式设置，其余视为默认值"""
        sources = {field: FlagSource.DEFAULT for field in FLAG_NAMES}
        sources.update({field: FlagSource.EXPLICIT for field in values})
        return cls(sources=sources, **values)


__all__ = ["UserOptions", "FLAG_NAMES", "SECURITY_GROUP_FLAG"]
