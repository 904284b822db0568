"""集群模型（只读，由控制平面返回）"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field, computed_field

from .base import BaseConfig
from ..types import ClusterState, NetworkMode, Topology


class Cluster(BaseConfig):
    """集群元数据"""

    id: str = Field(description="集群ID")
    name: str = Field(default="", description="集群名称")
    state: str = Field(default=ClusterState.READY.value, description="集群状态")
    topology: Topology = Field(default=Topology.CLASSIC, description="集群拓扑")
    multi_az: bool = Field(default=False, description="是否多可用区")
    availability_zones: List[str] = Field(default_factory=list, description="集群可用区（有序）")
    subnet_ids: List[str] = Field(default_factory=list, description="BYO VPC 子网")
    version: str = Field(default="", description="平台版本 raw id")
    channel_group: str = Field(default="stable", description="版本通道组")
    region: str = Field(default="", description="区域")
    flavour_id: str = Field(default="osd-4", description="规格ID")
    sts_role_arn: Optional[str] = Field(default=None, description="STS 安装角色")

    @computed_field
    @property
    def network_mode(self) -> NetworkMode:
        """有子网即为 BYO VPC"""
        return NetworkMode.BYO_VPC if self.subnet_ids else NetworkMode.MANAGED

    @property
    def is_byo_vpc(self) -> bool:
        return self.network_mode == NetworkMode.BYO_VPC

    @property
    def is_hosted(self) -> bool:
        return self.topology == Topology.HOSTED

    @property
    def is_ready(self) -> bool:
        return self.state == ClusterState.READY.value

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Cluster:
        """从控制平面 JSON 构造"""
        aws = data.get("aws") or {}
        hypershift = data.get("hypershift") or {}
        version = data.get("version") or {}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            state=data.get("state", ClusterState.READY.value),
            topology=Topology.HOSTED if hypershift.get("enabled") else Topology.CLASSIC,
            multi_az=bool(data.get("multi_az", False)),
            availability_zones=list((data.get("nodes") or {}).get("availability_zones") or []),
            subnet_ids=list(aws.get("subnet_ids") or []),
            version=version.get("raw_id", ""),
            channel_group=version.get("channel_group", "stable"),
            region=(data.get("region") or {}).get("id", ""),
            flavour_id=(data.get("flavour") or {}).get("id", "osd-4"),
            sts_role_arn=(aws.get("sts") or {}).get("role_arn"),
        )
