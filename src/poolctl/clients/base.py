"""
外部协作者接口
控制平面与云 SDK 客户端的协议，以及它们返回的轻量数据类型
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import Field

from ..core.errors import InputFormatError
from ..core.models import BaseConfig, Cluster


class MachineType(BaseConfig):
    """可用实例类型"""
    id: str
    name: str = ""
    category: str = ""
    available: bool = True


class MachineTypeList(BaseConfig):
    items: List[MachineType] = Field(default_factory=list)

    def available_ids(self) -> List[str]:
        return [item.id for item in self.items if item.available]

    def validate_machine_type(self, instance_type: str) -> None:
        if not instance_type:
            raise InputFormatError("A valid machine type number must be specified")
        for item in self.items:
            if item.id == instance_type:
                if not item.available:
                    raise InputFormatError(
                        f"Machine type '{instance_type}' is not available for the current account or zones"
                    )
                return
        raise InputFormatError(f"A valid machine type number must be specified. Got '{instance_type}'")


class SubnetInfo(BaseConfig):
    subnet_id: str
    availability_zone: str
    name: str = ""

    @property
    def option(self) -> str:
        """交互选项里显示的文本"""
        label = f" '{self.name}'" if self.name else ""
        return f"{self.subnet_id}{label} ({self.availability_zone})"


class SecurityGroupInfo(BaseConfig):
    group_id: str
    name: str = ""


@runtime_checkable
class ControlPlaneAPI(Protocol):
    """集群管理控制平面"""

    def get_cluster(self, cluster_key: str) -> Cluster: ...

    def list_machine_pools(self, cluster_id: str) -> List[Dict[str, Any]]: ...

    def get_machine_pool(self, cluster_id: str, machine_pool_id: str) -> Optional[Dict[str, Any]]: ...

    def create_machine_pool(self, cluster_id: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete_machine_pool(self, cluster_id: str, machine_pool_id: str) -> None: ...

    def list_node_pools(self, cluster_id: str) -> List[Dict[str, Any]]: ...

    def get_node_pool(self, cluster_id: str, node_pool_id: str) -> Optional[Dict[str, Any]]: ...

    def create_node_pool(self, cluster_id: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete_node_pool(self, cluster_id: str, node_pool_id: str) -> None: ...

    def get_node_pool_upgrade(self, cluster_id: str, node_pool_id: str) -> Optional[Dict[str, Any]]: ...

    def get_cluster_kubelet_config(self, cluster_id: str) -> Optional[Dict[str, Any]]: ...

    def create_kubelet_config(self, cluster_id: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    def get_default_root_disk_size(self, flavour_id: str) -> int: ...

    def get_available_machine_types(self, region: str, availability_zones: List[str],
                                    role_arn: Optional[str]) -> MachineTypeList: ...

    def get_tuning_config_names(self, cluster_id: str) -> List[str]: ...

    def get_kubelet_config_names(self, cluster_id: str) -> List[str]: ...

    def get_versions(self, channel_group: str) -> List[str]: ...


@runtime_checkable
class CloudAPI(Protocol):
    """云厂商 SDK"""

    def get_subnet_availability_zone(self, subnet_id: str) -> str: ...

    def get_vpc_private_subnets(self, subnet_id: str) -> List[SubnetInfo]: ...

    def get_vpc_security_groups(self, subnet_id: str) -> List[SecurityGroupInfo]: ...

    def is_local_zone(self, availability_zone: str) -> bool: ...
