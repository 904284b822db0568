"""机器池创建请求模型"""
from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from .base import BaseConfig, DraftConfig
from ..types import MACHINE_POOL_NAME_RE, FlagSource, TaintEffect


# 副本策略：固定副本数 / 自动伸缩，二者互斥
class FixedScaling(BaseConfig):
    kind: Literal["fixed"] = "fixed"
    replicas: int = Field(ge=0, description="副本数")


class Autoscaling(BaseConfig):
    kind: Literal["autoscaled"] = "autoscaled"
    min_replicas: int = Field(ge=0, description="最小副本数")
    max_replicas: int = Field(ge=0, description="最大副本数")

    @model_validator(mode="after")
    def validate_bounds(self) -> Autoscaling:
        if self.min_replicas > self.max_replicas:
            raise ValueError("max-replicas must be greater or equal to min-replicas")
        return self


Scaling = Annotated[Union[FixedScaling, Autoscaling], Field(discriminator="kind")]


# 放置方式：多可用区 / 单可用区 / 单子网
class MultiAZ(BaseConfig):
    kind: Literal["multi-az"] = "multi-az"


class SingleAZ(BaseConfig):
    kind: Literal["single-az"] = "single-az"
    zone: str = Field(min_length=1, description="可用区")


class SingleSubnet(BaseConfig):
    kind: Literal["single-subnet"] = "single-subnet"
    subnet: str = Field(min_length=1, description="子网ID")


Placement = Annotated[Union[MultiAZ, SingleAZ, SingleSubnet], Field(discriminator="kind")]


# Spot 实例定价
class SpotDisabled(BaseConfig):
    kind: Literal["disabled"] = "disabled"


class SpotOnDemand(BaseConfig):
    """以按需价格为上限"""
    kind: Literal["on-demand"] = "on-demand"


class SpotMaxPrice(BaseConfig):
    kind: Literal["max-price"] = "max-price"
    price: float = Field(gt=0, allow_inf_nan=False, description="最高价格")


Spot = Annotated[Union[SpotDisabled, SpotOnDemand, SpotMaxPrice], Field(discriminator="kind")]


class Taint(BaseConfig):
    key: str = Field(min_length=1)
    value: str = ""
    effect: TaintEffect


class CreationRequest(DraftConfig):
    """创建请求，逐步填充后提交

    字段在解析过程中按顺序赋值；提交前由 ``rules.validate_request`` 再次校验。
    """

    name: Optional[str] = Field(default=None, description="机器池名称")
    instance_type: Optional[str] = Field(default=None, description="实例类型，提交时必填")
    scaling: Optional[Scaling] = Field(default=None, description="副本策略")
    placement: Optional[Placement] = Field(default=None, description="放置方式")
    spot: Spot = Field(default_factory=SpotDisabled, description="Spot 定价")
    security_group_ids: List[str] = Field(default_factory=list, description="附加安全组")
    root_disk_size_gib: Optional[int] = Field(default=None, gt=0, description="根磁盘大小(GiB)")
    labels: Dict[str, str] = Field(default_factory=dict)
    taints: List[Taint] = Field(default_factory=list)
    tags: Dict[str, str] = Field(default_factory=dict, description="云资源标签")

    # 仅托管拓扑
    openshift_version: Optional[str] = Field(default=None, description="OpenShift 版本ID")
    autorepair: Optional[bool] = Field(default=None)
    tuning_config_names: List[str] = Field(default_factory=list)
    kubelet_config_names: List[str] = Field(default_factory=list)
    node_drain_grace_period_minutes: Optional[int] = Field(default=None, ge=0)

    # 每个标志的来源，从用户选项原样复制
    provenance: Dict[str, FlagSource] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip(" \t")
        if not MACHINE_POOL_NAME_RE.match(v):
            raise ValueError("Expected a valid name for the machine pool")
        return v

    @field_validator("security_group_ids")
    @classmethod
    def strip_security_groups(cls, v: List[str]) -> List[str]:
        return [sg.strip() for sg in v]

    @property
    def subnet(self) -> Optional[str]:
        return self.placement.subnet if isinstance(self.placement, SingleSubnet) else None

    @property
    def zone(self) -> Optional[str]:
        return self.placement.zone if isinstance(self.placement, SingleAZ) else None
