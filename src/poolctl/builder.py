"""
请求构建
把已校验的创建请求转换为控制平面的机器池 / 节点池负载
"""

from __future__ import annotations

from typing import Any, Dict, List

from .core.errors import PoolError
from .core.models import (
    Autoscaling,
    Cluster,
    CreationRequest,
    FixedScaling,
    SpotMaxPrice,
    SpotOnDemand,
    Taint,
)


def _taints(taints: List[Taint]) -> List[Dict[str, str]]:
    return [{"key": t.key, "value": t.value, "effect": t.effect.value} for t in taints]


def _require(request: CreationRequest) -> None:
    if not request.name or not request.instance_type or request.scaling is None:
        raise PoolError("Cannot build a machine pool from an incomplete request")


def build_machine_pool(request: CreationRequest, cluster: Cluster, default_root_disk_size_gib: int) -> Dict[str, Any]:
    """经典拓扑的 MachinePool 负载

    根磁盘大小等于风味默认值时不写入，由服务端保留默认值的控制权。
    """
    _require(request)
    payload: Dict[str, Any] = {
        "kind": "MachinePool",
        "id": request.name,
        "instance_type": request.instance_type,
        "labels": dict(request.labels),
        "taints": _taints(request.taints),
    }

    scaling = request.scaling
    if isinstance(scaling, Autoscaling):
        payload["autoscaling"] = {
            "min_replicas": scaling.min_replicas,
            "max_replicas": scaling.max_replicas,
        }
    elif isinstance(scaling, FixedScaling):
        payload["replicas"] = scaling.replicas

    aws: Dict[str, Any] = {}
    if isinstance(request.spot, (SpotOnDemand, SpotMaxPrice)):
        spot: Dict[str, Any] = {}
        if isinstance(request.spot, SpotMaxPrice):
            spot["max_price"] = request.spot.price
        aws["spot_market_options"] = spot
    if request.security_group_ids:
        aws["additional_security_group_ids"] = list(request.security_group_ids)
    if request.tags:
        aws["tags"] = dict(request.tags)
    payload["aws"] = aws

    # 多可用区集群上的单可用区机器池
    if cluster.multi_az and request.zone:
        payload["availability_zones"] = [request.zone]
    if request.subnet:
        payload["subnets"] = [request.subnet]

    size = request.root_disk_size_gib
    if size is not None and size != default_root_disk_size_gib:
        payload["root_volume"] = {"aws": {"size": size}}
    return payload


def build_node_pool(request: CreationRequest, default_root_disk_size_gib: int) -> Dict[str, Any]:
    """托管拓扑的 NodePool 负载"""
    _require(request)
    payload: Dict[str, Any] = {
        "kind": "NodePool",
        "id": request.name,
        "labels": dict(request.labels),
        "taints": _taints(request.taints),
    }

    scaling = request.scaling
    if isinstance(scaling, Autoscaling):
        payload["autoscaling"] = {
            "min_replica": scaling.min_replicas,
            "max_replica": scaling.max_replicas,
        }
    elif isinstance(scaling, FixedScaling):
        payload["replicas"] = scaling.replicas

    if request.subnet:
        payload["subnet"] = request.subnet

    aws_node_pool: Dict[str, Any] = {"instance_type": request.instance_type}
    if request.security_group_ids:
        aws_node_pool["additional_security_group_ids"] = list(request.security_group_ids)
    if request.tags:
        aws_node_pool["tags"] = dict(request.tags)
    size = request.root_disk_size_gib
    if size is not None and size != default_root_disk_size_gib:
        aws_node_pool["root_volume"] = {"size": size}
    payload["aws_node_pool"] = aws_node_pool

    if request.autorepair is not None:
        payload["auto_repair"] = request.autorepair
    if request.tuning_config_names:
        payload["tuning_configs"] = list(request.tuning_config_names)
    if request.kubelet_config_names:
        payload["kubelet_configs"] = list(request.kubelet_config_names)
    if request.node_drain_grace_period_minutes is not None:
        payload["node_drain_grace_period"] = {
            "value": request.node_drain_grace_period_minutes,
            "unit": "minute",
        }
    if request.openshift_version:
        payload["version"] = {"id": request.openshift_version}
    return payload


def build_payload(request: CreationRequest, cluster: Cluster, default_root_disk_size_gib: int) -> Dict[str, Any]:
    if cluster.is_hosted:
        return build_node_pool(request, default_root_disk_size_gib)
    return build_machine_pool(request, cluster, default_root_disk_size_gib)


__all__ = ["build_machine_pool", "build_node_pool", "build_payload"]
