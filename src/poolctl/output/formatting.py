"""
输出格式化
列表表格、描述文本以及 JSON / YAML 结构化输出
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import yaml
from rich.table import Table

from .renderer import render_template
from ..core.types import OutputFormat


def dump(data: Any, fmt: OutputFormat) -> str:
    """结构化输出"""
    if fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
    return json.dumps(data, indent=2)


def _join(items: Optional[List[Any]]) -> str:
    return ", ".join(str(item) for item in items or [])


def format_labels(labels: Optional[Dict[str, str]]) -> str:
    return ", ".join(f"{k}={v}" for k, v in (labels or {}).items())


def format_taints(taints: Optional[List[Dict[str, Any]]]) -> str:
    return ", ".join(f"{t.get('key', '')}={t.get('value', '')}:{t.get('effect', '')}" for t in taints or [])


def format_tags(tags: Optional[Dict[str, str]]) -> str:
    return ", ".join(f"{k}:{v}" for k, v in (tags or {}).items())


def format_autoscaling(pool: Dict[str, Any]) -> str:
    return "Yes" if pool.get("autoscaling") else "No"


def format_replicas(pool: Dict[str, Any]) -> str:
    autoscaling = pool.get("autoscaling")
    if autoscaling:
        # 机器池与节点池的字段名不同
        low = autoscaling.get("min_replicas", autoscaling.get("min_replica", 0))
        high = autoscaling.get("max_replicas", autoscaling.get("max_replica", 0))
        return f"{low}-{high}"
    return str(pool.get("replicas", 0))


def format_spot(pool: Dict[str, Any]) -> str:
    spot = (pool.get("aws") or {}).get("spot_market_options")
    if spot is None:
        return "No"
    price = spot.get("max_price")
    if price is None:
        return "Yes (max on-demand)"
    return f"Yes (max ${price})"


def format_disk_size(pool: Dict[str, Any]) -> str:
    size = ((pool.get("root_volume") or {}).get("aws") or {}).get("size")
    if size is None:
        size = ((pool.get("aws_node_pool") or {}).get("root_volume") or {}).get("size")
    return f"{size} GiB" if size else "default"


def format_node_pool_version(pool: Dict[str, Any]) -> str:
    version = pool.get("version") or {}
    return version.get("raw_id") or version.get("id") or ""


def format_node_drain_grace_period(pool: Dict[str, Any]) -> str:
    period = pool.get("node_drain_grace_period") or {}
    if not period.get("value"):
        return ""
    unit = period.get("unit", "minute")
    return f"{period['value']} {unit}s" if period["value"] != 1 else f"1 {unit}"


def format_next_run(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def scheduled_upgrade_summary(upgrade: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """只有版本与状态都存在时才视为有计划升级"""
    if not upgrade:
        return None
    state = (upgrade.get("state") or {}).get("value")
    version = upgrade.get("version")
    if not state or not version:
        return None
    return {"version": version, "state": state, "next_run": format_next_run(upgrade.get("next_run"))}


def machine_pools_table(machine_pools: List[Dict[str, Any]]) -> Table:
    table = Table(box=None, pad_edge=False, header_style="bold")
    for column in ("ID", "AUTOSCALING", "REPLICAS", "INSTANCE TYPE", "LABELS", "TAINTS",
                   "AVAILABILITY ZONES", "SUBNETS", "SPOT INSTANCES", "DISK SIZE", "SG IDs"):
        table.add_column(column)
    for pool in machine_pools:
        table.add_row(
            pool.get("id", ""),
            format_autoscaling(pool),
            format_replicas(pool),
            pool.get("instance_type", ""),
            format_labels(pool.get("labels")),
            format_taints(pool.get("taints")),
            _join(pool.get("availability_zones")),
            _join(pool.get("subnets")),
            format_spot(pool),
            format_disk_size(pool),
            _join((pool.get("aws") or {}).get("additional_security_group_ids")),
        )
    return table


def node_pools_table(node_pools: List[Dict[str, Any]]) -> Table:
    table = Table(box=None, pad_edge=False, header_style="bold")
    for column in ("ID", "AUTOSCALING", "REPLICAS", "INSTANCE TYPE", "LABELS", "TAINTS",
                   "AVAILABILITY ZONE", "SUBNET", "VERSION", "AUTOREPAIR"):
        table.add_column(column)
    for pool in node_pools:
        current = (pool.get("status") or {}).get("current_replicas")
        replicas = format_replicas(pool)
        if current is not None:
            replicas = f"{current}/{replicas}"
        table.add_row(
            pool.get("id", ""),
            format_autoscaling(pool),
            replicas,
            (pool.get("aws_node_pool") or {}).get("instance_type", ""),
            format_labels(pool.get("labels")),
            format_taints(pool.get("taints")),
            pool.get("availability_zone", ""),
            pool.get("subnet", ""),
            format_node_pool_version(pool),
            "Yes" if pool.get("auto_repair") else "No",
        )
    return table


def describe_machine_pool(cluster_id: str, pool: Dict[str, Any]) -> str:
    aws = pool.get("aws") or {}
    return render_template("machinepool.txt.j2", {
        "id": pool.get("id", ""),
        "cluster_id": cluster_id,
        "autoscaling": format_autoscaling(pool),
        "replicas": format_replicas(pool),
        "instance_type": pool.get("instance_type", ""),
        "labels": format_labels(pool.get("labels")),
        "taints": format_taints(pool.get("taints")),
        "availability_zones": _join(pool.get("availability_zones")),
        "subnets": _join(pool.get("subnets")),
        "spot": format_spot(pool),
        "disk_size": format_disk_size(pool),
        "security_groups": _join(aws.get("additional_security_group_ids")),
        "tags": format_tags(aws.get("tags")),
    })


def describe_node_pool(cluster_id: str, pool: Dict[str, Any], upgrade: Optional[Dict[str, Any]] = None) -> str:
    aws_node_pool = pool.get("aws_node_pool") or {}
    status = pool.get("status") or {}
    return render_template("nodepool.txt.j2", {
        "id": pool.get("id", ""),
        "cluster_id": cluster_id,
        "autoscaling": format_autoscaling(pool),
        "replicas": format_replicas(pool),
        "current_replicas": status.get("current_replicas", ""),
        "instance_type": aws_node_pool.get("instance_type", ""),
        "labels": format_labels(pool.get("labels")),
        "taints": format_taints(pool.get("taints")),
        "availability_zone": pool.get("availability_zone", ""),
        "subnet": pool.get("subnet", ""),
        "version": format_node_pool_version(pool),
        "autorepair": "Yes" if pool.get("auto_repair") else "No",
        "tuning_configs": _join(pool.get("tuning_configs")),
        "kubelet_configs": _join(pool.get("kubelet_configs")),
        "security_groups": _join(aws_node_pool.get("additional_security_group_ids")),
        "node_drain_grace_period": format_node_drain_grace_period(pool),
        "message": status.get("message", ""),
        "scheduled_upgrade": scheduled_upgrade_summary(upgrade),
    })


def node_pool_document(pool: Dict[str, Any], upgrade: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """结构化输出的节点池，附带计划升级"""
    document = dict(pool)
    summary = scheduled_upgrade_summary(upgrade)
    if summary:
        document["scheduledUpgrade"] = {
            "version": summary["version"],
            "state": summary["state"],
            "nextRun": summary["next_run"],
        }
    return document
