"""公共验证器与解析函数

验证器既用于交互输入（作为 prompt 的 validators），也用于对命令行取值的最终校验，
失败时抛出 InputFormatError。
"""
from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Optional

from .request import SpotDisabled, SpotMaxPrice, SpotOnDemand, Taint
from ..errors import InputFormatError
from ..types import MACHINE_POOL_NAME_RE, TaintEffect
from ...config.defaults import (
    MAX_POD_PIDS_LIMIT,
    MIN_POD_PIDS_LIMIT,
    NODE_DRAIN_GRACE_PERIOD_MAX_MINUTES,
    ROOT_DISK_LARGE_SIZE_VERSION,
    ROOT_DISK_MAX_GIB,
    ROOT_DISK_MAX_GIB_LEGACY,
    ROOT_DISK_MIN_GIB,
    SPOT_ON_DEMAND,
)
from ...versions import is_greater_than_or_equal

Validator = Callable[[Any], None]

MULTI_AZ_REPLICAS_MESSAGE = "Multi AZ clusters require that the replicas be a multiple of 3"


def validate_pool_name(name: str) -> str:
    """去除首尾空格与制表符后校验名称"""
    name = (name or "").strip(" \t")
    if not MACHINE_POOL_NAME_RE.match(name):
        raise InputFormatError("Expected a valid name for the machine pool")
    return name


def name_validator(val: Any) -> None:
    if not MACHINE_POOL_NAME_RE.match(str(val).strip(" \t")):
        raise InputFormatError(f"'{val}' does not match regular expression '{MACHINE_POOL_NAME_RE.pattern}'")


def _as_int(val: Any) -> int:
    if isinstance(val, bool):
        raise InputFormatError(f"Expected an integer value, got '{val}'")
    try:
        return int(str(val).strip())
    except ValueError:
        raise InputFormatError(f"Expected an integer value, got '{val}'") from None


def min_replica_validator(multi_az_pool: bool) -> Validator:
    """经典拓扑：非负，多可用区机器池必须是 3 的倍数"""
    def validate(val: Any) -> None:
        min_replicas = _as_int(val)
        if min_replicas < 0:
            raise InputFormatError("min-replicas must be a non-negative integer")
        if multi_az_pool and min_replicas % 3 != 0:
            raise InputFormatError(MULTI_AZ_REPLICAS_MESSAGE)
    return validate


def max_replica_validator(min_replicas: int, multi_az_pool: bool) -> Validator:
    def validate(val: Any) -> None:
        max_replicas = _as_int(val)
        if min_replicas > max_replicas:
            raise InputFormatError("max-replicas must be greater or equal to min-replicas")
        if multi_az_pool and max_replicas % 3 != 0:
            raise InputFormatError(MULTI_AZ_REPLICAS_MESSAGE)
    return validate


def min_node_pool_replica_validator(autoscaling: bool) -> Validator:
    """托管拓扑：自动伸缩时最小副本至少为 1，否则非负即可"""
    def validate(val: Any) -> None:
        replicas = _as_int(val)
        if autoscaling:
            if replicas < 1:
                raise InputFormatError("min-replicas must be greater than zero.")
        elif replicas < 0:
            raise InputFormatError("replicas must be a non-negative integer.")
    return validate


def max_node_pool_replica_validator(min_replicas: int) -> Validator:
    def validate(val: Any) -> None:
        if min_replicas > _as_int(val):
            raise InputFormatError("max-replicas must be greater or equal to min-replicas")
    return validate


def spot_max_price_validator(val: Any) -> None:
    """'on-demand' 或正数"""
    spot_max_price = str(val).strip()
    if spot_max_price == SPOT_ON_DEMAND:
        return
    try:
        price = float(spot_max_price)
    except ValueError:
        raise InputFormatError("Expected a numeric value for spot max price") from None
    if not math.isfinite(price):
        raise InputFormatError(f"Spot max price must be a finite number, got '{spot_max_price}'")
    if price <= 0:
        raise InputFormatError("Spot max price must be positive")


def parse_spot(use_spot_instances: bool, spot_max_price: str):
    if not use_spot_instances:
        return SpotDisabled()
    spot_max_price_validator(spot_max_price)
    if spot_max_price.strip() == SPOT_ON_DEMAND:
        return SpotOnDemand()
    return SpotMaxPrice(price=float(spot_max_price))


# 标签键：可选 DNS 前缀 + 名称
_LABEL_KEY_RE = re.compile(
    r"^([a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*/)?"
    r"[A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?$"
)
_LABEL_VALUE_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?)?$")


def parse_labels(labels: str) -> Dict[str, str]:
    """'k1=v1,k2=v2' -> dict"""
    result: Dict[str, str] = {}
    if not labels or not labels.strip():
        return result
    for item in labels.split(","):
        item = item.strip()
        if "=" not in item:
            raise InputFormatError("Expected key=value format for labels")
        key, value = item.split("=", 1)
        key, value = key.strip(), value.strip()
        if not _LABEL_KEY_RE.match(key):
            raise InputFormatError(f"Invalid label key '{key}'")
        if not _LABEL_VALUE_RE.match(value):
            raise InputFormatError(f"Invalid label value '{value}' for key '{key}'")
        if key in result:
            raise InputFormatError(f"Duplicated label key '{key}' used")
        result[key] = value
    return result


def labels_validator(val: Any) -> None:
    parse_labels(str(val))


def parse_taints(taints: str) -> List[Taint]:
    """'key=value:Effect,...' -> Taint 列表，value 可为空"""
    result: List[Taint] = []
    if not taints or not taints.strip():
        return result
    valid_effects = ", ".join(e.value for e in TaintEffect)
    for item in taints.split(","):
        item = item.strip()
        parts = re.split(r"[=:]", item)
        if ":" not in item or len(parts) not in (2, 3):
            raise InputFormatError(f"Expected key=value:scheduleType format for taints. Got '{item}'")
        if len(parts) == 2:
            key, value, effect = parts[0], "", parts[1]
        else:
            key, value, effect = parts
        try:
            effect_enum = TaintEffect(effect.strip())
        except ValueError:
            raise InputFormatError(
                f"Invalid taint effect '{effect}', only the following effects are supported: {valid_effects}"
            ) from None
        if not key.strip():
            raise InputFormatError(f"Expected a non-empty key for taint '{item}'")
        result.append(Taint(key=key.strip(), value=value.strip(), effect=effect_enum))
    return result


def taints_validator(val: Any) -> None:
    parse_taints(str(val))


def parse_tags(tags: List[str]) -> Dict[str, str]:
    """['k1:v1', 'k2:v2'] 或逗号分隔形式 -> dict"""
    result: Dict[str, str] = {}
    for raw in tags or []:
        for item in raw.split(","):
            item = item.strip()
            if not item:
                continue
            if ":" not in item:
                raise InputFormatError(f"invalid tag format for tag '{item}'. Expected tag format to be 'key:value'")
            key, value = item.split(":", 1)
            key, value = key.strip(), value.strip()
            if not key:
                raise InputFormatError(f"invalid tag format for tag '{item}'. Tag key cannot be empty")
            result[key] = value
    return result


def tags_validator(val: Any) -> None:
    parse_tags([str(val)])


_DISK_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")
_GIB = 1024 ** 3


def parse_disk_size_to_gib(size: str) -> int:
    """'200' / '200GiB' / '1 TiB' / '500GB' -> GiB 整数；无单位按 GiB"""
    match = _DISK_SIZE_RE.match(size or "")
    if not match:
        raise InputFormatError(f"invalid disk size format: '{size}'")
    value = float(match.group(1))
    unit = match.group(2).lower()
    if unit in ("", "g", "gi", "gib"):
        gib = value
    elif unit in ("t", "ti", "tib"):
        gib = value * 1024
    elif unit == "gb":
        gib = value * 1000 ** 3 / _GIB
    elif unit == "tb":
        gib = value * 1000 ** 4 / _GIB
    else:
        raise InputFormatError(f"invalid disk size unit '{match.group(2)}': expected GiB or TiB")
    return int(gib)


def validate_root_disk_size(version: str, size_gib: int) -> None:
    max_gib = ROOT_DISK_MAX_GIB_LEGACY
    if version and is_greater_than_or_equal(version, ROOT_DISK_LARGE_SIZE_VERSION):
        max_gib = ROOT_DISK_MAX_GIB
    if size_gib < ROOT_DISK_MIN_GIB or size_gib > max_gib:
        raise InputFormatError(
            f"Invalid root disk size: {size_gib} GiB. "
            f"Must be between {ROOT_DISK_MIN_GIB} GiB and {max_gib} GiB."
        )


def root_disk_size_validator(version: str) -> Validator:
    def validate(val: Any) -> None:
        validate_root_disk_size(version, parse_disk_size_to_gib(str(val)))
    return validate


_DRAIN_RE = re.compile(r"^\s*(\d+)\s*(minutes?|hours?)?\s*$", re.IGNORECASE)


def parse_node_drain_grace_period(period: str) -> Optional[int]:
    """'30' / '30 minutes' / '2 hours' -> 分钟数；空串返回 None"""
    if period is None or not period.strip():
        return None
    match = _DRAIN_RE.match(period)
    if not match:
        raise InputFormatError(
            f"Invalid time unit in '{period}'. Only 'minute' or 'hour' are allowed"
        )
    value = int(match.group(1))
    unit = (match.group(2) or "minute").lower()
    minutes = value * 60 if unit.startswith("hour") else value
    if minutes > NODE_DRAIN_GRACE_PERIOD_MAX_MINUTES:
        raise InputFormatError("Node drain grace period can be at most 1 week (10080 minutes or 168 hours)")
    return minutes


def node_drain_grace_period_validator(val: Any) -> None:
    parse_node_drain_grace_period(str(val))


def validate_kubelet_configs(names: List[str]) -> None:
    if len(names) > 1:
        raise InputFormatError("Only a single kubelet config is supported for Machine Pools")


def split_names(value: str) -> List[str]:
    """逗号分隔的名称列表，忽略空项"""
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def validate_pod_pids_limit(pod_pids_limit: int) -> int:
    if pod_pids_limit < MIN_POD_PIDS_LIMIT:
        raise InputFormatError(
            f"The minimum value for --pod-pids-limit is '{MIN_POD_PIDS_LIMIT}'. You have supplied '{pod_pids_limit}'"
        )
    if pod_pids_limit > MAX_POD_PIDS_LIMIT:
        raise InputFormatError(
            f"The maximum value for --pod-pids-limit is '{MAX_POD_PIDS_LIMIT}'. You have supplied '{pod_pids_limit}'"
        )
    return pod_pids_limit


def pod_pids_limit_validator(val: Any) -> None:
    validate_pod_pids_limit(_as_int(val))
