"""
版本工具
OpenShift 版本比较、托管机器池最低版本计算与版本列表过滤
"""

from __future__ import annotations

import re
from functools import total_ordering
from typing import Iterable, List, Optional

from .config.defaults import (
    HOSTED_MACHINE_POOL_MINOR_SKEW,
    LOWEST_HOSTED_CP_SUPPORT,
    STABLE_CHANNEL_GROUP,
    VERSION_ID_PREFIX,
)
from .core.errors import InputFormatError

_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:-([0-9A-Za-z.-]+))?$")


@total_ordering
class Version:
    """major.minor.patch[-prerelease]，预发布版本低于正式版本"""

    __slots__ = ("major", "minor", "patch", "prerelease", "raw")

    def __init__(self, raw: str):
        match = _VERSION_RE.match(raw.strip())
        if not match:
            raise InputFormatError(f"Invalid version '{raw}'")
        self.raw = raw.strip()
        self.major = int(match.group(1))
        self.minor = int(match.group(2) or 0)
        self.patch = int(match.group(3) or 0)
        self.prerelease = match.group(4) or ""

    def _key(self):
        # 正式版本排在所有预发布版本之后
        return (self.major, self.minor, self.patch, self.prerelease == "", self.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"Version({self.raw!r})"

    @property
    def major_minor_patch(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def is_greater_than_or_equal(version: str, minimum: str) -> bool:
    """version >= minimum；空版本视为不满足"""
    if not version:
        return False
    try:
        return Version(version) >= Version(minimum)
    except InputFormatError as e:
        raise InputFormatError(f"There was a problem checking version compatibility: {e}") from e


def format_major_minor_patch(version: str) -> str:
    return Version(version).major_minor_patch


def minimal_hosted_machine_pool_version(control_plane_version: str) -> str:
    """托管机器池最多可落后控制平面两个次版本，且不低于托管支持的最低版本"""
    cp = Version(control_plane_version)
    minor = max(cp.minor - HOSTED_MACHINE_POOL_MINOR_SKEW, 0)
    candidate = f"{cp.major}.{minor}.0"
    if Version(candidate) < Version(LOWEST_HOSTED_CP_SUPPORT):
        return LOWEST_HOSTED_CP_SUPPORT
    return candidate


def filter_version_list(versions: Iterable[str], min_version: str, max_version: str) -> List[str]:
    """保留 [min_version, max_version] 区间内的版本，顺序不变"""
    low, high = Version(min_version), Version(max_version)
    filtered = []
    for raw in versions:
        try:
            v = Version(raw)
        except InputFormatError:
            continue
        if low <= v <= high:
            filtered.append(raw)
    return filtered


def version_id(raw_version: str, channel_group: str = STABLE_CHANNEL_GROUP) -> str:
    """控制平面使用的版本ID，例如 openshift-v4.14.5 或 openshift-v4.15.0-candidate"""
    if channel_group and channel_group != STABLE_CHANNEL_GROUP:
        return f"{VERSION_ID_PREFIX}{raw_version}-{channel_group}"
    return f"{VERSION_ID_PREFIX}{raw_version}"


def validate_version(version: str, available: List[str], channel_group: str) -> str:
    """校验版本在可选列表中并返回版本ID"""
    raw = version
    if raw.startswith(VERSION_ID_PREFIX):
        raw = raw[len(VERSION_ID_PREFIX):]
        suffix = f"-{channel_group}"
        if channel_group != STABLE_CHANNEL_GROUP and raw.endswith(suffix):
            raw = raw[: -len(suffix)]
    if raw not in available:
        allowed = ", ".join(available) if available else "none"
        raise InputFormatError(
            f"A valid version number must be specified. Valid versions: {allowed}"
        )
    return version_id(raw, channel_group)


def raw_version_from_id(version: Optional[str]) -> Optional[str]:
    """openshift-v4.14.5[-channel] -> 4.14.5"""
    if not version:
        return version
    raw = version[len(VERSION_ID_PREFIX):] if version.startswith(VERSION_ID_PREFIX) else version
    match = re.match(r"^(\d+\.\d+\.\d+(?:-(?:rc|ec|fc)\.\d+)?)", raw)
    return match.group(1) if match else raw
