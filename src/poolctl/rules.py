"""
标志兼容性规则表

规则按声明顺序分阶段求值，每个阶段在依赖它的解析步骤之前运行；
第一个失败的规则立即终止整个操作。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, FrozenSet, List, Optional, Tuple

from .config.defaults import (
    MIN_VERSION_COMPUTE_SECURITY_GROUPS_DAY2,
    MIN_VERSION_HOSTED_SECURITY_GROUPS_DAY2,
)
from .core.errors import FlagConflictError, InputFormatError, PoolError
from .core.models import (
    Autoscaling,
    Cluster,
    CreationRequest,
    FixedScaling,
    MultiAZ,
    SingleAZ,
    SingleSubnet,
    UserOptions,
    SECURITY_GROUP_FLAG,
)
from .core.models.validators import (
    max_node_pool_replica_validator,
    max_replica_validator,
    min_node_pool_replica_validator,
    min_replica_validator,
    validate_pool_name,
)
from .core.types import RuleStage, Topology
from .utils.logging import get_logger
from .versions import format_major_minor_patch, is_greater_than_or_equal, raw_version_from_id

logger = get_logger(__name__)

BOTH = frozenset({Topology.CLASSIC, Topology.HOSTED})
CLASSIC = frozenset({Topology.CLASSIC})
HOSTED = frozenset({Topology.HOSTED})

SUBNET_AND_AZ_MESSAGE = (
    "Setting both `subnet` and `availability-zone` flag is not supported."
    " Please select `subnet` or `availability-zone` to create a single availability zone machine pool"
)

HOSTED_ONLY_OPTIONS: Tuple[Tuple[str, str], ...] = (
    ("version", "version"),
    ("autorepair", "autorepair"),
    ("tuning_configs", "tuning-configs"),
    ("kubelet_configs", "kubelet-configs"),
    ("node_drain_grace_period", "node-drain-grace-period"),
)
# 创建请求字段 -> 对应的托管专用选项
_HOSTED_ONLY_REQUEST_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("openshift_version", "version"),
    ("autorepair", "autorepair"),
    ("tuning_config_names", "tuning_configs"),
    ("kubelet_config_names", "kubelet_configs"),
    ("node_drain_grace_period_minutes", "node_drain_grace_period"),
)


def _hosted_only_message(flag: str) -> str:
    return f"Setting the `{flag}` flag is only supported for hosted clusters"


@dataclass(frozen=True)
class RuleContext:
    """规则的输入：显式标志、集群与到目前为止解析出的取值"""

    options: UserOptions
    cluster: Cluster
    multi_az_pool: Optional[bool] = None
    availability_zone: Optional[str] = None
    autoscaling: Optional[bool] = None
    replicas: Optional[int] = None
    min_replicas: Optional[int] = None
    max_replicas: Optional[int] = None
    use_spot: Optional[bool] = None
    local_zone: Optional[bool] = None
    version: Optional[str] = None

    def evolve(self, **changes) -> RuleContext:
        return replace(self, **changes)

    @property
    def security_groups_min_version(self) -> str:
        if self.cluster.is_hosted:
            return MIN_VERSION_HOSTED_SECURITY_GROUPS_DAY2
        return MIN_VERSION_COMPUTE_SECURITY_GROUPS_DAY2

    @property
    def platform_version(self) -> str:
        return raw_version_from_id(self.version) or self.cluster.version


@dataclass(frozen=True)
class Rule:
    """命名谓词：返回错误消息表示违反"""

    name: str
    stage: RuleStage
    check: Callable[[RuleContext], Optional[str]]
    topologies: FrozenSet[Topology] = field(default=BOTH)


# 预检

def _subnet_and_az_exclusive(ctx: RuleContext) -> Optional[str]:
    if ctx.options.is_set("subnet") and ctx.options.is_set("availability_zone"):
        return SUBNET_AND_AZ_MESSAGE
    return None


def _cluster_ready(ctx: RuleContext) -> Optional[str]:
    if not ctx.cluster.is_ready:
        return f"Cluster '{ctx.cluster.name or ctx.cluster.id}' is not yet ready"
    return None


def _multi_az_flag_requires_multi_az_cluster(ctx: RuleContext) -> Optional[str]:
    if ctx.options.is_set("multi_availability_zone") and not ctx.cluster.multi_az:
        return "Setting the `multi-availability-zone` flag is only allowed for multi-AZ clusters"
    return None


def _az_flag_requires_multi_az_cluster(ctx: RuleContext) -> Optional[str]:
    if ctx.options.is_set("availability_zone") and not ctx.cluster.multi_az:
        return "Setting the `availability-zone` flag is only allowed for multi-AZ clusters"
    return None


def _subnet_flag_requires_byo_vpc(ctx: RuleContext) -> Optional[str]:
    if ctx.options.is_set("subnet") and not ctx.cluster.is_byo_vpc:
        return "Setting the `subnet` flag is only allowed for BYO VPC clusters"
    return None


def _security_groups_require_byo_vpc(ctx: RuleContext) -> Optional[str]:
    if ctx.options.is_set("security_group_ids") and not ctx.cluster.is_byo_vpc:
        return f"Setting the `{SECURITY_GROUP_FLAG}` flag is only allowed for BYOVPC clusters"
    return None


def _security_groups_require_min_version(ctx: RuleContext) -> Optional[str]:
    if not ctx.options.is_set("security_group_ids"):
        return None
    if not is_greater_than_or_equal(ctx.platform_version, ctx.security_groups_min_version):
        return (
            f"Parameter '{SECURITY_GROUP_FLAG}' is not supported prior to version "
            f"'{format_major_minor_patch(ctx.security_groups_min_version)}'"
        )
    return None


def _az_conflicts_with_multi_az(ctx: RuleContext) -> Optional[str]:
    opts = ctx.options
    if opts.is_set("availability_zone") and opts.is_set("multi_availability_zone") and opts.multi_availability_zone:
        return (
            "Setting the `availability-zone` flag is only supported for creating a single AZ "
            "machine pool in a multi-AZ cluster"
        )
    return None


def _subnet_conflicts_with_multi_az(ctx: RuleContext) -> Optional[str]:
    opts = ctx.options
    if opts.is_set("subnet") and opts.is_set("multi_availability_zone") and opts.multi_availability_zone:
        return "Setting the `subnet` flag is only supported for creating a single AZ machine pool"
    return None


def _hosted_only_flags(ctx: RuleContext) -> Optional[str]:
    for field_name, flag in HOSTED_ONLY_OPTIONS:
        if ctx.options.is_set(field_name):
            return _hosted_only_message(flag)
    return None


# 放置

def _az_belongs_to_cluster(ctx: RuleContext) -> Optional[str]:
    zone = ctx.availability_zone
    if zone is not None and zone not in ctx.cluster.availability_zones:
        return f"Availability zone '{zone}' doesn't belong to the cluster's availability zones"
    return None


# 副本策略

def _replicas_exclusive_with_autoscaling(ctx: RuleContext) -> Optional[str]:
    if ctx.autoscaling and ctx.options.is_set("replicas"):
        return "Replicas can't be set when autoscaling is enabled"
    return None


def _min_max_require_autoscaling(ctx: RuleContext) -> Optional[str]:
    if ctx.autoscaling is False and (ctx.options.is_set("min_replicas") or ctx.options.is_set("max_replicas")):
        return "Autoscaling must be enabled in order to set min and max replicas"
    return None


def _replica_counts(ctx: RuleContext) -> Optional[str]:
    hosted = ctx.cluster.is_hosted
    multi_az = bool(ctx.multi_az_pool) and not hosted
    try:
        if ctx.autoscaling:
            if ctx.min_replicas is not None:
                (min_node_pool_replica_validator(True) if hosted else min_replica_validator(multi_az))(
                    ctx.min_replicas)
            if ctx.min_replicas is not None and ctx.max_replicas is not None:
                (max_node_pool_replica_validator(ctx.min_replicas) if hosted
                 else max_replica_validator(ctx.min_replicas, multi_az))(ctx.max_replicas)
        elif ctx.replicas is not None:
            (min_node_pool_replica_validator(False) if hosted else min_replica_validator(multi_az))(ctx.replicas)
    except InputFormatError as e:
        return e.message
    return None


# Spot

def _spot_price_requires_spot(ctx: RuleContext) -> Optional[str]:
    opts = ctx.options
    if opts.is_set("spot_max_price") and opts.is_set("use_spot_instances") and not opts.use_spot_instances:
        return "Can't set max price when not using spot instances"
    return None


def _spot_forbidden_in_local_zone(ctx: RuleContext) -> Optional[str]:
    if ctx.local_zone and ctx.use_spot:
        return "Spot instances are not supported for local zones"
    return None


RULES: List[Rule] = [
    Rule("subnet-and-az-exclusive", RuleStage.PREFLIGHT, _subnet_and_az_exclusive),
    Rule("cluster-ready", RuleStage.PREFLIGHT, _cluster_ready),
    Rule("multi-az-flag-requires-multi-az-cluster", RuleStage.PREFLIGHT,
         _multi_az_flag_requires_multi_az_cluster, CLASSIC),
    Rule("az-flag-requires-multi-az-cluster", RuleStage.PREFLIGHT, _az_flag_requires_multi_az_cluster, CLASSIC),
    Rule("subnet-flag-requires-byo-vpc", RuleStage.PREFLIGHT, _subnet_flag_requires_byo_vpc),
    Rule("security-groups-require-byo-vpc", RuleStage.PREFLIGHT, _security_groups_require_byo_vpc),
    Rule("security-groups-require-min-version", RuleStage.PREFLIGHT, _security_groups_require_min_version),
    Rule("az-conflicts-with-multi-az", RuleStage.PREFLIGHT, _az_conflicts_with_multi_az, CLASSIC),
    Rule("subnet-conflicts-with-multi-az", RuleStage.PREFLIGHT, _subnet_conflicts_with_multi_az, CLASSIC),
    Rule("hosted-only-flags", RuleStage.PREFLIGHT, _hosted_only_flags, CLASSIC),
    Rule("az-belongs-to-cluster", RuleStage.PLACEMENT, _az_belongs_to_cluster, CLASSIC),
    Rule("replicas-exclusive-with-autoscaling", RuleStage.SCALING, _replicas_exclusive_with_autoscaling),
    Rule("min-max-require-autoscaling", RuleStage.SCALING, _min_max_require_autoscaling),
    Rule("replica-counts", RuleStage.REPLICAS, _replica_counts),
    Rule("spot-price-requires-spot", RuleStage.SPOT, _spot_price_requires_spot, CLASSIC),
    Rule("spot-forbidden-in-local-zone", RuleStage.SPOT, _spot_forbidden_in_local_zone, CLASSIC),
]


def rules_for(stage: RuleStage, topology: Topology) -> List[Rule]:
    return [rule for rule in RULES if rule.stage == stage and topology in rule.topologies]


def evaluate(stage: RuleStage, ctx: RuleContext) -> None:
    """按顺序求值某个阶段的规则，第一个违反的规则抛出 FlagConflictError"""
    for rule in rules_for(stage, ctx.cluster.topology):
        message = rule.check(ctx)
        if message:
            logger.debug("rule_failed", rule=rule.name, stage=stage.value)
            raise FlagConflictError(message, rule=rule.name)


def validate_request(request: CreationRequest, cluster: Cluster) -> None:
    """再次校验已解析完成的请求

    只读：不修改请求；对合法请求不会报错，可重复调用。
    """
    validate_pool_name(request.name or "")
    if not request.instance_type:
        raise InputFormatError("You must supply a valid instance type")

    hosted = cluster.is_hosted
    placement = request.placement
    multi_az_pool = isinstance(placement, MultiAZ) and cluster.multi_az and not hosted
    if isinstance(placement, SingleSubnet) and not cluster.is_byo_vpc:
        raise FlagConflictError("Setting the `subnet` flag is only allowed for BYO VPC clusters",
                                rule="subnet-flag-requires-byo-vpc")
    if isinstance(placement, SingleAZ) and not hosted and placement.zone not in cluster.availability_zones:
        raise FlagConflictError(
            f"Availability zone '{placement.zone}' doesn't belong to the cluster's availability zones",
            rule="az-belongs-to-cluster",
        )

    scaling = request.scaling
    if isinstance(scaling, Autoscaling):
        ctx = RuleContext(options=UserOptions(), cluster=cluster, multi_az_pool=multi_az_pool, autoscaling=True,
                          min_replicas=scaling.min_replicas, max_replicas=scaling.max_replicas)
    elif isinstance(scaling, FixedScaling):
        ctx = RuleContext(options=UserOptions(), cluster=cluster, multi_az_pool=multi_az_pool, autoscaling=False,
                          replicas=scaling.replicas)
    else:
        raise PoolError("Expected either fixed replicas or autoscaling to be set")
    message = _replica_counts(ctx)
    if message:
        raise InputFormatError(message)

    if request.security_group_ids:
        if not cluster.is_byo_vpc:
            raise FlagConflictError(
                f"Setting the `{SECURITY_GROUP_FLAG}` flag is only allowed for BYOVPC clusters",
                rule="security-groups-require-byo-vpc",
            )
        ctx = RuleContext(options=UserOptions.with_flags(security_group_ids=request.security_group_ids),
                          cluster=cluster, version=request.openshift_version)
        message = _security_groups_require_min_version(ctx)
        if message:
            raise FlagConflictError(message, rule="security-groups-require-min-version")

    if not hosted:
        flags = dict(HOSTED_ONLY_OPTIONS)
        for attr, field_name in _HOSTED_ONLY_REQUEST_FIELDS:
            if getattr(request, attr) not in (None, []):
                raise FlagConflictError(_hosted_only_message(flags[field_name]), rule="hosted-only-flags")


__all__ = ["Rule", "RuleContext", "RULES", "rules_for", "evaluate", "validate_request"]
