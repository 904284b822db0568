"""
输入解析器
把命令行标志、默认值与交互输入合并为完整的创建请求

解析按固定顺序进行，每一步之前先运行对应阶段的规则；交互模式通过
Session 显式传递，提升为交互模式时返回新的 Session。
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from rich.progress import Progress, SpinnerColumn, TextColumn

from .clients.base import CloudAPI, ControlPlaneAPI, SubnetInfo
from .config.defaults import (
    MIN_POD_PIDS_LIMIT,
    MIN_VERSION_COMPUTE_SECURITY_GROUPS_DAY2,
    MIN_VERSION_HOSTED_SECURITY_GROUPS_DAY2,
)
from .core.errors import InputFormatError, PoolError
from .core.models import (
    Autoscaling,
    Cluster,
    CreationRequest,
    FixedScaling,
    MultiAZ,
    SingleAZ,
    SingleSubnet,
    UserOptions,
)
from .core.models.validators import (
    labels_validator,
    max_node_pool_replica_validator,
    max_replica_validator,
    min_node_pool_replica_validator,
    min_replica_validator,
    name_validator,
    node_drain_grace_period_validator,
    parse_disk_size_to_gib,
    parse_labels,
    parse_node_drain_grace_period,
    parse_spot,
    parse_tags,
    parse_taints,
    pod_pids_limit_validator,
    root_disk_size_validator,
    spot_max_price_validator,
    split_names,
    tags_validator,
    taints_validator,
    validate_kubelet_configs,
    validate_pod_pids_limit,
    validate_pool_name,
    validate_root_disk_size,
)
from .core.types import RuleStage
from .rules import RuleContext, evaluate, validate_request
from .session import Session
from .utils.logging import get_logger
from .versions import (
    filter_version_list,
    is_greater_than_or_equal,
    minimal_hosted_machine_pool_version,
    raw_version_from_id,
    validate_version,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """解析结果：完整请求、最终会话与风味默认磁盘大小"""

    request: CreationRequest
    session: Session
    default_root_disk_size_gib: int


def machine_pool_availability_zones(cluster: Cluster, multi_az_pool: bool, availability_zone: str,
                                    subnet: str, cloud: CloudAPI) -> List[str]:
    """用于过滤实例类型的可用区列表"""
    # 多可用区集群上的单可用区机器池
    if cluster.multi_az and not multi_az_pool and availability_zone:
        return [availability_zone]
    if subnet:
        return [cloud.get_subnet_availability_zone(subnet)]
    return list(cluster.availability_zones)


# 公共步骤

def _resolve_name(options: UserOptions, session: Session) -> Tuple[str, Session]:
    name = options.name.strip(" \t")
    if not name and not session.interactive:
        session = session.promote()
        session.info("Enabling interactive mode")
    if not name or session.interactive:
        name = session.prompter.ask_string(
            "Machine pool name", default=name, required=True, validators=[name_validator],
        )
    return validate_pool_name(name), session


def _first_zone(cluster: Cluster) -> str:
    if not cluster.availability_zones:
        raise PoolError(f"Cluster '{cluster.name or cluster.id}' has no availability zones")
    return cluster.availability_zones[0]


def _ask_subnet(session: Session, subnets: List[SubnetInfo]) -> str:
    if not subnets:
        raise PoolError("Failed to find a private subnet in the cluster VPC")
    by_option = {subnet.option: subnet.subnet_id for subnet in subnets}
    choice = session.prompter.ask_option(
        "Subnet ID", options=list(by_option), default=next(iter(by_option)),
        help="The subnet ID to create the machine pool in",
    )
    return by_option[choice]


def _subnet_from_user(options: UserOptions, session: Session, cluster: Cluster, cloud: CloudAPI) -> str:
    """显式子网；交互模式下可选择把机器池放到单个子网"""
    if options.is_set("subnet"):
        return options.subnet.strip()
    if not session.interactive or not cluster.subnet_ids:
        return ""
    single_subnet = session.prompter.ask_bool("Select subnet for a single AZ machine pool", default=False)
    if not single_subnet:
        return ""
    return _ask_subnet(session, cloud.get_vpc_private_subnets(cluster.subnet_ids[0]))


def _resolve_labels_and_taints(options: UserOptions, session: Session):
    labels, taints = options.labels, options.taints
    if session.interactive:
        labels = session.prompter.ask_string(
            "Labels", default=labels, validators=[labels_validator],
            help="Labels for the machine pool, in the format 'key=value,key2=value2'",
        )
        taints = session.prompter.ask_string(
            "Taints", default=taints, validators=[taints_validator],
            help="Taints for the machine pool, in the format 'key=value:Effect,...'",
        )
    return parse_labels(labels), parse_taints(taints)


def _check_explicit_formats(options: UserOptions) -> None:
    """显式给出的键值类输入在调用任何 API 之前先校验格式"""
    if options.is_set("labels"):
        parse_labels(options.labels)
    if options.is_set("taints"):
        parse_taints(options.taints)
    if options.is_set("tags"):
        parse_tags(list(options.tags))


def _resolve_tags(options: UserOptions, session: Session) -> Dict[str, str]:
    tags = list(options.tags)
    if session.interactive:
        answer = session.prompter.ask_string(
            "Tags", default=",".join(tags), validators=[tags_validator],
            help="Cloud resource tags, in the format 'key:value,key2:value2'",
        )
        tags = [answer]
    return parse_tags(tags)


def _resolve_security_groups(options: UserOptions, session: Session, cluster: Cluster,
                             cloud: CloudAPI, version_supported: bool) -> List[str]:
    security_group_ids = list(options.security_group_ids)
    if (session.interactive and version_supported and cluster.is_byo_vpc
            and not options.is_set("security_group_ids") and cluster.subnet_ids):
        groups = cloud.get_vpc_security_groups(cluster.subnet_ids[0])
        if groups:
            security_group_ids = session.prompter.ask_multiple(
                "Additional Security Group IDs",
                options=[group.group_id for group in groups],
                default=security_group_ids,
                help="Additional security groups of the VPC to attach to the machine pool nodes",
            )
    return [sg.strip() for sg in security_group_ids]


def _resolve_scaling(options: UserOptions, session: Session, ctx: RuleContext, hosted: bool):
    autoscaling = options.autoscaling_enabled
    if (not options.is_set("replicas") and not autoscaling
            and not options.is_set("autoscaling_enabled") and session.interactive):
        autoscaling = session.prompter.ask_bool(
            "Enable autoscaling", default=autoscaling,
            help="Enable autoscaling for the machine pool",
        )
    evaluate(RuleStage.SCALING, ctx.evolve(autoscaling=autoscaling))

    multi_az_pool = bool(ctx.multi_az_pool)
    prompter = session.prompter
    if autoscaling:
        min_replicas = options.min_replicas
        min_validator = min_node_pool_replica_validator(True) if hosted else min_replica_validator(multi_az_pool)
        if session.interactive or not options.is_set("min_replicas"):
            min_replicas = prompter.ask_int("Min replicas", default=min_replicas, validators=[min_validator],
                                            help="Minimum number of machines for the machine pool")
        max_replicas = options.max_replicas
        max_validator = (max_node_pool_replica_validator(min_replicas) if hosted
                         else max_replica_validator(min_replicas, multi_az_pool))
        if session.interactive or not options.is_set("max_replicas"):
            max_replicas = prompter.ask_int("Max replicas", default=max_replicas, validators=[max_validator],
                                            help="Maximum number of machines for the machine pool")
        evaluate(RuleStage.REPLICAS, ctx.evolve(autoscaling=True, min_replicas=min_replicas,
                                                max_replicas=max_replicas))
        return Autoscaling(min_replicas=min_replicas, max_replicas=max_replicas)

    replicas = options.replicas
    validator = min_node_pool_replica_validator(False) if hosted else min_replica_validator(multi_az_pool)
    if session.interactive or not options.is_set("replicas"):
        replicas = prompter.ask_int("Replicas", default=replicas, validators=[validator],
                                    help="Count of machines for the machine pool")
    evaluate(RuleStage.REPLICAS, ctx.evolve(autoscaling=False, replicas=replicas))
    return FixedScaling(replicas=replicas)


def _spinner(session: Session, name: str, description: str):
    if session.structured_output or not session.console.is_terminal:
        return nullcontext()
    session.info(f"Checking available instance types for machine pool '{name}'")
    progress = Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                        console=session.console, transient=True)
    progress.add_task(description, total=None)
    return progress


def _resolve_instance_type(options: UserOptions, session: Session, name: str, cluster: Cluster,
                           zones: List[str], control_plane: ControlPlaneAPI) -> str:
    instance_type = options.instance_type.strip()
    if not instance_type and not session.interactive:
        raise InputFormatError("You must supply a valid instance type")

    with _spinner(session, name, "Fetching instance types..."):
        machine_types = control_plane.get_available_machine_types(cluster.region, zones, cluster.sts_role_arn)
    logger.debug("machine_types_loaded", count=len(machine_types.items), zones=zones)

    if session.interactive:
        available = machine_types.available_ids()
        if not instance_type and available:
            instance_type = available[0]
        instance_type = session.prompter.ask_option(
            "Instance type", options=available, default=instance_type,
            help="Instance type that should be used",
        )
    try:
        machine_types.validate_machine_type(instance_type)
    except InputFormatError as e:
        raise InputFormatError(f"Expected a valid instance type: {e}") from e
    return instance_type


def _resolve_root_disk(options: UserOptions, session: Session, cluster: Cluster,
                       default_size: int) -> Optional[int]:
    if not options.root_disk_size and not session.interactive:
        return None
    size = options.root_disk_size or f"{default_size} GiB"
    if session.interactive:
        size = session.prompter.ask_string(
            "Root disk size (GiB or TiB)", default=size,
            validators=[root_disk_size_validator(cluster.version)],
            help="Root disk size, with an optional unit (e.g. 200GiB, 1TiB)",
        )
    try:
        size_gib = parse_disk_size_to_gib(size)
    except InputFormatError as e:
        raise InputFormatError(f"Expected a valid machine pool root disk size value '{size}': {e}") from e
    validate_root_disk_size(cluster.version, size_gib)
    return size_gib


# 经典拓扑

def resolve_classic(options: UserOptions, cluster: Cluster, session: Session,
                    control_plane: ControlPlaneAPI, cloud: CloudAPI) -> Resolution:
    """解析经典集群的机器池创建请求"""
    ctx = RuleContext(options=options, cluster=cluster)
    evaluate(RuleStage.PREFLIGHT, ctx)
    _check_explicit_formats(options)

    name, session = _resolve_name(options, session)
    logger.info("resolving_machine_pool", name=name, cluster=cluster.id)

    # 单可用区 BYO VPC 集群可以直接选择子网
    subnet = ""
    if not cluster.multi_az and cluster.is_byo_vpc:
        subnet = _subnet_from_user(options, session, cluster, cloud)

    multi_az_pool = False
    availability_zone = ""
    if cluster.multi_az:
        multi_az_set = options.is_set("multi_availability_zone")
        multi_az_value = options.multi_availability_zone
        # 给出可用区或子网即隐式选择单可用区
        if options.is_set("availability_zone") or options.is_set("subnet"):
            multi_az_set, multi_az_value = True, False

        if not multi_az_set and session.interactive and not session.assume_yes:
            multi_az_pool = session.prompter.ask_bool(
                "Create multi-AZ machine pool", default=True,
                help="Create a multi-AZ machine pool for a multi-AZ cluster",
            )
        else:
            multi_az_pool = multi_az_value

        if not multi_az_pool:
            if cluster.is_byo_vpc and not options.availability_zone:
                subnet = _subnet_from_user(options, session, cluster, cloud)
            if not subnet:
                availability_zone = _first_zone(cluster)
                if not options.is_set("availability_zone") and session.interactive:
                    availability_zone = session.prompter.ask_option(
                        "AWS availability zone", options=cluster.availability_zones,
                        default=availability_zone,
                        help="Select availability zone to create a single AZ machine pool",
                    )
                elif options.is_set("availability_zone"):
                    availability_zone = options.availability_zone.strip()
                evaluate(RuleStage.PLACEMENT, ctx.evolve(availability_zone=availability_zone))

    if subnet:
        placement = SingleSubnet(subnet=subnet)
    elif availability_zone:
        placement = SingleAZ(zone=availability_zone)
    elif cluster.multi_az or not cluster.availability_zones:
        placement = MultiAZ()
    else:
        placement = SingleAZ(zone=cluster.availability_zones[0])

    ctx = ctx.evolve(multi_az_pool=multi_az_pool, availability_zone=availability_zone or None)
    scaling = _resolve_scaling(options, session, ctx, hosted=False)

    security_group_ids = _resolve_security_groups(
        options, session, cluster, cloud,
        is_greater_than_or_equal(cluster.version, MIN_VERSION_COMPUTE_SECURITY_GROUPS_DAY2),
    )

    zones = machine_pool_availability_zones(cluster, multi_az_pool, availability_zone, subnet, cloud)
    instance_type = _resolve_instance_type(options, session, name, cluster, zones, control_plane)

    labels, taints = _resolve_labels_and_taints(options, session)

    # Spot
    local_zone = bool(subnet) and bool(zones) and cloud.is_local_zone(zones[0])
    use_spot = options.use_spot_instances
    evaluate(RuleStage.SPOT, ctx.evolve(use_spot=use_spot, local_zone=local_zone))
    spot_max_price = options.spot_max_price
    if (not options.is_set("use_spot_instances") and not options.is_set("spot_max_price")
            and not local_zone and session.interactive):
        use_spot = session.prompter.ask_bool(
            "Use spot instances", default=use_spot,
            help="Use spot instances for the machine pool",
        )
    if use_spot and not options.is_set("spot_max_price") and session.interactive:
        spot_max_price = session.prompter.ask_string(
            "Spot instance max price", default=spot_max_price, validators=[spot_max_price_validator],
            help="Max price for spot instance, or 'on-demand' to use the on-demand price",
        )
    spot_max_price_validator(spot_max_price)
    spot = parse_spot(use_spot, spot_max_price)

    tags = _resolve_tags(options, session)

    default_disk_size = control_plane.get_default_root_disk_size(cluster.flavour_id)
    root_disk_size_gib = _resolve_root_disk(options, session, cluster, default_disk_size)

    request = CreationRequest(
        name=name,
        instance_type=instance_type,
        scaling=scaling,
        placement=placement,
        spot=spot,
        security_group_ids=security_group_ids,
        root_disk_size_gib=root_disk_size_gib,
        labels=labels,
        taints=taints,
        tags=tags,
        provenance=dict(options.sources),
    )
    validate_request(request, cluster)
    logger.info("machine_pool_resolved", name=name, placement=placement.kind, scaling=scaling.kind)
    return Resolution(request=request, session=session, default_root_disk_size_gib=default_disk_size)


# 托管拓扑

def _subnet_from_availability_zone(options: UserOptions, session: Session, cluster: Cluster,
                                   cloud: CloudAPI) -> Tuple[str, Session]:
    """按可用区选出私有子网；同一可用区有多个子网时改为交互选择"""
    if not cluster.subnet_ids:
        return "", session
    subnets_by_zone: Dict[str, List[SubnetInfo]] = {}
    for subnet in cloud.get_vpc_private_subnets(cluster.subnet_ids[0]):
        subnets_by_zone.setdefault(subnet.availability_zone, []).append(subnet)

    availability_zone = _first_zone(cluster)
    if not options.is_set("availability_zone") and session.interactive:
        availability_zone = session.prompter.ask_option(
            "AWS availability zone", options=list(subnets_by_zone), default=availability_zone,
            help="Select availability zone to create a single AZ machine pool",
        )
    elif options.is_set("availability_zone"):
        availability_zone = options.availability_zone.strip()

    candidates = subnets_by_zone.get(availability_zone)
    if not candidates:
        raise PoolError(f"Failed to find a private subnet for '{availability_zone}' availability zone")
    if len(candidates) == 1:
        return candidates[0].subnet_id, session

    session.info(f"There are several subnets for availability zone '{availability_zone}'")
    session = session.promote()
    return _ask_subnet(session, candidates), session


def _resolve_version(options: UserOptions, session: Session, cluster: Cluster,
                     control_plane: ControlPlaneAPI) -> str:
    if not options.is_set("version") and not session.interactive:
        return ""
    channel_group = cluster.channel_group
    available = control_plane.get_versions(channel_group)
    min_version = minimal_hosted_machine_pool_version(cluster.version)
    filtered = filter_version_list(available, min_version, cluster.version)
    logger.debug("versions_filtered", min_version=min_version, max_version=cluster.version, count=len(filtered))

    version = options.version.strip() or cluster.version
    if session.interactive:
        version = session.prompter.ask_option(
            "OpenShift version", options=filtered, default=raw_version_from_id(version),
            help="Version of OpenShift that will be used to create the machine pool",
        )
    try:
        return validate_version(version, filtered, channel_group)
    except InputFormatError as e:
        raise InputFormatError(f"Expected a valid OpenShift version: {e}") from e


def _check_available(kind: str, names: List[str], available: List[str], cluster: Cluster) -> None:
    unknown = [name for name in names if name not in available]
    if unknown:
        raise InputFormatError(
            f"{kind} '{unknown[0]}' is not available for cluster '{cluster.id}'. "
            f"Available: {', '.join(available)}"
        )


def _resolve_tuning_configs(options: UserOptions, session: Session, cluster: Cluster,
                            control_plane: ControlPlaneAPI) -> List[str]:
    available = control_plane.get_tuning_config_names(cluster.id)
    names = split_names(options.tuning_configs)
    if names and not available:
        session.warn(f"No tuning config available for cluster '{cluster.id}'. "
                     "Any tuning config in input will be ignored")
        names = []
    if session.interactive and available:
        names = session.prompter.ask_multiple(
            "Tuning configs", options=available, default=names,
            help="Tuning configs to apply to the machine pool",
        )
    _check_available("Tuning config", names, available, cluster)
    return names


def _resolve_kubelet_configs(options: UserOptions, session: Session, cluster: Cluster,
                             control_plane: ControlPlaneAPI) -> List[str]:
    if not options.kubelet_configs and not session.interactive:
        return []
    available = control_plane.get_kubelet_config_names(cluster.id)
    names: List[str] = []
    if available:
        names = split_names(options.kubelet_configs)
    elif options.kubelet_configs:
        session.warn(f"No kubelet configs available for cluster '{cluster.id}'. "
                     "Any kubelet config in input will be ignored")
    if session.interactive and available:
        names = session.prompter.ask_multiple(
            "Kubelet config", options=available, default=names, validators=[validate_kubelet_configs],
            help="Kubelet config to apply to the machine pool",
        )
    validate_kubelet_configs(names)
    _check_available("Kubelet config", names, available, cluster)
    return names


def resolve_hosted(options: UserOptions, cluster: Cluster, session: Session,
                   control_plane: ControlPlaneAPI, cloud: CloudAPI) -> Resolution:
    """解析托管集群的节点池创建请求"""
    ctx = RuleContext(options=options, cluster=cluster, version=options.version.strip() or None)
    evaluate(RuleStage.PREFLIGHT, ctx)
    _check_explicit_formats(options)

    name, session = _resolve_name(options, session)
    logger.info("resolving_node_pool", name=name, cluster=cluster.id)

    version = _resolve_version(options, session, cluster, control_plane)

    subnet = _subnet_from_user(options, session, cluster, cloud)
    if not subnet:
        subnet, session = _subnet_from_availability_zone(options, session, cluster, cloud)

    ctx = ctx.evolve(multi_az_pool=False, version=version or None)
    scaling = _resolve_scaling(options, session, ctx, hosted=True)

    labels, taints = _resolve_labels_and_taints(options, session)

    security_group_ids = _resolve_security_groups(
        options, session, cluster, cloud,
        is_greater_than_or_equal(ctx.platform_version, MIN_VERSION_HOSTED_SECURITY_GROUPS_DAY2),
    )

    tags = _resolve_tags(options, session)

    zones = list(cluster.availability_zones)
    if subnet:
        zones = [cloud.get_subnet_availability_zone(subnet)]
    instance_type = _resolve_instance_type(options, session, name, cluster, zones, control_plane)

    autorepair = options.autorepair
    if session.interactive:
        autorepair = session.prompter.ask_bool(
            "Autorepair", default=autorepair,
            help="Select auto-repair behaviour for the machine pool",
        )

    tuning_config_names = _resolve_tuning_configs(options, session, cluster, control_plane)
    kubelet_config_names = _resolve_kubelet_configs(options, session, cluster, control_plane)

    node_drain_grace_period = options.node_drain_grace_period
    if session.interactive:
        node_drain_grace_period = session.prompter.ask_string(
            "Node drain grace period", default=node_drain_grace_period,
            validators=[node_drain_grace_period_validator],
            help="Time to wait for pods to drain before nodes are deleted, e.g. '30 minutes' or '1 hour'",
        )
    drain_minutes = parse_node_drain_grace_period(node_drain_grace_period)

    default_disk_size = control_plane.get_default_root_disk_size(cluster.flavour_id)
    root_disk_size_gib = _resolve_root_disk(options, session, cluster, default_disk_size)

    request = CreationRequest(
        name=name,
        instance_type=instance_type,
        scaling=scaling,
        placement=SingleSubnet(subnet=subnet) if subnet else MultiAZ(),
        security_group_ids=security_group_ids,
        root_disk_size_gib=root_disk_size_gib,
        labels=labels,
        taints=taints,
        tags=tags,
        openshift_version=version or None,
        autorepair=autorepair,
        tuning_config_names=tuning_config_names,
        kubelet_config_names=kubelet_config_names,
        node_drain_grace_period_minutes=drain_minutes,
        provenance=dict(options.sources),
    )
    validate_request(request, cluster)
    logger.info("node_pool_resolved", name=name, subnet=subnet, scaling=scaling.kind)
    return Resolution(request=request, session=session, default_root_disk_size_gib=default_disk_size)


def resolve(options: UserOptions, cluster: Cluster, session: Session,
            control_plane: ControlPlaneAPI, cloud: CloudAPI) -> Resolution:
    if cluster.is_hosted:
        return resolve_hosted(options, cluster, session, control_plane, cloud)
    return resolve_classic(options, cluster, session, control_plane, cloud)


__all__ = [
    "Resolution",
    "machine_pool_availability_zones",
    "resolve",
    "resolve_classic",
    "resolve_hosted",
]


# 集群级 KubeletConfig

def resolve_pod_pids_limit(pod_pids_limit: Optional[int], session: Session) -> Tuple[int, Session]:
    """--pod-pids-limit 未给出时提升为交互模式并提问"""
    if pod_pids_limit is None and not session.interactive:
        session = session.promote()
        session.info("Enabling interactive mode")
    if session.interactive:
        pod_pids_limit = session.prompter.ask_int(
            "Pod Pids Limit", default=pod_pids_limit if pod_pids_limit is not None else MIN_POD_PIDS_LIMIT,
            validators=[pod_pids_limit_validator],
            help="Maximum number of PIDs allowed in each pod of the cluster",
        )
    return validate_pod_pids_limit(pod_pids_limit), session
