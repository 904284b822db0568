"""
命令行入口
使用 typer 和 rich 提供机器池的创建、列表、描述与删除命令，以及 KubeletConfig 的创建
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

import typer
import yaml
from click.core import ParameterSource
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from . import __version__
from .clients import CloudClient, ControlPlaneClient
from .config.defaults import (
    DEFAULT_AUTOREPAIR,
    DEFAULT_AUTOSCALING,
    DEFAULT_MULTI_AVAILABILITY_ZONE,
    DEFAULT_REPLICAS,
    SPOT_ON_DEMAND,
)
from .config.settings import AppSettings
from .core.errors import FlagConflictError, PoolError
from .core.models import FLAG_NAMES, UserOptions
from .core.types import FlagSource, OutputFormat
from .prompts import RichPrompter
from .service import MachinePoolService
from .session import Session
from .utils.logging import configure_logging, get_logger

T = TypeVar("T")

# 创建应用和控制台
app = typer.Typer(
    name="poolctl",
    help="Manage machine pools of managed OpenShift clusters",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
create_app = typer.Typer(help="Create a resource", no_args_is_help=True)
list_app = typer.Typer(help="List resources", no_args_is_help=True)
describe_app = typer.Typer(help="Show details of a resource", no_args_is_help=True)
delete_app = typer.Typer(help="Delete a resource", no_args_is_help=True)
app.add_typer(create_app, name="create")
app.add_typer(list_app, name="list")
app.add_typer(describe_app, name="describe")
app.add_typer(delete_app, name="delete")

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)


@dataclass
class CliState:
    """全局选项解析结果，经 ctx.obj 传给子命令"""
    settings: AppSettings
    output: OutputFormat


def version_callback(value: bool):
    """版本回调"""
    if value:
        console.print(f"poolctl {__version__}")
        raise typer.Exit()


def load_settings(config_file: Optional[Path]) -> AppSettings:
    """环境变量 + 可选 YAML 配置文件"""
    if config_file is None:
        return AppSettings()
    if not config_file.exists():
        raise typer.BadParameter(f"Config file '{config_file}' does not exist", param_hint="--config-file")
    try:
        file_data = yaml.safe_load(config_file.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        err_console.print(f"[red]Failed to read config file: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    if not isinstance(file_data, dict):
        err_console.print(f"[red]Config file '{escape(str(config_file))}' must contain a mapping[/red]")
        raise typer.Exit(1)
    try:
        return AppSettings(**{**file_data, "config_file": config_file})
    except ValidationError as e:
        err_console.print(f"[red]Invalid config file '{escape(str(config_file))}':[/red]\n{escape(str(e))}")
        raise typer.Exit(1)


# 全局选项
@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    output: Optional[OutputFormat] = typer.Option(
        None, "--output", "-o", case_sensitive=False, help="Output format",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config-file", "-c", help="Load settings from a YAML file",
    ),
):
    """Manage machine pools of managed OpenShift clusters"""
    settings = load_settings(config_file)
    configure_logging(verbose or settings.verbose)
    logger.debug("cli_started", verbose=verbose, config_file=str(config_file) if config_file else None)
    ctx.obj = CliState(settings=settings, output=output or settings.output)


def _state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    if state is None:
        state = CliState(settings=AppSettings(), output=OutputFormat.TEXT)
    return state


@contextmanager
def open_service(settings: AppSettings) -> Iterator[MachinePoolService]:
    """连接控制平面；云客户端按集群区域延迟创建"""
    control_plane = ControlPlaneClient.from_settings(settings.api)

    def cloud_factory(cluster):
        return CloudClient(region=settings.aws.region or cluster.region, profile=settings.aws.profile)

    try:
        yield MachinePoolService(control_plane, cloud_factory)
    finally:
        control_plane.close()


def make_session(state: CliState, interactive: bool = False, yes: bool = False) -> Session:
    return Session(
        prompter=RichPrompter(console),
        console=console,
        err_console=err_console,
        interactive=interactive,
        assume_yes=yes,
        output=state.output,
    )


def run_command(fn: Callable[[], T]) -> T:
    """执行命令，领域错误打印后以状态码 1 退出"""
    try:
        return fn()
    except PoolError as e:
        rule = e.rule if isinstance(e, FlagConflictError) else None
        logger.debug("command_failed", error_type=type(e).__name__, rule=rule)
        err_console.print(f"[red]ERR:[/red] {escape(e.message)}", highlight=False, soft_wrap=True)
        raise typer.Exit(1)


def flag_source(ctx: typer.Context, param: str) -> FlagSource:
    """三值来源：命令行/环境变量为显式，默认值为默认"""
    source = ctx.get_parameter_source(param)
    if source is None:
        return FlagSource.UNSET
    if source in (ParameterSource.DEFAULT, ParameterSource.DEFAULT_MAP):
        return FlagSource.DEFAULT
    return FlagSource.EXPLICIT


def _split_list(values: List[str]) -> List[str]:
    """重复传参与逗号分隔两种写法都支持"""
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


# create machinepool
@create_app.command("machinepool")
def create_machinepool(
    ctx: typer.Context,
    cluster: str = typer.Option(..., "--cluster", help="Name or ID of the cluster"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Enable interactive mode"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Automatically answer yes to confirm operations"),
    name: str = typer.Option("", "--name", help="Name for the machine pool (required)"),
    instance_type: Optional[str] = typer.Option(
        None, "--instance-type", help="Instance type that should be used (defaults to the configured type)",
    ),
    replicas: int = typer.Option(DEFAULT_REPLICAS, "--replicas", help="Count of machines for the machine pool"),
    autoscaling_enabled: bool = typer.Option(
        DEFAULT_AUTOSCALING, "--enable-autoscaling", help="Enable autoscaling for the machine pool",
    ),
    min_replicas: int = typer.Option(0, "--min-replicas", help="Minimum number of machines for the machine pool"),
    max_replicas: int = typer.Option(0, "--max-replicas", help="Maximum number of machines for the machine pool"),
    labels: str = typer.Option("", "--labels", help="Labels for the machine pool, 'key=value,key2=value2'"),
    taints: str = typer.Option("", "--taints", help="Taints for the machine pool, 'key=value:Effect,...'"),
    use_spot_instances: bool = typer.Option(
        False, "--use-spot-instances", help="Use spot instances for the machine pool",
    ),
    spot_max_price: str = typer.Option(
        SPOT_ON_DEMAND, "--spot-max-price", help="Max price for spot instance, or 'on-demand'",
    ),
    multi_availability_zone: bool = typer.Option(
        DEFAULT_MULTI_AVAILABILITY_ZONE, "--multi-availability-zone/--no-multi-availability-zone",
        help="Create a multi-AZ machine pool for a multi-AZ cluster",
    ),
    availability_zone: str = typer.Option(
        "", "--availability-zone", help="Availability zone of a single AZ machine pool",
    ),
    subnet: str = typer.Option("", "--subnet", help="Subnet of a single AZ machine pool (BYO VPC clusters)"),
    version: str = typer.Option("", "--version", help="OpenShift version of the node pool (hosted only)"),
    autorepair: bool = typer.Option(
        DEFAULT_AUTOREPAIR, "--autorepair/--no-autorepair", help="Auto-repair behaviour (hosted only)",
    ),
    tuning_configs: str = typer.Option("", "--tuning-configs", help="Tuning configs, comma separated (hosted only)"),
    kubelet_configs: str = typer.Option("", "--kubelet-configs", help="Kubelet config (hosted only)"),
    root_disk_size: str = typer.Option("", "--disk-size", help="Root disk size, e.g. '200GiB' or '1TiB'"),
    security_group_ids: List[str] = typer.Option(
        [], "--additional-security-group-ids", help="Additional security group IDs, comma separated",
    ),
    node_drain_grace_period: str = typer.Option(
        "", "--node-drain-grace-period", help="Node drain grace period, e.g. '30 minutes' (hosted only)",
    ),
    tags: List[str] = typer.Option([], "--tags", help="Cloud resource tags, 'key:value,key2:value2'"),
):
    """Add a machine pool (or node pool on hosted clusters) to a cluster

    Examples:
      poolctl create machinepool --cluster mycluster --name mp-1 --replicas 3
      poolctl create machinepool --cluster mycluster --name mp-2 --enable-autoscaling --min-replicas 3 --max-replicas 6
      poolctl create machinepool --cluster mycluster --interactive
    """
    state = _state(ctx)
    values: Dict[str, object] = {
        "name": name,
        "instance_type": instance_type if instance_type is not None else state.settings.default_instance_type,
        "replicas": replicas,
        "autoscaling_enabled": autoscaling_enabled,
        "min_replicas": min_replicas,
        "max_replicas": max_replicas,
        "labels": labels,
        "taints": taints,
        "use_spot_instances": use_spot_instances,
        "spot_max_price": spot_max_price,
        "multi_availability_zone": multi_availability_zone,
        "availability_zone": availability_zone,
        "subnet": subnet,
        "version": version,
        "autorepair": autorepair,
        "tuning_configs": tuning_configs,
        "kubelet_configs": kubelet_configs,
        "root_disk_size": root_disk_size,
        "security_group_ids": _split_list(security_group_ids),
        "node_drain_grace_period": node_drain_grace_period,
        "tags": list(tags),
    }
    sources = {field: flag_source(ctx, field) for field in FLAG_NAMES}
    options = UserOptions(sources=sources, **values)
    logger.debug("create_machinepool", cluster=cluster, explicit_flags=options.explicit_flags())

    session = make_session(state, interactive=interactive, yes=yes)

    def create():
        with open_service(state.settings) as service:
            return service.create(cluster, options, session)

    run_command(create)


# create kubeletconfig
@create_app.command("kubeletconfig")
def create_kubeletconfig(
    ctx: typer.Context,
    cluster: str = typer.Option(..., "--cluster", help="Name or ID of the cluster"),
    pod_pids_limit: Optional[int] = typer.Option(
        None, "--pod-pids-limit", help="Maximum number of PIDs allowed in each pod of the cluster",
    ),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Enable interactive mode"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Automatically answer yes to confirm operations"),
):
    """Create a custom kubeletconfig for a cluster

    Examples:
      poolctl create kubeletconfig --cluster mycluster --pod-pids-limit 5000
    """
    state = _state(ctx)
    session = make_session(state, interactive=interactive, yes=yes)

    def create():
        with open_service(state.settings) as service:
            return service.create_kubelet_config(cluster, pod_pids_limit, session)

    run_command(create)


create_app.command("kubelet-config", hidden=True)(create_kubeletconfig)


# list machinepools
@list_app.command("machinepools")
def list_machinepools(
    ctx: typer.Context,
    cluster: str = typer.Option(..., "--cluster", help="Name or ID of the cluster"),
):
    """List the machine pools (or node pools) of a cluster"""
    state = _state(ctx)
    session = make_session(state)

    def list_pools():
        with open_service(state.settings) as service:
            return service.list(cluster, session)

    run_command(list_pools)


# describe machinepool
@describe_app.command("machinepool")
def describe_machinepool(
    ctx: typer.Context,
    cluster: str = typer.Option(..., "--cluster", help="Name or ID of the cluster"),
    machinepool: str = typer.Option(..., "--machinepool", help="Machine pool to describe"),
):
    """Show details of a machine pool (or node pool) of a cluster"""
    state = _state(ctx)
    session = make_session(state)

    def describe():
        with open_service(state.settings) as service:
            return service.describe(cluster, machinepool, session)

    run_command(describe)


# delete machinepool
@delete_app.command("machinepool")
def delete_machinepool(
    ctx: typer.Context,
    cluster: str = typer.Option(..., "--cluster", help="Name or ID of the cluster"),
    machinepool: str = typer.Option(..., "--machinepool", help="Machine pool to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Automatically answer yes to confirm operations"),
):
    """Delete a machine pool (or node pool) from a cluster"""
    state = _state(ctx)
    session = make_session(state, yes=yes)

    def delete():
        with open_service(state.settings) as service:
            return service.delete(cluster, machinepool, session)

    run_command(delete)


if __name__ == "__main__":
    app()
