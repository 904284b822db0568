import io
from typing import Any, Dict, List, Optional

import pytest
from rich.console import Console

from poolctl.clients.base import MachineType, MachineTypeList, SecurityGroupInfo, SubnetInfo
from poolctl.core.errors import InputFormatError
from poolctl.core.models import Cluster
from poolctl.core.types import OutputFormat, Topology
from poolctl.session import Session
from poolctl.utils.logging import configure_logging


@pytest.fixture(autouse=True, scope="session")
def _logging():
    configure_logging(False)


class ScriptedPrompter:
    """按问题文本回答；strict 时遇到未预期的问题直接失败，否则返回默认值"""

    def __init__(self, answers: Optional[Dict[str, Any]] = None, strict: bool = True):
        self.answers = dict(answers or {})
        self.strict = strict
        self.asked: List[str] = []

    def _answer(self, question: str, default: Any) -> Any:
        self.asked.append(question)
        if question in self.answers:
            return self.answers[question]
        if self.strict:
            raise AssertionError(f"Unexpected prompt: {question!r}")
        return default

    @staticmethod
    def _validate(value: Any, validators) -> None:
        if value == "" or value is None:
            return
        for validator in validators:
            try:
                validator(value)
            except ValueError as e:
                raise InputFormatError(str(e)) from e

    def ask_string(self, question, default="", required=False, validators=(), help=""):
        value = self._answer(question, default)
        self._validate(value, validators)
        return value

    def ask_int(self, question, default=0, validators=(), help=""):
        value = self._answer(question, default)
        self._validate(value, validators)
        return int(value)

    def ask_bool(self, question, default=False, help=""):
        return bool(self._answer(question, default))

    def ask_option(self, question, options, default=None, help=""):
        value = self._answer(question, default if default in options else options[0])
        assert value in options, f"{value!r} not in {options!r}"
        return value

    def ask_multiple(self, question, options, default=(), validators=(), help=""):
        value = list(self._answer(question, list(default)))
        for validator in validators:
            validator(value)
        return value


class FakeControlPlane:
    """内存中的控制平面"""

    def __init__(self, cluster: Cluster):
        self.cluster = cluster
        self.machine_types = MachineTypeList(items=[
            MachineType(id="m5.xlarge", name="m5.xlarge", category="general_purpose"),
            MachineType(id="r5.xlarge", name="r5.xlarge", category="memory_optimized"),
            MachineType(id="p3.2xlarge", name="p3.2xlarge", category="accelerated", available=False),
        ])
        self.default_root_disk_size = 300
        self.tuning_configs: List[str] = []
        self.kubelet_configs: List[str] = []
        self.versions: List[str] = []
        self.machine_pools: List[Dict[str, Any]] = []
        self.node_pools: List[Dict[str, Any]] = []
        self.upgrade: Optional[Dict[str, Any]] = None
        self.created: List[Dict[str, Any]] = []
        self.deleted: List[str] = []
        self.machine_type_zones: Optional[List[str]] = None
        self.create_error: Optional[Exception] = None
        self.kubelet_config: Optional[Dict[str, Any]] = None
        self.created_kubelet_configs: List[Dict[str, Any]] = []

    def get_cluster(self, cluster_key):
        return self.cluster

    def list_machine_pools(self, cluster_id):
        return list(self.machine_pools)

    def get_machine_pool(self, cluster_id, machine_pool_id):
        return next((p for p in self.machine_pools if p["id"] == machine_pool_id), None)

    def create_machine_pool(self, cluster_id, payload):
        if self.create_error:
            raise self.create_error
        self.created.append(payload)
        return dict(payload, href=f"/api/clusters_mgmt/v1/clusters/{cluster_id}/machine_pools/{payload['id']}")

    def delete_machine_pool(self, cluster_id, machine_pool_id):
        self.deleted.append(machine_pool_id)

    def list_node_pools(self, cluster_id):
        return list(self.node_pools)

    def get_node_pool(self, cluster_id, node_pool_id):
        return next((p for p in self.node_pools if p["id"] == node_pool_id), None)

    def create_node_pool(self, cluster_id, payload):
        if self.create_error:
            raise self.create_error
        self.created.append(payload)
        return dict(payload)

    def delete_node_pool(self, cluster_id, node_pool_id):
        self.deleted.append(node_pool_id)

    def get_node_pool_upgrade(self, cluster_id, node_pool_id):
        return self.upgrade

    def get_cluster_kubelet_config(self, cluster_id):
        return self.kubelet_config

    def create_kubelet_config(self, cluster_id, payload):
        self.created_kubelet_configs.append(payload)
        return dict(payload, id=cluster_id)

    def get_default_root_disk_size(self, flavour_id):
        return self.default_root_disk_size

    def get_available_machine_types(self, region, availability_zones, role_arn):
        self.machine_type_zones = list(availability_zones)
        return self.machine_types

    def get_tuning_config_names(self, cluster_id):
        return list(self.tuning_configs)

    def get_kubelet_config_names(self, cluster_id):
        return list(self.kubelet_configs)

    def get_versions(self, channel_group):
        return list(self.versions)


class FakeCloud:
    """内存中的云 SDK"""

    def __init__(self, subnets: Optional[List[SubnetInfo]] = None,
                 security_groups: Optional[List[SecurityGroupInfo]] = None,
                 local_zones: Optional[List[str]] = None):
        self.subnets = list(subnets or [])
        self.security_groups = list(security_groups or [])
        self.local_zones = set(local_zones or [])
        self.subnet_zones: Dict[str, str] = {s.subnet_id: s.availability_zone for s in self.subnets}

    def get_subnet_availability_zone(self, subnet_id):
        return self.subnet_zones[subnet_id]

    def get_vpc_private_subnets(self, subnet_id):
        return list(self.subnets)

    def get_vpc_security_groups(self, subnet_id):
        return list(self.security_groups)

    def is_local_zone(self, availability_zone):
        return availability_zone in self.local_zones


def captured_console() -> Console:
    return Console(file=io.StringIO(), width=200, force_terminal=False, color_system=None)


def console_text(console: Console) -> str:
    return console.file.getvalue()


@pytest.fixture
def make_session():
    def factory(prompter=None, interactive=False, assume_yes=False, output=OutputFormat.TEXT):
        return Session(
            prompter=prompter or ScriptedPrompter(),
            console=captured_console(),
            err_console=captured_console(),
            interactive=interactive,
            assume_yes=assume_yes,
            output=output,
        )
    return factory


@pytest.fixture
def multi_az_cluster():
    return Cluster(
        id="c1", name="classic-maz", multi_az=True,
        availability_zones=["us-east-1a", "us-east-1b"],
        version="4.14.5", region="us-east-1",
    )


@pytest.fixture
def single_az_cluster():
    return Cluster(
        id="c2", name="classic-saz", multi_az=False,
        availability_zones=["us-east-1a"],
        version="4.14.5", region="us-east-1",
    )


@pytest.fixture
def byo_single_az_cluster():
    return Cluster(
        id="c3", name="classic-byo", multi_az=False,
        availability_zones=["us-east-1a"], subnet_ids=["subnet-a1"],
        version="4.14.5", region="us-east-1",
    )


@pytest.fixture
def byo_multi_az_cluster():
    return Cluster(
        id="c4", name="classic-byo-maz", multi_az=True,
        availability_zones=["us-east-1a", "us-east-1b", "us-east-1c"],
        subnet_ids=["subnet-a1", "subnet-b1", "subnet-c1"],
        version="4.14.5", region="us-east-1",
    )


@pytest.fixture
def hosted_cluster():
    return Cluster(
        id="h1", name="hosted", topology=Topology.HOSTED, multi_az=False,
        availability_zones=["us-east-1a"], subnet_ids=["subnet-a1"],
        version="4.15.2", region="us-east-1",
    )


@pytest.fixture
def private_subnets():
    return [
        SubnetInfo(subnet_id="subnet-a1", availability_zone="us-east-1a"),
        SubnetInfo(subnet_id="subnet-b1", availability_zone="us-east-1b"),
        SubnetInfo(subnet_id="subnet-c1", availability_zone="us-east-1c"),
    ]
