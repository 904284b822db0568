import pytest

from conftest import FakeCloud, FakeControlPlane, ScriptedPrompter, console_text
from poolctl.core.errors import FlagConflictError, InputFormatError
from poolctl.core.models import (
    Autoscaling,
    FixedScaling,
    MultiAZ,
    SingleAZ,
    SingleSubnet,
    SpotDisabled,
    SpotMaxPrice,
    UserOptions,
)
from poolctl.core.types import FlagSource
from poolctl.resolver import machine_pool_availability_zones, resolve, resolve_classic


def _resolve(options, cluster, session, control_plane=None, cloud=None):
    return resolve_classic(options, cluster, session, control_plane or FakeControlPlane(cluster),
                           cloud or FakeCloud())


def test_non_interactive_multi_az_pool(multi_az_cluster, make_session):
    control_plane = FakeControlPlane(multi_az_cluster)
    options = UserOptions.with_flags(name="mp1", replicas=3)

    result = _resolve(options, multi_az_cluster, make_session(), control_plane)

    request = result.request
    assert request.name == "mp1"
    assert request.instance_type == "m5.xlarge"
    assert request.scaling == FixedScaling(replicas=3)
    assert request.placement == MultiAZ()
    assert request.spot == SpotDisabled()
    assert request.root_disk_size_gib is None
    assert request.provenance["replicas"] == FlagSource.EXPLICIT
    assert request.provenance["instance_type"] == FlagSource.DEFAULT
    assert result.default_root_disk_size_gib == 300
    assert not result.session.interactive
    assert control_plane.machine_type_zones == ["us-east-1a", "us-east-1b"]


def test_multi_az_replicas_must_be_multiple_of_three(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=2)
    with pytest.raises(FlagConflictError, match="multiple of 3") as exc:
        _resolve(options, multi_az_cluster, make_session())
    assert exc.value.rule == "replica-counts"


def test_single_az_cluster_accepts_any_replica_count(single_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=2)
    result = _resolve(options, single_az_cluster, make_session())
    assert result.request.scaling == FixedScaling(replicas=2)
    assert result.request.placement == SingleAZ(zone="us-east-1a")


def test_autoscaling_from_flags(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", autoscaling_enabled=True, min_replicas=3, max_replicas=6)
    result = _resolve(options, multi_az_cluster, make_session())
    assert result.request.scaling == Autoscaling(min_replicas=3, max_replicas=6)


def test_autoscaling_min_greater_than_max(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", autoscaling_enabled=True, min_replicas=6, max_replicas=3)
    with pytest.raises(FlagConflictError, match="max-replicas must be greater or equal to min-replicas"):
        _resolve(options, multi_az_cluster, make_session())


def test_replicas_with_autoscaling(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=3, autoscaling_enabled=True)
    with pytest.raises(FlagConflictError, match="Replicas can't be set when autoscaling is enabled"):
        _resolve(options, multi_az_cluster, make_session())


def test_min_replicas_without_autoscaling(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", min_replicas=3)
    with pytest.raises(FlagConflictError, match="Autoscaling must be enabled"):
        _resolve(options, multi_az_cluster, make_session())


def test_availability_zone_outside_cluster(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", availability_zone="us-west-2a", replicas=1)
    with pytest.raises(FlagConflictError) as exc:
        _resolve(options, multi_az_cluster, make_session())
    assert exc.value.rule == "az-belongs-to-cluster"


def test_availability_zone_flag_selects_single_az_pool(multi_az_cluster, make_session):
    control_plane = FakeControlPlane(multi_az_cluster)
    options = UserOptions.with_flags(name="mp1", availability_zone="us-east-1b", replicas=1)

    result = _resolve(options, multi_az_cluster, make_session(), control_plane)

    assert result.request.placement == SingleAZ(zone="us-east-1b")
    assert control_plane.machine_type_zones == ["us-east-1b"]


def test_machine_pool_availability_zones(multi_az_cluster, byo_single_az_cluster, private_subnets):
    cloud = FakeCloud(subnets=private_subnets)
    assert machine_pool_availability_zones(multi_az_cluster, False, "us-east-1b", "", cloud) == ["us-east-1b"]
    assert machine_pool_availability_zones(multi_az_cluster, True, "", "", cloud) == ["us-east-1a", "us-east-1b"]
    assert machine_pool_availability_zones(byo_single_az_cluster, False, "", "subnet-c1", cloud) == ["us-east-1c"]


def test_interactive_single_az_selection(multi_az_cluster, make_session):
    prompter = ScriptedPrompter({
        "Machine pool name": "mp1",
        "Create multi-AZ machine pool": False,
        "AWS availability zone": "us-east-1b",
        "Replicas": 1,
        "Instance type": "r5.xlarge",
    }, strict=False)

    result = _resolve(UserOptions.with_flags(), multi_az_cluster, make_session(prompter, interactive=True))

    request = result.request
    assert request.placement == SingleAZ(zone="us-east-1b")
    assert request.scaling == FixedScaling(replicas=1)
    assert request.instance_type == "r5.xlarge"
    assert request.root_disk_size_gib == 300
    assert "Enable autoscaling" in prompter.asked
    assert "Use spot instances" in prompter.asked


def test_assume_yes_skips_multi_az_question(multi_az_cluster, make_session):
    prompter = ScriptedPrompter({"Machine pool name": "mp1", "Replicas": 3}, strict=False)
    session = make_session(prompter, interactive=True, assume_yes=True)

    result = _resolve(UserOptions.with_flags(), multi_az_cluster, session)

    assert "Create multi-AZ machine pool" not in prompter.asked
    assert result.request.placement == MultiAZ()


def test_missing_name_enables_interactive_mode(multi_az_cluster, make_session):
    prompter = ScriptedPrompter({"Machine pool name": "mp1"}, strict=False)
    session = make_session(prompter)

    result = _resolve(UserOptions.with_flags(replicas=3), multi_az_cluster, session)

    assert result.session.interactive
    assert result.request.name == "mp1"
    assert "Enabling interactive mode" in console_text(session.console)
    # 已显式给出副本数，不再询问是否自动伸缩
    assert "Enable autoscaling" not in prompter.asked


def test_spot_max_price(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=3, use_spot_instances=True, spot_max_price="0.25")
    result = _resolve(options, multi_az_cluster, make_session())
    assert result.request.spot == SpotMaxPrice(price=0.25)


def test_spot_max_price_infinity_rejected(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=3, use_spot_instances=True, spot_max_price="inf")
    with pytest.raises(InputFormatError, match="finite number"):
        _resolve(options, multi_az_cluster, make_session())


def test_spot_price_requires_spot(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=3, use_spot_instances=False, spot_max_price="0.5")
    with pytest.raises(FlagConflictError, match="Can't set max price when not using spot instances"):
        _resolve(options, multi_az_cluster, make_session())


def test_spot_in_local_zone(byo_single_az_cluster, private_subnets, make_session):
    cloud = FakeCloud(subnets=private_subnets, local_zones=["us-east-1a"])
    options = UserOptions.with_flags(name="mp1", subnet="subnet-a1", use_spot_instances=True, replicas=1)
    with pytest.raises(FlagConflictError, match="Spot instances are not supported for local zones"):
        _resolve(options, byo_single_az_cluster, make_session(), cloud=cloud)


def test_subnet_flag_on_byo_cluster(byo_single_az_cluster, private_subnets, make_session):
    control_plane = FakeControlPlane(byo_single_az_cluster)
    cloud = FakeCloud(subnets=private_subnets)
    options = UserOptions.with_flags(name="mp1", subnet="subnet-a1", replicas=1)

    result = _resolve(options, byo_single_az_cluster, make_session(), control_plane, cloud)

    assert result.request.placement == SingleSubnet(subnet="subnet-a1")
    assert control_plane.machine_type_zones == ["us-east-1a"]


def test_subnet_flag_requires_byo_vpc(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", subnet="subnet-a1", replicas=3)
    with pytest.raises(FlagConflictError, match="only allowed for BYO VPC clusters"):
        _resolve(options, multi_az_cluster, make_session())


def test_multi_az_flag_on_single_az_cluster(single_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", multi_availability_zone=True, replicas=1)
    with pytest.raises(FlagConflictError) as exc:
        _resolve(options, single_az_cluster, make_session())
    assert exc.value.rule == "multi-az-flag-requires-multi-az-cluster"


def test_explicit_root_disk_size(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=3, root_disk_size="1 TiB")
    result = _resolve(options, multi_az_cluster, make_session())
    assert result.request.root_disk_size_gib == 1024


def test_resolve_dispatches_on_topology(multi_az_cluster, make_session):
    options = UserOptions.with_flags(name="mp1", replicas=3)
    result = resolve(options, multi_az_cluster, make_session(), FakeControlPlane(multi_az_cluster), FakeCloud())
    assert result.request.openshift_version is None


@pytest.mark.parametrize("flags, message", [
    ({"labels": "app"}, "Expected key=value format for labels"),
    ({"taints": "dedicated=gpu"}, "Expected key=value:scheduleType format for taints"),
    ({"tags": ["team"]}, "Expected tag format to be 'key:value'"),
])
def test_malformed_flags_fail_before_any_api_call(multi_az_cluster, make_session, flags, message):
    control_plane = FakeControlPlane(multi_az_cluster)
    with pytest.raises(InputFormatError, match=message):
        _resolve(UserOptions.with_flags(replicas=3, **flags), multi_az_cluster, make_session(), control_plane)
    assert control_plane.machine_type_zones is None
