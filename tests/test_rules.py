import pytest

from poolctl.core.errors import FlagConflictError, InputFormatError
from poolctl.core.models import (
    Autoscaling,
    Cluster,
    CreationRequest,
    FixedScaling,
    MultiAZ,
    SingleAZ,
    SingleSubnet,
    UserOptions,
)
from poolctl.core.types import RuleStage, Topology
from poolctl.rules import RULES, RuleContext, evaluate, rules_for, validate_request


def _preflight(options, cluster):
    evaluate(RuleStage.PREFLIGHT, RuleContext(options=options, cluster=cluster))


def test_rule_names_are_unique():
    names = [rule.name for rule in RULES]
    assert len(names) == len(set(names))


def test_hosted_preflight_skips_classic_only_rules():
    names = [rule.name for rule in rules_for(RuleStage.PREFLIGHT, Topology.HOSTED)]
    assert names[0] == "subnet-and-az-exclusive"
    assert "hosted-only-flags" not in names
    assert "multi-az-flag-requires-multi-az-cluster" not in names


@pytest.mark.parametrize("cluster", [
    Cluster(id="c1", multi_az=True, availability_zones=["us-east-1a"], subnet_ids=["s-1"], version="4.14.0"),
    Cluster(id="c2", state="installing", version="4.14.0"),
    Cluster(id="c3", topology=Topology.HOSTED, subnet_ids=["s-1"], version="4.15.0"),
    Cluster(id="c4", multi_az=False, version="4.10.0"),
])
def test_subnet_and_availability_zone_always_conflict(cluster):
    options = UserOptions.with_flags(
        name="mp1", subnet="subnet-1", availability_zone="us-east-1a",
        multi_availability_zone=True, security_group_ids=["sg-1"], replicas=4,
    )
    with pytest.raises(FlagConflictError) as exc:
        _preflight(options, cluster)
    assert exc.value.rule == "subnet-and-az-exclusive"
    assert exc.value.message == (
        "Setting both `subnet` and `availability-zone` flag is not supported."
        " Please select `subnet` or `availability-zone` to create a single availability zone machine pool"
    )


def test_cluster_must_be_ready():
    with pytest.raises(FlagConflictError, match="Cluster 'prod' is not yet ready"):
        _preflight(UserOptions.with_flags(name="mp1"), Cluster(id="c1", name="prod", state="installing"))


def test_multi_az_flag_requires_multi_az_cluster(single_az_cluster):
    # 显式设置的默认值仍然算显式
    options = UserOptions.with_flags(multi_availability_zone=True)
    with pytest.raises(FlagConflictError) as exc:
        _preflight(options, single_az_cluster)
    assert exc.value.rule == "multi-az-flag-requires-multi-az-cluster"


def test_default_multi_az_value_is_not_a_flag(single_az_cluster):
    _preflight(UserOptions.with_flags(name="mp1"), single_az_cluster)


def test_availability_zone_requires_multi_az_cluster(single_az_cluster):
    with pytest.raises(FlagConflictError, match="`availability-zone` flag is only allowed for multi-AZ clusters"):
        _preflight(UserOptions.with_flags(availability_zone="us-east-1a"), single_az_cluster)


def test_subnet_requires_byo_vpc(multi_az_cluster):
    with pytest.raises(FlagConflictError, match="only allowed for BYO VPC clusters"):
        _preflight(UserOptions.with_flags(subnet="subnet-1"), multi_az_cluster)


def test_security_groups_require_byo_vpc(multi_az_cluster):
    with pytest.raises(FlagConflictError) as exc:
        _preflight(UserOptions.with_flags(security_group_ids=["sg-1"]), multi_az_cluster)
    assert exc.value.rule == "security-groups-require-byo-vpc"


def test_security_groups_require_min_version():
    cluster = Cluster(id="c1", subnet_ids=["subnet-1"], availability_zones=["us-east-1a"], version="4.10.2")
    with pytest.raises(FlagConflictError) as exc:
        _preflight(UserOptions.with_flags(security_group_ids=["sg-1"]), cluster)
    assert exc.value.message == (
        "Parameter 'additional-security-group-ids' is not supported prior to version '4.11.0'"
    )


def test_hosted_security_groups_checked_against_requested_version(hosted_cluster):
    options = UserOptions.with_flags(security_group_ids=["sg-1"])
    ctx = RuleContext(options=options, cluster=hosted_cluster, version="4.14.8")
    with pytest.raises(FlagConflictError, match="prior to version '4.15.0'"):
        evaluate(RuleStage.PREFLIGHT, ctx)
    evaluate(RuleStage.PREFLIGHT, ctx.evolve(version="openshift-v4.15.1"))


def test_explicit_single_az_conflicts_with_multi_az(byo_multi_az_cluster):
    with pytest.raises(FlagConflictError) as exc:
        _preflight(UserOptions.with_flags(availability_zone="us-east-1a", multi_availability_zone=True),
                   byo_multi_az_cluster)
    assert exc.value.rule == "az-conflicts-with-multi-az"
    with pytest.raises(FlagConflictError) as exc:
        _preflight(UserOptions.with_flags(subnet="subnet-a1", multi_availability_zone=True), byo_multi_az_cluster)
    assert exc.value.rule == "subnet-conflicts-with-multi-az"


def test_explicit_single_az_with_multi_az_false(byo_multi_az_cluster):
    _preflight(UserOptions.with_flags(availability_zone="us-east-1a", multi_availability_zone=False),
               byo_multi_az_cluster)


@pytest.mark.parametrize("field,value,flag", [
    ("version", "4.14.0", "version"),
    ("autorepair", False, "autorepair"),
    ("tuning_configs", "tc", "tuning-configs"),
    ("kubelet_configs", "kc", "kubelet-configs"),
    ("node_drain_grace_period", "30", "node-drain-grace-period"),
])
def test_hosted_only_flags_on_classic(multi_az_cluster, field, value, flag):
    with pytest.raises(FlagConflictError, match=f"`{flag}` flag is only supported for hosted clusters"):
        _preflight(UserOptions.with_flags(**{field: value}), multi_az_cluster)


def test_zone_must_belong_to_cluster(multi_az_cluster):
    ctx = RuleContext(options=UserOptions(), cluster=multi_az_cluster, availability_zone="us-west-2a")
    with pytest.raises(FlagConflictError, match="doesn't belong to the cluster's availability zones"):
        evaluate(RuleStage.PLACEMENT, ctx)


def test_scaling_flags_are_exclusive(multi_az_cluster):
    ctx = RuleContext(options=UserOptions.with_flags(replicas=3), cluster=multi_az_cluster, autoscaling=True)
    with pytest.raises(FlagConflictError, match="Replicas can't be set when autoscaling is enabled"):
        evaluate(RuleStage.SCALING, ctx)

    ctx = RuleContext(options=UserOptions.with_flags(max_replicas=3), cluster=multi_az_cluster, autoscaling=False)
    with pytest.raises(FlagConflictError, match="Autoscaling must be enabled in order to set min and max replicas"):
        evaluate(RuleStage.SCALING, ctx)


@pytest.mark.parametrize("multi_az_pool,replicas,ok", [
    (True, 3, True),
    (True, 4, False),
    (False, 4, True),
    (False, -1, False),
])
def test_replica_counts(multi_az_cluster, multi_az_pool, replicas, ok):
    ctx = RuleContext(options=UserOptions(), cluster=multi_az_cluster, multi_az_pool=multi_az_pool,
                      autoscaling=False, replicas=replicas)
    if ok:
        evaluate(RuleStage.REPLICAS, ctx)
    else:
        with pytest.raises(FlagConflictError):
            evaluate(RuleStage.REPLICAS, ctx)


def test_autoscaling_bounds(multi_az_cluster):
    ctx = RuleContext(options=UserOptions(), cluster=multi_az_cluster, multi_az_pool=True,
                      autoscaling=True, min_replicas=6, max_replicas=3)
    with pytest.raises(FlagConflictError, match="max-replicas must be greater or equal to min-replicas"):
        evaluate(RuleStage.REPLICAS, ctx)


def test_spot_rules(byo_single_az_cluster):
    options = UserOptions.with_flags(use_spot_instances=False, spot_max_price="0.5")
    with pytest.raises(FlagConflictError, match="Can't set max price when not using spot instances"):
        evaluate(RuleStage.SPOT, RuleContext(options=options, cluster=byo_single_az_cluster))

    ctx = RuleContext(options=UserOptions(), cluster=byo_single_az_cluster, use_spot=True, local_zone=True)
    with pytest.raises(FlagConflictError, match="Spot instances are not supported for local zones"):
        evaluate(RuleStage.SPOT, ctx)


def test_validate_request_is_idempotent(multi_az_cluster):
    request = CreationRequest(
        name="mp1", instance_type="m5.xlarge",
        scaling=Autoscaling(min_replicas=3, max_replicas=6),
        placement=MultiAZ(),
    )
    before = request.model_dump()
    validate_request(request, multi_az_cluster)
    validate_request(request, multi_az_cluster)
    assert request.model_dump() == before


def test_validate_request_single_az_pool_has_no_divisibility(multi_az_cluster):
    request = CreationRequest(
        name="mp1", instance_type="m5.xlarge",
        scaling=FixedScaling(replicas=2), placement=SingleAZ(zone="us-east-1b"),
    )
    validate_request(request, multi_az_cluster)


def test_validate_request_rejects_invalid(multi_az_cluster):
    request = CreationRequest(
        name="mp1", instance_type="m5.xlarge",
        scaling=FixedScaling(replicas=2), placement=MultiAZ(),
    )
    with pytest.raises(InputFormatError, match="multiple of 3"):
        validate_request(request, multi_az_cluster)

    request = CreationRequest(
        name="mp1", instance_type="m5.xlarge",
        scaling=FixedScaling(replicas=3), placement=SingleSubnet(subnet="subnet-1"),
    )
    with pytest.raises(FlagConflictError):
        validate_request(request, multi_az_cluster)


@pytest.mark.parametrize("field, value, flag", [
    ("openshift_version", "openshift-v4.14.5", "version"),
    ("autorepair", False, "autorepair"),
    ("tuning_config_names", ["tc"], "tuning-configs"),
    ("kubelet_config_names", ["kc"], "kubelet-configs"),
    ("node_drain_grace_period_minutes", 30, "node-drain-grace-period"),
])
def test_validate_request_names_hosted_only_flag(multi_az_cluster, field, value, flag):
    request = CreationRequest(
        name="mp1", instance_type="m5.xlarge",
        scaling=FixedScaling(replicas=3), placement=MultiAZ(), **{field: value},
    )
    with pytest.raises(FlagConflictError, match=f"`{flag}` flag is only supported for hosted clusters") as exc:
        validate_request(request, multi_az_cluster)
    assert exc.value.rule == "hosted-only-flags"
