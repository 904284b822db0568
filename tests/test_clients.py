import json

import boto3
import httpx
import pytest
from botocore.stub import Stubber

from poolctl.clients.aws import CloudClient
from poolctl.clients.ocm import ControlPlaneClient
from poolctl.core.errors import ApiError, CloudError
from poolctl.core.types import Topology

CLUSTER_JSON = {
    "id": "2a1b3c4d5e6f7a8b9c0d1e2f3a4b5c6d",
    "name": "prod",
    "state": "ready",
    "multi_az": True,
    "nodes": {"availability_zones": ["us-east-1a", "us-east-1b", "us-east-1c"]},
    "aws": {"subnet_ids": ["subnet-a1"], "sts": {"role_arn": "arn:aws:iam::123:role/installer"}},
    "version": {"raw_id": "4.14.5", "channel_group": "stable"},
    "region": {"id": "us-east-1"},
    "hypershift": {"enabled": False},
}


def _client(handler):
    return ControlPlaneClient(base_url="https://api.test", token="tok", transport=httpx.MockTransport(handler))


def test_get_cluster_by_name():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [CLUSTER_JSON], "total": 1})

    cluster = _client(handler).get_cluster("prod")

    assert cluster.id == CLUSTER_JSON["id"]
    assert cluster.topology == Topology.CLASSIC
    assert cluster.availability_zones == ["us-east-1a", "us-east-1b", "us-east-1c"]
    assert cluster.is_byo_vpc
    assert cluster.sts_role_arn == "arn:aws:iam::123:role/installer"
    request = seen[0]
    assert request.url.path == "/api/clusters_mgmt/v1/clusters"
    assert "name = 'prod'" in request.url.params["search"]
    assert request.headers["Authorization"] == "Bearer tok"


def test_get_cluster_by_id():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/api/clusters_mgmt/v1/clusters/{CLUSTER_JSON['id']}"
        return httpx.Response(200, json=dict(CLUSTER_JSON, hypershift={"enabled": True}))

    cluster = _client(handler).get_cluster(CLUSTER_JSON["id"])
    assert cluster.topology == Topology.HOSTED


def test_get_cluster_not_found():
    client = _client(lambda request: httpx.Response(200, json={"items": [], "total": 0}))
    with pytest.raises(ApiError, match="There is no cluster with identifier or name 'nope'"):
        client.get_cluster("nope")


def test_api_error_uses_reason():
    client = _client(lambda request: httpx.Response(400, json={"reason": "Machine pool name is taken"}))
    with pytest.raises(ApiError) as exc:
        client.create_machine_pool("c1", {"id": "mp1"})
    assert exc.value.message == "Machine pool name is taken"
    assert exc.value.status_code == 400


def test_missing_machine_pool_is_none():
    client = _client(lambda request: httpx.Response(404, json={"reason": "not found"}))
    assert client.get_machine_pool("c1", "mp1") is None


def test_versions_sorted_newest_first():
    items = [{"raw_id": "4.14.5"}, {"raw_id": "4.15.0-rc.1"}, {"raw_id": "4.15.0"}, {"raw_id": "4.14.10"}]
    client = _client(lambda request: httpx.Response(200, json={"items": items, "total": len(items)}))
    assert client.get_versions("stable") == ["4.15.0", "4.15.0-rc.1", "4.14.10", "4.14.5"]


def test_default_root_disk_size():
    body = {"aws": {"compute_root_volume": {"size": 250}}}
    client = _client(lambda request: httpx.Response(200, json=body))
    assert client.get_default_root_disk_size("osd-4") == 250


def test_missing_kubelet_config_is_none():
    client = _client(lambda request: httpx.Response(404, json={"reason": "not found"}))
    assert client.get_cluster_kubelet_config("c1") is None


def test_create_kubelet_config():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "c1", "pod_pids_limit": 5000})

    created = _client(handler).create_kubelet_config("c1", {"pod_pids_limit": 5000})

    assert created["pod_pids_limit"] == 5000
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/clusters_mgmt/v1/clusters/c1/kubelet_config"
    assert json.loads(seen[0].content) == {"pod_pids_limit": 5000}


@pytest.fixture
def ec2():
    client = boto3.client(
        "ec2", region_name="us-east-1",
        aws_access_key_id="testing", aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def _subnet(subnet_id, zone, name=""):
    subnet = {"SubnetId": subnet_id, "AvailabilityZone": zone, "VpcId": "vpc-1"}
    if name:
        subnet["Tags"] = [{"Key": "Name", "Value": name}]
    return subnet


def test_subnet_availability_zone(ec2):
    client, stubber = ec2
    stubber.add_response("describe_subnets", {"Subnets": [_subnet("subnet-a1", "us-east-1a")]},
                         {"SubnetIds": ["subnet-a1"]})
    assert CloudClient("us-east-1", ec2_client=client).get_subnet_availability_zone("subnet-a1") == "us-east-1a"


def test_private_subnets_skip_internet_routes(ec2):
    client, stubber = ec2
    vpc_filter = [{"Name": "vpc-id", "Values": ["vpc-1"]}]
    stubber.add_response("describe_subnets", {"Subnets": [_subnet("subnet-a1", "us-east-1a")]},
                         {"SubnetIds": ["subnet-a1"]})
    stubber.add_response("describe_subnets", {"Subnets": [
        _subnet("subnet-a1", "us-east-1a", name="private-a"),
        _subnet("subnet-pub", "us-east-1a"),
    ]}, {"Filters": vpc_filter})
    stubber.add_response("describe_route_tables", {"RouteTables": [
        {
            "RouteTableId": "rtb-main",
            "Routes": [{"GatewayId": "local", "DestinationCidrBlock": "10.0.0.0/16"}],
            "Associations": [{"Main": True, "RouteTableId": "rtb-main"}],
        },
        {
            "RouteTableId": "rtb-public",
            "Routes": [{"GatewayId": "igw-123", "DestinationCidrBlock": "0.0.0.0/0"}],
            "Associations": [{"Main": False, "SubnetId": "subnet-pub", "RouteTableId": "rtb-public"}],
        },
    ]}, {"Filters": vpc_filter})

    subnets = CloudClient("us-east-1", ec2_client=client).get_vpc_private_subnets("subnet-a1")

    assert [s.subnet_id for s in subnets] == ["subnet-a1"]
    assert subnets[0].option == "subnet-a1 'private-a' (us-east-1a)"


def test_security_groups_skip_default(ec2):
    client, stubber = ec2
    stubber.add_response("describe_subnets", {"Subnets": [_subnet("subnet-a1", "us-east-1a")]},
                         {"SubnetIds": ["subnet-a1"]})
    stubber.add_response("describe_security_groups", {"SecurityGroups": [
        {"GroupId": "sg-0", "GroupName": "default"},
        {"GroupId": "sg-1", "GroupName": "workers"},
    ]}, {"Filters": [{"Name": "vpc-id", "Values": ["vpc-1"]}]})

    groups = CloudClient("us-east-1", ec2_client=client).get_vpc_security_groups("subnet-a1")

    assert [g.group_id for g in groups] == ["sg-1"]


def test_local_zone(ec2):
    client, stubber = ec2
    stubber.add_response(
        "describe_availability_zones",
        {"AvailabilityZones": [{"ZoneName": "us-east-1-bos-1a", "ZoneType": "local-zone"}]},
        {"ZoneNames": ["us-east-1-bos-1a"], "AllAvailabilityZones": True},
    )
    assert CloudClient("us-east-1", ec2_client=client).is_local_zone("us-east-1-bos-1a")


def test_client_error_becomes_cloud_error(ec2):
    client, stubber = ec2
    stubber.add_client_error("describe_subnets", service_error_code="InvalidSubnetID.NotFound",
                             service_message="The subnet ID 'subnet-x' does not exist")
    with pytest.raises(CloudError, match="The subnet ID 'subnet-x' does not exist"):
        CloudClient("us-east-1", ec2_client=client).get_subnet_availability_zone("subnet-x")
