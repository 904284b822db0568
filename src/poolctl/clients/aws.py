"""
云 SDK 客户端
通过 boto3 EC2 查询子网、安全组与可用区类型
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import SecurityGroupInfo, SubnetInfo
from ..config.defaults import LOCAL_ZONE_TYPE
from ..core.errors import CloudError
from ..utils.logging import get_logger

logger = get_logger(__name__)


def _name_tag(resource: Dict[str, Any]) -> str:
    for tag in resource.get("Tags") or []:
        if tag.get("Key") == "Name":
            return tag.get("Value", "")
    return ""


class CloudClient:
    """EC2 查询"""

    def __init__(self, region: str, profile: Optional[str] = None, ec2_client: Any = None):
        self.region = region
        if ec2_client is None:
            try:
                session = boto3.Session(profile_name=profile, region_name=region)
                ec2_client = session.client("ec2")
            except BotoCoreError as e:
                raise CloudError(f"Failed to create AWS client: {e}") from e
        self._ec2 = ec2_client

    def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        logger.debug("aws_request", operation=operation)
        try:
            return getattr(self._ec2, operation)(**kwargs)
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message", str(e))
            raise CloudError(f"AWS {operation} failed: {message}") from e
        except BotoCoreError as e:
            raise CloudError(f"AWS {operation} failed: {e}") from e

    def _get_subnet(self, subnet_id: str) -> Dict[str, Any]:
        subnets = self._call("describe_subnets", SubnetIds=[subnet_id]).get("Subnets") or []
        if not subnets:
            raise CloudError(f"Failed to find subnet '{subnet_id}'")
        return subnets[0]

    def get_subnet_availability_zone(self, subnet_id: str) -> str:
        return self._get_subnet(subnet_id)["AvailabilityZone"]

    def get_vpc_private_subnets(self, subnet_id: str) -> List[SubnetInfo]:
        """与给定子网同一 VPC 内的私有子网（路由表不指向 Internet 网关）"""
        vpc_id = self._get_subnet(subnet_id)["VpcId"]
        vpc_filter = [{"Name": "vpc-id", "Values": [vpc_id]}]
        subnets = self._call("describe_subnets", Filters=vpc_filter).get("Subnets") or []
        route_tables = self._call("describe_route_tables", Filters=vpc_filter).get("RouteTables") or []

        public_tables = set()
        main_table: Optional[str] = None
        table_by_subnet: Dict[str, str] = {}
        for table in route_tables:
            table_id = table["RouteTableId"]
            if any(str(route.get("GatewayId", "")).startswith("igw-") for route in table.get("Routes") or []):
                public_tables.add(table_id)
            for assoc in table.get("Associations") or []:
                if assoc.get("Main"):
                    main_table = table_id
                elif assoc.get("SubnetId"):
                    table_by_subnet[assoc["SubnetId"]] = table_id

        private = []
        for subnet in subnets:
            table_id = table_by_subnet.get(subnet["SubnetId"], main_table)
            if table_id in public_tables:
                continue
            private.append(SubnetInfo(
                subnet_id=subnet["SubnetId"],
                availability_zone=subnet["AvailabilityZone"],
                name=_name_tag(subnet),
            ))
        return private

    def get_vpc_security_groups(self, subnet_id: str) -> List[SecurityGroupInfo]:
        """VPC 内非默认安全组"""
        vpc_id = self._get_subnet(subnet_id)["VpcId"]
        groups = self._call(
            "describe_security_groups",
            Filters=[{"Name": "vpc-id", "Values": [vpc_id]}],
        ).get("SecurityGroups") or []
        return [
            SecurityGroupInfo(group_id=group["GroupId"], name=group.get("GroupName", ""))
            for group in groups
            if group.get("GroupName") != "default"
        ]

    def is_local_zone(self, availability_zone: str) -> bool:
        zones = self._call(
            "describe_availability_zones",
            ZoneNames=[availability_zone],
            AllAvailabilityZones=True,
        ).get("AvailabilityZones") or []
        if not zones:
            raise CloudError(f"Failed to find availability zone '{availability_zone}'")
        return zones[0].get("ZoneType") == LOCAL_ZONE_TYPE


__all__ = ["CloudClient"]
