"""
控制平面 API 客户端
同步 httpx 客户端，重试与退避不在这一层处理
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import httpx

from .base import MachineType, MachineTypeList
from ..config.defaults import (
    API_DEFAULT_TIMEOUT_SECONDS,
    API_DEFAULT_URL,
    CLUSTERS_MGMT_PATH,
    DEFAULT_ROOT_DISK_SIZE_GIB,
)
from ..config.settings import ApiSettings
from ..core.errors import ApiError
from ..core.models import Cluster
from ..utils.logging import get_logger
from ..versions import Version

logger = get_logger(__name__)

PAGE_SIZE = 100
# 控制平面集群ID：32 位小写字母数字
_CLUSTER_ID_RE = re.compile(r"^[a-z0-9]{32}$")


class ControlPlaneClient:
    """集群管理 API 客户端"""

    def __init__(
        self,
        base_url: str = API_DEFAULT_URL,
        token: Optional[str] = None,
        timeout: float = API_DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + CLUSTERS_MGMT_PATH,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: ApiSettings) -> ControlPlaneClient:
        token = settings.token.get_secret_value() if settings.token else None
        return cls(base_url=settings.url, token=token, timeout=settings.timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ControlPlaneClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # 底层请求

    def _request(self, method: str, path: str, *, allow_missing: bool = False, **kwargs) -> Optional[Any]:
        logger.debug("api_request", method=method, path=path)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"Failed to reach the control plane: {e}") from e

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            raise ApiError(_error_reason(response), status_code=response.status_code)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid response from the control plane: {e}") from e

    def _list_items(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            query = dict(params or {}, page=page, size=PAGE_SIZE)
            body = self._request("GET", path, params=query) or {}
            batch = body.get("items") or []
            items.extend(batch)
            total = body.get("total")
            if len(batch) < PAGE_SIZE or (total is not None and len(items) >= total):
                return items
            page += 1

    # 集群

    def get_cluster(self, cluster_key: str) -> Cluster:
        if _CLUSTER_ID_RE.match(cluster_key):
            data = self._request("GET", f"/clusters/{cluster_key}", allow_missing=True)
            if data:
                return Cluster.from_api(data)
        search = f"id = '{cluster_key}' or name = '{cluster_key}' or external_id = '{cluster_key}'"
        items = self._list_items("/clusters", {"search": search})
        if not items:
            raise ApiError(f"There is no cluster with identifier or name '{cluster_key}'", status_code=404)
        if len(items) > 1:
            raise ApiError(f"There are {len(items)} clusters with identifier or name '{cluster_key}'")
        return Cluster.from_api(items[0])

    # 机器池（经典拓扑）

    def list_machine_pools(self, cluster_id: str) -> List[Dict[str, Any]]:
        return self._list_items(f"/clusters/{cluster_id}/machine_pools")

    def get_machine_pool(self, cluster_id: str, machine_pool_id: str) -> Optional[Dict[str, Any]]:
        return self._request("GET", f"/clusters/{cluster_id}/machine_pools/{machine_pool_id}", allow_missing=True)

    def create_machine_pool(self, cluster_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/clusters/{cluster_id}/machine_pools", json=payload)

    def delete_machine_pool(self, cluster_id: str, machine_pool_id: str) -> None:
        self._request("DELETE", f"/clusters/{cluster_id}/machine_pools/{machine_pool_id}")

    # 节点池（托管拓扑）

    def list_node_pools(self, cluster_id: str) -> List[Dict[str, Any]]:
        return self._list_items(f"/clusters/{cluster_id}/node_pools")

    def get_node_pool(self, cluster_id: str, node_pool_id: str) -> Optional[Dict[str, Any]]:
        return self._request("GET", f"/clusters/{cluster_id}/node_pools/{node_pool_id}", allow_missing=True)

    def create_node_pool(self, cluster_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/clusters/{cluster_id}/node_pools", json=payload)

    def delete_node_pool(self, cluster_id: str, node_pool_id: str) -> None:
        self._request("DELETE", f"/clusters/{cluster_id}/node_pools/{node_pool_id}")

    def get_node_pool_upgrade(self, cluster_id: str, node_pool_id: str) -> Optional[Dict[str, Any]]:
        """节点池下一次计划升级，没有则返回 None"""
        policies = self._list_items(f"/clusters/{cluster_id}/node_pools/{node_pool_id}/upgrade_policies")
        for policy in policies:
            state = (policy.get("state") or {}).get("value")
            if policy.get("version") and state:
                return policy
        return None

    # 集群级 KubeletConfig

    def get_cluster_kubelet_config(self, cluster_id: str) -> Optional[Dict[str, Any]]:
        """集群当前的自定义 KubeletConfig，没有则返回 None"""
        return self._request("GET", f"/clusters/{cluster_id}/kubelet_config", allow_missing=True)

    def create_kubelet_config(self, cluster_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/clusters/{cluster_id}/kubelet_config", json=payload)

    # 只读查询

    def get_default_root_disk_size(self, flavour_id: str) -> int:
        data = self._request("GET", f"/flavours/{flavour_id}", allow_missing=True) or {}
        volume = ((data.get("aws") or {}).get("compute_root_volume") or {})
        return int(volume.get("size") or DEFAULT_ROOT_DISK_SIZE_GIB)

    def get_available_machine_types(self, region: str, availability_zones: List[str],
                                    role_arn: Optional[str]) -> MachineTypeList:
        body: Dict[str, Any] = {
            "region": {"id": region},
            "availability_zones": availability_zones,
        }
        if role_arn:
            body["aws"] = {"sts": {"role_arn": role_arn}}
        data = self._request("POST", "/aws_inquiries/machine_types", params={"size": -1}, json=body) or {}
        items = [
            MachineType(
                id=item["id"],
                name=item.get("name", ""),
                category=item.get("category", ""),
                available=item.get("available", True),
            )
            for item in data.get("items") or []
        ]
        return MachineTypeList(items=items)

    def get_tuning_config_names(self, cluster_id: str) -> List[str]:
        return [item["name"] for item in self._list_items(f"/clusters/{cluster_id}/tuning_configs")]

    def get_kubelet_config_names(self, cluster_id: str) -> List[str]:
        return [item["name"] for item in self._list_items(f"/clusters/{cluster_id}/kubelet_configs")]

    def get_versions(self, channel_group: str) -> List[str]:
        """启用的版本 raw id，按版本从高到低"""
        search = f"enabled = 't' and channel_group = '{channel_group}'"
        raw_ids = [item["raw_id"] for item in self._list_items("/versions", {"search": search})]
        return sorted(raw_ids, key=Version, reverse=True)


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    reason = body.get("reason") if isinstance(body, dict) else None
    return reason or f"status is {response.status_code}"


__all__ = ["ControlPlaneClient"]
