"""
机器池服务
创建、列出、描述与删除机器池（经典）和节点池（托管），以及集群级 KubeletConfig 的创建
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .builder import build_payload
from .clients.base import CloudAPI, ControlPlaneAPI
from .core.errors import ApiError, CloudError, PoolError
from .core.models import Cluster, UserOptions
from .output import (
    describe_machine_pool,
    describe_node_pool,
    dump,
    machine_pools_table,
    node_pool_document,
    node_pools_table,
)
from .resolver import resolve, resolve_pod_pids_limit
from .session import Session
from .utils.logging import bind_cluster, get_logger

logger = get_logger(__name__)

CloudFactory = Callable[[Cluster], CloudAPI]


def _wrap(error: PoolError, context: str) -> PoolError:
    """给协作方错误加上操作与集群上下文，保留错误类型"""
    message = f"{context}: {error.message}"
    if isinstance(error, ApiError):
        return ApiError(message, status_code=error.status_code)
    return CloudError(message)


class MachinePoolService:
    """一次命令调用内的机器池操作"""

    def __init__(self, control_plane: ControlPlaneAPI, cloud_factory: CloudFactory):
        self.control_plane = control_plane
        self.cloud_factory = cloud_factory

    def get_cluster(self, cluster_key: str) -> Cluster:
        bind_cluster(cluster_key)
        try:
            cluster = self.control_plane.get_cluster(cluster_key)
        except ApiError as e:
            raise _wrap(e, f"Failed to get cluster '{cluster_key}'") from e
        logger.debug("cluster_loaded", cluster_id=cluster.id, topology=cluster.topology.value,
                      multi_az=cluster.multi_az, byo_vpc=cluster.is_byo_vpc)
        return cluster

    @staticmethod
    def _print_document(session: Session, data: Any) -> None:
        session.console.print(dump(data, session.output), markup=False, highlight=False, soft_wrap=True)

    # 创建

    def create(self, cluster_key: str, options: UserOptions, session: Session) -> Dict[str, Any]:
        cluster = self.get_cluster(cluster_key)
        kind = "hosted cluster" if cluster.is_hosted else "cluster"
        try:
            resolution = resolve(options, cluster, session, self.control_plane, self.cloud_factory(cluster))
        except (ApiError, CloudError) as e:
            raise _wrap(e, f"Failed to create machine pool for {kind} '{cluster_key}'") from e

        request, session = resolution.request, resolution.session
        payload = build_payload(request, cluster, resolution.default_root_disk_size_gib)
        logger.debug("machine_pool_payload", payload=payload)

        try:
            if cluster.is_hosted:
                created = self.control_plane.create_node_pool(cluster.id, payload)
            else:
                created = self.control_plane.create_machine_pool(cluster.id, payload)
        except ApiError as e:
            raise _wrap(e, f"Failed to add machine pool to {kind} '{cluster_key}'") from e
        logger.info("machine_pool_created", name=request.name, hosted=cluster.is_hosted)

        if session.structured_output:
            self._print_document(session, created)
        else:
            name = created.get("id") or request.name
            session.info(f"Machine pool '{name}' created successfully on {kind} '{cluster_key}'")
            session.info(f"To view the machine pool details, run "
                         f"'poolctl describe machinepool --cluster {cluster_key} --machinepool {request.name}'")
            session.info(f"To view all machine pools, run 'poolctl list machinepools --cluster {cluster_key}'")
        return created

    # 列表

    def list(self, cluster_key: str, session: Session) -> List[Dict[str, Any]]:
        cluster = self.get_cluster(cluster_key)
        logger.debug("loading_machine_pools", cluster=cluster_key)
        try:
            if cluster.is_hosted:
                pools = self.control_plane.list_node_pools(cluster.id)
            else:
                pools = self.control_plane.list_machine_pools(cluster.id)
        except ApiError as e:
            raise _wrap(e, f"Failed to get machine pools for cluster '{cluster_key}'") from e

        if session.structured_output:
            self._print_document(session, pools)
        elif cluster.is_hosted:
            session.console.print(node_pools_table(pools))
        else:
            session.console.print(machine_pools_table(pools))
        return pools

    # 描述

    def describe(self, cluster_key: str, pool_id: str, session: Session) -> Dict[str, Any]:
        cluster = self.get_cluster(cluster_key)
        if cluster.is_hosted:
            return self._describe_node_pool(cluster, cluster_key, pool_id, session)

        logger.debug("fetching_machine_pool", machine_pool=pool_id, cluster=cluster_key)
        try:
            pool = self.control_plane.get_machine_pool(cluster.id, pool_id)
        except ApiError as e:
            raise _wrap(e, f"Failed to get machine pool '{pool_id}' for cluster '{cluster_key}'") from e
        if pool is None:
            raise PoolError(f"Machine pool '{pool_id}' not found")

        if session.structured_output:
            self._print_document(session, pool)
        else:
            session.console.print(describe_machine_pool(cluster.id, pool), markup=False, highlight=False)
        return pool

    def _describe_node_pool(self, cluster: Cluster, cluster_key: str, pool_id: str,
                            session: Session) -> Dict[str, Any]:
        logger.debug("fetching_node_pool", node_pool=pool_id, cluster=cluster_key)
        try:
            pool = self.control_plane.get_node_pool(cluster.id, pool_id)
            if pool is None:
                raise PoolError(f"Machine pool '{pool_id}' not found")
            upgrade: Optional[Dict[str, Any]] = self.control_plane.get_node_pool_upgrade(cluster.id, pool_id)
        except ApiError as e:
            raise _wrap(e, f"Failed to get machine pool '{pool_id}' for hosted cluster '{cluster_key}'") from e

        if session.structured_output:
            self._print_document(session, node_pool_document(pool, upgrade))
        else:
            session.console.print(describe_node_pool(cluster.id, pool, upgrade), markup=False, highlight=False)
        return pool

    # 删除

    def delete(self, cluster_key: str, pool_id: str, session: Session) -> bool:
        """删除机器池；用户取消确认时返回 False"""
        cluster = self.get_cluster(cluster_key)
        if cluster.is_hosted:
            return self._delete_node_pool(cluster, cluster_key, pool_id, session)

        logger.debug("loading_machine_pools", cluster=cluster_key)
        try:
            pools = self.control_plane.list_machine_pools(cluster.id)
        except ApiError as e:
            raise _wrap(e, f"Failed to get machine pools for cluster '{cluster_key}'") from e
        if not any(pool.get("id") == pool_id for pool in pools):
            raise PoolError(f"Failed to get machine pool '{pool_id}' for cluster '{cluster_key}'")

        if not session.confirm(f"delete machine pool '{pool_id}' on cluster '{cluster_key}'"):
            return False
        logger.debug("deleting_machine_pool", machine_pool=pool_id, cluster=cluster_key)
        try:
            self.control_plane.delete_machine_pool(cluster.id, pool_id)
        except ApiError as e:
            raise _wrap(e, f"Failed to delete machine pool '{pool_id}' on cluster '{cluster_key}'") from e
        session.info(f"Successfully deleted machine pool '{pool_id}' from cluster '{cluster_key}'")
        return True

    def _delete_node_pool(self, cluster: Cluster, cluster_key: str, pool_id: str, session: Session) -> bool:
        logger.debug("loading_node_pool", node_pool=pool_id, cluster=cluster_key)
        try:
            pool = self.control_plane.get_node_pool(cluster.id, pool_id)
        except ApiError as e:
            raise _wrap(e, f"Failed to get machine pools for hosted cluster '{cluster_key}'") from e
        if pool is None:
            raise PoolError(f"Machine pool '{pool_id}' does not exist for hosted cluster '{cluster_key}'")

        if not session.confirm(f"delete machine pool '{pool_id}' on hosted cluster '{cluster_key}'"):
            return False
        logger.debug("deleting_node_pool", node_pool=pool_id, cluster=cluster_key)
        try:
            self.control_plane.delete_node_pool(cluster.id, pool_id)
        except ApiError as e:
            raise _wrap(e, f"Failed to delete machine pool '{pool_id}' on hosted cluster '{cluster_key}'") from e
        session.info(f"Successfully deleted machine pool '{pool_id}' from hosted cluster '{cluster_key}'")
        return True

    # 集群级 KubeletConfig

    def create_kubelet_config(self, cluster_key: str, pod_pids_limit: Optional[int],
                              session: Session) -> Optional[Dict[str, Any]]:
        """创建集群级 KubeletConfig；用户取消确认时返回 None

        只支持经典集群，且每个集群最多一个。创建后所有计算节点会重启。
        """
        cluster = self.get_cluster(cluster_key)
        if cluster.is_hosted:
            raise PoolError("Hosted Control Plane clusters do not support custom KubeletConfig configuration.")
        if not cluster.is_ready:
            raise PoolError(f"Cluster '{cluster_key}' is not yet ready. Current state is '{cluster.state}'")

        try:
            existing = self.control_plane.get_cluster_kubelet_config(cluster.id)
        except ApiError as e:
            raise _wrap(e, f"Failed getting KubeletConfig for cluster '{cluster_key}'") from e
        if existing is not None:
            raise PoolError(f"A custom KubeletConfig for cluster '{cluster_key}' already exists")

        pod_pids_limit, session = resolve_pod_pids_limit(pod_pids_limit, session)

        if not session.confirm_raw(
            f"Creating the custom KubeletConfig for cluster '{cluster_key}' will cause all non-Control Plane "
            "nodes to reboot. This may cause outages to your applications. Do you wish to continue?"
        ):
            session.info(f"Creation of custom KubeletConfig for cluster '{cluster_key}' aborted.")
            return None

        logger.debug("creating_kubelet_config", cluster=cluster_key, pod_pids_limit=pod_pids_limit)
        try:
            created = self.control_plane.create_kubelet_config(cluster.id, {"pod_pids_limit": pod_pids_limit})
        except ApiError as e:
            raise _wrap(e, f"Failed creating custom KubeletConfig for cluster '{cluster_key}'") from e
        logger.info("kubelet_config_created", pod_pids_limit=pod_pids_limit)

        if session.structured_output:
            self._print_document(session, created)
        else:
            session.info(f"Successfully created custom KubeletConfig for cluster '{cluster_key}'")
        return created


__all__ = ["MachinePoolService", "CloudFactory"]
