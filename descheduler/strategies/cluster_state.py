"""
cluster_state.py
~~~~~~~~~~~~~~~~
负责把 ClusterMonitor 提供的 Kubernetes 对象转换成 resource_types
里的 Node / Pod，供驱逐策略使用。策略模块**只依赖 resource_types**，
不直接访问 K8s API。
"""
from __future__ import annotations
import logging
from typing import TYPE_CHECKING, List

from descheduler.strategies.resource_types import Node, OwnerRef, Pod

if TYPE_CHECKING:
    from descheduler.cluster.ClusterMonitor import ClusterMonitor

logger = logging.getLogger(__name__)


# —— 基础解析 —— #
def _owner_refs(metadata) -> list[OwnerRef]:
    refs = []
    for ref in metadata.owner_references or []:
        refs.append(OwnerRef(ref.kind, ref.name))
    return refs


def is_node_ready(n) -> bool:
    conds = {c.type: c.status for c in (n.status.conditions or [])}
    return conds.get("Ready") == "True"


def _has_local_storage(spec) -> bool:
    for v in (spec.volumes or []) if spec else []:
        if v.empty_dir is not None or v.host_path is not None:
            return True
    return False


def node_from_k8s(n) -> Node:
    return Node(n.metadata.name)


def pod_from_k8s(p) -> Pod:
    """V1Pod -> Pod，保留 owner 列表及 pod_filter 可能用到的字段"""
    return Pod(p.metadata.name,
               p.metadata.namespace,
               node_name=p.spec.node_name if p.spec else None,
               owner_refs=_owner_refs(p.metadata),
               annotations=p.metadata.annotations or {},
               priority=p.spec.priority if p.spec else None,
               local_storage=_has_local_storage(p.spec))


# —— 公开主函数 —— #
def snapshot_nodes(monitor: ClusterMonitor,
                   label_selector: str | None = None) -> List[Node]:
    """
    采集 **所有 Ready 节点**，顺序与 API 返回顺序一致。
    NotReady 节点直接跳过，不参与本轮均衡。
    """
    kwargs = {"label_selector": label_selector} if label_selector else {}
    nodes: List[Node] = []
    for n in monitor.core_v1.list_node(**kwargs).items:
        if not is_node_ready(n):
            logger.debug(f"skip node {n.metadata.name}: not ready")
            continue
        nodes.append(node_from_k8s(n))
    return nodes
