"""
duplicates.py
~~~~~~~~~~~~~
RemoveDuplicates 策略：同一 namespace/kind/name 控制器创建的 Pod
尽量均匀地分布在各节点上。

  • Pass 1：逐节点列出 Pod，按 OwnerKey 分组并累计全集群 Total
  • Pass 2：逐节点比较组大小与 ceil(Total / 节点数)，多出来的从列表头部开始驱逐

只做“削峰”：低于上限的节点不补、不迁移。
"""
from __future__ import annotations
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List

from descheduler.strategies.options import DeschedulerOptions, StrategyConfig
from descheduler.strategies.resource_types import (
    Node, NodePodEvictedCount, OwnerKey, Pod,
)

logger = logging.getLogger(__name__)

DuplicatePodsMap = Dict[OwnerKey, List[Pod]]
DuplicateNodePodsMap = Dict[Node, DuplicatePodsMap]

# (node, evict_local_storage_pods) -> 节点上可驱逐的 Pod，出错时抛异常
PodLister = Callable[[Node, bool], List[Pod]]
# (pod, dry_run) -> (是否成功, 错误)
PodEvictor = Callable[[Pod, bool], "tuple[bool, Exception | None]"]


class DuplicatePodCount:
    """某个 OwnerKey 在全集群范围内的统计量"""
    __slots__ = ("total", "nodes", "per_node", "max", "min", "remainder")

    def __init__(self, total: int = 0, nodes: int = 0):
        self.total = total
        self.nodes = nodes
        self.per_node = 0.0
        self.max = 0
        self.min = 0
        self.remainder = 0
        if nodes:
            self.recalculate()

    def recalculate(self):
        """total 或 nodes 变化后必须调用；nodes 为 0 时由调用方保证不会走到这里"""
        self.per_node = self.total / self.nodes
        self.max = math.ceil(self.per_node)
        self.min = math.floor(self.per_node)
        self.remainder = self.max - self.min

    def __repr__(self):
        return (f"DuplicatePodCount(total={self.total}, nodes={self.nodes}, "
                f"per_node={self.per_node:.2f}, max={self.max}, min={self.min})")


def find_duplicate_pods(pods: List[Pod]) -> DuplicatePodsMap:
    """
    按 OwnerKey 对单个节点上的 Pod 分组。
    有多个 owner 的 Pod 会同时出现在多个组里；没有 owner 的 Pod 不进任何组。
    """
    dpm: DuplicatePodsMap = {}
    for pod in pods:
        # Namespace/Kind/Name should be unique for the cluster.
        for key in pod.owner_keys():
            dpm.setdefault(key, []).append(pod)
    return dpm


def list_duplicate_pods_on_node(lister: PodLister, node: Node,
                                evict_local_storage_pods: bool) -> DuplicatePodsMap:
    """列 Pod 失败时返回空 map，该节点在两轮中都视为没有可驱逐 Pod"""
    try:
        pods = lister(node, evict_local_storage_pods)
    except Exception as e:
        logger.warning(f"failed to list evictable pods on node {node.name}, treating as empty: {e}")
        return {}
    return find_duplicate_pods(pods)


def _collect_node_pods(lister: PodLister, nodes: List[Node],
                       evict_local_storage_pods: bool,
                       list_workers: int) -> List[DuplicatePodsMap]:
    if list_workers <= 1 or len(nodes) <= 1:
        result = []
        for node in nodes:
            logger.debug(f"Processing node: {node.name}")
            result.append(list_duplicate_pods_on_node(lister, node, evict_local_storage_pods))
        return result

    # map 保证结果顺序与 nodes 一致
    with ThreadPoolExecutor(max_workers=list_workers) as pool:
        return list(pool.map(
            lambda nd: list_duplicate_pods_on_node(lister, nd, evict_local_storage_pods),
            nodes))


def delete_duplicate_pods(lister: PodLister,
                          evictor: PodEvictor,
                          nodes: List[Node],
                          dry_run: bool,
                          node_pod_count: NodePodEvictedCount,
                          max_pods_to_evict: int,
                          evict_local_storage_pods: bool,
                          list_workers: int = 1) -> int:
    """
    两轮驱逐，返回本轮涉及节点上 node_pod_count 的总和。

    Parameters
    ----------
    lister : PodLister
        列出节点上可驱逐的 Pod（过滤 DaemonSet / mirror / critical 等由它负责）。
    evictor : PodEvictor
        单次驱逐调用，dry_run 由它自己处理。
    node_pod_count : NodePodEvictedCount
        同一次运行里所有策略共享的计数器，这里只做自增。
    max_pods_to_evict : int
        单节点驱逐上限，0 表示不限制。
    """
    if not nodes:
        return 0

    pod_counts: Dict[OwnerKey, DuplicatePodCount] = {}
    node_pods: DuplicateNodePodsMap = {}
    node_count = len(nodes)

    # Pass 1：全部节点统计完之后才开始做驱逐决策
    for node, dpm in zip(nodes, _collect_node_pods(lister, nodes, evict_local_storage_pods,
                                                   list_workers)):
        node_pods[node] = dpm
        for key, pods in dpm.items():
            pc = pod_counts.setdefault(key, DuplicatePodCount())
            pc.total += len(pods)
            pc.nodes = node_count
            pc.recalculate()

    # Pass 2
    pods_evicted = 0
    for node in nodes:
        logger.debug(f"Processing node: {node.name}")
        _evict_surplus_on_node(node, node_pods[node], pod_counts, evictor,
                               dry_run, node_pod_count, max_pods_to_evict)
        pods_evicted += node_pod_count.get(node, 0)

    return pods_evicted


def _evict_surplus_on_node(node: Node,
                           dpm: DuplicatePodsMap,
                           pod_counts: Dict[OwnerKey, DuplicatePodCount],
                           evictor: PodEvictor,
                           dry_run: bool,
                           node_pod_count: NodePodEvictedCount,
                           max_pods_to_evict: int):
    for key, pods in dpm.items():
        pc = pod_counts[key]
        pods_to_evict = len(pods) - pc.max

        if len(pods) - pods_to_evict <= 0 or pods_to_evict <= 0:
            continue

        logger.debug(f"{key}: {len(pods)} pod(s) on node {node.name}, "
                     f"ceiling {pc.max}, evicting {pods_to_evict}")
        for pod in pods[:pods_to_evict]:
            if max_pods_to_evict > 0 and node_pod_count.get(node, 0) + 1 > max_pods_to_evict:
                logger.info(f"node {node.name} reached max pods to evict ({max_pods_to_evict}), skip the rest")
                return
            success, err = evictor(pod, dry_run)
            if not success:
                logger.info(f"Error when evicting pod: {pod.full_name} ({err})")
            else:
                node_pod_count[node] = node_pod_count.get(node, 0) + 1
                logger.info(f"Evicted pod: {pod.full_name} from node {node.name} (dry_run={dry_run})")


def remove_duplicate_pods(lister: PodLister,
                          evictor: PodEvictor,
                          strategy: StrategyConfig,
                          options: DeschedulerOptions,
                          nodes: List[Node],
                          node_pod_count: NodePodEvictedCount) -> int:
    """
    RemoveDuplicates 策略入口。策略关闭时什么都不做，返回 0。
    """
    if not strategy.enabled:
        logger.debug("RemoveDuplicates disabled, skip")
        return 0
    return delete_duplicate_pods(lister, evictor, nodes,
                                 options.dry_run,
                                 node_pod_count,
                                 options.max_no_of_pods_to_evict_per_node,
                                 options.evict_local_storage_pods,
                                 list_workers=options.list_workers)
