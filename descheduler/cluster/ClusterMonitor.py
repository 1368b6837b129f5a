import logging
from typing import Callable, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from descheduler.strategies import constants
from descheduler.strategies.cluster_state import pod_from_k8s, snapshot_nodes
from descheduler.strategies.resource_types import Node, Pod

urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

# (pod, evict_local_storage_pods) -> 是否可以驱逐
PodFilter = Callable[[Pod, bool], bool]


class EvictionError(Exception):
    """驱逐请求被 API Server 拒绝（例如 PodDisruptionBudget 阻止）"""


class ClusterMonitor:
    """通过Kubernetes API与集群交互：列节点、列节点上的 Pod、驱逐 Pod"""
    def __init__(self, kubeconfig: str = constants.KUBECONFIG_PATH,
                 core_v1: client.CoreV1Api | None = None,
                 pod_filter: Optional[PodFilter] = None,
                 policy_group_version: str = constants.POLICY_GROUP_VERSION):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        if core_v1 is None:
            try:
                config.load_incluster_config()
            except config.ConfigException:
                config.load_kube_config(kubeconfig)
                self.logger.info(f"在本地连接到远程集群 kubeconfig={kubeconfig}")
            core_v1 = client.CoreV1Api()

        self.core_v1 = core_v1
        self.pod_filter = pod_filter
        self.policy_group_version = policy_group_version

    def list_ready_nodes(self, label_selector: str | None = None) -> list[Node]:
        nodes = snapshot_nodes(self, label_selector)
        self.logger.debug(f"{len(nodes)} ready node(s): {[n.name for n in nodes]}")
        return nodes

    def list_pods_on_node(self, node: Node, evict_local_storage_pods: bool = False) -> list[Pod]:
        """
        返回节点上所有未结束的 Pod（跨所有 namespace），顺序与 API 返回一致。
        若注入了 pod_filter，只保留 pod_filter 认为可以驱逐的 Pod。
        API 出错时直接抛出 ApiException，由调用方决定如何处理。
        """
        resp = self.core_v1.list_pod_for_all_namespaces(
            field_selector=constants.POD_FIELD_SELECTOR.format(node=node.name)
        )
        pods = [pod_from_k8s(p) for p in resp.items]
        if self.pod_filter is None:
            return pods
        return [p for p in pods if self.pod_filter(p, evict_local_storage_pods)]

    def evict_pod(self, pod: Pod, dry_run: bool = False) -> tuple[bool, Exception | None]:
        """
        只尝试一次 Eviction，不重试、不退化为 delete。
        dry_run 时不访问 API，直接视为成功。
        """
        if dry_run:
            return True, None

        eviction = client.V1Eviction(
            api_version=self.policy_group_version,
            kind="Eviction",
            metadata=client.V1ObjectMeta(name=pod.name, namespace=pod.namespace),
            delete_options=client.V1DeleteOptions(),
        )
        try:
            self.core_v1.create_namespaced_pod_eviction(
                name=pod.name, namespace=pod.namespace, body=eviction
            )
        except ApiException as e:
            if e.status == 429:
                # PDB 阻止
                return False, EvictionError(
                    f"error when evicting pod (ignoring) {pod.full_name}: too many requests ({e.reason})")
            return False, e
        self.logger.debug(f"Eviction triggered for Pod {pod.full_name}")
        return True, None
