"""
evictable.py
~~~~~~~~~~~~
默认的 pod_filter：以下 Pod 永远不参与驱逐
  • DaemonSet 创建的 Pod
  • mirror（static）Pod
  • critical Pod（system 级 priority 或 critical-pod 注解）
  • 使用本地存储（emptyDir / hostPath）的 Pod，除非 evict_local_storage_pods
"""
from descheduler.strategies.resource_types import Pod

MIRROR_POD_ANNOTATION = "kubernetes.io/config.mirror"
CRITICAL_POD_ANNOTATION = "scheduler.alpha.kubernetes.io/critical-pod"
SYSTEM_CRITICAL_PRIORITY = 2 * 1000000000


def is_mirror_pod(pod: Pod) -> bool:
    return MIRROR_POD_ANNOTATION in pod.annotations


def is_daemonset_pod(pod: Pod) -> bool:
    return any(ref.kind == "DaemonSet" for ref in pod.owner_refs)


def is_critical_pod(pod: Pod) -> bool:
    if CRITICAL_POD_ANNOTATION in pod.annotations:
        return True
    return pod.priority is not None and pod.priority >= SYSTEM_CRITICAL_PRIORITY


def is_evictable(pod: Pod, evict_local_storage_pods: bool = False) -> bool:
    if is_mirror_pod(pod) or is_daemonset_pod(pod) or is_critical_pod(pod):
        return False
    if pod.local_storage and not evict_local_storage_pods:
        return False
    return True
