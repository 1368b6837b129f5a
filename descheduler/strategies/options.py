"""
运行参数：整个 descheduler 共享的选项 + 单个策略的开关
"""
from dataclasses import dataclass

from descheduler.strategies import constants


@dataclass
class StrategyConfig:
    enabled: bool = True


@dataclass
class DeschedulerOptions:
    kubeconfig: str = constants.KUBECONFIG_PATH
    dry_run: bool = False
    max_no_of_pods_to_evict_per_node: int = constants.MAX_PODS_TO_EVICT_PER_NODE
    evict_local_storage_pods: bool = False
    node_selector: str | None = None
    descheduling_interval: int = constants.DESCHEDULING_INTERVAL
    list_workers: int = constants.LIST_WORKERS
    policy_group_version: str = constants.POLICY_GROUP_VERSION
