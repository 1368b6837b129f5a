"""
descheduler 常量与默认参数
"""
# 单节点驱逐上限，0 表示不限制
MAX_PODS_TO_EVICT_PER_NODE: int = 0

# 驱逐 API 版本（policy/v1 Eviction）
POLICY_GROUP_VERSION: str = "policy/v1"

# 主循环间隔（秒），0 表示只运行一次
DESCHEDULING_INTERVAL: int = 0

# Pass 1 列出节点 Pod 的并发线程数
LIST_WORKERS: int = 1

# 本地 kubeconfig 位置（集群外运行时使用）
KUBECONFIG_PATH = "./config/config"

# 只统计尚未结束的 Pod
POD_FIELD_SELECTOR = "spec.nodeName={node},status.phase!=Succeeded,status.phase!=Failed"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
