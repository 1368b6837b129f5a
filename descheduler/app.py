import logging, argparse, os, time

from descheduler.cluster.ClusterMonitor import ClusterMonitor
from descheduler.strategies import constants
from descheduler.strategies.duplicates import remove_duplicate_pods
from descheduler.strategies.evictable import is_evictable
from descheduler.strategies.options import DeschedulerOptions, StrategyConfig
from descheduler.strategies.resource_types import NodePodEvictedCount

logger = logging.getLogger("descheduler")


def _non_negative_int(value: str) -> int:
    ivalue = int(value)
    if ivalue < 0:
        raise argparse.ArgumentTypeError(f"{value} 必须 >= 0")
    return ivalue


def _positive_int(value: str) -> int:
    ivalue = int(value)
    if ivalue < 1:
        raise argparse.ArgumentTypeError(f"{value} 必须 >= 1")
    return ivalue


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="K8s Descheduler - RemoveDuplicates")
    parser.add_argument("--kubeconfig", type=str, default=constants.KUBECONFIG_PATH,
                        help="集群外运行时使用的 kubeconfig 路径")
    parser.add_argument("--dry-run", action="store_true", help="只打印驱逐决策，不真正驱逐")
    parser.add_argument("--max-pods-to-evict-per-node", type=_non_negative_int,
                        default=constants.MAX_PODS_TO_EVICT_PER_NODE,
                        help="单节点驱逐上限，0 表示不限制")
    parser.add_argument("--evict-local-storage-pods", action="store_true",
                        help="允许驱逐使用 emptyDir / hostPath 本地存储的 Pod")
    parser.add_argument("--disable-remove-duplicates", action="store_true",
                        help="关闭 RemoveDuplicates 策略")
    parser.add_argument("--node-selector", type=str, default=None,
                        help="只处理匹配该 label selector 的节点")
    parser.add_argument("--interval", type=_non_negative_int, default=constants.DESCHEDULING_INTERVAL,
                        help="循环间隔（秒），0 表示只运行一次")
    parser.add_argument("--list-workers", type=_positive_int, default=constants.LIST_WORKERS,
                        help="并发列出节点 Pod 的线程数")
    parser.add_argument("--log", action="store_true", help="日志写入 logs/ 目录下的文件")
    return parser


def parse_options(argv=None) -> tuple[DeschedulerOptions, StrategyConfig, bool]:
    args = build_parser().parse_args(argv)
    options = DeschedulerOptions(
        kubeconfig=args.kubeconfig,
        dry_run=args.dry_run,
        max_no_of_pods_to_evict_per_node=args.max_pods_to_evict_per_node,
        evict_local_storage_pods=args.evict_local_storage_pods,
        node_selector=args.node_selector,
        descheduling_interval=args.interval,
        list_workers=args.list_workers,
    )
    strategy = StrategyConfig(enabled=not args.disable_remove_duplicates)
    return options, strategy, args.log


def setup_logging(log_to_file: bool):
    if log_to_file:
        os.makedirs("logs", exist_ok=True)
        log_file = time.strftime("logs/%Y%m%d-%H%M%S.log")
        logging.basicConfig(
            filename=log_file,
            level=logging.INFO,
            encoding="utf-8",
            format=constants.LOG_FORMAT
        )
    else:
        logging.basicConfig(level=logging.INFO, format=constants.LOG_FORMAT)


def run_once(monitor: ClusterMonitor, options: DeschedulerOptions,
             strategy: StrategyConfig, node_pod_count: NodePodEvictedCount) -> int:
    """单轮 descheduling：列 Ready 节点，然后执行 RemoveDuplicates"""
    nodes = monitor.list_ready_nodes(options.node_selector)
    if not nodes:
        logger.info("no ready nodes, skip this cycle")
        return 0
    evicted = remove_duplicate_pods(monitor.list_pods_on_node, monitor.evict_pod,
                                    strategy, options, nodes, node_pod_count)
    logger.info(f"RemoveDuplicates finished | nodes={len(nodes)} evicted={evicted} dry_run={options.dry_run}")
    return evicted


def main(argv=None):
    options, strategy, log_to_file = parse_options(argv)
    setup_logging(log_to_file)
    logger.info(f"Starting descheduler with interval={options.descheduling_interval}s, "
                f"max_pods_per_node={options.max_no_of_pods_to_evict_per_node}, dry_run={options.dry_run}")

    monitor = ClusterMonitor(kubeconfig=options.kubeconfig,
                             pod_filter=is_evictable,
                             policy_group_version=options.policy_group_version)

    if options.descheduling_interval == 0:
        run_once(monitor, options, strategy, {})
        return

    try:
        while True:
            start = time.time()
            try:
                # 每轮一个新的计数器
                run_once(monitor, options, strategy, {})
            except Exception as exc:
                logger.exception(f"descheduling cycle failed: {exc}")
            elapsed = time.time() - start
            time.sleep(max(0, options.descheduling_interval - elapsed))
    except KeyboardInterrupt:
        logger.info("Stopping descheduler...")


if __name__ == "__main__":
    main()
