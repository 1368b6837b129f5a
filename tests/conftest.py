"""Shared builders for descheduler tests."""

from __future__ import annotations

import pytest

from descheduler.strategies.resource_types import Node, OwnerRef, Pod

REPLICASET_OWNER = [OwnerRef("ReplicaSet", "replicaset-1")]


def build_test_node(name: str) -> Node:
    return Node(name)


def build_test_pods(count: int, node: Node, namespace: str = "dev",
                    owner_refs=REPLICASET_OWNER, prefix: str | None = None) -> list[Pod]:
    prefix = prefix or f"{node.name}-p"
    return [
        Pod(f"{prefix}{i}", namespace, node_name=node.name, owner_refs=owner_refs)
        for i in range(count)
    ]


class FakeEvictor:
    """Records eviction attempts; fails for pods named in ``fail``."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.attempts: list[tuple[Pod, bool]] = []

    def __call__(self, pod: Pod, dry_run: bool):
        self.attempts.append((pod, dry_run))
        if pod.name in self.fail:
            return False, RuntimeError(f"cannot evict {pod.name}")
        return True, None

    @property
    def evicted_names(self) -> list[str]:
        return [p.name for p, _ in self.attempts if p.name not in self.fail]


class FakeLister:
    """Serves a fixed node -> pods mapping; raises for nodes in ``broken``."""

    def __init__(self, pods_by_node: dict[str, list[Pod]], broken: set[str] | None = None) -> None:
        self.pods_by_node = pods_by_node
        self.broken = broken or set()
        self.calls: list[tuple[str, bool]] = []

    def __call__(self, node: Node, evict_local_storage_pods: bool):
        self.calls.append((node.name, evict_local_storage_pods))
        if node.name in self.broken:
            raise ConnectionError(f"list pods on {node.name} failed")
        return list(self.pods_by_node.get(node.name, []))


@pytest.fixture
def nodes() -> list[Node]:
    return [build_test_node("n1"), build_test_node("n2"), build_test_node("n3")]


@pytest.fixture
def evictor() -> FakeEvictor:
    return FakeEvictor()
