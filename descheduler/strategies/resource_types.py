"""
resource_types.py
~~~~~~~~~~~~~~~~~
轻量级 Pod / Node 抽象，只保留驱逐重复 Pod 所需字段。
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class OwnerRef:
    """Pod metadata.ownerReferences 中的一项（只保留 kind / name）"""
    kind: str
    name: str


@dataclass(frozen=True)
class OwnerKey:
    """namespace/kind/name 在集群内唯一标识一组同属一个控制器的 Pod"""
    namespace: str
    kind: str
    name: str

    def __str__(self):
        return "/".join([self.namespace, self.kind, self.name])


class Node:
    """集群节点句柄：仅用作 dict key"""
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other):
        return isinstance(other, Node) and other.name == self.name

    def __hash__(self):
        return hash(self.name)

    def __repr__(self):
        return f"Node({self.name})"


class Pod:
    """Kubernetes Pod 的极简描述（namespace / name / 所在节点 / owner 列表）"""
    __slots__ = ("name", "namespace", "node_name", "owner_refs",
                 "annotations", "priority", "local_storage")

    def __init__(self,
                 name: str,
                 namespace: str = "default",
                 node_name: str | None = None,
                 owner_refs: Tuple[OwnerRef, ...] | list[OwnerRef] = (),
                 annotations: Dict[str, str] | None = None,
                 priority: int | None = None,
                 local_storage: bool = False):
        self.name = name
        self.namespace = namespace
        self.node_name = node_name
        self.owner_refs = tuple(owner_refs)
        # 以下字段由 evictable.is_evictable 读取，驱逐算法本身不关心
        self.annotations = annotations or {}
        self.priority = priority
        self.local_storage = local_storage   # 挂载了 emptyDir / hostPath

    @property
    def full_name(self) -> str:
        return f"{self.namespace}/{self.name}"

    def owner_keys(self) -> list[OwnerKey]:
        return [OwnerKey(self.namespace, ref.kind, ref.name)
                for ref in self.owner_refs]

    def __repr__(self):
        return (f"Pod({self.full_name}, node={self.node_name}, "
                f"owners={[f'{r.kind}/{r.name}' for r in self.owner_refs]})")


# node -> 本轮（以及同一次运行中之前的策略）已驱逐的 Pod 数
NodePodEvictedCount = Dict[Node, int]
