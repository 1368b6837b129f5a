"""Tests for ClusterMonitor and the k8s -> resource_types conversion."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from descheduler.cluster.ClusterMonitor import ClusterMonitor, EvictionError
from descheduler.strategies.cluster_state import is_node_ready, pod_from_k8s
from descheduler.strategies.resource_types import Node, OwnerRef, Pod


def k8s_node(name: str, ready: str = "True") -> client.V1Node:
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name, labels={"zone": "a"}),
        status=client.V1NodeStatus(
            conditions=[client.V1NodeCondition(type="Ready", status=ready)]
        ),
    )


def k8s_pod(name: str, namespace: str = "dev", node: str = "n1", owners=None) -> client.V1Pod:
    owner_refs = [
        client.V1OwnerReference(api_version="apps/v1", kind=kind, name=owner, uid=f"uid-{owner}")
        for kind, owner in (owners or [])
    ]
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace,
                                     owner_references=owner_refs or None),
        spec=client.V1PodSpec(node_name=node, containers=[client.V1Container(name="c")]),
    )


@pytest.fixture
def core_v1() -> MagicMock:
    return MagicMock()


@pytest.fixture
def monitor(core_v1: MagicMock) -> ClusterMonitor:
    return ClusterMonitor(core_v1=core_v1)


class TestClusterState:
    """Tests for object conversion helpers."""

    def test_pod_from_k8s_keeps_owner_refs(self) -> None:
        pod = pod_from_k8s(k8s_pod("p1", owners=[("ReplicaSet", "rs-1"), ("Job", "j")]))
        assert pod.full_name == "dev/p1"
        assert pod.node_name == "n1"
        assert pod.owner_refs == (OwnerRef("ReplicaSet", "rs-1"), OwnerRef("Job", "j"))

    def test_pod_without_owner_refs(self) -> None:
        assert pod_from_k8s(k8s_pod("p1")).owner_refs == ()

    def test_is_node_ready(self) -> None:
        assert is_node_ready(k8s_node("n1"))
        assert not is_node_ready(k8s_node("n2", ready="False"))


class TestClusterMonitor:
    """Tests for ClusterMonitor with a mocked CoreV1Api."""

    def test_list_ready_nodes_skips_not_ready(self, monitor, core_v1) -> None:
        core_v1.list_node.return_value = client.V1NodeList(
            items=[k8s_node("n1"), k8s_node("n2", ready="Unknown"), k8s_node("n3")]
        )
        nodes = monitor.list_ready_nodes()
        assert [n.name for n in nodes] == ["n1", "n3"]
        core_v1.list_node.assert_called_once_with()

    def test_list_ready_nodes_with_selector(self, monitor, core_v1) -> None:
        core_v1.list_node.return_value = client.V1NodeList(items=[k8s_node("n1")])
        monitor.list_ready_nodes("role=worker")
        core_v1.list_node.assert_called_once_with(label_selector="role=worker")

    def test_list_pods_on_node(self, monitor, core_v1) -> None:
        core_v1.list_pod_for_all_namespaces.return_value = client.V1PodList(
            items=[k8s_pod("p1", owners=[("ReplicaSet", "rs")]), k8s_pod("p2")]
        )
        pods = monitor.list_pods_on_node(Node("n1"))
        assert [p.name for p in pods] == ["p1", "p2"]
        selector = core_v1.list_pod_for_all_namespaces.call_args.kwargs["field_selector"]
        assert selector.startswith("spec.nodeName=n1,")
        assert "status.phase!=Succeeded" in selector

    def test_list_pods_on_node_applies_filter(self, core_v1) -> None:
        seen = []

        def only_owned(pod: Pod, evict_local_storage_pods: bool) -> bool:
            seen.append(evict_local_storage_pods)
            return bool(pod.owner_refs)

        monitor = ClusterMonitor(core_v1=core_v1, pod_filter=only_owned)
        core_v1.list_pod_for_all_namespaces.return_value = client.V1PodList(
            items=[k8s_pod("p1", owners=[("ReplicaSet", "rs")]), k8s_pod("p2")]
        )
        pods = monitor.list_pods_on_node(Node("n1"), evict_local_storage_pods=True)
        assert [p.name for p in pods] == ["p1"]
        assert seen == [True, True]

    def test_list_pods_on_node_propagates_api_error(self, monitor, core_v1) -> None:
        core_v1.list_pod_for_all_namespaces.side_effect = ApiException(status=500)
        with pytest.raises(ApiException):
            monitor.list_pods_on_node(Node("n1"))

    def test_evict_pod_dry_run_skips_api(self, monitor, core_v1) -> None:
        assert monitor.evict_pod(Pod("p1", "dev"), dry_run=True) == (True, None)
        core_v1.create_namespaced_pod_eviction.assert_not_called()

    def test_evict_pod_success(self, monitor, core_v1) -> None:
        success, err = monitor.evict_pod(Pod("p1", "dev"))
        assert success is True
        assert err is None
        kwargs = core_v1.create_namespaced_pod_eviction.call_args.kwargs
        assert kwargs["name"] == "p1"
        assert kwargs["namespace"] == "dev"
        assert kwargs["body"].metadata.name == "p1"
        assert kwargs["body"].api_version == "policy/v1"

    def test_evict_pod_blocked_by_disruption_budget(self, monitor, core_v1) -> None:
        core_v1.create_namespaced_pod_eviction.side_effect = ApiException(
            status=429, reason="Too Many Requests"
        )
        success, err = monitor.evict_pod(Pod("p1", "dev"))
        assert success is False
        assert isinstance(err, EvictionError)
        assert "dev/p1" in str(err)
        assert "too many requests" in str(err)

    def test_evict_pod_other_api_error(self, monitor, core_v1) -> None:
        core_v1.create_namespaced_pod_eviction.side_effect = ApiException(status=404)
        success, err = monitor.evict_pod(Pod("p1", "dev"))
        assert success is False
        assert isinstance(err, ApiException)
        assert err.status == 404
