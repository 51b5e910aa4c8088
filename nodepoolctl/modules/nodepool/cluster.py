"""Access to the cluster control plane.

``ClusterAPI`` is the narrow set of calls the lifecycle operations make:
list nodes by label, toggle a node's schedulability, list the pods bound to
a node, evict a pod and read a pod back. ``KubernetesClusterAPI`` implements
it with the official ``kubernetes`` client; tests use an in-memory fake.
"""
import logging
from typing import Iterable, List, Optional, Protocol

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from ...config import Config
from .errors import AccessError, ClusterAPIError
from .models import NodePoolTarget, NodeSnapshot, PodRef, ReadyCondition

logger = logging.getLogger(__name__)

MIRROR_POD_ANNOTATION = "kubernetes.io/config.mirror"


class ClusterAPI(Protocol):
    """Capabilities the node pool operations need from the cluster."""

    def list_nodes(self, label_selector: str) -> List[NodeSnapshot]:
        ...

    def set_unschedulable(self, node_name: str, unschedulable: bool) -> None:
        ...

    def list_pods(self, node_name: str) -> List[PodRef]:
        ...

    def evict_pod(self, pod: PodRef, grace_period_seconds: Optional[int] = None) -> None:
        ...

    def get_pod(self, namespace: str, name: str) -> Optional[PodRef]:
        ...


def ready_condition_of(conditions: Optional[Iterable[client.V1NodeCondition]]) -> ReadyCondition:
    """Return the status of the ``Ready`` entry of a node's condition list.

    A node without a ``Ready`` entry is reported as ``Unknown``.
    """
    for condition in conditions or []:
        if condition.type == "Ready":
            try:
                return ReadyCondition(condition.status)
            except ValueError:
                return ReadyCondition.UNKNOWN
    return ReadyCondition.UNKNOWN


def snapshot_from_node(node: client.V1Node) -> NodeSnapshot:
    """Build a NodeSnapshot from a kubernetes V1Node."""
    status = node.status
    spec = node.spec
    return NodeSnapshot(
        name=node.metadata.name,
        ready_condition=ready_condition_of(status.conditions if status else None),
        unschedulable=bool(spec and spec.unschedulable),
        labels=dict(node.metadata.labels or {}),
    )


def pod_ref_from_pod(pod: client.V1Pod) -> PodRef:
    """Build a PodRef from a kubernetes V1Pod."""
    metadata = pod.metadata
    owners = tuple(owner.kind for owner in (metadata.owner_references or []))
    annotations = metadata.annotations or {}
    volumes = (pod.spec.volumes if pod.spec else None) or []
    return PodRef(
        namespace=metadata.namespace,
        name=metadata.name,
        uid=metadata.uid,
        owner_kinds=owners,
        mirror=MIRROR_POD_ANNOTATION in annotations,
        local_storage=any(volume.empty_dir is not None for volume in volumes),
        phase=pod.status.phase if pod.status else None,
    )


def ready_count(snapshots: Iterable[NodeSnapshot]) -> int:
    """Count the snapshots whose Ready condition is True."""
    return sum(1 for snapshot in snapshots if snapshot.is_ready)


class KubernetesClusterAPI:
    """ClusterAPI backed by the kubernetes python client.

    Args:
        api_client: Configured ApiClient; the default configuration
            (loaded kubeconfig) is used when omitted
        request_timeout: Seconds before a single API request is abandoned,
            defaults to ``Config.REQUEST_TIMEOUT``
    """

    def __init__(self, api_client: Optional[client.ApiClient] = None,
                 request_timeout: Optional[float] = None):
        self.core = client.CoreV1Api(api_client)
        self.request_timeout = request_timeout if request_timeout is not None else Config.REQUEST_TIMEOUT

    def _call(self, description: str, func, *args, **kwargs):
        try:
            return func(*args, _request_timeout=self.request_timeout, **kwargs)
        except ApiException as e:
            raise ClusterAPIError(f"failed to {description}: {e.reason}", status=e.status) from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise ClusterAPIError(f"failed to {description}: {e}") from e

    def list_nodes(self, label_selector: str) -> List[NodeSnapshot]:
        node_list = self._call("list nodes", self.core.list_node, label_selector=label_selector)
        return [snapshot_from_node(node) for node in node_list.items]

    def set_unschedulable(self, node_name: str, unschedulable: bool) -> None:
        body = {"spec": {"unschedulable": unschedulable}}
        self._call(f"patch node {node_name}", self.core.patch_node, node_name, body)

    def list_pods(self, node_name: str) -> List[PodRef]:
        pod_list = self._call(
            f"list pods on node {node_name}",
            self.core.list_pod_for_all_namespaces,
            field_selector=f"spec.nodeName={node_name}",
        )
        return [pod_ref_from_pod(pod) for pod in pod_list.items]

    def evict_pod(self, pod: PodRef, grace_period_seconds: Optional[int] = None) -> None:
        delete_options = None
        if grace_period_seconds is not None:
            delete_options = client.V1DeleteOptions(grace_period_seconds=grace_period_seconds)
        body = client.V1Eviction(
            metadata=client.V1ObjectMeta(name=pod.name, namespace=pod.namespace),
            delete_options=delete_options,
        )
        self._call(
            f"evict pod {pod.key}",
            self.core.create_namespaced_pod_eviction,
            pod.name, pod.namespace, body,
        )

    def get_pod(self, namespace: str, name: str) -> Optional[PodRef]:
        try:
            pod = self._call(f"read pod {namespace}/{name}", self.core.read_namespaced_pod, name, namespace)
        except ClusterAPIError as e:
            if e.status == 404:
                return None
            raise
        return pod_ref_from_pod(pod)


class NodeAccessor:
    """Lists the member nodes of a pool. Read-only and stateless."""

    def __init__(self, api: ClusterAPI):
        self.api = api

    def list_nodes(self, selector_key: str, selector_value: str,
                   pool: Optional[str] = None) -> List[NodeSnapshot]:
        """List the nodes labelled ``selector_key=selector_value``.

        Raises:
            AccessError: If the cluster could not be queried
        """
        label_selector = f"{selector_key}={selector_value}"
        try:
            nodes = self.api.list_nodes(label_selector)
        except ClusterAPIError as e:
            raise AccessError(pool or selector_value, e) from e
        logger.debug("found %d nodes matching %s", len(nodes), label_selector)
        return nodes

    def list_pool_nodes(self, target: NodePoolTarget) -> List[NodeSnapshot]:
        return self.list_nodes(target.selector_key, target.label_value, pool=target.name)
