"""Evicting the pods of a single node."""
import logging
from typing import Callable, List, Optional

from .cluster import ClusterAPI
from .errors import ClusterAPIError, DrainError, OperationCancelled
from .models import PodEvictionEvent, PodRef
from .timer import Timer

logger = logging.getLogger(__name__)

PodObserver = Callable[[PodEvictionEvent], None]


def log_pod_event(event: PodEvictionEvent) -> None:
    """Default observer: write every eviction event to the log."""
    if event.success:
        logger.info("evicted pod %s/%s from node %s", event.namespace, event.pod, event.node)
    else:
        logger.warning("failed to evict pod %s/%s from node %s: %s",
                       event.namespace, event.pod, event.node, event.error)


class Drainer:
    """Evicts every evictable pod from a node, bounded by a timeout.

    DaemonSet pods are left running and mirror (static) pods are skipped
    since the API server cannot delete them. Pods using emptyDir volumes are
    evicted and their local data is lost. No grace period override is sent,
    so every pod terminates with its own ``terminationGracePeriodSeconds``.

    An eviction refused because of a disruption budget (HTTP 429) is retried
    every ``eviction_retry_interval`` seconds until the drain times out; any
    other eviction error fails the drain immediately.

    Args:
        api: ClusterAPI used to list, evict and read pods
        timer: Timer used for every wait
        observer: Called with a PodEvictionEvent for each pod, success or
            failure. Errors raised by the observer are logged and ignored.
        poll_interval: Seconds between checks for deleted pods
        eviction_retry_interval: Seconds between eviction retries
        grace_period_seconds: Grace period override, None to use the pod's own
    """

    def __init__(self, api: ClusterAPI, timer: Optional[Timer] = None,
                 observer: Optional[PodObserver] = None, poll_interval: float = 1.0,
                 eviction_retry_interval: float = 5.0,
                 grace_period_seconds: Optional[int] = None):
        self.api = api
        self.timer = timer or Timer()
        self.observer = observer or log_pod_event
        self.poll_interval = poll_interval
        self.eviction_retry_interval = eviction_retry_interval
        self.grace_period_seconds = grace_period_seconds

    def drain(self, node_name: str, timeout: float) -> List[str]:
        """Evict the pods of ``node_name`` and wait until they are gone.

        A ``timeout`` of 0 means no time limit, as with ``kubectl drain``.

        Returns:
            ``namespace/name`` of every pod removed from the node

        Raises:
            DrainError: If a pod could not be evicted or pods remain after the timeout
            OperationCancelled: If the timer was cancelled
        """
        deadline = self.timer.now() + timeout if timeout > 0 else None
        logger.debug("draining node %s", node_name)

        try:
            pods = self.api.list_pods(node_name)
        except ClusterAPIError as e:
            raise DrainError(node_name, f"could not list pods: {e}") from e

        evictable = self._select(node_name, pods)
        removed: List[str] = []
        pending: List[PodRef] = []
        try:
            for index, pod in enumerate(evictable):
                not_yet_evicted = [p.key for p in evictable[index:]]
                if self._evict(node_name, pod, deadline, [p.key for p in pending] + not_yet_evicted):
                    pending.append(pod)
                else:
                    removed.append(pod.key)

            removed.extend(self._wait_for_deletion(node_name, pending, deadline, timeout))
        except (DrainError, OperationCancelled) as e:
            # evicted pods whose deletion was never confirmed
            for pod in pending:
                self._report(node_name, pod, success=False, error=str(e))
            raise
        logger.debug("drained node %s, %d pods removed", node_name, len(removed))
        return removed

    def _select(self, node_name: str, pods: List[PodRef]) -> List[PodRef]:
        daemon_pods = [pod for pod in pods if pod.daemon_managed]
        mirror_pods = [pod for pod in pods if pod.mirror and not pod.daemon_managed]
        evictable = [pod for pod in pods if not pod.daemon_managed and not pod.mirror]
        local_storage = [pod for pod in evictable if pod.local_storage]

        if daemon_pods:
            self._output(node_name, "ignoring DaemonSet-managed Pods: "
                         + ", ".join(pod.key for pod in daemon_pods))
        if mirror_pods:
            self._output(node_name, "ignoring mirror Pods: "
                         + ", ".join(pod.key for pod in mirror_pods))
        if local_storage:
            self._output(node_name, "deleting Pods with local storage: "
                         + ", ".join(pod.key for pod in local_storage), error=True)
        return evictable

    def _evict(self, node_name: str, pod: PodRef, deadline: Optional[float],
               outstanding: List[str]) -> bool:
        """Request the eviction of one pod.

        Returns:
            True if the pod has to be waited for, False if it was already gone
        """
        while True:
            self.timer.check()
            try:
                self.api.evict_pod(pod, self.grace_period_seconds)
                self._output(node_name, f"evicting pod {pod.key}")
                return True
            except ClusterAPIError as e:
                if e.status == 404:
                    self._report(node_name, pod, success=True)
                    return False
                if e.status != 429:
                    self._report(node_name, pod, success=False, error=str(e))
                    raise DrainError(node_name, f"error when evicting pod {pod.key}: {e}",
                                     outstanding) from e

                wait = self.eviction_retry_interval
                if deadline is not None:
                    left = deadline - self.timer.now()
                    if left <= 0:
                        self._report(node_name, pod, success=False, error=str(e))
                        raise DrainError(node_name, f"timed out evicting pod {pod.key}: {e}",
                                         outstanding) from e
                    wait = min(wait, left)
                self._output(node_name, f"error when evicting pod {pod.key} "
                             f"(will retry after {wait:g}s): {e}", error=True)
                self.timer.sleep(wait)

    def _wait_for_deletion(self, node_name: str, remaining: List[PodRef],
                           deadline: Optional[float], timeout: float) -> List[str]:
        """Poll until every pod of ``remaining`` is gone.

        ``remaining`` is updated in place and holds the pods still present
        when this raises.
        """
        removed: List[str] = []
        while remaining:
            for pod in list(remaining):
                try:
                    current = self.api.get_pod(pod.namespace, pod.name)
                except ClusterAPIError as e:
                    raise DrainError(node_name, f"error checking pod {pod.key}: {e}",
                                     [p.key for p in remaining]) from e
                if current is None or (pod.uid and current.uid != pod.uid):
                    self._report(node_name, pod, success=True)
                    removed.append(pod.key)
                    remaining.remove(pod)
            if not remaining:
                break

            wait = self.poll_interval
            if deadline is not None:
                left = deadline - self.timer.now()
                if left <= 0:
                    raise DrainError(
                        node_name,
                        f"drain did not complete within {timeout:g}s",
                        [pod.key for pod in remaining],
                    )
                wait = min(wait, left)
            self._output(node_name, f"waiting for {len(remaining)} pods to be deleted")
            self.timer.sleep(wait)
        return removed

    def _report(self, node_name: str, pod: PodRef, success: bool,
                error: Optional[str] = None) -> None:
        event = PodEvictionEvent(node=node_name, namespace=pod.namespace, pod=pod.name,
                                 success=success, error=error)
        try:
            self.observer(event)
        except Exception as e:
            logger.warning("pod eviction observer failed for %s: %s", pod.key, e)

    def _output(self, node_name: str, message: str, error: bool = False) -> None:
        prefix = "drainer - ERROUT - " if error else "drainer - "
        logger.debug("%snode: %s - %s", prefix, node_name, message)
