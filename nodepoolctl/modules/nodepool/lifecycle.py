"""Create, read, delete and uncordon a managed node pool.

Every call is independent: nodes are listed again each time and no state is
kept between calls. Errors are turned into an OperationOutcome so callers
decide what to persist and whether to retry the whole operation.
"""
import logging
from typing import Optional

from ...config import Config
from .cluster import ClusterAPI, NodeAccessor
from .cordon import Cordoner
from .drain import Drainer, PodObserver
from .errors import AccessError, CordonError, OperationCancelled, ReadinessTimeout
from .models import OperationOutcome, PoolStatus, TeardownPhase
from .readiness import ReadinessWaiter
from .spec import NodePoolSpec
from .teardown import TeardownOrchestrator
from .timer import Timer

logger = logging.getLogger(__name__)


class NodePoolLifecycle:
    """Lifecycle operations of a node pool against one cluster.

    Args:
        api: ClusterAPI of the target cluster
        timer: Timer shared by the waits of an operation; cancel it to abort
        observer: Per-pod eviction observer passed to the drainer
        poll_interval: Seconds between readiness polls
        eviction_retry_interval: Seconds between retries of a blocked eviction
    """

    def __init__(self, api: ClusterAPI, timer: Optional[Timer] = None,
                 observer: Optional[PodObserver] = None,
                 poll_interval: Optional[float] = None,
                 eviction_retry_interval: Optional[float] = None):
        self.api = api
        self.timer = timer or Timer()
        self.accessor = NodeAccessor(api)
        self.poll_interval = Config.POLL_INTERVAL if poll_interval is None else poll_interval
        self.cordoner = Cordoner(api)
        self.drainer = Drainer(
            api,
            timer=self.timer,
            observer=observer,
            poll_interval=self.poll_interval,
            eviction_retry_interval=(
                Config.EVICTION_RETRY_INTERVAL if eviction_retry_interval is None
                else eviction_retry_interval
            ),
        )

    def create(self, spec: NodePoolSpec) -> OperationOutcome:
        """Wait for the pool to have ``min_ready_nodes`` ready nodes."""
        target = spec.target()
        requirement = spec.readiness_requirement()
        waiter = ReadinessWaiter(self.accessor, timer=self.timer, poll_interval=self.poll_interval)

        try:
            result = waiter.wait(target, requirement)
        except AccessError as e:
            logger.error("could not create node pool %s: %s", target.name, e)
            return OperationOutcome.failed(target.name, str(e), required=requirement.min_ready_nodes)
        except ReadinessTimeout as e:
            logger.error("error waiting for nodes to be ready: %s", e)
            return OperationOutcome.failed(
                target.name, str(e), ready_count=e.ready_count, required=e.required,
            )
        except OperationCancelled as e:
            logger.warning("creation of node pool %s cancelled", target.name)
            return OperationOutcome.failed(target.name, str(e), required=requirement.min_ready_nodes)

        logger.info("node pool %s has %d/%d ready nodes", target.name,
                    result.ready_count, result.required)
        return OperationOutcome.succeeded(
            target.name, ready_count=result.ready_count, required=result.required,
        )

    def status(self, spec: NodePoolSpec) -> PoolStatus:
        """List the pool's nodes without changing anything.

        Raises:
            AccessError: If the nodes could not be listed
        """
        target = spec.target()
        nodes = self.accessor.list_pool_nodes(target)
        return PoolStatus(pool=target.name, label_selector=target.label_selector, nodes=nodes)

    def delete(self, spec: NodePoolSpec) -> OperationOutcome:
        """Cordon every node of the pool, then drain them one at a time."""
        target = spec.target()
        plan = spec.drain_plan()
        logger.info("draining node pool %s", target.name)

        try:
            nodes = self.accessor.list_pool_nodes(target)
        except AccessError as e:
            logger.error("could not delete node pool %s: %s", target.name, e)
            return OperationOutcome.failed(target.name, str(e), phase=TeardownPhase.DISCOVERY)

        if not nodes:
            logger.info("no nodes match %s, nothing to drain", target.label_selector)

        orchestrator = TeardownOrchestrator(self.cordoner, self.drainer, timer=self.timer)
        outcome = orchestrator.teardown(target.name, nodes, plan)
        if outcome.success:
            logger.info("node pool %s drained (%d nodes)", target.name, len(outcome.drained))
        else:
            logger.error("could not delete node pool %s: %s", target.name, outcome)
        return outcome

    def uncordon(self, spec: NodePoolSpec) -> OperationOutcome:
        """Mark every cordoned node of the pool schedulable again."""
        target = spec.target()
        try:
            nodes = self.accessor.list_pool_nodes(target)
        except AccessError as e:
            return OperationOutcome.failed(target.name, str(e), phase=TeardownPhase.DISCOVERY)

        uncordoned = []
        for node in nodes:
            if not node.unschedulable:
                continue
            try:
                self.cordoner.uncordon(node.name)
            except CordonError as e:
                logger.error("could not uncordon node %s: %s", node.name, e)
                return OperationOutcome.failed(
                    target.name, str(e), failed_node=node.name, uncordoned=uncordoned,
                )
            uncordoned.append(node.name)

        logger.info("uncordoned %d nodes of node pool %s", len(uncordoned), target.name)
        return OperationOutcome.succeeded(target.name, uncordoned=uncordoned)
