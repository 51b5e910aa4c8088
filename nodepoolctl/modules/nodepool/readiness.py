"""Waiting for a new node pool to report ready nodes."""
import logging
from typing import Optional

from .cluster import NodeAccessor, ready_count
from .errors import AccessError, ReadinessTimeout
from .models import NodePoolTarget, ReadinessRequirement, ReadinessResult, WaiterState
from .timer import Timer

logger = logging.getLogger(__name__)


class ReadinessWaiter:
    """Polls a pool's nodes until enough of them are ready.

    The pool is listed on every tick, so a pool that already has enough
    ready nodes is satisfied on the first tick without sleeping. Listing
    errors are not retried: a misconfigured selector fails fast.

    Args:
        accessor: NodeAccessor used to list the pool's nodes
        timer: Timer used for the poll interval and the deadline
        poll_interval: Seconds between two polls
    """

    def __init__(self, accessor: NodeAccessor, timer: Optional[Timer] = None,
                 poll_interval: float = 1.0):
        self.accessor = accessor
        self.timer = timer or Timer()
        self.poll_interval = poll_interval
        self.state = WaiterState.POLLING

    def wait(self, target: NodePoolTarget, requirement: ReadinessRequirement) -> ReadinessResult:
        """Block until ``requirement`` is met.

        Returns:
            ReadinessResult in the SATISFIED state

        Raises:
            AccessError: If the nodes could not be listed
            ReadinessTimeout: If the timeout elapsed first
            OperationCancelled: If the timer was cancelled
        """
        self.state = WaiterState.POLLING
        required = requirement.min_ready_nodes
        start = self.timer.now()
        deadline = start + requirement.timeout
        polls = 0

        logger.debug("waiting for %d nodes to be ready in node pool %s", required, target.name)

        while True:
            self.timer.check()
            polls += 1
            try:
                nodes = self.accessor.list_pool_nodes(target)
            except AccessError:
                self.state = WaiterState.FAILED
                raise

            observed = ready_count(nodes)
            if observed >= required:
                self.state = WaiterState.SATISFIED
                logger.debug("found required number of ready nodes in node pool %s", target.name)
                return ReadinessResult(
                    state=self.state,
                    ready_count=observed,
                    required=required,
                    polls=polls,
                    elapsed=self.timer.now() - start,
                )

            if self.timer.now() >= deadline:
                self.state = WaiterState.TIMED_OUT
                raise ReadinessTimeout(target.name, observed, required, requirement.timeout)

            logger.debug("found %d ready nodes in node pool %s...waiting", observed, target.name)
            self.timer.sleep(self.poll_interval)
