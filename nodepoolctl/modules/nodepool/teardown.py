"""Cordon-then-drain teardown of a node pool."""
import logging
from typing import List, Optional, Sequence

from .cordon import Cordoner
from .drain import Drainer
from .errors import CordonError, DrainError, OperationCancelled
from .models import DrainPlan, NodeSnapshot, OperationOutcome, TeardownPhase
from .timer import Timer

logger = logging.getLogger(__name__)


class TeardownOrchestrator:
    """Evacuates the nodes of a pool before it is removed.

    Every node is cordoned before any is drained, so no pod gets rescheduled
    onto a node that is about to be drained. Nodes are then drained one at a
    time, in the order they were given, with a fixed pause between two
    drains to let the rescheduled pods settle on the remaining capacity.

    The first cordon or drain error stops the teardown. Nodes already
    cordoned stay cordoned; the outcome lists them along with the nodes
    already drained.
    """

    def __init__(self, cordoner: Cordoner, drainer: Drainer, timer: Optional[Timer] = None):
        self.cordoner = cordoner
        self.drainer = drainer
        self.timer = timer or Timer()

    def teardown(self, pool: str, nodes: Sequence[NodeSnapshot], plan: DrainPlan) -> OperationOutcome:
        cordoned: List[str] = []
        drained: List[str] = []
        phase = TeardownPhase.CORDON

        def failure(reason: str, node: Optional[str]) -> OperationOutcome:
            return OperationOutcome.failed(
                pool, reason, phase=phase, failed_node=node,
                cordoned=list(cordoned), drained=list(drained),
            )

        try:
            for node in nodes:
                self.timer.check()
                try:
                    self.cordoner.cordon(node.name)
                except CordonError as e:
                    logger.error("cordon of node %s failed, %d nodes already cordoned",
                                 node.name, len(cordoned))
                    return failure(str(e), node.name)
                cordoned.append(node.name)

            self.timer.check()
            phase = TeardownPhase.DRAIN
            for index, node in enumerate(nodes):
                self.timer.check()
                try:
                    self.drainer.drain(node.name, plan.drain_timeout)
                except DrainError as e:
                    logger.error("drain of node %s failed, %d nodes already drained",
                                 node.name, len(drained))
                    return failure(str(e), node.name)
                drained.append(node.name)

                if index < len(nodes) - 1:
                    logger.debug("sleeping %gs after draining node %s", plan.inter_node_pause, node.name)
                    self.timer.sleep(plan.inter_node_pause)
        except OperationCancelled as e:
            logger.warning("teardown of node pool %s cancelled during %s", pool, phase.value)
            current = None
            if phase == TeardownPhase.CORDON and len(cordoned) < len(nodes):
                current = nodes[len(cordoned)].name
            elif phase == TeardownPhase.DRAIN and len(drained) < len(nodes):
                current = nodes[len(drained)].name
            return failure(str(e), current)

        return OperationOutcome.succeeded(
            pool, phase=TeardownPhase.COMPLETED, cordoned=cordoned, drained=drained,
        )
