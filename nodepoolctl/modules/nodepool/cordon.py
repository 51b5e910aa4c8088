"""Marking nodes (un)schedulable."""
import logging

from .cluster import ClusterAPI
from .errors import ClusterAPIError, CordonError

logger = logging.getLogger(__name__)


class Cordoner:
    """Toggles node schedulability without touching running pods."""

    def __init__(self, api: ClusterAPI):
        self.api = api

    def cordon(self, node_name: str) -> None:
        """Mark a node unschedulable. Cordoning a cordoned node succeeds.

        Raises:
            CordonError: If the node could not be patched
        """
        logger.debug("cordoning node %s", node_name)
        try:
            self.api.set_unschedulable(node_name, True)
        except ClusterAPIError as e:
            raise CordonError(node_name, e) from e

    def uncordon(self, node_name: str) -> None:
        """Mark a node schedulable again.

        Raises:
            CordonError: If the node could not be patched
        """
        logger.debug("uncordoning node %s", node_name)
        try:
            self.api.set_unschedulable(node_name, False)
        except ClusterAPIError as e:
            raise CordonError(node_name, e) from e
