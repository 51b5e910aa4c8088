"""Exceptions raised by the node pool lifecycle operations."""
from typing import List, Optional, Sequence


class NodePoolError(Exception):
    """Base exception for node pool lifecycle errors."""
    pass


class ConfigurationError(NodePoolError):
    """Exception raised for invalid node pool or connection settings."""
    pass


class ClusterAPIError(NodePoolError):
    """Exception raised when a call to the cluster API fails.

    Args:
        message: Human readable description of the failure
        status: HTTP status returned by the API server, if any
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AccessError(NodePoolError):
    """Exception raised when the nodes of a pool cannot be listed."""

    def __init__(self, pool: str, cause: Exception):
        super().__init__(f"unexpected error listing nodes in pool {pool}: {cause}")
        self.pool = pool
        self.cause = cause


class ReadinessTimeout(NodePoolError):
    """Exception raised when a pool does not reach its ready node count in time."""

    def __init__(self, pool: str, ready_count: int, required: int, timeout: float):
        super().__init__(
            f"could not find {required} ready nodes in node pool {pool} "
            f"within {timeout:g}s, last observed {ready_count} ready"
        )
        self.pool = pool
        self.ready_count = ready_count
        self.required = required
        self.timeout = timeout


class CordonError(NodePoolError):
    """Exception raised when a node cannot be marked unschedulable."""

    def __init__(self, node: str, cause: Exception):
        super().__init__(f"unexpected error cordoning node {node}: {cause}")
        self.node = node
        self.cause = cause


class DrainError(NodePoolError):
    """Exception raised when a node's pods cannot all be evicted in time.

    Args:
        node: Name of the node being drained
        reason: Why the drain stopped
        remaining_pods: ``namespace/name`` of the pods still on the node
    """

    def __init__(self, node: str, reason: str, remaining_pods: Optional[Sequence[str]] = None):
        self.node = node
        self.reason = reason
        self.remaining_pods: List[str] = list(remaining_pods or [])
        message = f"unexpected error draining node {node}: {reason}"
        if self.remaining_pods:
            message += f" (pods remaining: {', '.join(self.remaining_pods)})"
        super().__init__(message)


class OperationCancelled(NodePoolError):
    """Exception raised when an operation is aborted by its caller."""
    pass
