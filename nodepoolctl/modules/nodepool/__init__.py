"""
Node Pool Lifecycle Module

Safe creation and teardown of a pool of Kubernetes nodes:
- Wait for a minimum number of ready nodes when a pool is created
- Cordon every node of a pool before removing it
- Drain the nodes one at a time, pausing between drains
- Return cordoned nodes to service with an explicit uncordon
"""

from .cluster import ClusterAPI, KubernetesClusterAPI, NodeAccessor, ready_count
from .cordon import Cordoner
from .drain import Drainer, log_pod_event
from .errors import (
    AccessError,
    ClusterAPIError,
    ConfigurationError,
    CordonError,
    DrainError,
    NodePoolError,
    OperationCancelled,
    ReadinessTimeout,
)
from .lifecycle import NodePoolLifecycle
from .models import (
    DrainPlan,
    NodePoolTarget,
    NodeSnapshot,
    OperationOutcome,
    PodEvictionEvent,
    PodRef,
    PoolStatus,
    ReadinessRequirement,
    ReadyCondition,
    TeardownPhase,
    WaiterState,
)
from .readiness import ReadinessWaiter
from .spec import NodePoolSpec, build_spec, load_spec_file
from .teardown import TeardownOrchestrator
from .timer import Timer

__all__ = [
    # Cluster access
    'ClusterAPI',
    'KubernetesClusterAPI',
    'NodeAccessor',
    'ready_count',

    # Operations
    'ReadinessWaiter',
    'Cordoner',
    'Drainer',
    'log_pod_event',
    'TeardownOrchestrator',
    'NodePoolLifecycle',
    'Timer',

    # Settings and models
    'NodePoolSpec',
    'build_spec',
    'load_spec_file',
    'DrainPlan',
    'NodePoolTarget',
    'NodeSnapshot',
    'OperationOutcome',
    'PodEvictionEvent',
    'PodRef',
    'PoolStatus',
    'ReadinessRequirement',
    'ReadyCondition',
    'TeardownPhase',
    'WaiterState',

    # Errors
    'NodePoolError',
    'AccessError',
    'ClusterAPIError',
    'ConfigurationError',
    'CordonError',
    'DrainError',
    'OperationCancelled',
    'ReadinessTimeout',
]
