"""Data models for node pool lifecycle management."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ReadyCondition(str, Enum):
    """Status of a node's ``Ready`` condition."""
    TRUE = 'True'
    FALSE = 'False'
    UNKNOWN = 'Unknown'


class WaiterState(str, Enum):
    """States of the readiness waiter."""
    POLLING = 'polling'
    SATISFIED = 'satisfied'
    TIMED_OUT = 'timed_out'
    FAILED = 'failed'


class TeardownPhase(str, Enum):
    """Phases of a node pool teardown."""
    DISCOVERY = 'discovery'
    CORDON = 'cordon'
    DRAIN = 'drain'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class NodePoolTarget:
    """Identifies the node pool under management."""
    name: str
    selector_key: str
    selector_value: Optional[str] = None

    @property
    def label_value(self) -> str:
        """Label value used to find member nodes, the pool name if unset."""
        return self.selector_value or self.name

    @property
    def label_selector(self) -> str:
        return f"{self.selector_key}={self.label_value}"


@dataclass(frozen=True)
class NodeSnapshot:
    """Point-in-time view of a single cluster node."""
    name: str
    ready_condition: ReadyCondition = ReadyCondition.UNKNOWN
    unschedulable: bool = False
    labels: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def is_ready(self) -> bool:
        return self.ready_condition == ReadyCondition.TRUE


@dataclass(frozen=True)
class PodRef:
    """The parts of a pod the drain operation needs to decide what to evict."""
    namespace: str
    name: str
    uid: Optional[str] = None
    owner_kinds: Tuple[str, ...] = ()
    mirror: bool = False
    local_storage: bool = False
    phase: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def daemon_managed(self) -> bool:
        return 'DaemonSet' in self.owner_kinds


@dataclass(frozen=True)
class PodEvictionEvent:
    """Reported to the drain observer for every pod eviction attempt."""
    node: str
    namespace: str
    pod: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class ReadinessRequirement:
    """How many ready nodes a new pool needs and how long to wait for them."""
    min_ready_nodes: int = 1
    timeout: float = 300.0

    def __post_init__(self):
        if self.min_ready_nodes < 1:
            raise ValueError("min_ready_nodes must be at least 1")
        if self.timeout < 0:
            raise ValueError("timeout must not be negative")


@dataclass(frozen=True)
class DrainPlan:
    """Timing of a node pool teardown.

    Cordoning is not time-bounded, only each node's drain is.
    """
    drain_timeout: float = 300.0
    inter_node_pause: float = 60.0

    def __post_init__(self):
        if self.drain_timeout < 0:
            raise ValueError("drain_timeout must not be negative")
        if self.inter_node_pause < 0:
            raise ValueError("inter_node_pause must not be negative")


@dataclass
class ReadinessResult:
    """Final observation of a readiness wait."""
    state: WaiterState
    ready_count: int
    required: int
    polls: int = 0
    elapsed: float = 0.0


@dataclass
class OperationOutcome:
    """Result of a create, delete or uncordon pass over a node pool."""
    success: bool
    pool: str
    reason: str = ''
    phase: Optional[TeardownPhase] = None
    failed_node: Optional[str] = None
    cordoned: List[str] = field(default_factory=list)
    drained: List[str] = field(default_factory=list)
    uncordoned: List[str] = field(default_factory=list)
    ready_count: Optional[int] = None
    required: Optional[int] = None

    @classmethod
    def succeeded(cls, pool: str, **kwargs) -> 'OperationOutcome':
        return cls(success=True, pool=pool, **kwargs)

    @classmethod
    def failed(cls, pool: str, reason: str, **kwargs) -> 'OperationOutcome':
        return cls(success=False, pool=pool, reason=reason, **kwargs)

    @property
    def progress(self) -> str:
        """Partial progress note for failed teardowns."""
        parts = []
        if self.phase in (TeardownPhase.CORDON, TeardownPhase.DRAIN):
            parts.append(f"cordoned: [{', '.join(self.cordoned)}]")
            parts.append(f"drained: [{', '.join(self.drained)}]")
        if self.ready_count is not None and self.required is not None:
            parts.append(f"ready nodes: {self.ready_count}/{self.required}")
        return ', '.join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'pool': self.pool,
            'reason': self.reason,
            'phase': self.phase.value if self.phase else None,
            'failed_node': self.failed_node,
            'cordoned': list(self.cordoned),
            'drained': list(self.drained),
            'uncordoned': list(self.uncordoned),
            'ready_count': self.ready_count,
            'required': self.required,
        }

    def __str__(self) -> str:
        if self.success:
            return f"node pool {self.pool}: ok"
        note = self.progress
        return f"node pool {self.pool}: {self.reason}" + (f" ({note})" if note else '')


@dataclass
class PoolStatus:
    """Snapshot of a pool's member nodes, as returned by a status read."""
    pool: str
    label_selector: str
    nodes: List[NodeSnapshot] = field(default_factory=list)

    @property
    def ready_count(self) -> int:
        return sum(1 for node in self.nodes if node.is_ready)

    @property
    def cordoned(self) -> List[str]:
        return [node.name for node in self.nodes if node.unschedulable]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pool': self.pool,
            'label_selector': self.label_selector,
            'ready_count': self.ready_count,
            'nodes': [
                {
                    'name': node.name,
                    'ready': node.ready_condition.value,
                    'unschedulable': node.unschedulable,
                }
                for node in self.nodes
            ],
        }
