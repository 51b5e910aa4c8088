"""
Node pool management modules.
"""
from .nodepool import NodePoolLifecycle, NodePoolSpec

__all__ = [
    'NodePoolLifecycle',
    'NodePoolSpec',
]
