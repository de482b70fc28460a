"""
Application Layer

Runs nested writes against resource definitions.

Key components:
- payload: JSON:API write payload -> tree of write nodes
- orchestrator: dependency-ordered persistence of the node tree
- proxy: the per-call session returned by Resource.build / Resource.find
"""

from .payload import Payload, WriteNode, NodeState
from .orchestrator import Orchestrator, PersistenceResult
from .proxy import Proxy

__all__ = [
    'Payload',
    'WriteNode',
    'NodeState',
    'Orchestrator',
    'PersistenceResult',
    'Proxy',
]
