"""State layer.

This package is the single source of truth for what the tracked system
is believed to contain: the elements last applied or discovered.
"""

from pyblueprint.state.backends import FileStateBackend, MemoryStateBackend, StateBackend, StateSnapshot
from pyblueprint.state.store import StateStore

__all__ = [
    "FileStateBackend",
    "MemoryStateBackend",
    "StateBackend",
    "StateSnapshot",
    "StateStore",
]
