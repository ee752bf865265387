"""Adapter contract and registry.

Concrete adapters live outside this package; they only need to satisfy
the protocols in :mod:`pyblueprint.adapters.base`.
"""

from pyblueprint.adapters.base import Adapter, AdapterCreator, RecordsAdapter
from pyblueprint.adapters.registry import AdapterRegistry, FillConfig, init_adapters

__all__ = [
    "Adapter",
    "AdapterCreator",
    "AdapterRegistry",
    "FillConfig",
    "RecordsAdapter",
    "init_adapters",
]
