"""Discover orchestrator: collect the live elements of every adapter."""

from __future__ import annotations

import asyncio
import logging

from pyblueprint.adapters.registry import AdapterRegistry
from pyblueprint.exceptions import AdapterError, DiscoverError
from pyblueprint.models.elements import Element

_logger = logging.getLogger(__name__)


async def discover_all(adapters: AdapterRegistry) -> list[Element]:
    """Ask every adapter for its live elements, concurrently.

    Results are concatenated in namespace order. Discovery is all or
    nothing: if any adapter fails, :class:`DiscoverError` lists every
    failure and no elements are returned, since a partial result would
    wipe the failing adapter's elements from state.
    """
    namespaces = sorted(adapters)
    tasks = [
        asyncio.create_task(adapters[namespace].discover(), name=f"discover-{namespace}") for namespace in namespaces
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    elements: list[Element] = []
    failures: dict[str, BaseException] = {}
    for namespace, outcome in zip(namespaces, results, strict=True):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            failures[namespace] = outcome
            continue
        foreign = sorted(element.elem_id.full_name for element in outcome if element.elem_id.adapter != namespace)
        if foreign:
            failures[namespace] = AdapterError(
                f"returned elements outside its namespace: {', '.join(foreign)}",
                adapter=namespace,
            )
            continue
        _logger.info("Discovered %d element(s) from %s", len(outcome), namespace)
        elements.extend(outcome)

    if failures:
        for namespace, error in sorted(failures.items()):
            _logger.warning("Discovery failed for %s: %s", namespace, error)
        raise DiscoverError(failures)
    return elements
