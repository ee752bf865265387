"""Diff engine: compute the plan that moves state to the desired elements.

The plan is a DAG. An element depends on every element its definition
references (field types of an object type, the type of an instance):

* for ``add``/``modify`` the referenced element commits first;
* for ``remove`` the order is reversed, the referencing element goes
  first so nothing is left pointing at a removed element. A ``modify``
  that drops a reference to a removed element also goes first.

Items are ordered with a deterministic Kahn sort: whenever several items
are ready, the smallest full name wins. A cycle through an add or modify
is a fatal planning error; no order is guessed. A cycle made only of
removals is broken at its smallest member.
"""

from __future__ import annotations

import bisect
import logging
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass

from pyblueprint.exceptions import DependencyCycleError
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element, element_references, is_equal_elements
from pyblueprint.models.plan import Plan, PlanAction, PlanItem

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Change:
    action: PlanAction
    before: Element | None
    after: Element | None


def _diff(before: Mapping[ElemID, Element], after: Mapping[ElemID, Element]) -> dict[ElemID, _Change]:
    changes: dict[ElemID, _Change] = {}
    for elem_id, desired in after.items():
        if elem_id.is_config:
            continue
        prior = before.get(elem_id)
        if prior is None:
            changes[elem_id] = _Change(PlanAction.ADD, None, desired)
        elif not is_equal_elements(prior, desired):
            changes[elem_id] = _Change(PlanAction.MODIFY, prior, desired)
    for elem_id, prior in before.items():
        if elem_id.is_config or elem_id in after:
            continue
        changes[elem_id] = _Change(PlanAction.REMOVE, prior, None)
    return changes


def _dependencies(changes: dict[ElemID, _Change]) -> dict[ElemID, set[ElemID]]:
    """Map every changed id to the ids that must commit before it."""
    deps: dict[ElemID, set[ElemID]] = {elem_id: set() for elem_id in changes}
    for elem_id, change in changes.items():
        if change.after is not None:
            for ref in element_references(change.after):
                target = changes.get(ref)
                if target is not None and target.action is not PlanAction.REMOVE:
                    deps[elem_id].add(ref)
        if change.before is not None:
            still_referenced = element_references(change.after) if change.after is not None else frozenset()
            for ref in element_references(change.before):
                target = changes.get(ref)
                if target is not None and target.action is PlanAction.REMOVE and ref not in still_referenced:
                    deps[ref].add(elem_id)
    return deps


def _find_cycle(deps: dict[ElemID, set[ElemID]], unresolved: set[ElemID]) -> list[ElemID]:
    # Every unresolved node still waits on another unresolved node, so
    # following the smallest pending dependency must loop back.
    path: list[ElemID] = []
    seen: dict[ElemID, int] = {}
    node = min(unresolved)
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = min(dep for dep in deps[node] if dep in unresolved)
    return [*path[seen[node] :], node]


def _kahn(deps: dict[ElemID, set[ElemID]]) -> list[ElemID]:
    pending = {elem_id: set(required) for elem_id, required in deps.items()}
    dependents: dict[ElemID, set[ElemID]] = {elem_id: set() for elem_id in deps}
    for elem_id, required in deps.items():
        for dep in required:
            dependents[dep].add(elem_id)

    ready = sorted(elem_id for elem_id, required in pending.items() if not required)
    order: list[ElemID] = []
    while ready:
        elem_id = ready.pop(0)
        order.append(elem_id)
        for child in dependents[elem_id]:
            pending[child].discard(elem_id)
            if not pending[child]:
                bisect.insort(ready, child)
    return order


def _topological_order(deps: dict[ElemID, set[ElemID]], changes: dict[ElemID, _Change]) -> list[ElemID]:
    """Order *deps*, breaking cycles made only of removals.

    Such a cycle loses the edge leaving its smallest member, which is then
    removed first. *deps* is updated in place so plan items carry the
    edges actually used.
    """
    while True:
        order = _kahn(deps)
        if len(order) == len(deps):
            return order
        cycle = _find_cycle(deps, set(deps) - set(order))
        if any(changes[elem_id].action is not PlanAction.REMOVE for elem_id in cycle):
            raise DependencyCycleError(cycle)
        first = min(cycle[:-1])
        waits_on = cycle[cycle.index(first) + 1]
        deps[first].discard(waits_on)
        _logger.warning(
            "Removal cycle %s: removing %s before %s",
            " -> ".join(elem_id.full_name for elem_id in cycle),
            first.full_name,
            waits_on.full_name,
        )


def get_plan(before: Mapping[ElemID, Element], after: Mapping[ElemID, Element]) -> Plan:
    """Compute the plan transforming *before* (state) into *after* (desired).

    Raises
    ------
    DependencyCycleError
        If a cycle of references runs through an added or modified element.
    """
    changes = _diff(before, after)
    deps = _dependencies(changes)
    order = _topological_order(deps, changes)

    items = tuple(
        PlanItem(
            action=changes[elem_id].action,
            elem_id=elem_id,
            before=changes[elem_id].before,
            after=changes[elem_id].after,
            dependencies=tuple(sorted(deps[elem_id])),
        )
        for elem_id in order
    )
    counts = Counter(item.action for item in items)
    _logger.info(
        "Plan has %d item(s): %d add, %d modify, %d remove",
        len(items),
        counts[PlanAction.ADD],
        counts[PlanAction.MODIFY],
        counts[PlanAction.REMOVE],
    )
    return Plan(items)
