"""Apply orchestrator.

Walks a plan as a DAG with a ready-queue: an item is dispatched to the
adapter owning its namespace only once every dependency has committed.
Independent items run concurrently.

Per item the life cycle is ``pending -> dispatched -> committed|failed``:

- the adapter call succeeds: ``report_progress`` then ``on_commit``
  (which mirrors the change into the state store) run before any
  dependent is released;
- the adapter call raises: the item fails, its dependents stay pending
  for this run, unrelated items keep going.

Failures of ``report_progress``/``on_commit`` are not adapter failures:
no further item is dispatched, in-flight items are allowed to settle,
and the error propagates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from pyblueprint.adapters.base import Adapter
from pyblueprint.adapters.registry import AdapterRegistry
from pyblueprint.exceptions import AdapterError, UnsupportedActionError
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element
from pyblueprint.models.plan import Plan, PlanAction, PlanItem

_logger = logging.getLogger(__name__)

ReportProgress = Callable[[PlanItem], None]
OnCommit = Callable[[PlanAction, Element], Awaitable[None]]


class ItemStatus(StrEnum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(slots=True)
class ApplyResult:
    """Per-item outcome of one apply pass."""

    statuses: dict[ElemID, ItemStatus] = field(default_factory=dict)
    errors: dict[ElemID, BaseException] = field(default_factory=dict)
    committed: list[ElemID] = field(default_factory=list)
    blocked: dict[ElemID, list[ElemID]] = field(default_factory=dict)
    """Failed item id -> items left pending because of it (transitively)."""
    _actions: dict[ElemID, PlanAction] = field(default_factory=dict, repr=False)

    @property
    def success(self) -> bool:
        return all(status is ItemStatus.COMMITTED for status in self.statuses.values())

    @property
    def failed(self) -> list[ElemID]:
        return sorted(elem_id for elem_id, status in self.statuses.items() if status is ItemStatus.FAILED)

    @property
    def pending(self) -> list[ElemID]:
        return sorted(elem_id for elem_id, status in self.statuses.items() if status is ItemStatus.PENDING)

    def describe_failures(self) -> str:
        if self.success:
            return "All plan items were applied."
        lines = [f"{len(self.failed)} of {len(self.statuses)} plan item(s) failed:"]
        for elem_id in self.failed:
            action = self._actions.get(elem_id)
            lines.append(f"  {action.value if action else '?'} {elem_id.full_name}: {self.errors.get(elem_id)}")
            blocked = self.blocked.get(elem_id)
            if blocked:
                lines.append(f"    blocked: {', '.join(dep.full_name for dep in blocked)}")
        return "\n".join(lines)


def _adapter_call(item: PlanItem, adapter: Adapter) -> Callable[[], Awaitable[Element]]:
    """Bind *item* to the adapter method executing it."""
    match item.action:
        case PlanAction.ADD:
            after = item.after
            assert after is not None  # noqa: S101
            return lambda: adapter.add(after)
        case PlanAction.MODIFY:
            before, after = item.before, item.after
            assert before is not None and after is not None  # noqa: S101
            return lambda: adapter.modify(before, after)
        case PlanAction.REMOVE:
            before = item.before
            assert before is not None  # noqa: S101

            async def _remove() -> Element:
                await adapter.remove(before)
                return before

            return _remove
        case _:
            raise UnsupportedActionError(f"Unsupported action {item.action!r} for {item.elem_id.full_name}")


def _blocked_dependents(plan: Plan, failed: ElemID, statuses: dict[ElemID, ItemStatus]) -> list[ElemID]:
    blocked: set[ElemID] = set()
    frontier = [failed]
    while frontier:
        current = frontier.pop()
        for dependent in plan.dependents(current):
            if dependent.elem_id not in blocked and statuses[dependent.elem_id] is ItemStatus.PENDING:
                blocked.add(dependent.elem_id)
                frontier.append(dependent.elem_id)
    return sorted(blocked)


async def _run_item(
    item: PlanItem,
    call: Callable[[], Awaitable[Element]],
    report_progress: ReportProgress,
    on_commit: OnCommit,
) -> AdapterError | None:
    """Execute one item; return the adapter failure instead of raising it."""
    _logger.debug("Dispatching %s", item.describe())
    try:
        element = await call()
    except Exception as exc:
        _logger.warning("Failed to %s: %s", item.describe(), exc)
        error = AdapterError(
            f"{item.action.value} {item.elem_id.full_name} failed: {exc}",
            adapter=item.adapter,
            elem_id=item.elem_id,
            action=item.action.value,
        )
        error.__cause__ = exc
        return error
    report_progress(item)
    await on_commit(item.action, element)
    _logger.debug("Committed %s", item.describe())
    return None


async def apply_actions(
    plan: Plan,
    adapters: AdapterRegistry,
    report_progress: ReportProgress,
    on_commit: OnCommit,
    *,
    max_concurrency: int = 0,
) -> ApplyResult:
    """Apply *plan* through *adapters* in dependency order.

    Parameters
    ----------
    report_progress
        Called with each item right after its adapter call succeeded.
    on_commit
        Awaited with the action and the element as applied; must record
        the change in the state store.
    max_concurrency
        Upper bound on items in flight; ``0`` means no bound.

    Raises
    ------
    UnknownAdapterError
        Before any adapter call, if an item has no owning adapter.
    UnsupportedActionError
        Before any adapter call, for an action kind that cannot be executed.
    """
    adapters.ensure_covers(item.elem_id for item in plan)
    calls = {item.elem_id: _adapter_call(item, adapters.for_element(item.elem_id)) for item in plan}

    result = ApplyResult(
        statuses={item.elem_id: ItemStatus.PENDING for item in plan},
        _actions={item.elem_id: item.action for item in plan},
    )
    waiting = {item.elem_id: set(item.dependencies) for item in plan}
    ready = [item.elem_id for item in plan if not item.dependencies]
    running: dict[asyncio.Task[AdapterError | None], ElemID] = {}
    fatal: BaseException | None = None

    while ready or running:
        while ready and fatal is None and (max_concurrency <= 0 or len(running) < max_concurrency):
            elem_id = ready.pop(0)
            item = plan.get(elem_id)
            assert item is not None  # noqa: S101
            result.statuses[elem_id] = ItemStatus.DISPATCHED
            task = asyncio.create_task(
                _run_item(item, calls[elem_id], report_progress, on_commit),
                name=f"apply-{item.describe()}",
            )
            running[task] = elem_id

        if not running:
            break

        done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            elem_id = running.pop(task)
            exc = task.exception()
            if exc is not None:
                # The adapter call succeeded but recording it did not.
                result.statuses[elem_id] = ItemStatus.FAILED
                result.errors[elem_id] = exc
                if fatal is None:
                    fatal = exc
                continue
            adapter_error = task.result()
            if adapter_error is not None:
                result.statuses[elem_id] = ItemStatus.FAILED
                result.errors[elem_id] = adapter_error
                continue
            result.statuses[elem_id] = ItemStatus.COMMITTED
            result.committed.append(elem_id)
            for dependent in plan.dependents(elem_id):
                pending = waiting[dependent.elem_id]
                pending.discard(elem_id)
                if not pending and result.statuses[dependent.elem_id] is ItemStatus.PENDING:
                    ready.append(dependent.elem_id)

    for elem_id in result.failed:
        result.blocked[elem_id] = _blocked_dependents(plan, elem_id, result.statuses)

    if fatal is not None:
        raise fatal

    if result.success:
        _logger.info("Applied %d plan item(s)", len(result.committed))
    else:
        _logger.warning(
            "Applied %d of %d plan item(s); %d failed, %d left pending",
            len(result.committed),
            len(result.statuses),
            len(result.failed),
            len(result.pending),
        )
    return result
