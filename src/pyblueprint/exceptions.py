"""Custom exception hierarchy for pyblueprint."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyblueprint.core.apply import ApplyResult
    from pyblueprint.core.validator import ElementValidationError
    from pyblueprint.models.elem_id import ElemID
    from pyblueprint.models.plan import Plan


class BlueprintError(Exception):
    """Base exception for all pyblueprint errors."""


class BlueprintConfigError(BlueprintError):
    """Invalid or missing workspace or adapter configuration."""


class BlueprintParseError(BlueprintError):
    """A source document could not be turned into elements."""

    def __init__(self, message: str, *, filename: str = "") -> None:
        self.filename = filename
        super().__init__(message)


class BlueprintValidationError(BlueprintError):
    """The merged element set is semantically invalid.

    Carries every collected error; the message lists all of them, one per line.
    """

    def __init__(self, errors: Sequence[ElementValidationError]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"    {error.message}" for error in self.errors)
        super().__init__(f"Failed to validate blueprints:\n{lines}")


class PlanningError(BlueprintError):
    """A plan could not be computed."""


class DependencyCycleError(PlanningError):
    """The changes reference each other in a cycle and cannot be ordered."""

    def __init__(self, cycle: Sequence[ElemID]) -> None:
        self.cycle = list(cycle)
        chain = " -> ".join(elem_id.full_name for elem_id in self.cycle)
        super().__init__(f"Dependency cycle between planned changes: {chain}")


class AdapterError(BlueprintError):
    """A single adapter call failed."""

    def __init__(
        self,
        message: str,
        *,
        adapter: str = "",
        elem_id: ElemID | None = None,
        action: str = "",
    ) -> None:
        self.adapter = adapter
        self.elem_id = elem_id
        self.action = action
        super().__init__(message)


class UnknownAdapterError(AdapterError):
    """No adapter is registered for an element namespace."""


class DuplicateAdapterError(BlueprintConfigError):
    """Two adapters claim the same namespace."""


class UnsupportedActionError(BlueprintError):
    """An action kind the orchestrator does not know how to execute."""


class ApplyError(BlueprintError):
    """Some plan items failed; independent items were still applied.

    Raised after the apply pass finished and the state was flushed.
    ``result`` holds the per-item outcome, ``plan`` the plan that ran.
    """

    def __init__(self, plan: Plan, result: ApplyResult) -> None:
        self.plan = plan
        self.result = result
        super().__init__(result.describe_failures())


class DiscoverError(BlueprintError):
    """One or more adapters failed to discover their elements."""

    def __init__(self, failures: dict[str, BaseException]) -> None:
        self.failures = failures
        details = "; ".join(f"{adapter}: {err}" for adapter, err in sorted(failures.items()))
        super().__init__(f"Discovery failed for {len(failures)} adapter(s): {details}")


class StateStoreError(BlueprintError):
    """The durable state snapshot could not be read or written."""


class ElementNotFoundError(BlueprintError):
    """An element id required by an operation is not present in state."""

    def __init__(self, type_id: str) -> None:
        self.type_id = type_id
        super().__init__(
            f"Couldn't find the type you are looking for: {type_id}. Have you run discover yet?"
        )
