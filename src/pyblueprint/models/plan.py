"""Plan model: the ordered add/modify/remove changes between state and blueprints."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import model_validator

from pyblueprint.models._base import BlueprintBaseModel
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element


class PlanAction(StrEnum):
    ADD = "add"
    MODIFY = "modify"
    REMOVE = "remove"


class PlanItem(BlueprintBaseModel):
    """A single change.

    ``before`` is absent for ``add``, ``after`` is absent for ``remove``.
    ``dependencies`` lists the ids of the plan items that must commit
    before this one may be dispatched.
    """

    action: PlanAction
    elem_id: ElemID
    before: Element | None = None
    after: Element | None = None
    dependencies: tuple[ElemID, ...] = ()

    @model_validator(mode="after")
    def _check_sides(self) -> PlanItem:
        needs_before = self.action in (PlanAction.MODIFY, PlanAction.REMOVE)
        needs_after = self.action in (PlanAction.ADD, PlanAction.MODIFY)
        if needs_before != (self.before is not None):
            negation = "" if needs_before else "not "
            raise ValueError(f"{self.action} item for {self.elem_id} must {negation}have 'before'")
        if needs_after != (self.after is not None):
            negation = "" if needs_after else "not "
            raise ValueError(f"{self.action} item for {self.elem_id} must {negation}have 'after'")
        return self

    @property
    def element(self) -> Element:
        """The element this item is about: ``after`` when present, else ``before``."""
        element = self.after if self.after is not None else self.before
        assert element is not None  # noqa: S101
        return element

    @property
    def adapter(self) -> str:
        return self.elem_id.adapter

    def describe(self) -> str:
        return f"{self.action.value} {self.elem_id.full_name}"


@dataclass(frozen=True, slots=True)
class Plan:
    """Plan items in a dependency-respecting order."""

    items: tuple[PlanItem, ...] = ()
    _by_id: dict[ElemID, PlanItem] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {item.elem_id: item for item in self.items})

    def __iter__(self) -> Iterator[PlanItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, elem_id: object) -> bool:
        return elem_id in self._by_id

    def get(self, elem_id: ElemID) -> PlanItem | None:
        return self._by_id.get(elem_id)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def dependents(self, elem_id: ElemID) -> list[PlanItem]:
        """Items that list *elem_id* among their dependencies."""
        return [item for item in self.items if elem_id in item.dependencies]

    def describe(self) -> str:
        """Human-readable listing, one item per line."""
        if not self.items:
            return "No changes."
        lines = []
        for index, item in enumerate(self.items, start=1):
            line = f"{index:>3}. {item.describe()}"
            if item.dependencies:
                line += f"  (after {', '.join(dep.full_name for dep in item.dependencies)})"
            lines.append(line)
        return "\n".join(lines)
