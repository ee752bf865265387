"""Merge element fragments sharing an id into one canonical element.

Fragments come from independent source documents. Merging is a pure
function of the fragment *set*: every group is put in a canonical order
first, so shuffling the input never changes the result. A field defined
differently by two fragments is recorded as a :class:`MergeConflict`
and reported by the validator; the merge pass itself never aborts, so a
single run surfaces every conflict.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, assert_never

from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element, FieldDefinition, InstanceElement, ObjectType, values_equal

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergeConflict:
    """Two fragments of one element disagree on a field."""

    elem_id: ElemID
    field: str
    first: Any
    second: Any

    @property
    def message(self) -> str:
        return (
            f"Error merging {self.elem_id.full_name}: field '{self.field}' has conflicting values "
            f"{_short(self.first)} and {_short(self.second)}"
        )


class MergeResult(Mapping[ElemID, Element]):
    """Merged elements keyed by id, plus the conflicts found while merging."""

    def __init__(self, elements: dict[ElemID, Element], conflicts: list[MergeConflict]) -> None:
        self._elements = elements
        self._conflicts = conflicts

    def __getitem__(self, elem_id: ElemID) -> Element:
        return self._elements[elem_id]

    def __iter__(self) -> Iterator[ElemID]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        return f"MergeResult(elements={len(self._elements)}, conflicts={len(self._conflicts)})"

    @property
    def conflicts(self) -> list[MergeConflict]:
        return list(self._conflicts)

    @property
    def elements(self) -> list[Element]:
        return list(self._elements.values())


def _short(value: Any, width: int = 80) -> str:
    text = json.dumps(value, sort_keys=True, default=str)
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def _canonical_key(element: Element) -> tuple[tuple[str, ...], str]:
    return (element.path or (), json.dumps(element.semantic_dump(), sort_keys=True, default=str))


def _merge_values(
    target: dict[str, Any],
    incoming: Mapping[str, Any],
    *,
    elem_id: ElemID,
    prefix: str,
    conflicts: list[MergeConflict],
) -> None:
    """Union *incoming* into *target*; nested mappings merge recursively."""
    for key, value in incoming.items():
        dotted = f"{prefix}.{key}" if prefix else key
        if key not in target:
            target[key] = copy.deepcopy(value)
            continue
        existing = target[key]
        if isinstance(existing, dict) and isinstance(value, Mapping):
            _merge_values(existing, value, elem_id=elem_id, prefix=dotted, conflicts=conflicts)
        elif not values_equal(existing, value):
            conflicts.append(MergeConflict(elem_id=elem_id, field=dotted, first=existing, second=value))


def _merge_object_types(elem_id: ElemID, fragments: list[ObjectType], conflicts: list[MergeConflict]) -> ObjectType:
    fields: dict[str, FieldDefinition] = {}
    annotations: dict[str, Any] = {}
    for fragment in fragments:
        for name, definition in fragment.fields.items():
            existing = fields.get(name)
            if existing is None:
                fields[name] = definition
            elif not values_equal(existing.model_dump(mode="json"), definition.model_dump(mode="json")):
                conflicts.append(
                    MergeConflict(
                        elem_id=elem_id,
                        field=name,
                        first=existing.model_dump(mode="json"),
                        second=definition.model_dump(mode="json"),
                    )
                )
        _merge_values(annotations, fragment.annotations, elem_id=elem_id, prefix="annotations", conflicts=conflicts)
    return ObjectType(elem_id=elem_id, path=_first_path(fragments), fields=fields, annotations=annotations)


def _merge_instances(
    elem_id: ElemID,
    fragments: list[InstanceElement],
    conflicts: list[MergeConflict],
) -> InstanceElement:
    type_id = fragments[0].type
    value: dict[str, Any] = {}
    for fragment in fragments:
        if fragment.type != type_id:
            conflicts.append(
                MergeConflict(elem_id=elem_id, field="type", first=type_id.full_name, second=fragment.type.full_name)
            )
            continue
        _merge_values(value, fragment.value, elem_id=elem_id, prefix="", conflicts=conflicts)
    return InstanceElement(elem_id=elem_id, path=_first_path(fragments), type=type_id, value=value)


def _first_path(fragments: Iterable[Element]) -> tuple[str, ...] | None:
    for fragment in fragments:
        if fragment.path:
            return fragment.path
    return None


def _merge_group(elem_id: ElemID, fragments: list[Element], conflicts: list[MergeConflict]) -> Element:
    head = fragments[0]
    kinds = sorted({fragment.kind for fragment in fragments})
    if len(kinds) > 1:
        conflicts.append(MergeConflict(elem_id=elem_id, field="kind", first=kinds[0], second=kinds[1]))
        return head

    match head:
        case ObjectType():
            return _merge_object_types(elem_id, [f for f in fragments if isinstance(f, ObjectType)], conflicts)
        case InstanceElement():
            return _merge_instances(elem_id, [f for f in fragments if isinstance(f, InstanceElement)], conflicts)
        case _:
            assert_never(head)


def merge_elements(elements: Iterable[Element]) -> MergeResult:
    """Group *elements* by id and merge each group into one element."""
    groups: dict[ElemID, list[Element]] = {}
    for element in elements:
        groups.setdefault(element.elem_id, []).append(element)

    merged: dict[ElemID, Element] = {}
    conflicts: list[MergeConflict] = []
    for elem_id in sorted(groups):
        fragments = groups[elem_id]
        if len(fragments) == 1:
            merged[elem_id] = fragments[0]
            continue
        fragments = sorted(fragments, key=_canonical_key)
        merged[elem_id] = _merge_group(elem_id, fragments, conflicts)

    if conflicts:
        _logger.debug("Merge found %d conflict(s) across %d element(s)", len(conflicts), len(merged))
    return MergeResult(merged, conflicts)
