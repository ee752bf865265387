"""Field-level differences between two versions of one element.

The planner decides *that* an element changed; this module says *what*
changed, in element terms: added, removed or redefined fields of an
object type, annotation changes, and dotted value paths of an instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final, assert_never

from pyblueprint.models.elements import Element, FieldDefinition, InstanceElement, ObjectType, values_equal


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING: Final = _Missing()


@dataclass(frozen=True, slots=True)
class Difference:
    """One changed location of an element.

    ``location`` is dotted: ``fields.owner.type``, ``annotations.label``,
    ``value.address.city``. A side that does not exist is :data:`MISSING`.
    """

    location: str
    before: Any
    after: Any


def _field_differences(name: str, before: FieldDefinition, after: FieldDefinition) -> list[Difference]:
    location = f"fields.{name}"
    found = []
    if before.type != after.type:
        found.append(Difference(f"{location}.type", before.type.full_name, after.type.full_name))
    if before.is_list != after.is_list:
        found.append(Difference(f"{location}.is_list", before.is_list, after.is_list))
    found.extend(_mapping_differences(f"{location}.annotations", before.annotations, after.annotations, deep=False))
    return found


def _mapping_differences(
    location: str, before: Mapping[str, Any], after: Mapping[str, Any], *, deep: bool
) -> list[Difference]:
    found = []
    for key in sorted(before.keys() | after.keys()):
        child = f"{location}.{key}"
        old, new = before.get(key, MISSING), after.get(key, MISSING)
        if deep and isinstance(old, Mapping) and isinstance(new, Mapping):
            found.extend(_mapping_differences(child, old, new, deep=True))
        elif old is MISSING or new is MISSING or not values_equal(old, new):
            found.append(Difference(child, old, new))
    return found


def element_differences(before: Element, after: Element) -> list[Difference]:
    """List what differs between two versions of the same element.

    Provenance is ignored. Values of different element kinds are reported
    as a single ``kind`` difference.
    """
    if before.kind != after.kind:
        return [Difference("kind", before.kind, after.kind)]
    match before:
        case ObjectType():
            assert isinstance(after, ObjectType)
            found = []
            for name in sorted(before.fields.keys() | after.fields.keys()):
                old, new = before.fields.get(name), after.fields.get(name)
                if old is None:
                    found.append(Difference(f"fields.{name}", MISSING, new.type.full_name))  # type: ignore[union-attr]
                elif new is None:
                    found.append(Difference(f"fields.{name}", old.type.full_name, MISSING))
                else:
                    found.extend(_field_differences(name, old, new))
            found.extend(_mapping_differences("annotations", before.annotations, after.annotations, deep=False))
            return found
        case InstanceElement():
            assert isinstance(after, InstanceElement)
            found = []
            if before.type != after.type:
                found.append(Difference("type", before.type.full_name, after.type.full_name))
            found.extend(_mapping_differences("value", before.value, after.value, deep=True))
            return found
        case _:
            assert_never(before)
