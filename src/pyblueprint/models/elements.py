"""Canonical element model.

An element is either an :class:`ObjectType` (a type definition) or an
:class:`InstanceElement` (a value of a type). The two variants form a
closed, tagged union discriminated by ``kind``; consumers match on the
concrete class and end with :func:`typing.assert_never`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union, assert_never

from pydantic import Field, TypeAdapter

from pyblueprint.models._base import BlueprintBaseModel
from pyblueprint.models.elem_id import ElemID


class FieldDefinition(BlueprintBaseModel):
    """A field of an object type: a type reference plus annotations."""

    type: ElemID
    annotations: dict[str, Any] = Field(default_factory=dict)
    is_list: bool = False


class _ElementBase(BlueprintBaseModel):
    elem_id: ElemID
    path: tuple[str, ...] | None = Field(
        default=None,
        description="Provenance: the source document this element came from. Not part of identity.",
    )

    def semantic_dump(self) -> dict[str, Any]:
        """JSON-compatible dump of everything except provenance."""
        return self.model_dump(mode="json", exclude={"path"})

    def with_path(self, path: tuple[str, ...] | None) -> Any:
        return self.model_copy(update={"path": path})


class ObjectType(_ElementBase):
    kind: Literal["object_type"] = "object_type"
    fields: dict[str, FieldDefinition] = Field(default_factory=dict)
    annotations: dict[str, Any] = Field(default_factory=dict)


class InstanceElement(_ElementBase):
    kind: Literal["instance"] = "instance"
    type: ElemID
    value: dict[str, Any] = Field(default_factory=dict)


Element = Annotated[Union[ObjectType, InstanceElement], Field(discriminator="kind")]

ELEMENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(Element)
ELEMENT_LIST_ADAPTER: TypeAdapter[list[Any]] = TypeAdapter(list[Element])


def values_equal(first: Any, second: Any) -> bool:
    """Deep equality of JSON-like values that keeps booleans apart from numbers.

    Plain ``==`` treats ``True`` and ``1`` as equal, at any nesting depth.
    """
    if isinstance(first, bool) or isinstance(second, bool):
        return isinstance(first, bool) and isinstance(second, bool) and first is second
    if isinstance(first, Mapping) and isinstance(second, Mapping):
        return first.keys() == second.keys() and all(values_equal(first[key], second[key]) for key in first)
    if isinstance(first, (list, tuple)) and isinstance(second, (list, tuple)):
        return len(first) == len(second) and all(values_equal(a, b) for a, b in zip(first, second))
    if isinstance(first, (Mapping, list, tuple)) or isinstance(second, (Mapping, list, tuple)):
        return False
    return bool(first == second)


def is_equal_elements(first: Element, second: Element) -> bool:
    """Deep structural equality that ignores provenance."""
    return values_equal(first.semantic_dump(), second.semantic_dump())


def element_references(element: Element) -> frozenset[ElemID]:
    """Element ids *element*'s definition points at.

    Field types for an object type, the type reference for an instance.
    Built-in primitives and self references are left out.
    """
    match element:
        case ObjectType():
            refs = {field.type for field in element.fields.values()}
        case InstanceElement():
            refs = {element.type}
        case _:
            assert_never(element)
    return frozenset(ref for ref in refs if not ref.is_builtin and ref != element.elem_id)


def sort_elements(elements: list[Element]) -> list[Element]:
    return sorted(elements, key=lambda element: element.elem_id.full_name)
