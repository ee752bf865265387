"""Lookups backing the record-level (import/export/delete) operations."""

from __future__ import annotations

from pyblueprint.adapters.base import RecordsAdapter
from pyblueprint.adapters.registry import AdapterRegistry
from pyblueprint.exceptions import BlueprintConfigError, ElementNotFoundError
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import ObjectType
from pyblueprint.state.store import StateStore


async def find_type_in_state(state: StateStore, type_id: str) -> ObjectType:
    """The object type *type_id* as last discovered.

    Raises
    ------
    ElementNotFoundError
        If state holds no object type with that id; discovery must run first.
    """
    try:
        elem_id = ElemID.from_full_name(type_id)
    except ValueError as exc:
        raise ElementNotFoundError(type_id) from exc
    element = (await state.get()).get(elem_id)
    if not isinstance(element, ObjectType):
        raise ElementNotFoundError(type_id)
    return element


def records_adapter(adapters: AdapterRegistry, type_element: ObjectType) -> RecordsAdapter:
    adapter = adapters.for_element(type_element.elem_id)
    if not isinstance(adapter, RecordsAdapter):
        raise BlueprintConfigError(f"Adapter {type_element.elem_id.adapter!r} does not support record operations")
    return adapter
