"""Adapter contract.

An adapter owns one namespace of element ids and is the only component
that talks to the external system behind it. Every call either fully
succeeds or raises; there is no partial success within one call.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol, runtime_checkable

from pyblueprint.models.elements import Element, InstanceElement, ObjectType


class Adapter(Protocol):
    """Structural interface used by the apply and discover orchestrators."""

    async def discover(self) -> list[Element]:
        """Return the complete live element set this adapter owns."""
        ...

    async def add(self, after: Element) -> Element:
        """Create *after*; return the element as it now exists."""
        ...

    async def modify(self, before: Element, after: Element) -> Element:
        """Change *before* into *after*; return the element as it now exists."""
        ...

    async def remove(self, before: Element) -> None:
        """Delete *before*."""
        ...


@runtime_checkable
class RecordsAdapter(Protocol):
    """Optional record-level operations on the instances of a type."""

    def get_instances_of_type(self, type_element: ObjectType) -> AsyncIterator[list[InstanceElement]]:
        ...

    async def import_instances_of_type(self, type_element: ObjectType, records: Sequence[dict[str, Any]]) -> None:
        ...

    async def delete_instances_of_type(self, type_element: ObjectType, records: Sequence[dict[str, Any]]) -> None:
        ...


class AdapterCreator(Protocol):
    """Builds an adapter from its configuration instance."""

    @property
    def adapter(self) -> str:
        """Namespace the created adapter owns."""
        ...

    @property
    def config_type(self) -> ObjectType:
        """Type of the configuration instance, with id ``ElemID(adapter)``."""
        ...

    def create(self, config: InstanceElement) -> Adapter:
        ...
