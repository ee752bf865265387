"""Globally unique element identifiers."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator, model_serializer, model_validator

from pyblueprint._constants import (
    BUILTIN_ADAPTER,
    CONFIG_INSTANCE_NAME,
    ELEM_ID_SEPARATOR,
    PRIMITIVE_TYPE_NAMES,
)
from pyblueprint.models._base import BlueprintBaseModel


class ElemID(BlueprintBaseModel):
    """Identifier of an element: owning adapter namespace plus name parts.

    Nested instances use several name parts. The full name joins every
    non-empty part with ``.``; identifiers serialize as their full name.

    Parameters
    ----------
    adapter : str
        Namespace of the adapter owning the element. Built-in primitive
        types use the empty namespace.
    name_parts : tuple[str, ...]
        Hierarchical name inside the namespace. Empty for the adapter's
        configuration type.
    """

    adapter: str
    name_parts: tuple[str, ...] = ()

    def __init__(self, adapter: str | None = None, *name_parts: str, **data: Any) -> None:
        if adapter is not None:
            data["adapter"] = adapter
        if name_parts:
            data["name_parts"] = name_parts
        super().__init__(**data)

    @model_validator(mode="before")
    @classmethod
    def _from_full_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls._split_full_name(value)
        return value

    @field_validator("adapter")
    @classmethod
    def _check_adapter(cls, value: str) -> str:
        if ELEM_ID_SEPARATOR in value:
            raise ValueError(f"invalid adapter name: {value!r}")
        return value

    @field_validator("name_parts")
    @classmethod
    def _check_parts(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for part in value:
            if not part or ELEM_ID_SEPARATOR in part:
                raise ValueError(f"invalid element name part: {part!r}")
        return value

    @model_serializer
    def _serialize(self) -> str:
        return self.full_name

    @staticmethod
    def _split_full_name(full_name: str) -> dict[str, Any]:
        parts = full_name.strip().split(ELEM_ID_SEPARATOR)
        if len(parts) == 1 and parts[0] in PRIMITIVE_TYPE_NAMES:
            return {"adapter": BUILTIN_ADAPTER, "name_parts": (parts[0],)}
        return {"adapter": parts[0], "name_parts": tuple(parts[1:])}

    @classmethod
    def from_full_name(cls, full_name: str) -> ElemID:
        """Parse a full name such as ``"crm.Lead"`` back into an identifier."""
        return cls(**cls._split_full_name(full_name))

    @property
    def full_name(self) -> str:
        return ELEM_ID_SEPARATOR.join(part for part in (self.adapter, *self.name_parts) if part)

    @property
    def name(self) -> str:
        """Last name part, or the adapter for a bare namespace id."""
        return self.name_parts[-1] if self.name_parts else self.adapter

    @property
    def is_builtin(self) -> bool:
        return self.adapter == BUILTIN_ADAPTER

    @property
    def is_config(self) -> bool:
        """Whether this identifies an adapter config type or config instance."""
        if self.is_builtin:
            return False
        return not self.name_parts or self.name_parts == (CONFIG_INSTANCE_NAME,)

    def create_nested_id(self, *name_parts: str) -> ElemID:
        return ElemID(self.adapter, *self.name_parts, *name_parts)

    def __str__(self) -> str:
        return self.full_name

    def __repr__(self) -> str:
        return f"ElemID({self.full_name!r})"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ElemID):
            return NotImplemented
        return self.full_name < other.full_name


def builtin_id(name: str) -> ElemID:
    """Identifier of a built-in primitive type."""
    if name not in PRIMITIVE_TYPE_NAMES:
        raise ValueError(f"unknown primitive type: {name}")
    return ElemID(BUILTIN_ADAPTER, name)


def config_type_id(adapter: str) -> ElemID:
    """Identifier of an adapter's configuration type."""
    return ElemID(adapter)


def config_instance_id(adapter: str) -> ElemID:
    """Identifier of an adapter's configuration instance."""
    return ElemID(adapter, CONFIG_INSTANCE_NAME)
