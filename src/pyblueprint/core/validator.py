"""Semantic validation of a merged element set.

Every check runs to completion and all errors are returned together.
Callers treat a non-empty result as fatal before any side effect.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from enum import StrEnum
from typing import Any, assert_never

from pydantic import Field

from pyblueprint._constants import (
    PRIMITIVE_BOOLEAN,
    PRIMITIVE_JSON,
    PRIMITIVE_NUMBER,
    PRIMITIVE_SERVICE_ID,
    PRIMITIVE_STRING,
    PRIMITIVE_TYPE_NAMES,
    REQUIRED_ANNOTATION,
)
from pyblueprint.core.merger import MergeConflict
from pyblueprint.models._base import BlueprintBaseModel
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element, FieldDefinition, InstanceElement, ObjectType

_logger = logging.getLogger(__name__)


class ValidationErrorKind(StrEnum):
    UNRESOLVED_FIELD_TYPE = "unresolved_field_type"
    UNKNOWN_INSTANCE_TYPE = "unknown_instance_type"
    MERGE_CONFLICT = "merge_conflict"
    INVALID_VALUE = "invalid_value"
    MISSING_REQUIRED_VALUE = "missing_required_value"
    RULE = "rule"


class ElementValidationError(BlueprintBaseModel):
    """One semantic problem found in the merged element set."""

    elem_id: ElemID
    message: str
    kind: ValidationErrorKind = ValidationErrorKind.RULE
    field: str | None = None
    values: tuple[Any, ...] = Field(default_factory=tuple)

    def __str__(self) -> str:
        return self.message


ValidationRule = Callable[[Mapping[ElemID, Element]], Iterable[ElementValidationError]]
"""Pluggable structural rule, e.g. contributed by an adapter."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_PRIMITIVE_CHECKS: dict[str, Callable[[Any], bool]] = {
    PRIMITIVE_STRING: lambda value: isinstance(value, str),
    PRIMITIVE_NUMBER: _is_number,
    PRIMITIVE_BOOLEAN: lambda value: isinstance(value, bool),
    PRIMITIVE_SERVICE_ID: lambda value: isinstance(value, str),
    PRIMITIVE_JSON: lambda _value: True,
}


def _resolves(ref: ElemID, elements: Mapping[ElemID, Element]) -> bool:
    if ref.is_builtin:
        return ref.name in PRIMITIVE_TYPE_NAMES and len(ref.name_parts) == 1
    return isinstance(elements.get(ref), ObjectType)


def _validate_object_type(element: ObjectType, elements: Mapping[ElemID, Element]) -> list[ElementValidationError]:
    errors: list[ElementValidationError] = []
    for name, definition in element.fields.items():
        if not _resolves(definition.type, elements):
            errors.append(
                ElementValidationError(
                    elem_id=element.elem_id,
                    kind=ValidationErrorKind.UNRESOLVED_FIELD_TYPE,
                    field=name,
                    message=(
                        f"Error validating {element.elem_id.full_name}: field '{name}' references "
                        f"unknown type {definition.type.full_name}"
                    ),
                )
            )
    return errors


def _check_field_value(
    instance: InstanceElement,
    name: str,
    definition: FieldDefinition,
    value: Any,
) -> ElementValidationError | None:
    if value is None or not definition.type.is_builtin:
        return None
    check = _PRIMITIVE_CHECKS.get(definition.type.name)
    if check is None:
        return None
    if definition.is_list:
        valid = isinstance(value, list) and all(check(item) for item in value)
        expected = f"list of {definition.type.name}"
    else:
        valid = check(value)
        expected = definition.type.name
    if valid:
        return None
    return ElementValidationError(
        elem_id=instance.elem_id,
        kind=ValidationErrorKind.INVALID_VALUE,
        field=name,
        values=(value,),
        message=(
            f"Error validating {instance.elem_id.full_name}: value of field '{name}' "
            f"should be {expected}, got {value!r}"
        ),
    )


def _validate_instance(element: InstanceElement, elements: Mapping[ElemID, Element]) -> list[ElementValidationError]:
    type_element = elements.get(element.type)
    if not isinstance(type_element, ObjectType):
        return [
            ElementValidationError(
                elem_id=element.elem_id,
                kind=ValidationErrorKind.UNKNOWN_INSTANCE_TYPE,
                message=(
                    f"Error validating {element.elem_id.full_name}: instance references "
                    f"unknown type {element.type.full_name}"
                ),
            )
        ]

    errors: list[ElementValidationError] = []
    for name, definition in type_element.fields.items():
        if name not in element.value:
            if definition.annotations.get(REQUIRED_ANNOTATION) is True:
                errors.append(
                    ElementValidationError(
                        elem_id=element.elem_id,
                        kind=ValidationErrorKind.MISSING_REQUIRED_VALUE,
                        field=name,
                        message=f"Error validating {element.elem_id.full_name}: required field '{name}' is missing",
                    )
                )
            continue
        error = _check_field_value(element, name, definition, element.value[name])
        if error is not None:
            errors.append(error)
    return errors


def _conflict_error(conflict: MergeConflict) -> ElementValidationError:
    return ElementValidationError(
        elem_id=conflict.elem_id,
        kind=ValidationErrorKind.MERGE_CONFLICT,
        field=conflict.field,
        values=(conflict.first, conflict.second),
        message=conflict.message,
    )


def validate_elements(
    elements: Mapping[ElemID, Element],
    *,
    conflicts: Sequence[MergeConflict] | None = None,
    rules: Sequence[ValidationRule] = (),
) -> list[ElementValidationError]:
    """Return every validation error in *elements*; empty when valid.

    Merge conflicts are taken from *conflicts*, or from ``elements.conflicts``
    when *elements* is a :class:`pyblueprint.core.merger.MergeResult`.
    """
    if conflicts is None:
        conflicts = getattr(elements, "conflicts", ())

    errors = [_conflict_error(conflict) for conflict in conflicts]
    for element in elements.values():
        match element:
            case ObjectType():
                errors.extend(_validate_object_type(element, elements))
            case InstanceElement():
                errors.extend(_validate_instance(element, elements))
            case _:
                assert_never(element)

    for rule in rules:
        errors.extend(rule(elements))

    if errors:
        _logger.debug("Validation found %d error(s)", len(errors))
    return errors
