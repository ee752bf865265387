"""Data models for elements, plans and documents."""

from pyblueprint.models._base import BlueprintBaseModel
from pyblueprint.models.blueprint import Blueprint, OutputDocument
from pyblueprint.models.elem_id import ElemID, builtin_id, config_instance_id, config_type_id
from pyblueprint.models.elements import (
    ELEMENT_ADAPTER,
    ELEMENT_LIST_ADAPTER,
    Element,
    FieldDefinition,
    InstanceElement,
    ObjectType,
    element_references,
    is_equal_elements,
    sort_elements,
    values_equal,
)
from pyblueprint.models.plan import Plan, PlanAction, PlanItem

__all__ = [
    "Blueprint",
    "BlueprintBaseModel",
    "ELEMENT_ADAPTER",
    "ELEMENT_LIST_ADAPTER",
    "ElemID",
    "Element",
    "FieldDefinition",
    "InstanceElement",
    "ObjectType",
    "OutputDocument",
    "Plan",
    "PlanAction",
    "PlanItem",
    "builtin_id",
    "config_instance_id",
    "config_type_id",
    "element_references",
    "is_equal_elements",
    "sort_elements",
    "values_equal",
]
