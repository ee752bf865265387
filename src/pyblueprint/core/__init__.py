"""Reconciliation pipeline: merge, validate, plan, apply, discover."""

from pyblueprint.core.apply import ApplyResult, ItemStatus, OnCommit, ReportProgress, apply_actions
from pyblueprint.core.blueprints import (
    BlueprintParser,
    JsonBlueprintParser,
    dump_blueprints,
    get_all_elements,
    load_blueprints,
)
from pyblueprint.core.discover import discover_all
from pyblueprint.core.element_diff import Difference, element_differences
from pyblueprint.core.merger import MergeConflict, MergeResult, merge_elements
from pyblueprint.core.planner import get_plan
from pyblueprint.core.validator import ElementValidationError, ValidationErrorKind, ValidationRule, validate_elements

__all__ = [
    "ApplyResult",
    "BlueprintParser",
    "Difference",
    "ElementValidationError",
    "ItemStatus",
    "JsonBlueprintParser",
    "MergeConflict",
    "MergeResult",
    "OnCommit",
    "ReportProgress",
    "ValidationErrorKind",
    "ValidationRule",
    "apply_actions",
    "discover_all",
    "dump_blueprints",
    "element_differences",
    "get_all_elements",
    "get_plan",
    "load_blueprints",
    "merge_elements",
    "validate_elements",
]
