"""pyblueprint - Declarative configuration reconciliation engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyblueprint")
except PackageNotFoundError:
    __version__ = "0+local"
from pyblueprint.adapters import Adapter, AdapterCreator, AdapterRegistry, RecordsAdapter
from pyblueprint.config import WorkspaceConfig
from pyblueprint.core import (
    ApplyResult,
    ElementValidationError,
    ItemStatus,
    JsonBlueprintParser,
    MergeConflict,
    MergeResult,
    apply_actions,
    discover_all,
    get_plan,
    merge_elements,
    validate_elements,
)
from pyblueprint.exceptions import (
    AdapterError,
    ApplyError,
    BlueprintConfigError,
    BlueprintError,
    BlueprintParseError,
    BlueprintValidationError,
    DependencyCycleError,
    DiscoverError,
    DuplicateAdapterError,
    ElementNotFoundError,
    PlanningError,
    StateStoreError,
    UnknownAdapterError,
    UnsupportedActionError,
)
from pyblueprint.models import (
    Blueprint,
    ElemID,
    Element,
    FieldDefinition,
    InstanceElement,
    ObjectType,
    OutputDocument,
    Plan,
    PlanAction,
    PlanItem,
)
from pyblueprint.state import FileStateBackend, MemoryStateBackend, StateStore
from pyblueprint.workspace import Workspace

__all__ = [
    "__version__",
    "Adapter",
    "AdapterCreator",
    "AdapterError",
    "AdapterRegistry",
    "ApplyError",
    "ApplyResult",
    "Blueprint",
    "BlueprintConfigError",
    "BlueprintError",
    "BlueprintParseError",
    "BlueprintValidationError",
    "DependencyCycleError",
    "DiscoverError",
    "DuplicateAdapterError",
    "ElemID",
    "Element",
    "ElementNotFoundError",
    "ElementValidationError",
    "FieldDefinition",
    "FileStateBackend",
    "InstanceElement",
    "ItemStatus",
    "JsonBlueprintParser",
    "MemoryStateBackend",
    "MergeConflict",
    "MergeResult",
    "ObjectType",
    "OutputDocument",
    "Plan",
    "PlanAction",
    "PlanItem",
    "PlanningError",
    "RecordsAdapter",
    "StateStore",
    "StateStoreError",
    "UnknownAdapterError",
    "UnsupportedActionError",
    "Workspace",
    "WorkspaceConfig",
    "apply_actions",
    "discover_all",
    "get_plan",
    "merge_elements",
    "validate_elements",
]
