"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Element identifiers
# ------------------------------------------------------------------

ELEM_ID_SEPARATOR = "."

#: Namespace of the built-in primitive types.
BUILTIN_ADAPTER = ""

#: Name of the configuration instance an adapter reads its settings from.
CONFIG_INSTANCE_NAME = "_config"

# ------------------------------------------------------------------
# Built-in primitive types
# ------------------------------------------------------------------

PRIMITIVE_STRING = "string"
PRIMITIVE_NUMBER = "number"
PRIMITIVE_BOOLEAN = "boolean"
PRIMITIVE_JSON = "json"
PRIMITIVE_SERVICE_ID = "serviceid"

PRIMITIVE_TYPE_NAMES: frozenset[str] = frozenset(
    {
        PRIMITIVE_STRING,
        PRIMITIVE_NUMBER,
        PRIMITIVE_BOOLEAN,
        PRIMITIVE_JSON,
        PRIMITIVE_SERVICE_ID,
    }
)

#: Field annotation marking a value that every instance must provide.
REQUIRED_ANNOTATION = "required"

#: Field annotation marking a config value that must never reach a log.
SECRET_ANNOTATION = "secret"

# ------------------------------------------------------------------
# State snapshot
# ------------------------------------------------------------------

STATE_SCHEMA_VERSION = 1
DEFAULT_STATE_PATH = ".blueprint/state.json"

# ------------------------------------------------------------------
# Source documents
# ------------------------------------------------------------------

DEFAULT_BLUEPRINT_SUFFIX = ".bp.json"

#: Filename of the output document that carries newly filled adapter configs.
CONFIG_BLUEPRINT_NAME = "config"
