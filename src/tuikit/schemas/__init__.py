"""Built-in component schemas."""

from .agents import AGENT_LIST_SCHEMA, AGENT_LOGS_SCHEMA, AGENT_STATUS_SCHEMA, TASK_LIST_SCHEMA
from .base import BASE_SCHEMA, SIZES, STATES, STATUSES, VARIANTS

BUILTIN_SCHEMAS = (
    AGENT_STATUS_SCHEMA,
    AGENT_LOGS_SCHEMA,
    AGENT_LIST_SCHEMA,
    TASK_LIST_SCHEMA,
)


def register_builtin_schemas(registry) -> None:
    for schema in BUILTIN_SCHEMAS:
        registry.register(schema)


__all__ = [
    "AGENT_LIST_SCHEMA",
    "AGENT_LOGS_SCHEMA",
    "AGENT_STATUS_SCHEMA",
    "BASE_SCHEMA",
    "BUILTIN_SCHEMAS",
    "SIZES",
    "STATES",
    "STATUSES",
    "TASK_LIST_SCHEMA",
    "VARIANTS",
    "register_builtin_schemas",
]
