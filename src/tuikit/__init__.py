"""tuikit: terminal UI widget runtime with validated props and a layered style cascade."""

__version__ = "0.3.0"

from .core import (
    ComponentValidator,
    EventBus,
    ManualScheduler,
    Screen,
    Theme,
    Widget,
    WidgetEvent,
    get_registry,
    resolve_theme,
    validate_component,
)
from .errors import PropsValidationError, SchemaError, ThemeError, TuikitError, WidgetDestroyedError
from .widgets import AgentList, AgentLogs, AgentStatus, TaskList

__all__ = [
    "AgentList",
    "AgentLogs",
    "AgentStatus",
    "ComponentValidator",
    "EventBus",
    "ManualScheduler",
    "PropsValidationError",
    "SchemaError",
    "Screen",
    "TaskList",
    "Theme",
    "ThemeError",
    "TuikitError",
    "Widget",
    "WidgetDestroyedError",
    "WidgetEvent",
    "get_registry",
    "resolve_theme",
    "validate_component",
    "__version__",
]
