"""Component runtime core: schemas, validation, style cascade, lifecycle and events."""

from .events import EventBus, WidgetEvent
from .lifecycle import LifecycleState, Widget, guarded, mutator
from .schema import ComponentSchema, FieldKind, FieldSpec, SchemaRegistry, get_registry
from .style import (
    CASCADE_ORDER,
    STYLE_KEYS,
    LayerTable,
    PartStyle,
    StyleLayer,
    StyleSheet,
    T,
    apply_layers,
    resolve_style,
)
from .surface import Element, Screen
from .theme import Theme, load_theme, resolve_theme
from .timers import AsyncioScheduler, IntervalTimer, ManualScheduler
from .validator import ComponentValidator, PropError, ValidationResult, validate_component

__all__ = [
    "AsyncioScheduler",
    "CASCADE_ORDER",
    "ComponentSchema",
    "ComponentValidator",
    "Element",
    "EventBus",
    "FieldKind",
    "FieldSpec",
    "IntervalTimer",
    "LayerTable",
    "LifecycleState",
    "ManualScheduler",
    "PartStyle",
    "PropError",
    "STYLE_KEYS",
    "SchemaRegistry",
    "Screen",
    "StyleLayer",
    "StyleSheet",
    "T",
    "Theme",
    "ValidationResult",
    "WidgetEvent",
    "Widget",
    "apply_layers",
    "get_registry",
    "guarded",
    "load_theme",
    "mutator",
    "resolve_style",
    "resolve_theme",
    "validate_component",
]
