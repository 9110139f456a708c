"""
Component schema registry.

A ComponentSchema declares the props a widget accepts. Each schema compiles
lazily into a pydantic model which does the per-field type, enum and range
checking; the validator turns pydantic's errors into one entry per field.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Annotated, Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple, Type, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    InstanceOf,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    create_model,
)

from ..errors import SchemaError
from .theme import Theme


logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """Value kinds a prop may declare."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"
    OBJECT = "object"
    FUNCTION = "function"
    THEME = "theme"
    ANY = "any"


# Warning rules receive the normalized props and return zero or more messages.
WarningRule = Callable[[Dict[str, Any]], Union[None, str, Iterable[str]]]


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of a single prop."""
    key: str
    kind: FieldKind = FieldKind.ANY
    required: bool = False
    default: Any = None
    choices: Tuple[Any, ...] = ()
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    deprecated: Optional[str] = None
    replaced_by: Optional[str] = None
    description: str = ""

    def __post_init__(self):
        if self.kind is FieldKind.ENUM and not self.choices:
            raise SchemaError(f"enum field '{self.key}' declares no choices")
        if self.required and self.default is not None:
            raise SchemaError(f"required field '{self.key}' cannot carry a default")
        if self.default is not None and self.kind is FieldKind.ENUM and self.default not in self.choices:
            raise SchemaError(f"default {self.default!r} for '{self.key}' is not one of its choices")

    def default_value(self) -> Any:
        """Fresh copy of the default so instances never share mutable defaults."""
        return copy.deepcopy(self.default)

    def describe_type(self) -> str:
        if self.kind is FieldKind.ENUM:
            return " | ".join(repr(c) for c in self.choices)
        if self.kind is FieldKind.NUMBER and (self.minimum is not None or self.maximum is not None):
            lo = "" if self.minimum is None else f"{self.minimum:g}"
            hi = "" if self.maximum is None else f"{self.maximum:g}"
            return f"number [{lo}..{hi}]"
        return self.kind.value


def _range_check(minimum: Optional[float], maximum: Optional[float]) -> Callable[[Any], Any]:
    def check(value):
        if minimum is not None and value < minimum:
            raise ValueError(f"must be >= {minimum:g}")
        if maximum is not None and value > maximum:
            raise ValueError(f"must be <= {maximum:g}")
        return value
    return check


def _annotation_for(spec: FieldSpec) -> Any:
    kind = spec.kind
    if kind is FieldKind.STRING:
        return StrictStr
    if kind is FieldKind.NUMBER:
        number = Union[StrictInt, StrictFloat]
        if spec.minimum is not None or spec.maximum is not None:
            return Annotated[number, AfterValidator(_range_check(spec.minimum, spec.maximum))]
        return number
    if kind is FieldKind.BOOLEAN:
        return StrictBool
    if kind is FieldKind.ENUM:
        return Literal[tuple(spec.choices)]
    if kind is FieldKind.ARRAY:
        return List[Any]
    if kind is FieldKind.OBJECT:
        return Dict[str, Any]
    if kind is FieldKind.FUNCTION:
        return Callable[..., Any]
    if kind is FieldKind.THEME:
        # A shared Theme instance or an override mapping.
        return Union[InstanceOf[Theme], Dict[str, Any]]
    return Any


@dataclass(frozen=True)
class ComponentSchema:
    """Immutable declaration of a component's props and warning rules."""
    name: str
    fields: Tuple[FieldSpec, ...] = ()
    rules: Tuple[WarningRule, ...] = ()
    description: str = ""

    def __post_init__(self):
        seen = set()
        for spec in self.fields:
            if spec.key in seen:
                raise SchemaError(f"schema '{self.name}' declares '{spec.key}' twice")
            seen.add(spec.key)

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(spec.key for spec in self.fields)

    def field(self, key: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.key == key:
                return spec
        return None

    def extend(self, name: str, fields: Iterable[FieldSpec] = (),
               rules: Iterable[WarningRule] = (), description: str = "") -> "ComponentSchema":
        """Derive a new schema; fields with an existing key replace the base field."""
        overrides = {spec.key: spec for spec in fields}
        merged = [overrides.pop(spec.key, spec) for spec in self.fields]
        merged.extend(overrides.values())
        return ComponentSchema(
            name=name,
            fields=tuple(merged),
            rules=self.rules + tuple(rules),
            description=description or self.description,
        )

    @cached_property
    def alias_map(self) -> Dict[str, str]:
        """Maps model attribute names back to prop keys."""
        return {f"p_{i}": spec.key for i, spec in enumerate(self.fields)}

    @cached_property
    def model(self) -> Type[BaseModel]:
        """pydantic model validating this schema's declared fields."""
        definitions = {}
        for attr, key in self.alias_map.items():
            spec = self.field(key)
            annotation = _annotation_for(spec)
            if spec.required:
                definitions[attr] = (annotation, Field(..., alias=key))
            else:
                definitions[attr] = (Optional[annotation], Field(default=None, alias=key))
        model_name = "".join(part.capitalize() for part in self.name.replace("-", "_").split("_"))
        return create_model(
            f"{model_name}Props",
            __config__=ConfigDict(extra="allow", arbitrary_types_allowed=True),
            **definitions,
        )


class SchemaRegistry:
    """Registry of component schemas keyed by component name."""

    def __init__(self):
        self._schemas: Dict[str, ComponentSchema] = {}
        self._lock = threading.Lock()

    def register(self, schema: ComponentSchema, replace: bool = False) -> ComponentSchema:
        with self._lock:
            if schema.name in self._schemas and not replace:
                raise SchemaError(f"Component schema '{schema.name}' is already registered")
            self._schemas[schema.name] = schema
        logger.debug(f"Registered schema {schema.name} ({len(schema.fields)} fields)")
        return schema

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._schemas.pop(name, None) is not None

    def get(self, name: str) -> Optional[ComponentSchema]:
        return self._schemas.get(name)

    def names(self) -> List[str]:
        return sorted(self._schemas)

    def model_for(self, name: str) -> Type[BaseModel]:
        schema = self._schemas.get(name)
        if schema is None:
            raise SchemaError(f"Unknown component: {name}")
        return schema.model

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


_default_registry: Optional[SchemaRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> SchemaRegistry:
    """Process-wide registry with the built-in component schemas loaded."""
    global _default_registry
    with _registry_lock:
        if _default_registry is None:
            from ..schemas import register_builtin_schemas

            registry = SchemaRegistry()
            register_builtin_schemas(registry)
            _default_registry = registry
        return _default_registry
