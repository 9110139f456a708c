"""
Prop validation against registered component schemas.

``validate()`` is total: it never raises for bad input. Failures come back as
a ValidationResult carrying one PropError per offending field.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .schema import ComponentSchema, FieldKind, SchemaRegistry, get_registry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropError:
    """A single invalid prop."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one props mapping."""
    success: bool
    data: Optional[Dict[str, Any]] = None
    errors: Tuple[PropError, ...] = ()
    warnings: Tuple[str, ...] = ()

    def error_for(self, path: str) -> Optional[PropError]:
        for error in self.errors:
            if error.path == path:
                return error
        return None


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    if callable(value):
        return "function"
    return type(value).__name__


class ComponentValidator:
    """Validates raw props for a named component."""

    def __init__(self, registry: Optional[SchemaRegistry] = None, strict: bool = False):
        self._registry = registry
        self.strict = strict

    @property
    def registry(self) -> SchemaRegistry:
        if self._registry is None:
            self._registry = get_registry()
        return self._registry

    def validate(self, component_name: str, raw_props: Any) -> ValidationResult:
        schema = self.registry.get(component_name)
        if schema is None:
            return ValidationResult(
                success=False,
                errors=(PropError("component", f"Unknown component: {component_name}"),),
            )
        if raw_props is None:
            raw_props = {}
        if not isinstance(raw_props, Mapping):
            return ValidationResult(
                success=False,
                errors=(PropError("props", f"expected object, got {_type_name(raw_props)}"),),
            )

        declared = set(schema.keys)
        # Explicit None on a declared field counts as absent.
        provided = {
            key: value for key, value in raw_props.items()
            if not (key in declared and value is None)
        }

        model, errors = self._check_fields(schema, provided)
        warnings = self._deprecation_warnings(schema, provided)
        if self.strict:
            warnings.extend(
                f"Unknown property '{key}' for {schema.name}"
                for key in provided if key not in declared
            )

        if errors:
            return ValidationResult(success=False, errors=tuple(errors), warnings=tuple(warnings))

        data = self._normalize(schema, model, provided)
        warnings.extend(self._rule_warnings(schema, data))
        return ValidationResult(success=True, data=data, warnings=tuple(warnings))

    def _check_fields(self, schema: ComponentSchema, provided: Dict[str, Any]):
        try:
            return schema.model.model_validate(provided), []
        except ValidationError as exc:
            return None, self._convert_errors(schema, provided, exc)

    def _convert_errors(self, schema: ComponentSchema, provided: Dict[str, Any],
                        exc: ValidationError) -> List[PropError]:
        by_field: Dict[str, PropError] = {}
        for err in exc.errors():
            loc = err.get("loc") or ("props",)
            key = schema.alias_map.get(loc[0], loc[0])
            key = str(key)
            if key in by_field:
                continue
            by_field[key] = PropError(key, self._message_for(schema, key, provided, err))
        # Report in declaration order so messages are stable.
        order = {k: i for i, k in enumerate(schema.keys)}
        return sorted(by_field.values(), key=lambda e: order.get(e.path, len(order)))

    @staticmethod
    def _message_for(schema: ComponentSchema, key: str, provided: Dict[str, Any], err: dict) -> str:
        kind = err.get("type", "")
        spec = schema.field(key)
        value = provided.get(key)
        if kind == "missing":
            return "Field required"
        if spec is not None and spec.kind is FieldKind.ENUM:
            choices = ", ".join(str(c) for c in spec.choices)
            return f"must be one of: {choices} (got {value!r})"
        if kind in ("value_error", "assertion_error"):
            msg = err.get("msg", "invalid value")
            for prefix in ("Value error, ", "Assertion failed, "):
                if msg.startswith(prefix):
                    msg = msg[len(prefix):]
            return msg
        expected = spec.kind.value if spec is not None else "valid value"
        return f"expected {expected}, got {_type_name(value)}"

    @staticmethod
    def _deprecation_warnings(schema: ComponentSchema, provided: Dict[str, Any]) -> List[str]:
        warnings = []
        for spec in schema.fields:
            if spec.deprecated and spec.key in provided:
                if spec.replaced_by:
                    warnings.append(
                        f"'{spec.key}' is deprecated, use '{spec.replaced_by}' instead"
                    )
                else:
                    warnings.append(f"'{spec.key}' is deprecated: {spec.deprecated}")
        return warnings

    @staticmethod
    def _normalize(schema: ComponentSchema, model, provided: Dict[str, Any]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for attr, key in schema.alias_map.items():
            if key in provided:
                data[key] = getattr(model, attr)

        for spec in schema.fields:
            if spec.replaced_by and spec.key in data and spec.replaced_by not in data:
                data[spec.replaced_by] = data[spec.key]

        for spec in schema.fields:
            if spec.key not in data and spec.default is not None:
                data[spec.key] = spec.default_value()

        for key, value in provided.items():
            if key not in data:
                data[key] = value
        return data

    @staticmethod
    def _rule_warnings(schema: ComponentSchema, data: Dict[str, Any]) -> List[str]:
        warnings: List[str] = []
        for rule in schema.rules:
            try:
                outcome = rule(data)
            except Exception as e:
                logger.error(f"Warning rule {getattr(rule, '__name__', rule)!r} failed for {schema.name}: {e}")
                continue
            if not outcome:
                continue
            if isinstance(outcome, str):
                warnings.append(outcome)
            else:
                warnings.extend(str(w) for w in outcome)
        return warnings


_default_validator: Optional[ComponentValidator] = None


def validate_component(component_name: str, raw_props: Any, strict: bool = False) -> ValidationResult:
    """Validate with the process-wide registry."""
    global _default_validator
    if strict:
        return ComponentValidator(strict=True).validate(component_name, raw_props)
    if _default_validator is None:
        _default_validator = ComponentValidator()
    return _default_validator.validate(component_name, raw_props)
