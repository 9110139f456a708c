"""
Layered style cascade.

Every rendered part resolves its style by merging partial fragments in a
fixed order::

    base < component < variant < size < layout < state < status < custom

Later layers win key by key. Nested values (``border``, ``padding``) are
replaced whole, never deep-merged. Resolution is a pure function of
(theme, axes, overrides): no caching, no mutation of the theme or of the
layer definitions.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from .theme import Theme


logger = logging.getLogger(__name__)


STYLE_KEYS: FrozenSet[str] = frozenset({
    'fg', 'bg', 'border_fg', 'border', 'padding', 'width', 'height',
    'bold', 'dim', 'italic', 'underline', 'reverse', 'align',
})

CASCADE_ORDER = ('base', 'component', 'variant', 'size', 'layout', 'state', 'status', 'custom')

AXES = ('variant', 'size', 'layout', 'state', 'status')


@dataclass(frozen=True)
class Token:
    """Reference to a theme token, resolved when a layer is built."""
    path: str

    def resolve(self, theme: Theme) -> Any:
        return theme.token(self.path)


def T(path: str) -> Token:
    return Token(path)


Fragment = Mapping[str, Any]
Builder = Union[Fragment, Callable[[Theme], Fragment]]


def _resolve_tokens(theme: Theme, fragment: Fragment) -> Dict[str, Any]:
    return {
        key: value.resolve(theme) if isinstance(value, Token) else value
        for key, value in fragment.items()
    }


def _as_builder(spec: Optional[Builder]) -> Callable[[Theme], Fragment]:
    if spec is None:
        return lambda theme: {}
    if callable(spec):
        return lambda theme: _resolve_tokens(theme, spec(theme) or {})
    if isinstance(spec, Mapping):
        frozen = dict(spec)
        return lambda theme: _resolve_tokens(theme, frozen)
    raise TypeError(f"style layer must be a mapping or a callable, got {type(spec).__name__}")


@dataclass(frozen=True)
class StyleLayer:
    """One tagged fragment in the cascade."""
    axis: str
    value: Optional[str]
    build: Callable[[Theme], Fragment]
    keys: FrozenSet[str] = STYLE_KEYS

    def apply(self, theme: Theme) -> Dict[str, Any]:
        """Build the fragment; undeclared keys and unresolved tokens drop out."""
        fragment = self.build(theme) or {}
        return {
            key: copy.deepcopy(value)
            for key, value in fragment.items()
            if key in self.keys and value is not None
        }


class LayerTable:
    """Maps the values of one axis to style layers."""

    def __init__(self, axis: str, builders: Mapping[str, Builder],
                 keys: Iterable[str] = STYLE_KEYS, fallback: Optional[str] = 'default'):
        if axis not in AXES:
            raise ValueError(f"unknown cascade axis '{axis}'")
        self.axis = axis
        self.keys = frozenset(keys)
        self.fallback = fallback
        self._builders = {name: _as_builder(spec) for name, spec in builders.items()}

    @property
    def values(self):
        return tuple(self._builders)

    def select(self, value: Optional[str]) -> Optional[StyleLayer]:
        """Layer for ``value``; unknown values use the fallback entry or are skipped."""
        if value is None:
            return None
        if value in self._builders:
            return StyleLayer(self.axis, value, self._builders[value], self.keys)
        if self.fallback is not None and self.fallback in self._builders:
            logger.debug(f"No {self.axis} layer for {value!r}, using {self.fallback!r}")
            return StyleLayer(self.axis, self.fallback, self._builders[self.fallback], self.keys)
        return None

    def extend(self, builders: Mapping[str, Builder]) -> 'LayerTable':
        merged: Dict[str, Any] = dict(self._builders)
        merged.update({name: _as_builder(spec) for name, spec in builders.items()})
        return LayerTable(self.axis, merged, self.keys, self.fallback)


@dataclass(frozen=True)
class PartStyle:
    """Cascade definition for one element part of a widget."""
    base: Optional[Builder] = None
    variant: Optional[LayerTable] = None
    size: Optional[LayerTable] = None
    layout: Optional[LayerTable] = None
    state: Optional[LayerTable] = None
    status: Optional[LayerTable] = None

    def layers(self, axes: Mapping[str, Optional[str]], component: Optional[str] = None,
               part_name: Optional[str] = None,
               overrides: Optional[Fragment] = None) -> List[StyleLayer]:
        layers = [StyleLayer('base', None, _as_builder(self.base))]
        if component and part_name:
            layers.append(StyleLayer(
                'component', component,
                lambda theme: theme.component_style(component, part_name),
            ))
        for axis in AXES:
            table = getattr(self, axis)
            if table is None:
                continue
            layer = table.select(axes.get(axis))
            if layer is not None:
                layers.append(layer)
        if overrides:
            fixed = dict(overrides)
            layers.append(StyleLayer('custom', None, lambda theme: fixed))
        return layers


def apply_layers(fragments: Iterable[Fragment]) -> Dict[str, Any]:
    """Single reducer for the cascade: later fragments win key by key."""
    resolved: Dict[str, Any] = {}
    for fragment in fragments:
        for key, value in fragment.items():
            resolved[key] = copy.deepcopy(value)
    return resolved


def _apply_safely(layer: StyleLayer, theme: Theme) -> Dict[str, Any]:
    try:
        return layer.apply(theme)
    except Exception as e:
        logger.warning(f"Style layer {layer.axis}={layer.value!r} failed, skipping: {e}")
        return {}


def resolve_style(theme: Theme, axes: Mapping[str, Optional[str]], *, part: PartStyle,
                  component: Optional[str] = None, part_name: Optional[str] = None,
                  overrides: Optional[Fragment] = None) -> Dict[str, Any]:
    layers = part.layers(axes, component, part_name, overrides)
    return apply_layers(_apply_safely(layer, theme) for layer in layers)


@dataclass(frozen=True)
class StyleSheet:
    """The per-part cascade definitions of one widget."""
    component: str
    parts: Mapping[str, PartStyle] = field(default_factory=dict)

    def part(self, name: str) -> PartStyle:
        return self.parts.get(name) or PartStyle()

    def resolve(self, part_name: str, theme: Theme, axes: Mapping[str, Optional[str]],
                overrides: Optional[Fragment] = None) -> Dict[str, Any]:
        return resolve_style(
            theme, axes,
            part=self.part(part_name),
            component=self.component,
            part_name=part_name,
            overrides=overrides,
        )


# Layer tables shared by every widget container.

VARIANT_LAYERS = LayerTable('variant', {
    'default': {'border': {'type': 'line'}, 'border_fg': T('colors.border.primary')},
    'primary': {'border': {'type': 'line'}, 'border_fg': T('colors.border.accent')},
    'secondary': {'border': {'type': 'line'}, 'border_fg': T('colors.border.secondary')},
    'success': {'border': {'type': 'line'}, 'border_fg': T('colors.border.success')},
    'warning': {'border': {'type': 'line'}, 'border_fg': T('colors.border.warning')},
    'error': {'border': {'type': 'line'}, 'border_fg': T('colors.border.error')},
})

SIZE_LAYERS = LayerTable('size', {
    'small': {'padding': {'top': 0, 'right': 1, 'bottom': 0, 'left': 1}},
    'medium': {'padding': {'top': 0, 'right': 1, 'bottom': 0, 'left': 1}},
    'large': {'padding': {'top': 1, 'right': 2, 'bottom': 1, 'left': 2}},
}, fallback='medium')

STATE_LAYERS = LayerTable('state', {
    'default': {},
    'hover': {'border_fg': T('colors.border.hover')},
    'focus': {'border_fg': T('colors.border.focus'), 'bold': True},
    'active': {'border_fg': T('colors.border.focus'), 'bold': True},
    'disabled': {'border_fg': T('colors.border.disabled'), 'fg': T('colors.text.disabled'), 'dim': True},
    'loading': {'border_fg': T('colors.border.info'), 'dim': True},
})

STATUS_BORDER_LAYERS = LayerTable('status', {
    'idle': {'border_fg': T('colors.status.idle')},
    'running': {'border_fg': T('colors.status.running')},
    'paused': {'border_fg': T('colors.status.paused')},
    'error': {'border_fg': T('colors.status.error')},
    'completed': {'border_fg': T('colors.status.completed')},
    'stopped': {'border_fg': T('colors.status.stopped')},
}, fallback=None)

STATUS_TEXT_LAYERS = LayerTable('status', {
    'idle': {'fg': T('colors.status.idle')},
    'running': {'fg': T('colors.status.running'), 'bold': True},
    'paused': {'fg': T('colors.status.paused')},
    'error': {'fg': T('colors.status.error'), 'bold': True},
    'completed': {'fg': T('colors.status.completed')},
    'stopped': {'fg': T('colors.status.stopped')},
}, fallback=None)

TEXT_BASE = {'fg': T('colors.text.primary')}
MUTED_BASE = {'fg': T('colors.text.muted')}

STATE_TEXT_LAYERS = LayerTable('state', {
    'default': {},
    'focus': {'bold': True},
    'active': {'bold': True},
    'disabled': {'fg': T('colors.text.disabled'), 'dim': True},
    'loading': {'dim': True},
})
