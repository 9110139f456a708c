"""
Theme token trees.

A theme is a read-only nested mapping of design tokens such as
``colors.border.primary`` or ``colors.status.running`` plus optional
per-component overrides under ``components.<Component>.<part>``. Colours are
rich colour strings (names or ``#rrggbb``).
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from ..errors import ThemeError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorScheme:
    """Flat palette a theme's token tree is generated from."""
    name: str
    foreground: str = 'white'
    background: str = 'black'
    surface: str = 'grey15'
    accent: str = 'blue'
    secondary: str = 'grey50'
    success: str = 'green'
    warning: str = 'yellow'
    error: str = 'red'
    info: str = 'cyan'
    muted: str = 'grey50'
    border: str = 'grey50'
    highlight: str = 'cyan'
    disabled: str = 'grey35'

    def to_tokens(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'colors': {
                'text': {
                    'primary': self.foreground,
                    'secondary': self.secondary,
                    'muted': self.muted,
                    'inverse': self.background,
                    'accent': self.accent,
                    'success': self.success,
                    'warning': self.warning,
                    'error': self.error,
                    'info': self.info,
                    'disabled': self.disabled,
                },
                'background': {
                    'primary': self.background,
                    'surface': self.surface,
                    'accent': self.accent,
                    'success': self.success,
                    'warning': self.warning,
                    'error': self.error,
                    'info': self.info,
                    'selected': self.highlight,
                    'hover': self.highlight,
                    'focus': self.surface,
                    'disabled': self.background,
                },
                'border': {
                    'primary': self.border,
                    'focus': self.accent,
                    'accent': self.accent,
                    'secondary': self.secondary,
                    'hover': self.highlight,
                    'disabled': self.disabled,
                    'muted': self.muted,
                    'success': self.success,
                    'warning': self.warning,
                    'error': self.error,
                    'info': self.info,
                },
                'status': {
                    'idle': self.muted,
                    'running': self.success,
                    'paused': self.warning,
                    'error': self.error,
                    'completed': self.info,
                    'stopped': self.secondary,
                },
            },
            'components': {},
        }


# Predefined color schemes
COLOR_SCHEMES: Dict[str, ColorScheme] = {
    'dark': ColorScheme(
        name='dark',
        foreground='#e5e7eb',
        background='#0b1020',
        surface='#1f2937',
        accent='#8b5cf6',
        secondary='#6b7280',
        success='#22c55e',
        warning='#fbbf24',
        error='#ef4444',
        info='#0ea5e9',
        muted='#9ca3af',
        border='#374151',
        highlight='#4b5563',
        disabled='#6b7280',
    ),
    'light': ColorScheme(
        name='light',
        foreground='#1f2937',
        background='#ffffff',
        surface='#f9fafb',
        accent='#4f46e5',
        secondary='#6b7280',
        success='#16a34a',
        warning='#f59e0b',
        error='#dc2626',
        info='#0ea5e9',
        muted='#6b7280',
        border='#d1d5db',
        highlight='#e5e7eb',
        disabled='#9ca3af',
    ),
    'high_contrast': ColorScheme(
        name='high_contrast',
        foreground='bright_white',
        background='black',
        surface='black',
        accent='bright_yellow',
        secondary='white',
        success='bright_green',
        warning='bright_yellow',
        error='bright_red',
        info='bright_cyan',
        muted='white',
        border='bright_white',
        highlight='blue',
        disabled='grey50',
    ),
    'monochrome': ColorScheme(
        name='monochrome',
        foreground='white',
        background='black',
        surface='black',
        accent='white',
        secondary='white',
        success='white',
        warning='white',
        error='white',
        info='white',
        muted='grey50',
        border='white',
        highlight='grey30',
        disabled='grey30',
    ),
}

DEFAULT_THEME = 'dark'
_SCHEME_KEYS = frozenset(f.name for f in fields(ColorScheme)) - {'name'}


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def _deep_merge(base: Dict[str, Any], overrides: Mapping) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        else:
            merged[key] = _thaw(value)
    return merged


class Theme:
    """Read-only design token tree shared by every widget that uses it."""

    def __init__(self, tokens: Mapping, name: Optional[str] = None):
        self.name = name or tokens.get('name', 'custom')
        self._tokens = _freeze(tokens)

    @property
    def tokens(self) -> Mapping:
        return self._tokens

    def token(self, path: str, default: Any = None) -> Any:
        """Look up a dotted token path; missing paths return ``default``."""
        node: Any = self._tokens
        for part in path.split('.'):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def color(self, path: str, default: Optional[str] = None) -> Optional[str]:
        value = self.token(f'colors.{path}', default)
        return value if isinstance(value, str) else default

    def component_style(self, component: str, part: str) -> Dict[str, Any]:
        """Theme-level override for one component part, as a fresh dict."""
        value = self.token(f'components.{component}.{part}')
        if not isinstance(value, Mapping):
            return {}
        return _thaw(value)

    def with_overrides(self, overrides: Optional[Mapping]) -> 'Theme':
        if not overrides:
            return self
        return Theme(_deep_merge(_thaw(self._tokens), overrides), name=self.name)

    def to_dict(self) -> Dict[str, Any]:
        return _thaw(self._tokens)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Theme) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Theme(name={self.name!r})"


_BASE_THEMES: Dict[str, Theme] = {}


def base_theme(name: str = DEFAULT_THEME) -> Theme:
    if name not in COLOR_SCHEMES:
        logger.warning(f"Unknown theme '{name}', falling back to '{DEFAULT_THEME}'")
        name = DEFAULT_THEME
    if name not in _BASE_THEMES:
        _BASE_THEMES[name] = Theme(COLOR_SCHEMES[name].to_tokens())
    return _BASE_THEMES[name]


def available_themes():
    return sorted(COLOR_SCHEMES)


def resolve_theme(overrides: Union[None, Theme, Mapping] = None,
                  base: Optional[str] = None) -> Theme:
    """Build a theme from a base palette plus overrides.

    ``overrides`` may name its base with a ``base`` key, set flat palette
    entries (``accent``, ``border``, ...) and deep-override token subtrees
    (``colors``, ``components``). A Theme instance is returned as is.
    """
    if isinstance(overrides, Theme):
        return overrides
    overrides = dict(overrides or {})
    base_name = overrides.pop('base', None) or overrides.pop('__base', None) or base or DEFAULT_THEME
    if not overrides:
        return base_theme(base_name)

    if base_name not in COLOR_SCHEMES:
        logger.warning(f"Unknown theme '{base_name}', falling back to '{DEFAULT_THEME}'")
        base_name = DEFAULT_THEME
    flat = {k: overrides.pop(k) for k in list(overrides) if k in _SCHEME_KEYS}
    scheme = COLOR_SCHEMES[base_name]
    if flat:
        scheme = replace(scheme, **{k: str(v) for k, v in flat.items()})
    tokens = _deep_merge(scheme.to_tokens(), overrides)
    return Theme(tokens, name=base_name)


def load_theme(path: str, base: Optional[str] = None) -> Theme:
    """Load theme overrides from a YAML file."""
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            data = yaml.safe_load(fh)
    except OSError as e:
        raise ThemeError(f"Cannot read theme file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ThemeError(f"Invalid YAML in theme file {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ThemeError(f"Theme file {path} must contain a mapping, got {type(data).__name__}")
    return resolve_theme(data, base=base)


def scheme_as_dict(name: str) -> Dict[str, str]:
    return asdict(COLOR_SCHEMES[name])
