"""Props shared by every widget."""

from typing import List

from ..core.schema import ComponentSchema, FieldKind, FieldSpec


VARIANTS = ('default', 'primary', 'secondary', 'success', 'warning', 'error')
SIZES = ('small', 'medium', 'large')
STATES = ('default', 'hover', 'focus', 'active', 'disabled', 'loading')
STATUSES = ('idle', 'running', 'paused', 'error', 'completed', 'stopped')


def disabled_but_interactive(props) -> List[str]:
    if props.get('state') != 'disabled':
        return []
    enabled = [k for k in ('mouse', 'clickable') if props.get(k)]
    if not enabled:
        return []
    return [f"state is 'disabled' but {' and '.join(enabled)} input is enabled"]


BASE_FIELDS = (
    FieldSpec('variant', FieldKind.ENUM, choices=VARIANTS, default='default',
              description='Colour variant of the container'),
    FieldSpec('size', FieldKind.ENUM, choices=SIZES, default='medium',
              description='Padding scale'),
    FieldSpec('state', FieldKind.ENUM, choices=STATES, default='default',
              description='Interaction state'),
    FieldSpec('theme', FieldKind.THEME,
              description="Shared Theme, or overrides where 'base' picks the palette"),
    FieldSpec('style', FieldKind.OBJECT,
              description='Per-part style overrides, applied last in the cascade'),
    FieldSpec('label', FieldKind.STRING, description='Container title'),
    FieldSpec('padding', FieldKind.ANY, description='Container padding override'),
    FieldSpec('radius', FieldKind.BOOLEAN, description='Rounded container border'),
    FieldSpec('keys', FieldKind.BOOLEAN, default=True, description='Enable key bindings'),
    FieldSpec('mouse', FieldKind.BOOLEAN, default=False, description='Enable mouse clicks'),
    FieldSpec('refresh_interval', FieldKind.NUMBER, minimum=0, default=0,
              description='Periodic re-render interval in milliseconds (0 disables)'),
    # Deprecated aliases
    FieldSpec('rounded', FieldKind.BOOLEAN, deprecated='renamed', replaced_by='radius'),
    FieldSpec('p', FieldKind.ANY, deprecated='renamed', replaced_by='padding'),
    FieldSpec('color', FieldKind.ENUM, choices=VARIANTS, deprecated='renamed', replaced_by='variant'),
)

BASE_SCHEMA = ComponentSchema(
    name='Base',
    fields=BASE_FIELDS,
    rules=(disabled_but_interactive,),
    description='Props accepted by every widget',
)
