"""Schemas for the agent monitoring widgets."""

from typing import Optional

from ..core.schema import FieldKind, FieldSpec
from .base import BASE_SCHEMA, STATUSES


DISPLAY_MODES = ('icon', 'text', 'both', 'progress', 'detailed')
ANIMATIONS = ('none', 'pulse', 'blink', 'rotate', 'bounce')

LOG_DISPLAY_MODES = ('list', 'table', 'compact', 'detailed', 'timeline')
LOG_LEVELS = ('debug', 'info', 'warn', 'error')
LOG_FILTER_LEVELS = ('all',) + LOG_LEVELS
LOG_SORT_KEYS = ('timestamp', 'level', 'message', 'agent_id')
TIME_RANGES = ('1h', '6h', '24h', '7d', '30d', 'all')

LIST_SORT_KEYS = ('name', 'type', 'status', 'last_activity', 'success_rate')
LIST_FILTERS = ('all', 'active', 'idle', 'error')
LIST_VIEW_MODES = ('list', 'grid', 'compact')

TASK_STATUSES = ('pending', 'in_progress', 'completed', 'failed')


def progress_without_value(props) -> Optional[str]:
    if props.get('show_progress') and props.get('progress') is None:
        return "show_progress is set but no progress value was given"
    return None


def progress_mode_without_value(props) -> Optional[str]:
    if props.get('display_mode') == 'progress' and props.get('progress') is None:
        return "display_mode 'progress' without a progress value renders an empty bar"
    return None


def selection_not_in_agents(props) -> Optional[str]:
    selected = props.get('selected_agent_id')
    if selected is None:
        return None
    ids = {
        a.get('id') if isinstance(a, dict) else getattr(a, 'id', None)
        for a in props.get('agents', [])
    }
    if selected not in ids:
        return f"selected_agent_id {selected!r} does not match any agent"
    return None


AGENT_STATUS_SCHEMA = BASE_SCHEMA.extend(
    'AgentStatus',
    fields=(
        FieldSpec('status', FieldKind.ENUM, required=True, choices=STATUSES),
        FieldSpec('agent_id', FieldKind.STRING),
        FieldSpec('agent_name', FieldKind.STRING),
        FieldSpec('display_mode', FieldKind.ENUM, choices=DISPLAY_MODES, default='both'),
        FieldSpec('animation', FieldKind.ENUM, choices=ANIMATIONS, default='none'),
        FieldSpec('show_timestamp', FieldKind.BOOLEAN, default=False),
        FieldSpec('show_duration', FieldKind.BOOLEAN, default=False),
        FieldSpec('show_progress', FieldKind.BOOLEAN, default=False),
        FieldSpec('progress', FieldKind.NUMBER, minimum=0, maximum=100),
        FieldSpec('message', FieldKind.STRING),
        FieldSpec('details', FieldKind.OBJECT),
        FieldSpec('clickable', FieldKind.BOOLEAN, default=False),
        FieldSpec('on_status_click', FieldKind.FUNCTION),
        FieldSpec('on_status_change', FieldKind.FUNCTION),
    ),
    rules=(progress_without_value, progress_mode_without_value),
    description='Single agent status indicator',
)

AGENT_LOGS_SCHEMA = BASE_SCHEMA.extend(
    'AgentLogs',
    fields=(
        FieldSpec('logs', FieldKind.ARRAY, required=True),
        FieldSpec('agent_id', FieldKind.STRING),
        FieldSpec('display_mode', FieldKind.ENUM, choices=LOG_DISPLAY_MODES, default='list'),
        FieldSpec('filter_level', FieldKind.ENUM, choices=LOG_FILTER_LEVELS, default='all'),
        FieldSpec('sort_by', FieldKind.ENUM, choices=LOG_SORT_KEYS, default='timestamp'),
        FieldSpec('time_range', FieldKind.ENUM, choices=TIME_RANGES, default='all'),
        FieldSpec('show_timestamp', FieldKind.BOOLEAN, default=True),
        FieldSpec('show_level', FieldKind.BOOLEAN, default=True),
        FieldSpec('show_agent_id', FieldKind.BOOLEAN, default=False),
        FieldSpec('show_data', FieldKind.BOOLEAN, default=False),
        FieldSpec('show_header', FieldKind.BOOLEAN, default=True),
        FieldSpec('show_stats', FieldKind.BOOLEAN, default=True),
        FieldSpec('show_controls', FieldKind.BOOLEAN, default=False),
        FieldSpec('max_logs', FieldKind.NUMBER, minimum=1, default=1000),
        FieldSpec('follow_mode', FieldKind.BOOLEAN, default=False),
        FieldSpec('filterable', FieldKind.BOOLEAN, default=True),
        FieldSpec('on_log_add', FieldKind.FUNCTION),
        FieldSpec('on_log_filter', FieldKind.FUNCTION),
        FieldSpec('on_log_search', FieldKind.FUNCTION),
    ),
    description='Filterable, searchable agent log viewer',
)

AGENT_LIST_SCHEMA = BASE_SCHEMA.extend(
    'AgentList',
    fields=(
        FieldSpec('agents', FieldKind.ARRAY, required=True),
        FieldSpec('selected_agent_id', FieldKind.STRING),
        FieldSpec('sort_by', FieldKind.ENUM, choices=LIST_SORT_KEYS, default='name'),
        FieldSpec('filter_by', FieldKind.ENUM, choices=LIST_FILTERS, default='all'),
        FieldSpec('view_mode', FieldKind.ENUM, choices=LIST_VIEW_MODES, default='list'),
        FieldSpec('show_metrics', FieldKind.BOOLEAN, default=False),
        FieldSpec('show_controls', FieldKind.BOOLEAN, default=True),
        FieldSpec('max_items', FieldKind.NUMBER, minimum=1),
        FieldSpec('multi_select', FieldKind.BOOLEAN, default=False),
        FieldSpec('empty_message', FieldKind.STRING, default='No agents available'),
        FieldSpec('on_agent_select', FieldKind.FUNCTION),
    ),
    rules=(selection_not_in_agents,),
    description='Sortable, filterable agent list with selection',
)

TASK_LIST_SCHEMA = BASE_SCHEMA.extend(
    'TaskList',
    fields=(
        FieldSpec('tasks', FieldKind.ARRAY, default=[]),
        FieldSpec('title', FieldKind.STRING, default='Tasks'),
        FieldSpec('show_progress', FieldKind.BOOLEAN, default=True),
        FieldSpec('show_completed', FieldKind.BOOLEAN, default=True),
        FieldSpec('on_task_add', FieldKind.FUNCTION),
    ),
    description='Task checklist with aggregate progress',
)
