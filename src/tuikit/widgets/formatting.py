"""Text formatters shared by the widgets."""

from datetime import datetime
from typing import Any, Optional


STATUS_ICONS = {
    'idle': '○',
    'running': '●',
    'paused': '◐',
    'error': '✗',
    'completed': '✓',
    'stopped': '■',
}

ROTATE_FRAMES = ('○', '◐', '●', '◑')

LEVEL_ICONS = {
    'debug': '🔍',
    'info': 'ℹ',
    'warn': '⚠',
    'error': '❌',
}

TASK_ICONS = {
    'pending': '☐',
    'in_progress': '◐',
    'completed': '☑',
    'failed': '☒',
}

SELECTED_MARKER = '► '
UNSELECTED_MARKER = '  '


def status_icon(status: Optional[str]) -> str:
    return STATUS_ICONS.get(status or '', '○')


def progress_bar(progress: Optional[float], width: int = 10) -> str:
    """``[█████░░░░░] 50%``; values outside 0..100 are clamped."""
    value = 0.0 if progress is None else max(0.0, min(100.0, float(progress)))
    filled = int(round(value / 100.0 * width))
    return f"[{'█' * filled}{'░' * (width - filled)}] {int(round(value))}%"


def format_duration(seconds: float) -> str:
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_time(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime('%H:%M:%S')
    return str(value)


def truncate(text: str, width: int) -> str:
    if width <= 0 or len(text) <= width:
        return text
    if width == 1:
        return text[:1]
    return text[:width - 1] + '…'
