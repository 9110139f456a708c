"""
AgentStatus widget.

Shows one agent's status as an icon, upper-cased text, an optional progress
bar and optional detail lines. Status changes are recorded in a history with
their durations and announced through a ``status_change`` event.
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.lifecycle import Widget, guarded
from ..core.validator import PropError
from ..errors import PropsValidationError
from ..schemas.base import STATUSES
from ..core.style import (
    MUTED_BASE,
    SIZE_LAYERS,
    STATE_LAYERS,
    STATE_TEXT_LAYERS,
    STATUS_BORDER_LAYERS,
    STATUS_TEXT_LAYERS,
    TEXT_BASE,
    VARIANT_LAYERS,
    LayerTable,
    PartStyle,
    StyleSheet,
)
from .formatting import ROTATE_FRAMES, format_duration, progress_bar, status_icon


logger = logging.getLogger(__name__)

ANIMATION_INTERVAL_MS = 500


@dataclass(frozen=True)
class StatusHistoryEntry:
    """A status the agent has left, with how long it was held."""
    status: str
    timestamp: datetime
    duration: float


AGENT_STATUS_STYLES = StyleSheet('AgentStatus', {
    'container': PartStyle(
        base={'border': {'type': 'line'}},
        variant=VARIANT_LAYERS,
        size=SIZE_LAYERS,
        layout=LayerTable('layout', {
            'icon': {'width': 3, 'height': 1},
            'text': {'width': 8, 'height': 1},
            'both': {'width': 12, 'height': 1},
            'progress': {'width': 16, 'height': 2},
            'detailed': {'width': 20, 'height': 3},
        }, fallback='both'),
        state=STATE_LAYERS,
        status=STATUS_BORDER_LAYERS,
    ),
    'icon': PartStyle(base=TEXT_BASE, state=STATE_TEXT_LAYERS, status=STATUS_TEXT_LAYERS),
    'text': PartStyle(
        base=TEXT_BASE,
        size=LayerTable('size', {
            'small': {},
            'medium': {'bold': True},
            'large': {'bold': True, 'underline': True},
        }, fallback='medium'),
        state=STATE_TEXT_LAYERS,
        status=STATUS_TEXT_LAYERS,
    ),
    'progress': PartStyle(base=TEXT_BASE, status=STATUS_TEXT_LAYERS),
    'details': PartStyle(base=MUTED_BASE),
    'timestamp': PartStyle(base=MUTED_BASE),
    'duration': PartStyle(base=MUTED_BASE),
    'message': PartStyle(base=TEXT_BASE, state=STATE_TEXT_LAYERS),
})


class AgentStatus(Widget):
    """Status indicator for a single agent."""

    component_name = 'AgentStatus'
    stylesheet = AGENT_STATUS_STYLES
    structural_props = ('display_mode', 'show_progress', 'show_timestamp', 'show_duration', 'message')
    input_props = ('keys', 'mouse', 'clickable')

    def init_state(self) -> None:
        self.current_status: str = self.props['status']
        self.history: List[StatusHistoryEntry] = []
        self.status_since = self.scheduler.monotonic()
        self.status_started_at = datetime.now()
        self.animation_frame = 0
        self._start_animation()

    def mount(self) -> None:
        mode = self.props['display_mode']
        self.add_part('icon', when=mode != 'text')
        self.add_part('text', when=mode != 'icon')
        self.add_part('progress', when=mode == 'progress' or self.props['show_progress'])
        self.add_part('details', when=mode == 'detailed')
        self.add_part('timestamp', when=self.props['show_timestamp'])
        self.add_part('duration', when=self.props['show_duration'])
        self.add_part('message', when=bool(self.props.get('message')))

    def key_bindings(self):
        return [(('enter', 'space'), self._activate)]

    def accepts_clicks(self) -> bool:
        return bool(self.props.get('mouse') or self.props.get('clickable'))

    def on_click(self) -> None:
        self._activate()

    def label_text(self) -> Optional[str]:
        return self.props.get('label') or self.props.get('agent_name')

    def layout_value(self) -> Optional[str]:
        return self.props.get('display_mode')

    def status_value(self) -> Optional[str]:
        return self.current_status

    # -- part renderers ----------------------------------------------------

    def render_icon(self) -> str:
        if self.props.get('animation') == 'rotate' and self.animation_frame:
            return ROTATE_FRAMES[self.animation_frame % len(ROTATE_FRAMES)]
        return status_icon(self.current_status)

    def render_text(self) -> str:
        return self.current_status.upper()

    def render_progress(self) -> str:
        return progress_bar(self.props.get('progress'))

    def render_details(self) -> str:
        lines = []
        if self.props.get('agent_name') or self.props.get('agent_id'):
            lines.append(f"Agent: {self.props.get('agent_name') or self.props.get('agent_id')}")
        for key, value in (self.props.get('details') or {}).items():
            lines.append(f"{key}: {value}")
        return "\n".join(lines) or self.fallback_text

    def render_timestamp(self) -> str:
        return f"Time: {datetime.now().strftime('%H:%M:%S')}"

    def render_duration(self) -> str:
        return f"Duration: {format_duration(self.current_duration())}"

    def render_message(self) -> str:
        return self.props.get('message') or ''

    # -- operations --------------------------------------------------------

    @guarded
    def set_status(self, status: str) -> None:
        """Move to ``status``; an unknown status raises PropsValidationError."""
        if status not in STATUSES:
            choices = ", ".join(STATUSES)
            raise PropsValidationError(
                self.component_name,
                [PropError("status", f"must be one of: {choices} (got {status!r})")],
            )
        self.update(status=status)

    @guarded
    def set_progress(self, progress: float) -> None:
        self.update(progress=max(0, min(100, progress)))

    @guarded
    def set_message(self, message: Optional[str]) -> None:
        self.update(message=message)

    @guarded
    def set_animation(self, animation: str) -> None:
        self.update(animation=animation)

    def on_props_changed(self, old: Dict[str, Any], new: Dict[str, Any]) -> None:
        if new['status'] != self.current_status:
            self._transition(new['status'])
        if old.get('animation') != new.get('animation'):
            self._start_animation()

    def current_duration(self) -> float:
        return max(0.0, self.scheduler.monotonic() - self.status_since)

    @guarded
    def get_history(self) -> List[StatusHistoryEntry]:
        return list(self.history)

    @guarded
    def get_info(self) -> Dict[str, Any]:
        return {
            'agent_id': self.props.get('agent_id'),
            'agent_name': self.props.get('agent_name'),
            'status': self.current_status,
            'progress': self.props.get('progress'),
            'message': self.props.get('message'),
            'started_at': self.status_started_at,
            'duration': self.current_duration(),
            'history': [asdict(entry) for entry in self.history],
        }

    @guarded
    def get_stats(self) -> Dict[str, Any]:
        durations = [entry.duration for entry in self.history]
        counts = Counter(entry.status for entry in self.history)
        time_in_status: Dict[str, float] = {}
        for entry in self.history:
            time_in_status[entry.status] = time_in_status.get(entry.status, 0.0) + entry.duration
        return {
            'total_status_changes': len(self.history),
            'average_status_duration': sum(durations) / len(durations) if durations else 0.0,
            'most_common_status': counts.most_common(1)[0][0] if counts else self.current_status,
            'time_in_status': time_in_status,
        }

    # -- internals ---------------------------------------------------------

    def _transition(self, new_status: str) -> None:
        old_status = self.current_status
        now = self.scheduler.monotonic()
        self.history.append(StatusHistoryEntry(
            status=old_status,
            timestamp=self.status_started_at,
            duration=max(0.0, now - self.status_since),
        ))
        self.current_status = new_status
        self.status_since = now
        self.status_started_at = datetime.now()
        logger.debug(f"AgentStatus {self.props.get('agent_id')}: {old_status} -> {new_status}")
        self.emit('status_change', {'old_status': old_status, 'new_status': new_status})
        self.invoke_callback('on_status_change', old_status, new_status)

    def _activate(self) -> None:
        self.emit('click', {'status': self.current_status})
        self.invoke_callback('on_status_click', self.current_status)

    def _start_animation(self) -> None:
        timer = self.timer('animation')
        animation = self.props.get('animation', 'none')
        self.animation_frame = 0
        self.dynamic_styles.pop('icon', None)
        if animation == 'none':
            if timer.cancel_if_present():
                self.emit('animation_stop', {})
            return
        timer.start(ANIMATION_INTERVAL_MS, self._animate)
        self.emit('animation_start', {'animation': animation})

    def _animate(self) -> None:
        if self.destroyed:
            return
        self.animation_frame += 1
        on = self.animation_frame % 2 == 1
        animation = self.props.get('animation')
        if animation == 'pulse':
            self.dynamic_styles['icon'] = {'bold': True} if on else {'dim': True}
        elif animation == 'blink':
            self.dynamic_styles['icon'] = {'reverse': on}
        elif animation == 'bounce':
            self.dynamic_styles['icon'] = {'padding': (0, 0, 0, 1 if on else 0)}
        self.render()
