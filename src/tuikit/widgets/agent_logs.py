"""
AgentLogs widget.

Displays agent log entries in one of several layouts with level, agent,
message and time-range filters, free-text search and export to JSON, CSV or
plain text.
"""

import csv
import io
import itertools
import json
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.lifecycle import Widget, guarded, mutator
from ..core.style import (
    MUTED_BASE,
    SIZE_LAYERS,
    STATE_LAYERS,
    STATE_TEXT_LAYERS,
    STATUS_BORDER_LAYERS,
    TEXT_BASE,
    VARIANT_LAYERS,
    LayerTable,
    PartStyle,
    StyleSheet,
    T,
)
from ..schemas.agents import LOG_DISPLAY_MODES, LOG_FILTER_LEVELS, LOG_LEVELS, LOG_SORT_KEYS, TIME_RANGES
from .formatting import LEVEL_ICONS, SELECTED_MARKER, UNSELECTED_MARKER, format_time, truncate


logger = logging.getLogger(__name__)

TIME_RANGE_DELTAS = {
    '1h': timedelta(hours=1),
    '6h': timedelta(hours=6),
    '24h': timedelta(hours=24),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
}

LEVEL_ALIASES = {'warning': 'warn', 'err': 'error', 'critical': 'error', 'fatal': 'error'}

TABLE_CELL_WIDTH = 15

EXPORT_FORMATS = ('json', 'csv', 'txt')

# Epoch values above this are taken to be in milliseconds.
MILLISECOND_EPOCH_THRESHOLD = 1e11


@dataclass(frozen=True)
class LogEntry:
    """A single normalized log line."""
    id: str
    timestamp: datetime
    level: str
    message: str
    agent_id: str = ''
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'level': self.level,
            'message': self.message,
            'agent_id': self.agent_id,
            'data': self.data,
        }


@dataclass(frozen=True)
class LogFilter:
    """Active filter criteria; ``None`` fields do not filter."""
    level: Optional[str] = None
    agent_id: Optional[str] = None
    message: Optional[str] = None
    time_range: Optional[str] = None
    custom: Optional[Callable[[LogEntry], bool]] = None

    def describe(self, search_query: str = '') -> str:
        return ' | '.join([
            f"Level: {self.level or 'all'}",
            f"Agent: {self.agent_id or 'all'}",
            f"Time: {self.time_range or 'all'}",
            f"Search: {search_query or 'none'}",
        ])


@dataclass(frozen=True)
class LogSearchResult:
    query: str
    results: List[LogEntry] = field(default_factory=list)
    total_results: int = 0
    search_time: float = 0.0


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a datetime, ISO string or epoch; ``None`` when it cannot be used."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if abs(value) > MILLISECOND_EPOCH_THRESHOLD:
            value = value / 1000.0
        try:
            ts = datetime.fromtimestamp(value)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is not None:
        try:
            ts = ts.astimezone().replace(tzinfo=None)
        except (ValueError, OverflowError, OSError):
            return None
    return ts


AGENT_LOGS_STYLES = StyleSheet('AgentLogs', {
    'container': PartStyle(
        base={'border': {'type': 'line'}},
        variant=VARIANT_LAYERS,
        size=SIZE_LAYERS,
        state=STATE_LAYERS,
        status=STATUS_BORDER_LAYERS,
    ),
    'header': PartStyle(base={'fg': T('colors.text.accent'), 'bold': True}, state=STATE_TEXT_LAYERS),
    'filter': PartStyle(base=MUTED_BASE),
    'content': PartStyle(
        base=TEXT_BASE,
        layout=LayerTable('layout', {
            'detailed': {'padding': {'top': 0, 'right': 0, 'bottom': 0, 'left': 1}},
            'timeline': {'fg': T('colors.text.secondary')},
        }, fallback=None),
        state=STATE_TEXT_LAYERS,
    ),
    'stats': PartStyle(base=MUTED_BASE),
    'controls': PartStyle(base={'fg': T('colors.text.secondary'), 'italic': True}),
})


class AgentLogs(Widget):
    """Log viewer for one or more agents."""

    component_name = 'AgentLogs'
    stylesheet = AGENT_LOGS_STYLES
    structural_props = ('show_header', 'show_stats', 'show_controls', 'filterable')

    def init_state(self) -> None:
        self._ids = itertools.count(1)
        self.logs: List[LogEntry] = [self._coerce(raw) for raw in self.props['logs']]
        self.filter = LogFilter(
            level=self._level_filter(self.props['filter_level']),
            time_range=self._range_filter(self.props['time_range']),
        )
        self.search_query = ''
        self.selected_index = 0
        self.filtered: List[LogEntry] = []
        self._apply_filters()

    def mount(self) -> None:
        self.add_part('header', when=self.props['show_header'])
        self.add_part('filter', when=self.props['filterable'])
        self.add_part('content')
        self.add_part('stats', when=self.props['show_stats'])
        self.add_part('controls', when=self.props['show_controls'])

    def key_bindings(self):
        return [
            (('up', 'k'), self.select_previous),
            (('down', 'j'), self.select_next),
            (('d',), self.cycle_display_mode),
            (('f',), self.cycle_filter_level),
            (('s',), self.cycle_sort),
            (('t',), self.cycle_time_range),
            (('r',), self.refresh),
            (('escape',), self.clear_filter),
        ]

    def layout_value(self) -> Optional[str]:
        return self.props.get('display_mode')

    def status_value(self) -> Optional[str]:
        if any(entry.level == 'error' for entry in self.filtered):
            return 'error'
        return None

    def before_render(self) -> None:
        self._apply_filters()

    # -- part renderers ----------------------------------------------------

    def render_header(self) -> str:
        agent = self.props.get('agent_id')
        return f"Agent Logs: {agent}" if agent else "Agent Logs"

    def render_filter(self) -> str:
        return self.filter.describe(self.search_query)

    def render_content(self) -> str:
        if not self.filtered:
            if self.search_query:
                return f'No logs found for "{self.search_query}"'
            return 'No logs available'
        mode = self.props['display_mode']
        renderer = getattr(self, f"_render_{mode}", self._render_list)
        return renderer()

    def render_stats(self) -> str:
        stats = self.get_stats()
        by_level = stats['logs_by_level']
        return (
            f"Total: {stats['total_logs']} | Filtered: {stats['filtered_logs']} | "
            f"Debug: {by_level.get('debug', 0)} | Info: {by_level.get('info', 0)} | "
            f"Warn: {by_level.get('warn', 0)} | Error: {by_level.get('error', 0)}"
        )

    def render_controls(self) -> str:
        return ' | '.join([
            f"Mode: {self.props['display_mode']}",
            f"Sort: {self.props['sort_by']}",
            f"Follow: {'ON' if self.props['follow_mode'] else 'OFF'}",
        ])

    def _marker(self, index: int, compact: bool = False) -> str:
        selected = index == self.selected_index
        if compact:
            return SELECTED_MARKER.strip() if selected else ' '
        return SELECTED_MARKER if selected else UNSELECTED_MARKER

    def _render_list(self) -> str:
        lines = []
        for i, entry in enumerate(self.filtered):
            timestamp = f"[{format_time(entry.timestamp)}] " if self.props['show_timestamp'] else ''
            agent = f"[{entry.agent_id}] " if self.props['show_agent_id'] else ''
            level = f"[{entry.level.upper()}] " if self.props['show_level'] else ''
            lines.append(f"{self._marker(i)}{timestamp}{agent}{level}{LEVEL_ICONS[entry.level]} {entry.message}")
        return '\n'.join(lines)

    def _render_table(self) -> str:
        headers = []
        if self.props['show_timestamp']:
            headers.append('Timestamp')
        if self.props['show_agent_id']:
            headers.append('Agent ID')
        if self.props['show_level']:
            headers.append('Level')
        headers.append('Message')

        w = TABLE_CELL_WIDTH
        top = '┌' + '┬'.join('─' * w for _ in headers) + '┐'
        head = '│' + '│'.join(h.ljust(w) for h in headers) + '│'
        sep = '├' + '┼'.join('─' * w for _ in headers) + '┤'
        rows = []
        for entry in self.filtered:
            cells = []
            if self.props['show_timestamp']:
                cells.append(format_time(entry.timestamp))
            if self.props['show_agent_id']:
                cells.append(entry.agent_id)
            if self.props['show_level']:
                cells.append(entry.level.upper())
            cells.append(entry.message)
            rows.append('│' + '│'.join(truncate(c, w).ljust(w) for c in cells) + '│')
        bottom = '└' + '┴'.join('─' * w for _ in headers) + '┘'
        return '\n'.join([top, head, sep] + rows + [bottom])

    def _render_compact(self) -> str:
        items = []
        for i, entry in enumerate(self.filtered):
            timestamp = format_time(entry.timestamp) if self.props['show_timestamp'] else ''
            items.append(f"{self._marker(i, compact=True)}{LEVEL_ICONS[entry.level]}{timestamp} {entry.message}")
        return ' '.join(items)

    def _render_detailed(self) -> str:
        blocks = []
        for i, entry in enumerate(self.filtered):
            head = []
            if self.props['show_timestamp']:
                head.append(f"[{entry.timestamp.strftime('%Y-%m-%d %H:%M:%S')}]")
            if self.props['show_agent_id']:
                head.append(f"[{entry.agent_id}]")
            if self.props['show_level']:
                head.append(f"[{entry.level.upper()}]")
            head.append(LEVEL_ICONS[entry.level])
            block = f"{self._marker(i)}{' '.join(head)}\n  {entry.message}"
            if self.props['show_data'] and entry.data:
                block += f"\n  Data: {json.dumps(entry.data, default=str)}"
            blocks.append(block)
        return '\n\n'.join(blocks)

    def _render_timeline(self) -> str:
        lines = []
        for i, entry in enumerate(self.filtered):
            level = f"[{entry.level.upper()}] " if self.props['show_level'] else ''
            lines.append(
                f"{self._marker(i, compact=True)}{format_time(entry.timestamp)} │ "
                f"{LEVEL_ICONS[entry.level]} {level}{entry.message}"
            )
        return '\n'.join(lines)

    # -- operations --------------------------------------------------------

    @mutator
    def add_log(self, log: Mapping[str, Any]) -> LogEntry:
        entry = self._coerce(log)
        self.logs.append(entry)
        if self.props['follow_mode']:
            self._apply_filters()
            if entry in self.filtered:
                self.selected_index = self.filtered.index(entry)
        self.emit('log_add', entry.to_dict())
        self.invoke_callback('on_log_add', entry)
        return entry

    @mutator
    def remove_log(self, log_id: str) -> bool:
        before = len(self.logs)
        self.logs = [entry for entry in self.logs if entry.id != log_id]
        return len(self.logs) != before

    @mutator
    def clear_logs(self) -> None:
        self.logs = []
        self.selected_index = 0

    @mutator
    def set_filter(self, log_filter: Optional[LogFilter] = None, **criteria) -> LogFilter:
        if log_filter is None:
            log_filter = LogFilter(**criteria)
        elif criteria:
            log_filter = replace(log_filter, **criteria)
        if log_filter.level is not None and log_filter.level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {log_filter.level!r}")
        if log_filter.time_range is not None and log_filter.time_range not in TIME_RANGES:
            raise ValueError(f"unknown time range {log_filter.time_range!r}")
        self.filter = log_filter
        self._sync_filter_props()
        self.selected_index = 0
        self.emit('log_filter', {
            'level': log_filter.level,
            'agent_id': log_filter.agent_id,
            'message': log_filter.message,
            'time_range': log_filter.time_range,
        })
        self.invoke_callback('on_log_filter', log_filter)
        return log_filter

    @mutator
    def clear_filter(self) -> None:
        self.filter = LogFilter()
        self._sync_filter_props()
        self.search_query = ''
        self.selected_index = 0

    @mutator
    def search(self, query: str) -> LogSearchResult:
        started = time.perf_counter()
        self.search_query = query or ''
        self.selected_index = 0
        self._apply_filters()
        result = LogSearchResult(
            query=self.search_query,
            results=list(self.filtered),
            total_results=len(self.filtered),
            search_time=(time.perf_counter() - started) * 1000.0,
        )
        self.emit('log_search', {'query': result.query, 'total_results': result.total_results})
        self.invoke_callback('on_log_search', result.query, result.results)
        return result

    @guarded
    def export_logs(self, fmt: str = 'json') -> str:
        """Serialize the currently filtered logs."""
        self._apply_filters()
        if fmt == 'json':
            return json.dumps([entry.to_dict() for entry in self.filtered], indent=2, default=str)
        if fmt == 'csv':
            buffer = io.StringIO()
            writer = csv.writer(buffer, lineterminator='\n')
            writer.writerow(['id', 'timestamp', 'level', 'agent_id', 'message'])
            for entry in self.filtered:
                writer.writerow([entry.id, entry.timestamp.isoformat(), entry.level, entry.agent_id, entry.message])
            return buffer.getvalue()
        if fmt == 'txt':
            return '\n'.join(
                f"[{entry.timestamp.isoformat()}] [{entry.level.upper()}] [{entry.agent_id}] {entry.message}"
                for entry in self.filtered
            )
        raise ValueError(f"unsupported export format {fmt!r}, expected one of {', '.join(EXPORT_FORMATS)}")

    @mutator
    def select_next(self) -> None:
        if self.filtered:
            self.selected_index = min(self.selected_index + 1, len(self.filtered) - 1)

    @mutator
    def select_previous(self) -> None:
        self.selected_index = max(self.selected_index - 1, 0)

    @guarded
    def refresh(self) -> None:
        self.render()
        self.emit('refresh', {})

    @guarded
    def cycle_display_mode(self) -> str:
        mode = self._next(LOG_DISPLAY_MODES, self.props['display_mode'])
        self.update(display_mode=mode)
        self.emit('display_mode_change', {'display_mode': mode})
        return mode

    @guarded
    def cycle_filter_level(self) -> str:
        level = self._next(LOG_FILTER_LEVELS, self.filter.level or 'all')
        self.set_filter(self.filter, level=self._level_filter(level))
        return level

    @guarded
    def cycle_time_range(self) -> str:
        time_range = self._next(TIME_RANGES, self.filter.time_range or 'all')
        self.filter = replace(self.filter, time_range=self._range_filter(time_range))
        self._sync_filter_props()
        self.render()
        self.emit('time_range_change', {'time_range': time_range})
        return time_range

    @guarded
    def cycle_sort(self) -> str:
        sort_by = self._next(LOG_SORT_KEYS, self.props['sort_by'])
        self.update(sort_by=sort_by)
        self.emit('sort_change', {'sort_by': sort_by})
        return sort_by

    @guarded
    def get_filtered_logs(self) -> List[LogEntry]:
        self._apply_filters()
        return list(self.filtered)

    @guarded
    def get_stats(self) -> Dict[str, Any]:
        by_level: Dict[str, int] = {}
        by_agent: Dict[str, int] = {}
        for entry in self.logs:
            by_level[entry.level] = by_level.get(entry.level, 0) + 1
            by_agent[entry.agent_id] = by_agent.get(entry.agent_id, 0) + 1
        return {
            'total_logs': len(self.logs),
            'filtered_logs': len(self.filtered),
            'logs_by_level': by_level,
            'logs_by_agent': by_agent,
        }

    def on_props_changed(self, old: Dict[str, Any], new: Dict[str, Any]) -> None:
        if old.get('logs') != new.get('logs'):
            self.logs = [self._coerce(raw) for raw in new['logs']]
            self.selected_index = 0
        if old.get('filter_level') != new.get('filter_level'):
            self.filter = replace(self.filter, level=self._level_filter(new['filter_level']))
        if old.get('time_range') != new.get('time_range'):
            self.filter = replace(self.filter, time_range=self._range_filter(new['time_range']))

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _next(options, current):
        index = options.index(current) if current in options else -1
        return options[(index + 1) % len(options)]

    @staticmethod
    def _level_filter(level: Optional[str]) -> Optional[str]:
        return None if level in (None, 'all') else level

    def _sync_filter_props(self) -> None:
        self.props['filter_level'] = self.filter.level or 'all'
        self.props['time_range'] = self.filter.time_range or 'all'

    @staticmethod
    def _range_filter(time_range: Optional[str]) -> Optional[str]:
        return None if time_range in (None, 'all') else time_range

    def _coerce(self, raw: Any) -> LogEntry:
        if isinstance(raw, LogEntry):
            return raw
        if not isinstance(raw, Mapping):
            logger.warning(f"AgentLogs: treating non-mapping log entry {raw!r} as a message")
            raw = {'message': str(raw)}

        level = str(raw.get('level', 'info')).lower()
        level = LEVEL_ALIASES.get(level, level)
        if level not in LOG_LEVELS:
            logger.warning(f"AgentLogs: unknown log level {raw.get('level')!r}, using 'info'")
            level = 'info'

        timestamp = _parse_timestamp(raw.get('timestamp'))
        if timestamp is None:
            if raw.get('timestamp') is not None:
                logger.warning(f"AgentLogs: unparseable timestamp {raw.get('timestamp')!r}, using now")
            timestamp = datetime.now()

        data = raw.get('data')
        return LogEntry(
            id=str(raw.get('id') or f"log-{next(self._ids)}"),
            timestamp=timestamp,
            level=level,
            message=str(raw.get('message', '')),
            agent_id=str(raw.get('agent_id') or self.props.get('agent_id') or ''),
            data=dict(data) if isinstance(data, Mapping) else None,
        )

    def _apply_filters(self) -> None:
        entries = list(self.logs)
        flt = self.filter
        if flt.level:
            entries = [e for e in entries if e.level == flt.level]
        if flt.agent_id:
            entries = [e for e in entries if e.agent_id == flt.agent_id]
        if flt.message:
            needle = flt.message.lower()
            entries = [e for e in entries if needle in e.message.lower()]
        if flt.time_range in TIME_RANGE_DELTAS:
            cutoff = datetime.now() - TIME_RANGE_DELTAS[flt.time_range]
            entries = [e for e in entries if e.timestamp >= cutoff]
        if self.search_query:
            needle = self.search_query.lower()
            entries = [
                e for e in entries
                if needle in e.message.lower() or needle in e.level or needle in e.agent_id.lower()
            ]
        if flt.custom is not None:
            try:
                entries = [e for e in entries if flt.custom(e)]
            except Exception as e:
                logger.error(f"AgentLogs: custom filter failed, ignoring it: {e}")

        sort_by = self.props.get('sort_by', 'timestamp')
        if sort_by == 'timestamp':
            entries.sort(key=lambda e: e.timestamp, reverse=True)
        elif sort_by in ('level', 'message', 'agent_id'):
            entries.sort(key=lambda e: getattr(e, sort_by))

        limit = self.props.get('max_logs')
        if limit:
            entries = entries[:int(limit)]
        self.filtered = entries
        if self.selected_index >= len(entries):
            self.selected_index = max(len(entries) - 1, 0)
