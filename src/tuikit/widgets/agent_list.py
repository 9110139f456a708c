"""
AgentList widget.

Sortable, filterable list of agents with single or multi selection. The
selection set feeds the container's ``status`` cascade slot as ``selected``.
"""

import logging
import time
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..core.lifecycle import Widget, guarded, mutator
from ..core.style import (
    MUTED_BASE,
    SIZE_LAYERS,
    STATE_LAYERS,
    STATE_TEXT_LAYERS,
    TEXT_BASE,
    VARIANT_LAYERS,
    LayerTable,
    PartStyle,
    StyleSheet,
    T,
)
from ..schemas.agents import LIST_FILTERS, LIST_SORT_KEYS, LIST_VIEW_MODES
from ..schemas.base import STATUSES
from .formatting import SELECTED_MARKER, UNSELECTED_MARKER, format_time, status_icon


logger = logging.getLogger(__name__)

FILTER_STATUS = {'active': 'running', 'idle': 'idle', 'error': 'error'}

GRID_COLUMNS = 2


@dataclass(frozen=True)
class AgentItem:
    """An agent row."""
    id: str
    name: str
    type: str = 'agent'
    status: str = 'idle'
    description: str = ''
    metrics: Dict[str, Any] = field(default_factory=dict)
    last_activity: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        total = self.metrics.get('total_runs') or 0
        if not total:
            return 0.0
        return (self.metrics.get('successful_runs') or 0) / total


UPDATABLE_FIELDS = frozenset(f.name for f in fields(AgentItem)) - {'id'}


@dataclass(frozen=True)
class AgentSearchResult:
    query: str
    results: List[AgentItem] = field(default_factory=list)
    total_results: int = 0
    search_time: float = 0.0


AGENT_LIST_STYLES = StyleSheet('AgentList', {
    'container': PartStyle(
        base={'border': {'type': 'line'}},
        variant=VARIANT_LAYERS,
        size=SIZE_LAYERS,
        state=STATE_LAYERS,
        status=LayerTable('status', {
            'selected': {'border_fg': T('colors.border.focus')},
        }, fallback=None),
    ),
    'list': PartStyle(
        base=TEXT_BASE,
        layout=LayerTable('layout', {
            'list': {},
            'grid': {},
            'compact': {'dim': True},
        }, fallback='list'),
        state=STATE_TEXT_LAYERS,
    ),
    'stats': PartStyle(base=MUTED_BASE),
    'controls': PartStyle(base={'fg': T('colors.text.secondary'), 'italic': True}),
})


class AgentList(Widget):
    """List of agents with sorting, filtering, search and selection."""

    component_name = 'AgentList'
    stylesheet = AGENT_LIST_STYLES
    structural_props = ('show_metrics', 'show_controls')

    def init_state(self) -> None:
        self.agents: List[AgentItem] = self._coerce_all(self.props['agents'])
        self.selected_ids: List[str] = []
        self.cursor = 0
        self.search_query = ''
        self.visible: List[AgentItem] = []
        selected = self.props.get('selected_agent_id')
        if selected and self._find(selected) is not None:
            self.selected_ids.append(selected)
        self._apply_view()

    def mount(self) -> None:
        self.add_part('list')
        self.add_part('stats', when=self.props['show_metrics'])
        self.add_part('controls', when=self.props['show_controls'])

    def key_bindings(self):
        return [
            (('up', 'k'), self.cursor_up),
            (('down', 'j'), self.cursor_down),
            (('enter', 'space'), self.toggle_cursor_selection),
            (('s',), self.cycle_sort),
            (('f',), self.cycle_filter),
            (('v',), self.cycle_view_mode),
            (('r',), self.refresh),
            (('escape',), self.clear_selection),
        ]

    def layout_value(self) -> Optional[str]:
        return self.props.get('view_mode')

    def status_value(self) -> Optional[str]:
        return 'selected' if self.selected_ids else None

    def before_render(self) -> None:
        self._apply_view()

    # -- part renderers ----------------------------------------------------

    def render_list(self) -> str:
        if not self.visible:
            if self.search_query:
                return f'No agents found for "{self.search_query}"'
            return self.props['empty_message']
        mode = self.props['view_mode']
        if mode == 'grid':
            return self._render_grid()
        if mode == 'compact':
            return self._render_compact()
        return self._render_rows()

    def render_stats(self) -> str:
        stats = self.get_stats()
        return (
            f"Total: {stats['total_agents']} | Active: {stats['active_agents']} | "
            f"Idle: {stats['idle_agents']} | Errors: {stats['error_agents']}"
        )

    def render_controls(self) -> str:
        return ' | '.join([
            f"Sort: {self.props['sort_by']}",
            f"Filter: {self.props['filter_by']}",
            f"View: {self.props['view_mode']}",
            f"Selected: {len(self.selected_ids)}",
        ])

    def _render_rows(self) -> str:
        lines = []
        for index, agent in enumerate(self.visible):
            marker = SELECTED_MARKER if agent.id in self.selected_ids else UNSELECTED_MARKER
            line = f"{marker}{status_icon(agent.status)} {agent.name} ({agent.type})"
            if self.props['show_metrics'] and agent.metrics:
                line += (
                    f" | Runs: {agent.metrics.get('total_runs', 0)}"
                    f" | Success: {agent.metrics.get('successful_runs', 0)}"
                )
            if self.props['show_metrics'] and agent.last_activity:
                line += f" | Last: {format_time(agent.last_activity)}"
            lines.append(line)
        return '\n'.join(lines)

    def _render_grid(self) -> str:
        cells = []
        for agent in self.visible:
            marker = SELECTED_MARKER if agent.id in self.selected_ids else UNSELECTED_MARKER
            cells.append(f"{marker}{status_icon(agent.status)} {agent.name}")
        rows = [cells[i:i + GRID_COLUMNS] for i in range(0, len(cells), GRID_COLUMNS)]
        return '\n'.join(' | '.join(row) for row in rows)

    def _render_compact(self) -> str:
        return ' '.join(
            f"{'►' if agent.id in self.selected_ids else ' '}{status_icon(agent.status)}{agent.name}"
            for agent in self.visible
        )

    # -- operations --------------------------------------------------------

    @mutator
    def add_agent(self, agent: Any) -> AgentItem:
        item = self._coerce(agent)
        if self._find(item.id) is not None:
            raise ValueError(f"agent {item.id!r} is already in the list")
        self.agents.append(item)
        self.emit('agent_add', {'agent_id': item.id})
        return item

    @mutator
    def remove_agent(self, agent_id: str) -> bool:
        before = len(self.agents)
        self.agents = [a for a in self.agents if a.id != agent_id]
        if agent_id in self.selected_ids:
            self.selected_ids.remove(agent_id)
        removed = len(self.agents) != before
        if removed:
            self.emit('agent_remove', {'agent_id': agent_id})
        return removed

    @mutator
    def update_agent(self, agent_id: str, **changes) -> Optional[AgentItem]:
        """Apply ``changes`` to an agent; values are normalized like new entries."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update agent field(s): {', '.join(sorted(unknown))}")
        for index, agent in enumerate(self.agents):
            if agent.id == agent_id:
                if 'status' in changes and changes['status'] not in STATUSES:
                    raise ValueError(f"unknown agent status {changes['status']!r}")
                updated = self._coerce({**asdict(agent), **changes})
                self.agents[index] = updated
                self.emit('agent_update', {'agent_id': agent_id, 'changes': dict(changes)})
                return updated
        logger.warning(f"AgentList: update for unknown agent {agent_id!r}")
        return None

    @mutator
    def select_agent(self, agent_id: str) -> bool:
        agent = self._find(agent_id)
        if agent is None:
            logger.warning(f"AgentList: cannot select unknown agent {agent_id!r}")
            return False
        if not self.props['multi_select']:
            self.selected_ids = []
        if agent_id not in self.selected_ids:
            self.selected_ids.append(agent_id)
        self.emit('agent_select', {'agent_id': agent_id, 'selected_ids': list(self.selected_ids)})
        self.invoke_callback('on_agent_select', agent)
        return True

    @mutator
    def deselect_agent(self, agent_id: str) -> bool:
        if agent_id not in self.selected_ids:
            return False
        self.selected_ids.remove(agent_id)
        self.emit('agent_deselect', {'agent_id': agent_id, 'selected_ids': list(self.selected_ids)})
        return True

    @mutator
    def clear_selection(self) -> None:
        self.selected_ids = []

    @guarded
    def get_selected_agents(self) -> List[AgentItem]:
        return [a for a in self.agents if a.id in self.selected_ids]

    @mutator
    def search(self, query: str) -> AgentSearchResult:
        started = time.perf_counter()
        self.search_query = query or ''
        self.cursor = 0
        self._apply_view()
        result = AgentSearchResult(
            query=self.search_query,
            results=list(self.visible),
            total_results=len(self.visible),
            search_time=(time.perf_counter() - started) * 1000.0,
        )
        self.emit('search', {'query': result.query, 'total_results': result.total_results})
        return result

    @mutator
    def cursor_up(self) -> None:
        self.cursor = max(self.cursor - 1, 0)

    @mutator
    def cursor_down(self) -> None:
        if self.visible:
            self.cursor = min(self.cursor + 1, len(self.visible) - 1)

    @guarded
    def toggle_cursor_selection(self) -> None:
        if not self.visible:
            return
        agent = self.visible[self.cursor]
        if agent.id in self.selected_ids:
            self.deselect_agent(agent.id)
        else:
            self.select_agent(agent.id)

    @guarded
    def cycle_sort(self) -> str:
        sort_by = self._next(LIST_SORT_KEYS, self.props['sort_by'])
        self.update(sort_by=sort_by)
        self.emit('sort_change', {'sort_by': sort_by})
        return sort_by

    @guarded
    def cycle_filter(self) -> str:
        filter_by = self._next(LIST_FILTERS, self.props['filter_by'])
        self.update(filter_by=filter_by)
        self.emit('filter_change', {'filter_by': filter_by})
        return filter_by

    @guarded
    def cycle_view_mode(self) -> str:
        view_mode = self._next(LIST_VIEW_MODES, self.props['view_mode'])
        self.update(view_mode=view_mode)
        self.emit('view_mode_change', {'view_mode': view_mode})
        return view_mode

    @guarded
    def refresh(self) -> None:
        self.render()
        self.emit('refresh', {})

    @guarded
    def get_stats(self) -> Dict[str, int]:
        return {
            'total_agents': len(self.agents),
            'active_agents': sum(1 for a in self.agents if a.status == 'running'),
            'idle_agents': sum(1 for a in self.agents if a.status == 'idle'),
            'error_agents': sum(1 for a in self.agents if a.status == 'error'),
            'selected_agents': len(self.selected_ids),
            'filtered_agents': len(self.visible),
        }

    def on_props_changed(self, old: Dict[str, Any], new: Dict[str, Any]) -> None:
        if old.get('agents') != new.get('agents'):
            self.agents = self._coerce_all(new['agents'])
            known = {a.id for a in self.agents}
            self.selected_ids = [i for i in self.selected_ids if i in known]
        selected = new.get('selected_agent_id')
        if selected != old.get('selected_agent_id') and selected and self._find(selected):
            if not new['multi_select']:
                self.selected_ids = []
            if selected not in self.selected_ids:
                self.selected_ids.append(selected)

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _next(options, current):
        index = options.index(current) if current in options else -1
        return options[(index + 1) % len(options)]

    def _find(self, agent_id: str) -> Optional[AgentItem]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def _coerce_all(self, raw_agents) -> List[AgentItem]:
        items: List[AgentItem] = []
        seen = set()
        for raw in raw_agents:
            try:
                item = self._coerce(raw)
            except ValueError as e:
                logger.warning(f"AgentList: skipping agent entry: {e}")
                continue
            if item.id in seen:
                logger.warning(f"AgentList: duplicate agent id {item.id!r}, keeping the first")
                continue
            seen.add(item.id)
            items.append(item)
        return items

    @staticmethod
    def _coerce(raw: Any) -> AgentItem:
        if isinstance(raw, AgentItem):
            return raw
        if not isinstance(raw, Mapping):
            raise ValueError(f"agent entry must be a mapping, got {type(raw).__name__}")
        agent_id = raw.get('id') or raw.get('name')
        if not agent_id:
            raise ValueError("agent entry needs an 'id' or a 'name'")
        status = raw.get('status', 'idle')
        if status not in STATUSES:
            logger.warning(f"AgentList: agent {agent_id!r} has unknown status {status!r}, using 'idle'")
            status = 'idle'
        last = raw.get('last_activity')
        metrics = raw.get('metrics')
        return AgentItem(
            id=str(agent_id),
            name=str(raw.get('name') or agent_id),
            type=str(raw.get('type') or 'agent'),
            status=status,
            description=str(raw.get('description') or ''),
            metrics=dict(metrics) if isinstance(metrics, Mapping) else {},
            last_activity=last if isinstance(last, datetime) else None,
        )

    def _apply_view(self) -> None:
        agents = list(self.agents)
        if self.search_query:
            needle = self.search_query.lower()
            agents = [
                a for a in agents
                if needle in a.name.lower() or needle in a.type.lower() or needle in a.description.lower()
            ]
        wanted = FILTER_STATUS.get(self.props.get('filter_by', 'all'))
        if wanted:
            agents = [a for a in agents if a.status == wanted]

        sort_by = self.props.get('sort_by', 'name')
        if sort_by in ('name', 'type', 'status'):
            agents.sort(key=lambda a: str(getattr(a, sort_by)).lower())
        elif sort_by == 'last_activity':
            agents.sort(key=lambda a: a.last_activity or datetime.min, reverse=True)
        elif sort_by == 'success_rate':
            agents.sort(key=lambda a: a.success_rate, reverse=True)

        limit = self.props.get('max_items')
        if limit:
            agents = agents[:int(limit)]
        self.visible = agents
        if self.cursor >= len(agents):
            self.cursor = max(len(agents) - 1, 0)
