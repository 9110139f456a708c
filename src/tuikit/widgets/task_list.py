"""TaskList widget: a checklist whose aggregate state drives the container style."""

import itertools
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..core.lifecycle import Widget, guarded, mutator
from ..core.style import (
    MUTED_BASE,
    SIZE_LAYERS,
    STATE_LAYERS,
    STATE_TEXT_LAYERS,
    STATUS_BORDER_LAYERS,
    STATUS_TEXT_LAYERS,
    TEXT_BASE,
    VARIANT_LAYERS,
    PartStyle,
    StyleSheet,
)
from ..schemas.agents import TASK_STATUSES
from .formatting import TASK_ICONS, progress_bar


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskItem:
    id: str
    title: str
    status: str = 'pending'
    progress: Optional[float] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


TASK_LIST_STYLES = StyleSheet('TaskList', {
    'container': PartStyle(
        base={'border': {'type': 'round'}},
        variant=VARIANT_LAYERS,
        size=SIZE_LAYERS,
        state=STATE_LAYERS,
        status=STATUS_BORDER_LAYERS,
    ),
    'summary': PartStyle(base=MUTED_BASE, status=STATUS_TEXT_LAYERS),
    'items': PartStyle(base=TEXT_BASE, state=STATE_TEXT_LAYERS),
})


class TaskList(Widget):
    component_name = 'TaskList'
    stylesheet = TASK_LIST_STYLES
    structural_props = ('show_progress',)

    def init_state(self) -> None:
        self._ids = itertools.count(1)
        self.tasks: List[TaskItem] = [self._coerce(raw) for raw in self.props['tasks']]
        self._all_complete_announced = self._all_complete()

    def mount(self) -> None:
        self.add_part('summary', when=self.props['show_progress'])
        self.add_part('items')

    def label_text(self) -> Optional[str]:
        return self.props.get('label') or self.props.get('title')

    def status_value(self) -> Optional[str]:
        if not self.tasks:
            return 'idle'
        statuses = {t.status for t in self.tasks}
        if 'failed' in statuses:
            return 'error'
        if statuses == {'completed'}:
            return 'completed'
        if 'in_progress' in statuses:
            return 'running'
        return 'idle'

    def render_summary(self) -> str:
        stats = self.get_stats()
        return f"{progress_bar(stats['percent_complete'])} {stats['completed']}/{stats['total']} done"

    def render_items(self) -> str:
        visible = [t for t in self.tasks if self.props['show_completed'] or t.status != 'completed']
        if not visible:
            return 'No tasks'
        lines = []
        for task in visible:
            line = f"{TASK_ICONS[task.status]} {task.title}"
            if task.status == 'in_progress' and task.progress is not None:
                line += f" ({int(task.progress)}%)"
            if task.status == 'failed' and task.error:
                line += f" - {task.error}"
            lines.append(line)
        return '\n'.join(lines)

    # -- operations --------------------------------------------------------

    @mutator
    def add_task(self, title: str, task_id: Optional[str] = None, status: str = 'pending') -> TaskItem:
        if status not in TASK_STATUSES:
            raise ValueError(f"unknown task status {status!r}")
        task = TaskItem(id=task_id or f"task-{next(self._ids)}", title=title, status=status)
        if self._find(task.id) is not None:
            raise ValueError(f"task {task.id!r} already exists")
        self.tasks.append(task)
        self._all_complete_announced = self._all_complete()
        self.emit('task_add', {'task_id': task.id, 'title': task.title})
        self.invoke_callback('on_task_add', task)
        return task

    @mutator
    def start_task(self, task_id: str, progress: Optional[float] = None) -> TaskItem:
        return self._set_status(task_id, 'in_progress', progress=progress)

    @mutator
    def complete_task(self, task_id: str) -> TaskItem:
        return self._set_status(task_id, 'completed', progress=100)

    @mutator
    def fail_task(self, task_id: str, reason: Optional[str] = None) -> TaskItem:
        return self._set_status(task_id, 'failed', error=reason)

    @mutator
    def remove_task(self, task_id: str) -> bool:
        task = self._find(task_id)
        if task is None:
            return False
        self.tasks.remove(task)
        self.emit('task_remove', {'task_id': task_id})
        self._check_all_complete()
        return True

    @mutator
    def clear_completed(self) -> int:
        before = len(self.tasks)
        self.tasks = [t for t in self.tasks if t.status != 'completed']
        self._all_complete_announced = False
        return before - len(self.tasks)

    @guarded
    def get_tasks(self) -> List[TaskItem]:
        return list(self.tasks)

    @guarded
    def get_stats(self) -> Dict[str, Any]:
        counts = {status: 0 for status in TASK_STATUSES}
        for task in self.tasks:
            counts[task.status] += 1
        total = len(self.tasks)
        return {
            'total': total,
            **counts,
            'percent_complete': (counts['completed'] / total * 100.0) if total else 0.0,
        }

    def on_props_changed(self, old: Dict[str, Any], new: Dict[str, Any]) -> None:
        if old.get('tasks') != new.get('tasks'):
            self.tasks = [self._coerce(raw) for raw in new['tasks']]
            self._all_complete_announced = self._all_complete()

    # -- internals ---------------------------------------------------------

    def _find(self, task_id: str) -> Optional[TaskItem]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def _set_status(self, task_id: str, status: str, **changes) -> TaskItem:
        task = self._find(task_id)
        if task is None:
            raise KeyError(f"unknown task {task_id!r}")
        if changes.get('progress') is not None:
            changes['progress'] = max(0, min(100, changes['progress']))
        updated = replace(task, status=status, **{k: v for k, v in changes.items() if v is not None})
        self.tasks[self.tasks.index(task)] = updated
        self.emit('task_update', {'task_id': task_id, 'old_status': task.status, 'new_status': status})
        self._check_all_complete()
        return updated

    def _all_complete(self) -> bool:
        return bool(self.tasks) and all(t.status == 'completed' for t in self.tasks)

    def _check_all_complete(self) -> None:
        done = self._all_complete()
        if done and not self._all_complete_announced:
            self.emit('all_complete', {'total': len(self.tasks)})
        self._all_complete_announced = done

    def _coerce(self, raw: Any) -> TaskItem:
        if isinstance(raw, TaskItem):
            return raw
        if isinstance(raw, str):
            return TaskItem(id=f"task-{next(self._ids)}", title=raw)
        if not isinstance(raw, Mapping):
            logger.warning(f"TaskList: unsupported task entry {raw!r}")
            return TaskItem(id=f"task-{next(self._ids)}", title=str(raw))
        status = raw.get('status', 'pending')
        if status not in TASK_STATUSES:
            logger.warning(f"TaskList: unknown task status {status!r}, using 'pending'")
            status = 'pending'
        progress = raw.get('progress')
        return TaskItem(
            id=str(raw.get('id') or f"task-{next(self._ids)}"),
            title=str(raw.get('title', '')),
            status=status,
            progress=progress if isinstance(progress, (int, float)) and not isinstance(progress, bool) else None,
            error=raw.get('error'),
        )
