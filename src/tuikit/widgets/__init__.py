"""Built-in widgets."""

from .agent_list import AgentItem, AgentList, AgentSearchResult
from .agent_logs import AgentLogs, LogEntry, LogFilter, LogSearchResult
from .agent_status import AgentStatus, StatusHistoryEntry
from .task_list import TaskItem, TaskList

WIDGETS = {
    AgentStatus.component_name: AgentStatus,
    AgentLogs.component_name: AgentLogs,
    AgentList.component_name: AgentList,
    TaskList.component_name: TaskList,
}

__all__ = [
    "AgentItem",
    "AgentList",
    "AgentLogs",
    "AgentSearchResult",
    "AgentStatus",
    "LogEntry",
    "LogFilter",
    "LogSearchResult",
    "StatusHistoryEntry",
    "TaskItem",
    "TaskList",
    "WIDGETS",
]
