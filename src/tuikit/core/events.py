"""
Per-widget event bus.

Listeners are kept per event name in registration order. ``emit`` delivers
synchronously to a snapshot of the listener list, so listeners added or
removed during delivery take effect from the next emit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WidgetEvent:
    """Represents an event emitted by a widget."""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'data': dict(self.data),
            'timestamp': self.timestamp.isoformat(),
            'source': self.source,
        }


Listener = Callable[[WidgetEvent], Any]


class EventBus:
    """Ordered listener registry owned by a single widget instance."""

    def __init__(self, owner: Optional[str] = None):
        self.owner = owner
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event_type: str, listener: Listener) -> Listener:
        if not callable(listener):
            raise TypeError(f"listener for '{event_type}' must be callable")
        self._listeners.setdefault(event_type, []).append(listener)
        return listener

    def off(self, event_type: str, listener: Listener) -> bool:
        """Remove the first matching listener; unknown listeners are ignored."""
        listeners = self._listeners.get(event_type)
        if not listeners:
            return False
        try:
            listeners.remove(listener)
        except ValueError:
            return False
        if not listeners:
            del self._listeners[event_type]
        return True

    def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> WidgetEvent:
        event = WidgetEvent(
            type=event_type,
            data=dict(data or {}),
            timestamp=datetime.now(),
            source=self.owner,
        )
        for listener in tuple(self._listeners.get(event_type, ())):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in {event_type} listener {getattr(listener, '__name__', listener)!r}: {e}")
        return event

    def clear(self, event_type: Optional[str] = None):
        if event_type is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event_type, None)

    def listener_count(self, event_type: Optional[str] = None) -> int:
        if event_type is None:
            return sum(len(v) for v in self._listeners.values())
        return len(self._listeners.get(event_type, ()))

    def has_listeners(self, event_type: str) -> bool:
        return bool(self._listeners.get(event_type))

    def event_types(self) -> List[str]:
        return list(self._listeners)
