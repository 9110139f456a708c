"""
Tests for the per-widget event bus.
"""

import logging
from datetime import datetime
from unittest.mock import Mock

import pytest

from tuikit.core.events import EventBus, WidgetEvent


@pytest.fixture
def bus():
    return EventBus(owner='AgentStatus')


class TestEventBus:
    """Registration and delivery."""

    def test_listeners_called_in_registration_order(self, bus):
        calls = []
        bus.on('status_change', lambda e: calls.append('first'))
        bus.on('status_change', lambda e: calls.append('second'))
        bus.emit('status_change')
        assert calls == ['first', 'second']

    def test_event_payload(self, bus):
        listener = Mock()
        bus.on('status_change', listener)
        before = datetime.now()
        event = bus.emit('status_change', {'old_status': 'idle', 'new_status': 'running'})
        listener.assert_called_once_with(event)
        assert isinstance(event, WidgetEvent)
        assert event.type == 'status_change'
        assert event.data == {'old_status': 'idle', 'new_status': 'running'}
        assert event.source == 'AgentStatus'
        assert before <= event.timestamp <= datetime.now()

    def test_data_is_copied(self, bus):
        payload = {'n': 1}
        event = bus.emit('tick', payload)
        payload['n'] = 2
        assert event.data == {'n': 1}

    def test_other_types_not_notified(self, bus):
        listener = Mock()
        bus.on('a', listener)
        bus.emit('b')
        listener.assert_not_called()

    def test_off_removes_listener(self, bus):
        listener = Mock()
        bus.on('a', listener)
        assert bus.off('a', listener) is True
        bus.emit('a')
        listener.assert_not_called()

    def test_off_unknown_listener_is_noop(self, bus):
        bus.on('a', Mock())
        assert bus.off('a', Mock()) is False
        assert bus.off('missing', Mock()) is False
        assert bus.listener_count('a') == 1

    def test_non_callable_rejected(self, bus):
        with pytest.raises(TypeError):
            bus.on('a', 'not callable')

    def test_listener_error_isolated(self, bus, caplog):
        after = Mock()

        def broken(event):
            raise RuntimeError('listener blew up')

        bus.on('a', broken)
        bus.on('a', after)
        with caplog.at_level(logging.ERROR):
            bus.emit('a')
        after.assert_called_once()
        assert 'listener blew up' in caplog.text

    def test_listener_added_during_emit_waits_for_next(self, bus):
        late = Mock()

        def adder(event):
            bus.on('a', late)

        bus.on('a', adder)
        bus.emit('a')
        late.assert_not_called()
        bus.emit('a')
        late.assert_called_once()

    def test_listener_removed_during_emit_still_gets_current(self, bus):
        second = Mock()

        def remover(event):
            bus.off('a', second)

        bus.on('a', remover)
        bus.on('a', second)
        bus.emit('a')
        second.assert_called_once()
        bus.emit('a')
        second.assert_called_once()

    def test_clear(self, bus):
        bus.on('a', Mock())
        bus.on('b', Mock())
        bus.clear('a')
        assert bus.event_types() == ['b']
        bus.clear()
        assert bus.listener_count() == 0
        assert not bus.has_listeners('b')

    def test_to_dict(self, bus):
        data = bus.emit('a', {'x': 1}).to_dict()
        assert data['type'] == 'a'
        assert data['data'] == {'x': 1}
        assert data['source'] == 'AgentStatus'
        datetime.fromisoformat(data['timestamp'])
