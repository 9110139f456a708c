"""
Tests for the AgentLogs widget.
"""

import csv
import io
import json
import logging
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from tuikit.errors import PropsValidationError
from tuikit.widgets import AgentLogs, LogFilter


@pytest.fixture
def sample_logs():
    now = datetime.now()
    return [
        {'id': '1', 'level': 'info', 'message': 'Started build', 'agent_id': 'a1',
         'timestamp': now - timedelta(minutes=1)},
        {'id': '2', 'level': 'error', 'message': 'Build failed', 'agent_id': 'a1',
         'timestamp': now - timedelta(hours=2)},
        {'id': '3', 'level': 'warning', 'message': 'Slow disk', 'agent_id': 'a2',
         'timestamp': now - timedelta(days=2)},
        {'id': '4', 'level': 'debug', 'message': 'cache hit', 'agent_id': 'a2',
         'timestamp': now - timedelta(seconds=10)},
    ]


@pytest.fixture
def logs_widget(make_widget, sample_logs):
    return make_widget(AgentLogs, {'logs': sample_logs})


def ids(entries):
    return [entry.id for entry in entries]


class TestConstruction:
    """Props and normalization."""

    def test_logs_required(self, make_widget):
        with pytest.raises(PropsValidationError) as exc:
            make_widget(AgentLogs, {})
        assert exc.value.fields == ['logs']

    def test_newest_first(self, logs_widget):
        assert ids(logs_widget.get_filtered_logs()) == ['4', '1', '2', '3']

    def test_level_aliases(self, logs_widget):
        assert {e.id: e.level for e in logs_widget.logs}['3'] == 'warn'

    def test_unknown_level_becomes_info(self, make_widget, caplog):
        with caplog.at_level(logging.WARNING):
            widget = make_widget(AgentLogs, {'logs': [{'level': 'loud', 'message': 'hey'}]})
        assert widget.logs[0].level == 'info'
        assert "unknown log level 'loud'" in caplog.text

    def test_iso_timestamps(self, make_widget):
        widget = make_widget(AgentLogs, {'logs': [{'message': 'x', 'timestamp': '2024-01-02T03:04:05Z'}]})
        assert widget.logs[0].timestamp.tzinfo is None

    def test_millisecond_epoch_timestamps(self, logs_widget):
        entry = logs_widget.add_log({'message': 'hi', 'timestamp': 1700000000000})
        assert entry.timestamp == datetime.fromtimestamp(1700000000)
        assert entry.timestamp == logs_widget.add_log({'message': 'hi', 'timestamp': 1700000000}).timestamp

    @pytest.mark.parametrize('value', [1e300, -1e300, float('nan'), float('inf'), 'yesterday', '9999-99-99'])
    def test_unusable_timestamp_becomes_ingest_time(self, make_widget, scheduler, value, caplog):
        before = datetime.now()
        with caplog.at_level(logging.WARNING):
            widget = make_widget(AgentLogs, {'logs': [{'message': 'odd', 'timestamp': value}],
                                             'refresh_interval': 100})
            entry = widget.add_log({'message': 'odder', 'timestamp': value})
        after = datetime.now()
        assert before <= widget.logs[0].timestamp <= after
        assert before <= entry.timestamp <= after
        assert 'unparseable timestamp' in caplog.text
        scheduler.advance(300)
        assert widget.render_count == 5
        assert 'odder' in widget.parts['content'].content

    def test_empty(self, make_widget):
        widget = make_widget(AgentLogs, {'logs': []})
        assert widget.parts['content'].content == 'No logs available'

    def test_max_logs(self, make_widget, sample_logs):
        widget = make_widget(AgentLogs, {'logs': sample_logs, 'max_logs': 2})
        assert ids(widget.get_filtered_logs()) == ['4', '1']


class TestFiltering:
    """Filters and search."""

    def test_level_filter(self, logs_widget):
        listener = Mock()
        logs_widget.on('log_filter', listener)
        logs_widget.set_filter(level='error')
        assert ids(logs_widget.get_filtered_logs()) == ['2']
        assert listener.call_args[0][0].data['level'] == 'error'

    def test_invalid_level_rejected(self, logs_widget):
        with pytest.raises(ValueError):
            logs_widget.set_filter(level='loud')

    def test_time_range_filter(self, logs_widget):
        logs_widget.set_filter(time_range='1h')
        assert ids(logs_widget.get_filtered_logs()) == ['4', '1']

    def test_agent_and_message_filter(self, logs_widget):
        logs_widget.set_filter(LogFilter(agent_id='a1', message='fail'))
        assert ids(logs_widget.get_filtered_logs()) == ['2']

    def test_failing_custom_filter_ignored(self, logs_widget, caplog):
        def broken(entry):
            raise RuntimeError('filter exploded')

        with caplog.at_level(logging.ERROR):
            logs_widget.set_filter(custom=broken)
        assert len(logs_widget.get_filtered_logs()) == 4
        assert 'filter exploded' in caplog.text

    def test_search(self, logs_widget):
        listener = Mock()
        logs_widget.on('log_search', listener)
        result = logs_widget.search('build')
        assert ids(result.results) == ['1', '2']
        assert result.total_results == 2
        assert listener.call_args[0][0].data == {'query': 'build', 'total_results': 2}

    def test_search_without_hits(self, logs_widget):
        logs_widget.search('zzz')
        assert logs_widget.parts['content'].content == 'No logs found for "zzz"'

    def test_clear_filter(self, logs_widget):
        logs_widget.set_filter(level='error')
        logs_widget.search('x')
        logs_widget.clear_filter()
        assert len(logs_widget.get_filtered_logs()) == 4
        assert logs_widget.search_query == ''

    def test_filter_line(self, logs_widget):
        logs_widget.set_filter(level='warn')
        assert logs_widget.parts['filter'].content == 'Level: warn | Agent: all | Time: all | Search: none'


class TestOperations:
    """Adding, removing and exporting."""

    def test_add_log(self, logs_widget):
        listener, callback = Mock(), Mock()
        logs_widget.on('log_add', listener)
        logs_widget.update(on_log_add=callback)
        entry = logs_widget.add_log({'level': 'info', 'message': 'new one'})
        assert entry in logs_widget.logs
        assert listener.call_args[0][0].data['message'] == 'new one'
        callback.assert_called_once_with(entry)

    def test_follow_mode_selects_new_entry(self, make_widget, sample_logs):
        widget = make_widget(AgentLogs, {'logs': sample_logs, 'follow_mode': True, 'sort_by': 'message'})
        entry = widget.add_log({'message': 'Zebra'})
        assert widget.filtered[widget.selected_index] == entry

    def test_remove_and_clear(self, logs_widget):
        assert logs_widget.remove_log('1') is True
        assert logs_widget.remove_log('nope') is False
        logs_widget.clear_logs()
        assert logs_widget.get_stats()['total_logs'] == 0

    def test_export_json(self, logs_widget):
        exported = json.loads(logs_widget.export_logs('json'))
        assert [row['id'] for row in exported] == ['4', '1', '2', '3']

    def test_export_csv(self, logs_widget):
        rows = list(csv.reader(io.StringIO(logs_widget.export_logs('csv'))))
        assert rows[0] == ['id', 'timestamp', 'level', 'agent_id', 'message']
        assert len(rows) == 5

    def test_export_txt(self, logs_widget):
        lines = logs_widget.export_logs('txt').splitlines()
        assert lines[0].endswith('[DEBUG] [a2] cache hit')

    def test_export_unknown_format(self, logs_widget):
        with pytest.raises(ValueError):
            logs_widget.export_logs('xml')

    def test_stats(self, logs_widget):
        stats = logs_widget.get_stats()
        assert stats['total_logs'] == 4
        assert stats['logs_by_level'] == {'info': 1, 'error': 1, 'warn': 1, 'debug': 1}
        assert stats['logs_by_agent'] == {'a1': 2, 'a2': 2}
        assert logs_widget.parts['stats'].content == (
            'Total: 4 | Filtered: 4 | Debug: 1 | Info: 1 | Warn: 1 | Error: 1'
        )


class TestNavigation:
    """Modes, cycling and keys."""

    def test_cycle_display_mode(self, logs_widget):
        listener = Mock()
        logs_widget.on('display_mode_change', listener)
        assert logs_widget.cycle_display_mode() == 'table'
        assert logs_widget.parts['content'].content.startswith('┌')
        listener.assert_called_once()

    @pytest.mark.parametrize('mode', ['list', 'table', 'compact', 'detailed', 'timeline'])
    def test_every_display_mode_renders(self, make_widget, sample_logs, mode):
        widget = make_widget(AgentLogs, {'logs': sample_logs, 'display_mode': mode})
        assert 'cache hit' in widget.parts['content'].content

    def test_cycle_filter_level(self, logs_widget):
        assert logs_widget.cycle_filter_level() == 'debug'
        assert ids(logs_widget.get_filtered_logs()) == ['4']

    def test_cycled_level_reset_by_update(self, logs_widget):
        logs_widget.cycle_filter_level()
        assert logs_widget.props['filter_level'] == 'debug'
        logs_widget.update(filter_level='all')
        assert logs_widget.filter.level is None
        assert len(logs_widget.get_filtered_logs()) == 4

    def test_filter_props_follow_filter(self, logs_widget):
        logs_widget.set_filter(level='error', time_range='24h')
        assert logs_widget.get_config()['filter_level'] == 'error'
        assert logs_widget.get_config()['time_range'] == '24h'
        logs_widget.cycle_time_range()
        assert logs_widget.props['time_range'] == '7d'
        logs_widget.clear_filter()
        assert (logs_widget.props['filter_level'], logs_widget.props['time_range']) == ('all', 'all')

    def test_cycle_time_range(self, logs_widget):
        listener = Mock()
        logs_widget.on('time_range_change', listener)
        assert logs_widget.cycle_time_range() == '1h'
        assert listener.call_args[0][0].data == {'time_range': '1h'}

    def test_cycle_sort(self, logs_widget):
        assert logs_widget.cycle_sort() == 'level'
        assert logs_widget.props['sort_by'] == 'level'

    def test_keys(self, logs_widget, screen):
        screen.press('down')
        assert logs_widget.selected_index == 1
        screen.press('k')
        assert logs_widget.selected_index == 0
        screen.press('f')
        assert logs_widget.filter.level == 'debug'
        screen.press('escape')
        assert logs_widget.filter == LogFilter()

    def test_errors_colour_the_border(self, logs_widget):
        theme = logs_widget.theme
        assert logs_widget.styles['container']['border_fg'] == theme.token('colors.status.error')
        logs_widget.set_filter(level='info')
        assert logs_widget.styles['container']['border_fg'] == theme.token('colors.border.primary')
