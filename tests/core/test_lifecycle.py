"""
Tests for the widget lifecycle: construction, rendering, updates and teardown.
"""

import logging
from unittest.mock import Mock

import pytest

from tuikit.core.lifecycle import LifecycleState, Widget, guarded
from tuikit.core.schema import FieldKind, FieldSpec
from tuikit.core.style import STATUS_BORDER_LAYERS, VARIANT_LAYERS, PartStyle, StyleSheet
from tuikit.core.theme import resolve_theme
from tuikit.core.validator import ComponentValidator
from tuikit.errors import PropsValidationError, WidgetDestroyedError
from tuikit.schemas import BASE_SCHEMA


DEMO_SCHEMA = BASE_SCHEMA.extend(
    'Demo',
    fields=(
        FieldSpec('text', FieldKind.STRING, required=True),
        FieldSpec('footer', FieldKind.BOOLEAN, default=False),
        FieldSpec('status', FieldKind.ENUM, choices=('idle', 'running')),
    ),
)


class Demo(Widget):
    """Minimal widget recording hook calls."""

    component_name = 'Demo'
    stylesheet = StyleSheet('Demo', {
        'container': PartStyle(base={'border': {'type': 'line'}}, variant=VARIANT_LAYERS,
                               status=STATUS_BORDER_LAYERS),
        'body': PartStyle(base={'fg': 'white'}),
    })
    structural_props = ('footer',)

    def init_state(self):
        self.refreshes = 0
        self.cleaned = False
        self.changes = []
        self.keys_hit = []

    def mount(self):
        self.add_part('body')
        self.add_part('footer', when=self.props['footer'])

    def key_bindings(self):
        return [(('enter',), lambda: self.keys_hit.append('enter'))]

    def status_value(self):
        return self.props.get('status')

    def render_body(self):
        return self.props['text']

    def render_footer(self):
        return 'footer line'

    def on_refresh(self):
        self.refreshes += 1

    def on_props_changed(self, old, new):
        self.changes.append((old.get('text'), new.get('text')))

    def on_cleanup(self):
        self.cleaned = True

    @guarded
    def shout(self):
        return self.props['text'].upper()


class Exploding(Demo):
    def render_body(self):
        raise RuntimeError('kaboom')


class BrokenMount(Demo):
    def mount(self):
        self.add_part('body')
        raise RuntimeError('mount failed')


class BrokenView(Demo):
    def before_render(self):
        raise RuntimeError('view failed')


@pytest.fixture
def validator(registry):
    registry.register(DEMO_SCHEMA)
    return ComponentValidator(registry)


class TestConstruction:
    """Construction and validation."""

    def test_mounts_and_renders(self, make_widget, screen):
        demo = make_widget(Demo, {'text': 'hello', 'label': 'Demo'})
        assert demo.lifecycle is LifecycleState.IDLE
        assert set(demo.parts) == {'container', 'body'}
        assert demo.render_count == 1
        assert 'hello' in screen.last_frame
        assert 'Demo' in screen.last_frame

    def test_keyword_props(self, make_widget):
        demo = make_widget(Demo, text='kw')
        assert demo.props['text'] == 'kw'

    def test_invalid_props_abort_before_mount(self, make_widget, screen):
        with pytest.raises(PropsValidationError) as exc:
            make_widget(Demo, {'variant': 'neon'})
        assert exc.value.fields == ['variant', 'text']
        assert screen.elements == []

    def test_mount_failure_cleans_up(self, make_widget, screen, scheduler):
        with pytest.raises(RuntimeError):
            make_widget(BrokenMount, {'text': 'x', 'refresh_interval': 100})
        assert screen.elements == []
        assert scheduler.active_count == 0

    def test_deprecation_warned_once(self, make_widget, caplog):
        with caplog.at_level(logging.WARNING):
            demo = make_widget(Demo, {'text': 'x', 'color': 'error'})
            demo.update(text='y')
        assert caplog.text.count("'color' is deprecated") == 1
        assert demo.props['variant'] == 'error'


class TestRendering:
    """Styles and part renderers."""

    def test_styles_follow_axes(self, make_widget, settings):
        demo = make_widget(Demo, {'text': 'x', 'variant': 'error'})
        assert demo.styles['container']['border_fg'] == demo.theme.token('colors.border.error')
        demo.update(status='running')
        assert demo.styles['container']['border_fg'] == demo.theme.token('colors.status.running')

    def test_style_prop_is_custom_layer(self, make_widget):
        demo = make_widget(Demo, {'text': 'x', 'status': 'running', 'style': {'container': {'border_fg': 'magenta'}}})
        assert demo.styles['container']['border_fg'] == 'magenta'

    def test_radius_and_padding(self, make_widget):
        demo = make_widget(Demo, {'text': 'x', 'radius': True, 'padding': 2})
        assert demo.styles['container']['border'] == {'type': 'round'}
        assert demo.styles['container']['padding'] == 2

    def test_theme_prop(self, make_widget):
        demo = make_widget(Demo, {'text': 'x', 'theme': {'border': 'magenta'}})
        assert demo.styles['container']['border_fg'] == 'magenta'

    def test_render_error_uses_fallback(self, make_widget, screen, caplog):
        with caplog.at_level(logging.WARNING):
            demo = make_widget(Exploding, {'text': 'x'})
        assert demo.parts['body'].content == Widget.fallback_text
        assert 'kaboom' in caplog.text


class TestRenderDegradation:
    """Render-time failures are logged and never escape."""

    def test_malformed_padding_update(self, make_widget, scheduler, screen, caplog):
        demo = make_widget(Demo, {'text': 'padded', 'refresh_interval': 100})
        with caplog.at_level(logging.WARNING):
            demo.update(padding=['x'])
        assert demo.props['padding'] == ['x']
        assert demo.render_count == 2
        assert 'padded' in screen.last_frame
        assert 'Invalid padding' in caplog.text
        scheduler.advance(300)
        assert demo.render_count == 5

    def test_malformed_border_override(self, make_widget, screen):
        demo = make_widget(Demo, {'text': 'boxed', 'style': {'container': {'border': ['x']}}})
        assert demo.lifecycle is LifecycleState.IDLE
        assert demo.styles['container']['border'] == ['x']
        assert 'boxed' in screen.last_frame

    def test_before_render_failure(self, make_widget, screen, caplog):
        with caplog.at_level(logging.WARNING):
            demo = make_widget(BrokenView, {'text': 'shown'})
        assert demo.render_count == 1
        assert 'shown' in screen.last_frame
        assert 'view failed' in caplog.text

    def test_style_resolution_failure(self, make_widget, caplog):
        demo = make_widget(Demo, {'text': 'plain'})
        demo.resolve_part_style = Mock(side_effect=RuntimeError('no styles'))
        with caplog.at_level(logging.WARNING):
            demo.render()
        assert demo.styles == {'container': {}, 'body': {}}
        assert demo.parts['body'].content == 'plain'
        assert 'no styles' in caplog.text

    def test_screen_failure(self, make_widget, screen, scheduler, caplog):
        demo = make_widget(Demo, {'text': 'x', 'refresh_interval': 100})
        screen.render = Mock(side_effect=RuntimeError('terminal gone'))
        with caplog.at_level(logging.ERROR):
            demo.update(text='y')
            scheduler.advance(200)
        assert demo.render_count == 4
        assert demo.lifecycle is LifecycleState.IDLE
        assert 'terminal gone' in caplog.text


class TestSharedTheme:
    """Theme instances passed as props."""

    def test_theme_instance_is_shared(self, make_widget):
        theme = resolve_theme({'border': 'magenta'})
        first = make_widget(Demo, {'text': 'a', 'theme': theme})
        second = make_widget(Demo, {'text': 'b', 'theme': theme})
        assert first.theme is theme
        assert second.theme is theme
        assert first.styles['container']['border_fg'] == 'magenta'

    def test_theme_instance_wins_over_theme_file(self, make_widget, settings, tmp_path):
        path = tmp_path / 'theme.yaml'
        path.write_text('border: cyan\n')
        settings.theme_file = str(path)
        theme = resolve_theme({'border': 'magenta'})
        demo = make_widget(Demo, {'text': 'x', 'theme': theme})
        assert demo.theme is theme

    def test_theme_must_be_theme_or_mapping(self, make_widget):
        with pytest.raises(PropsValidationError) as excinfo:
            make_widget(Demo, {'text': 'x', 'theme': 5})
        assert excinfo.value.fields == ['theme']
        assert 'expected theme, got number' in str(excinfo.value)


class TestUpdates:
    """update() semantics."""

    def test_update_merges_and_rerenders(self, make_widget, screen):
        demo = make_widget(Demo, {'text': 'before'})
        props = demo.update(text='after')
        assert props['text'] == 'after'
        assert demo.changes == [('before', 'after')]
        assert demo.render_count == 2
        assert 'after' in screen.last_frame

    def test_invalid_update_leaves_props(self, make_widget):
        demo = make_widget(Demo, {'text': 'keep'})
        with pytest.raises(PropsValidationError):
            demo.update(size='huge')
        assert demo.props['size'] == 'medium'
        assert demo.props['text'] == 'keep'

    def test_update_without_revalidation(self, make_widget, settings):
        settings.revalidate_on_update = False
        demo = make_widget(Demo, {'text': 'x'})
        demo.update(size='huge')
        assert demo.props['size'] == 'huge'

    def test_structural_prop_remounts(self, make_widget):
        demo = make_widget(Demo, {'text': 'x'})
        demo.update(footer=True)
        assert 'footer' in demo.parts
        assert demo.parts['footer'].content == 'footer line'
        demo.update(footer=False)
        assert 'footer' not in demo.parts

    def test_setters(self, make_widget):
        demo = make_widget(Demo, {'text': 'x'})
        demo.set_variant('success')
        demo.set_size('large')
        demo.set_state('focus')
        config = demo.get_config()
        assert (config['variant'], config['size'], config['state']) == ('success', 'large', 'focus')
        assert config['component'] == 'Demo'


class TestRefresh:
    """Periodic refresh."""

    def test_refresh_ticks_rerender(self, make_widget, scheduler):
        demo = make_widget(Demo, {'text': 'x', 'refresh_interval': 1000})
        scheduler.advance(3000)
        assert demo.refreshes == 3
        assert demo.render_count == 4

    def test_set_refresh_interval(self, make_widget, scheduler):
        demo = make_widget(Demo, {'text': 'x'})
        assert scheduler.active_count == 0
        demo.set_refresh_interval(500)
        assert scheduler.active_count == 1
        demo.set_refresh_interval(None)
        assert scheduler.active_count == 0

    def test_refresh_error_does_not_stop_timer(self, make_widget, scheduler):
        demo = make_widget(Demo, {'text': 'x', 'refresh_interval': 100})
        demo.on_refresh = Mock(side_effect=RuntimeError('refresh failed'))
        scheduler.advance(300)
        assert demo.on_refresh.call_count == 3
        assert demo.render_count == 4


class TestEventsAndInput:
    """Events and key bindings."""

    def test_listener_receives_events(self, make_widget):
        demo = make_widget(Demo, {'text': 'x'})
        listener = Mock()
        demo.on('custom', listener)
        event = demo.emit('custom', {'n': 1})
        listener.assert_called_once_with(event)
        assert demo.off('custom', listener) is True

    def test_keys_dispatch(self, make_widget, screen):
        demo = make_widget(Demo, {'text': 'x'})
        screen.press('enter')
        assert demo.keys_hit == ['enter']

    def test_keys_disabled(self, make_widget, screen):
        demo = make_widget(Demo, {'text': 'x', 'keys': False})
        assert screen.press('enter') is False
        assert demo.keys_hit == []

    def test_keys_rebound_on_update(self, make_widget, screen):
        demo = make_widget(Demo, {'text': 'x'})
        demo.update(keys=False)
        assert screen.press('enter') is False
        demo.update(keys=True)
        assert screen.press('enter') is True
        assert demo.keys_hit == ['enter']

    def test_mouse_rebound_on_update(self, make_widget):
        demo = make_widget(Demo, {'text': 'x'})
        listener = Mock()
        demo.on('click', listener)
        demo.root.click()
        listener.assert_not_called()
        demo.update(mouse=True)
        demo.root.click()
        listener.assert_called_once()
        demo.update(mouse=False)
        demo.root.click()
        listener.assert_called_once()

    def test_click_requires_mouse(self, make_widget):
        quiet = make_widget(Demo, {'text': 'x'})
        loud = make_widget(Demo, {'text': 'x', 'mouse': True})
        quiet_listener, loud_listener = Mock(), Mock()
        quiet.on('click', quiet_listener)
        loud.on('click', loud_listener)
        quiet.root.click()
        loud.root.click()
        quiet_listener.assert_not_called()
        loud_listener.assert_called_once()

    def test_callback_errors_logged(self, make_widget, caplog):
        demo = make_widget(Demo, {'text': 'x', 'on_thing': Mock(side_effect=ValueError('cb failed'))})
        with caplog.at_level(logging.ERROR):
            assert demo.invoke_callback('on_thing') is None
        assert 'cb failed' in caplog.text


class TestCleanup:
    """Teardown and post-cleanup behaviour."""

    def test_cleanup_releases_everything(self, make_widget, screen, scheduler):
        demo = make_widget(Demo, {'text': 'x', 'refresh_interval': 100})
        demo.on('custom', Mock())
        demo.cleanup()
        assert demo.destroyed
        assert demo.cleaned
        assert scheduler.active_count == 0
        assert demo.events.listener_count() == 0
        assert screen.elements == []

    def test_cleanup_is_idempotent(self, make_widget):
        demo = make_widget(Demo, {'text': 'x'})
        demo.cleanup()
        demo.on_cleanup = Mock()
        demo.cleanup()
        demo.on_cleanup.assert_not_called()

    def test_no_render_after_cleanup(self, make_widget, scheduler, screen):
        demo = make_widget(Demo, {'text': 'x', 'refresh_interval': 100})
        demo.cleanup()
        frames = screen.render_count
        scheduler.advance(1000)
        demo.render()
        assert demo.render_count == 1
        assert screen.render_count == frames

    def test_public_calls_after_cleanup_raise(self, make_widget):
        demo = make_widget(Demo, {'text': 'x'})
        demo.cleanup()
        with pytest.raises(WidgetDestroyedError, match=r'Demo\.update\(\) called after cleanup'):
            demo.update(text='y')
        with pytest.raises(WidgetDestroyedError):
            demo.shout()
        with pytest.raises(WidgetDestroyedError):
            demo.on('custom', Mock())
        assert demo.emit('custom') is None

    def test_cleanup_step_failure_continues(self, make_widget, scheduler, caplog):
        demo = make_widget(Demo, {'text': 'x', 'refresh_interval': 100})
        demo.events.clear = Mock(side_effect=RuntimeError('clear failed'))
        with caplog.at_level(logging.ERROR):
            demo.cleanup()
        assert demo.destroyed
        assert scheduler.active_count == 0
        assert 'clear failed' in caplog.text

    def test_context_manager(self, make_widget):
        with make_widget(Demo, {'text': 'x'}) as demo:
            assert not demo.destroyed
        assert demo.destroyed
