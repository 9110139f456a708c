"""
Tests for theme token trees and theme files.
"""

import pytest

from tuikit.core.theme import (
    COLOR_SCHEMES,
    Theme,
    available_themes,
    base_theme,
    load_theme,
    resolve_theme,
    scheme_as_dict,
)
from tuikit.errors import ThemeError


class TestTheme:
    """Token lookup and immutability."""

    def test_token_lookup(self):
        theme = base_theme('dark')
        assert theme.token('colors.status.running') == COLOR_SCHEMES['dark'].success
        assert theme.color('border.focus') == COLOR_SCHEMES['dark'].accent
        assert theme.token('colors.nope.deeper') is None
        assert theme.token('colors.nope', 'fallback') == 'fallback'

    def test_tokens_are_read_only(self):
        theme = base_theme('dark')
        with pytest.raises(TypeError):
            theme.tokens['colors']['text'] = {}

    def test_base_themes_are_shared(self):
        assert base_theme('light') is base_theme('light')

    def test_unknown_base_falls_back(self, caplog):
        assert base_theme('neon') is base_theme('dark')
        assert "Unknown theme 'neon'" in caplog.text

    def test_component_style_is_fresh(self):
        theme = resolve_theme({'components': {'AgentStatus': {'text': {'bold': True}}}})
        first = theme.component_style('AgentStatus', 'text')
        first['bold'] = False
        assert theme.component_style('AgentStatus', 'text') == {'bold': True}
        assert theme.component_style('AgentStatus', 'icon') == {}

    def test_with_overrides_leaves_original(self):
        theme = base_theme('dark')
        other = theme.with_overrides({'colors': {'status': {'running': 'magenta'}}})
        assert other.token('colors.status.running') == 'magenta'
        assert theme.token('colors.status.running') != 'magenta'
        assert other.token('colors.status.paused') == theme.token('colors.status.paused')

    def test_equality(self):
        assert Theme(base_theme('dark').to_dict()) == base_theme('dark')
        assert base_theme('dark') != base_theme('light')


class TestResolveTheme:
    """Building themes from override mappings."""

    def test_none_gives_base(self):
        assert resolve_theme(None, base='light') is base_theme('light')

    def test_base_key_selects_palette(self):
        assert resolve_theme({'base': 'light'}).name == 'light'

    def test_flat_palette_override(self):
        theme = resolve_theme({'accent': 'magenta'})
        assert theme.token('colors.border.focus') == 'magenta'
        assert theme.token('colors.text.accent') == 'magenta'

    def test_deep_override(self):
        theme = resolve_theme({'colors': {'text': {'primary': 'white'}}}, base='light')
        assert theme.token('colors.text.primary') == 'white'
        assert theme.token('colors.text.muted') == COLOR_SCHEMES['light'].muted

    def test_theme_instance_passed_through(self):
        theme = base_theme('monochrome')
        assert resolve_theme(theme) is theme

    def test_available_themes(self):
        assert available_themes() == ['dark', 'high_contrast', 'light', 'monochrome']
        assert scheme_as_dict('dark')['name'] == 'dark'


class TestLoadTheme:
    """YAML theme files."""

    def test_load(self, tmp_path):
        path = tmp_path / 'theme.yaml'
        path.write_text('base: light\naccent: magenta\ncomponents:\n  TaskList:\n    items:\n      italic: true\n')
        theme = load_theme(str(path))
        assert theme.name == 'light'
        assert theme.token('colors.border.accent') == 'magenta'
        assert theme.component_style('TaskList', 'items') == {'italic': True}

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        assert load_theme(str(path), base='dark') == base_theme('dark')

    def test_missing_file(self, tmp_path):
        with pytest.raises(ThemeError):
            load_theme(str(tmp_path / 'missing.yaml'))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text('colors: [unclosed\n')
        with pytest.raises(ThemeError):
            load_theme(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n')
        with pytest.raises(ThemeError):
            load_theme(str(path))
