import pytest

from tuikit.core.schema import SchemaRegistry
from tuikit.core.surface import Screen
from tuikit.core.timers import ManualScheduler
from tuikit.core.validator import ComponentValidator
from tuikit.schemas import register_builtin_schemas
from tuikit.settings import TuikitSettings


# ----------------------------------------------------------------------
# Runtime fixtures
# ----------------------------------------------------------------------
@pytest.fixture
def settings():
    """Settings isolated from the environment and any local .env file."""
    return TuikitSettings(_env_file=None, theme="dark", theme_file=None)


@pytest.fixture
def screen():
    """Headless 80x40 screen that captures frames into ``last_frame``."""
    return Screen.headless()


@pytest.fixture
def scheduler():
    """Virtual clock: nothing ticks until ``advance()`` is called."""
    return ManualScheduler()


@pytest.fixture
def registry():
    """Fresh registry with the built-in widget schemas."""
    reg = SchemaRegistry()
    register_builtin_schemas(reg)
    return reg


@pytest.fixture
def validator(registry):
    return ComponentValidator(registry)


@pytest.fixture
def make_widget(screen, scheduler, validator, settings):
    """Build widgets on the shared test runtime and clean them up afterwards."""
    created = []

    def factory(cls, props=None, **kwargs):
        kwargs.setdefault("screen", screen)
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("validator", validator)
        kwargs.setdefault("settings", settings)
        widget = cls(props, **kwargs)
        created.append(widget)
        return widget

    yield factory
    for widget in created:
        widget.cleanup()
