import typing

import pytest

from argonaut.setting import set_settings


@pytest.fixture(autouse=True)
def _argonaut_settings_fixture() -> typing.Generator[None, None, None]:
    """Reload the settings from the environment for each test."""
    set_settings(None)
    yield
    set_settings(None)
