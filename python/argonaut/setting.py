"""
Library level settings.
"""

import dataclasses
import os
import threading
import warnings
from typing import Callable, Self, TypeVar

T = TypeVar("T")


def _load_field(
    target: dict[str, object],
    name: str,
    env_name: str,
    parse: Callable[[str], T] | None = None,
) -> None:
    value = os.getenv(env_name)
    if value is None:
        return
    if parse is None:
        target[name] = value
        return
    try:
        target[name] = parse(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid value for environment variable {env_name}: {value!r}"
        ) from e


@dataclasses.dataclass
class Settings:
    """Settings for Argonaut.

    - serialization_depth: Default depth for `to_dict()` when none is given.
    - validation_message_prefix: Prefix of the messages reported for failed
      validation rules, e.g. `validation.required`.
    """

    serialization_depth: int = 3
    validation_message_prefix: str = "validation."

    @classmethod
    def from_env(cls) -> Self:
        """Load settings from environment variables."""
        kwargs: dict[str, object] = dict()
        _load_field(
            kwargs, "serialization_depth", "ARGONAUT_SERIALIZATION_DEPTH", parse=int
        )
        _load_field(
            kwargs,
            "validation_message_prefix",
            "ARGONAUT_VALIDATION_MESSAGE_PREFIX",
        )
        return cls(**kwargs)  # type: ignore[arg-type]


_settings: Settings | None = None
_settings_explicit = False
_settings_lock: threading.Lock = threading.Lock()


def get_settings() -> Settings:
    """
    Get the current settings.

    They are loaded from the environment on first use unless `set_settings()`
    was called before.
    """
    global _settings  # pylint: disable=global-statement
    with _settings_lock:
        if _settings is None:
            _settings = Settings.from_env()
        return _settings


def set_settings(settings: Settings | None) -> None:
    """
    Replace the current settings. Passing `None` makes the next `get_settings()`
    reload them from the environment.
    """
    global _settings, _settings_explicit  # pylint: disable=global-statement
    with _settings_lock:
        if settings is not None and _settings_explicit:
            warnings.warn(
                f"Setting new settings will override the previous ones {_settings}."
            )
        _settings = settings
        _settings_explicit = settings is not None
