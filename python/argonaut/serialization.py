"""
Utilities to serialize DTOs to plain values and JSON.
"""

from __future__ import annotations

import datetime
import decimal
import json
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping

import numpy as np

from .errors import SerializationError


class Serializable(ABC):
    """Base of values serialized with a depth bound, i.e. DTOs."""

    @abstractmethod
    def to_dict(self, depth: int | None = None) -> dict[str, Any]: ...


def cast_output_value(value: Any, depth: int) -> Any:
    """
    Convert a field value to a plain value.

    Nested DTOs are serialized with `depth`, which the caller has already
    decremented for the current nesting level. Collections keep the same depth.
    """
    if isinstance(value, Serializable):
        return value.to_dict(depth)
    if isinstance(value, Mapping):
        return {k: cast_output_value(v, depth) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [cast_output_value(v, depth) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    if isinstance(value, (uuid.UUID, decimal.Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json(value: Any, **options: Any) -> str:
    """
    Encode a plain value to JSON text. `options` are passed to `json.dumps()`.
    """
    options.setdefault("default", _json_default)
    options.setdefault("allow_nan", False)
    try:
        return json.dumps(value, **options)
    except (TypeError, ValueError, OverflowError, RecursionError) as e:
        raise SerializationError(f"JSON error: {e}") from e
