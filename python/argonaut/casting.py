"""
Utilities to cast raw field values into the types declared by DTO cast directives.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any, Mapping

import numpy as np

from .errors import ArgonautError, InvalidInput
from .typing import (
    AnalyzedArrayOfModelsCast,
    AnalyzedCast,
    AnalyzedCollectionOfModelsCast,
    AnalyzedScalarCast,
    AnalyzedSingleModelCast,
    Collection,
    analyze_cast,
    is_sequence_value,
    is_structured_value,
)

_logger = logging.getLogger(__name__)

_ANALYZED_CAST_TYPES = (
    AnalyzedScalarCast,
    AnalyzedSingleModelCast,
    AnalyzedArrayOfModelsCast,
    AnalyzedCollectionOfModelsCast,
)


def _to_analyzed_cast(directive: Any) -> AnalyzedCast:
    if isinstance(directive, _ANALYZED_CAST_TYPES):
        return directive
    return analyze_cast(directive)


def nested_assembly_target(cast: AnalyzedCast) -> tuple[type, bool] | None:
    """
    The target type of a cast eligible for nested assembly, and whether the cast
    produces multiple items. `None` if the cast doesn't name a model.
    """
    if isinstance(cast, AnalyzedSingleModelCast):
        return cast.target_type, False
    if isinstance(cast, (AnalyzedArrayOfModelsCast, AnalyzedCollectionOfModelsCast)):
        return cast.target_type, True
    return None


def assemble_nested_value(
    assembler_cls: Any, target_type: type, value: Any, is_multi: bool
) -> Any:
    """
    Route the structured parts of `value` through `assembler_cls.assemble()`.

    Items that are scalars, or already instances of the target, are kept as is.
    A multi value that isn't a sequence is returned untouched so the regular cast
    can report it.
    """

    def assemble_item(item: Any) -> Any:
        if isinstance(item, target_type) or not is_structured_value(item):
            return item
        return assembler_cls.assemble(item, target_type)

    if not is_multi:
        return assemble_item(value)
    if is_sequence_value(value):
        return [assemble_item(item) for item in value]
    return value


def cast_input_value(
    field_name: str,
    value: Any,
    casts: Mapping[str, Any],
    nested_assemblers: Mapping[str, Any] | None = None,
) -> Any:
    """
    Cast a raw value assigned to `field_name`.

    Args:
        field_name: The field being assigned.
        value: The raw value.
        casts: Cast directives (raw or analyzed) keyed by field name.
        nested_assemblers: Assembler classes keyed by field name. They build the
            nested models of the field instead of the models' constructors.

    Returns:
        The casted value.
    """
    directive = casts.get(field_name)
    if directive is None:
        return value
    cast = _to_analyzed_cast(directive)

    assembler_cls = (nested_assemblers or {}).get(field_name)
    if assembler_cls is not None:
        nested_target = nested_assembly_target(cast)
        if nested_target is not None:
            target_type, is_multi = nested_target
            _logger.debug(
                "Assembling field `%s` to %s with %s",
                field_name,
                target_type.__qualname__,
                assembler_cls.__qualname__,
            )
            value = assemble_nested_value(
                assembler_cls, target_type, value, is_multi
            )

    if isinstance(cast, AnalyzedCollectionOfModelsCast):
        return cast_to_collection_model(field_name, cast.target_type, value)
    if isinstance(cast, AnalyzedArrayOfModelsCast):
        return cast_to_array_of_models(field_name, cast.target_type, value)
    if isinstance(cast, AnalyzedSingleModelCast):
        return cast_to_single_model(cast.target_type, value)
    return value


def _construct(target_type: type, value: Any) -> Any:
    if isinstance(value, target_type):
        return value
    try:
        return target_type(value)
    except ArgonautError:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidInput(
            f"Cannot cast {value!r} to {target_type.__qualname__}: {e}"
        ) from e


def cast_to_collection_model(
    field_name: str, target_type: type, value: Any
) -> Collection:
    if not is_sequence_value(value):
        raise InvalidInput(
            f"`{field_name}` value {value!r} must be a sequence to cast to a collection."
        )
    return Collection(_construct(target_type, item) for item in value)


def cast_to_array_of_models(field_name: str, target_type: type, value: Any) -> list[Any]:
    if not is_sequence_value(value):
        raise InvalidInput(
            f"`{field_name}` value {value!r} must be a sequence to cast to a list of "
            f"{target_type.__qualname__}."
        )
    return [_construct(target_type, item) for item in value]


def cast_to_single_model(target_type: type, value: Any) -> Any:
    if issubclass(target_type, (datetime.date, datetime.time)):
        return cast_to_datetime(target_type, value)
    return _construct(target_type, value)


def cast_to_datetime(target_type: type, value: Any) -> Any:
    """
    Cast to a `datetime`, `date` or `time` type. Values that are already one of
    these are kept as is.
    """
    if isinstance(value, (datetime.date, datetime.time)):
        return value

    if isinstance(value, np.datetime64):
        value = value.astype("datetime64[us]").item()
        if not issubclass(target_type, datetime.datetime):
            return value.date() if issubclass(target_type, datetime.date) else value.time()
        return value

    try:
        if isinstance(value, str):
            if issubclass(target_type, (datetime.datetime, datetime.time)):
                return target_type.fromisoformat(value)
            parsed = datetime.datetime.fromisoformat(value)
            return target_type(parsed.year, parsed.month, parsed.day)

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if issubclass(target_type, datetime.datetime):
                return target_type.fromtimestamp(value, tz=datetime.timezone.utc)
            parsed = datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
            if issubclass(target_type, datetime.time):
                return parsed.timetz()
            return target_type(parsed.year, parsed.month, parsed.day)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidInput(
            f"Cannot cast {value!r} to {target_type.__qualname__}: {e}"
        ) from e

    raise InvalidInput(
        f"Cannot cast value of type {type(value).__qualname__} to "
        f"{target_type.__qualname__}"
    )
