"""
Rule-based validation of DTO data.

Rules are declared per field as lists of rule strings (or a single
`|`-separated string), e.g. `{"email": ["required", "email", "max:255"]}`.
Each rules map is compiled once into a pydantic model which validates the data.

Supported rules: required, nullable, sometimes, string, integer, numeric,
boolean, array, collection, email, date, min:N, max:N.

As in Laravel, `integer` accepts integers and integer strings such as "42",
and `boolean` accepts True, False, 0, 1, "0" and "1". `string` is strict.
"""

from __future__ import annotations

import dataclasses
import datetime
import functools
import logging
import operator
import re
import threading
from typing import Annotated, Any, Mapping, NamedTuple, Sequence

import pydantic
from pydantic import (
    AfterValidator,
    BeforeValidator,
    Field,
    StrictStr,
)
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from .setting import get_settings

_logger = logging.getLogger(__name__)

_FIELD_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_INTEGER_STRING_PATTERN = re.compile(r"^\s*[+-]?\d+\s*$")

_TYPE_RULES = frozenset(
    ["string", "integer", "numeric", "boolean", "array", "collection", "email", "date"]
)
_FLAG_RULES = frozenset(["required", "nullable", "sometimes"])
_SIZE_RULES = frozenset(["min", "max"])

# pydantic error types reported under the rule that triggers them.
_ERROR_TYPE_RULES = {
    "missing": "required",
    "required": "required",
    "string_type": "string",
    "int_type": "integer",
    "int_parsing": "integer",
    "int_from_float": "integer",
    "float_type": "numeric",
    "float_parsing": "numeric",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "list_type": "array",
    "dict_type": "array",
    "string_too_short": "min",
    "too_short": "min",
    "greater_than_equal": "min",
    "string_too_long": "max",
    "too_long": "max",
    "less_than_equal": "max",
    "datetime_type": "date",
    "datetime_parsing": "date",
    "datetime_from_date_parsing": "date",
    "date_type": "date",
    "date_parsing": "date",
    "date_from_datetime_parsing": "date",
    "date_from_datetime_inexact": "date",
}


class RuleDefinitionError(ValueError):
    """Exception raised for rules that cannot be compiled."""


class ValidationResult(NamedTuple):
    passed: bool
    errors: dict[str, list[str]]


def validate_rule_field_name(name: str) -> str | None:
    """
    Validate a field name a rule list is declared for.

    Returns:
        None if valid, error message string if invalid
    """
    if not name:
        return "Rule field name cannot be empty"
    if not _FIELD_NAME_PATTERN.match(name):
        return (
            f"Rule field name '{name}' must start with a letter or underscore and "
            f"contain only letters, digits, and underscores"
        )
    return None


@dataclasses.dataclass
class _FieldRules:
    name: str
    rules: tuple[str, ...]
    type_rule: str | None = None
    required: bool = False
    nullable: bool = False
    sometimes: bool = False
    min: float | None = None
    max: float | None = None


def _parse_size(field_name: str, rule: str, arg: str) -> float:
    try:
        return float(arg) if "." in arg else int(arg)
    except ValueError as e:
        raise RuleDefinitionError(
            f"Invalid argument for rule `{rule}` of field `{field_name}`: {arg!r}"
        ) from e


def _parse_field_rules(field_name: str, rules: tuple[str, ...]) -> _FieldRules:
    if error := validate_rule_field_name(field_name):
        raise RuleDefinitionError(error)

    result = _FieldRules(name=field_name, rules=rules)
    for rule in rules:
        name, _, arg = rule.partition(":")
        if name in _FLAG_RULES:
            setattr(result, name, True)
        elif name in _TYPE_RULES:
            # An email is a string.
            if {result.type_rule, name} == {"string", "email"}:
                result.type_rule = "email"
            elif result.type_rule is None or result.type_rule == name:
                result.type_rule = name
            else:
                raise RuleDefinitionError(
                    f"Conflicting type rules for field `{field_name}`: "
                    f"{result.type_rule}, {name}"
                )
        elif name in _SIZE_RULES:
            setattr(result, name, _parse_size(field_name, name, arg))
        else:
            raise RuleDefinitionError(
                f"Unsupported validation rule `{rule}` for field `{field_name}`"
            )

    if (result.min is not None or result.max is not None) and result.type_rule in (
        None,
        "boolean",
        "date",
    ):
        raise RuleDefinitionError(
            f"Rules min/max of field `{field_name}` need a string, numeric or array rule"
        )
    return result


def _check_required(value: Any) -> Any:
    if (
        value is None
        or (isinstance(value, str) and not value.strip())
        or (isinstance(value, (list, tuple, dict, set)) and not value)
    ):
        raise PydanticCustomError("required", "The field is required.")
    return value


def _check_email(value: str) -> str:
    validate_email(value)
    return value


def _check_integer(value: Any) -> Any:
    if isinstance(value, str) and _INTEGER_STRING_PATTERN.match(value):
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise PydanticCustomError("int_type", "The field must be an integer.")
    return value


def _check_boolean(value: Any) -> Any:
    if isinstance(value, bool) or value in ("0", "1"):
        return value
    if type(value) is int and value in (0, 1):  # pylint: disable=unidiomatic-typecheck
        return value
    raise PydanticCustomError("bool_type", "The field must be true or false.")


def _field_annotation(field_rules: _FieldRules) -> Any:
    size: dict[str, Any] = {}
    if field_rules.type_rule in ("integer", "numeric"):
        if field_rules.min is not None:
            size["ge"] = field_rules.min
        if field_rules.max is not None:
            size["le"] = field_rules.max
    else:
        if field_rules.min is not None:
            size["min_length"] = int(field_rules.min)
        if field_rules.max is not None:
            size["max_length"] = int(field_rules.max)

    variants: list[Any]
    match field_rules.type_rule:
        case "string":
            variants = [StrictStr]
        case "email":
            variants = [Annotated[StrictStr, AfterValidator(_check_email)]]
        case "integer":
            variants = [Annotated[int, BeforeValidator(_check_integer)]]
        case "numeric":
            variants = [float]
        case "boolean":
            variants = [Annotated[Any, BeforeValidator(_check_boolean)]]
        case "array":
            variants = [list[Any], dict[str, Any]]
        case "collection":
            variants = [list[Any]]
        case "date":
            variants = [datetime.datetime, datetime.date]
        case _:
            variants = [Any]

    if size:
        variants = [Annotated[variant, Field(**size)] for variant in variants]
    annotation = functools.reduce(operator.or_, variants)
    if field_rules.nullable:
        annotation = annotation | None
    if field_rules.required:
        annotation = Annotated[annotation, BeforeValidator(_check_required)]
    return annotation


def _freeze_rules(
    rules: Mapping[str, Sequence[str] | str],
) -> tuple[tuple[str, tuple[str, ...]], ...]:
    frozen = []
    for field_name, field_rules in rules.items():
        if isinstance(field_rules, str):
            field_rules = [r for r in field_rules.split("|") if r]
        frozen.append((field_name, tuple(field_rules)))
    return tuple(frozen)


@dataclasses.dataclass
class _CompiledRules:
    model: type[pydantic.BaseModel]
    fields: dict[str, _FieldRules]


@functools.lru_cache(maxsize=256)
def _compile_rules(
    frozen_rules: tuple[tuple[str, tuple[str, ...]], ...],
) -> _CompiledRules:
    fields: dict[str, _FieldRules] = {}
    model_fields: dict[str, Any] = {}
    for index, (field_name, rules) in enumerate(frozen_rules):
        field_rules = _parse_field_rules(field_name, rules)
        fields[field_name] = field_rules
        default = ... if field_rules.required and not field_rules.sometimes else None
        model_fields[f"field_{index}"] = (
            _field_annotation(field_rules),
            Field(default=default, alias=field_name),
        )

    _logger.debug("Compiled validation rules for fields %s", list(fields))
    model = pydantic.create_model(
        "ArgonautRules",
        __config__=pydantic.ConfigDict(extra="ignore", arbitrary_types_allowed=True),
        **model_fields,
    )
    return _CompiledRules(model=model, fields=fields)


class ValidatorFactory:
    """Validates data maps against rules maps."""

    def validate(
        self, data: Mapping[str, Any], rules: Mapping[str, Sequence[str] | str]
    ) -> ValidationResult:
        compiled = _compile_rules(_freeze_rules(rules))
        try:
            compiled.model.model_validate(dict(data))
        except pydantic.ValidationError as e:
            return ValidationResult(
                passed=False, errors=self._collect_errors(compiled, e)
            )
        return ValidationResult(passed=True, errors={})

    def _collect_errors(
        self, compiled: _CompiledRules, error: pydantic.ValidationError
    ) -> dict[str, list[str]]:
        prefix = get_settings().validation_message_prefix
        errors: dict[str, list[str]] = {}
        for detail in error.errors():
            loc = detail.get("loc") or ("",)
            field_name = str(loc[0])
            field_rules = compiled.fields.get(field_name)
            rule = _ERROR_TYPE_RULES.get(detail["type"])
            if rule is None:
                if field_rules is not None and field_rules.type_rule is not None:
                    rule = field_rules.type_rule
                else:
                    rule = detail["type"]
            message = f"{prefix}{rule}"
            messages = errors.setdefault(field_name, [])
            if message not in messages:
                messages.append(message)

        # A value of one accepted type failing a size rule also fails the other
        # accepted types: only report the size rule.
        for field_name, messages in errors.items():
            field_rules = compiled.fields.get(field_name)
            if field_rules is None or field_rules.type_rule is None:
                continue
            type_message = f"{prefix}{field_rules.type_rule}"
            if type_message in messages and len(messages) > 1:
                messages.remove(type_message)
        return errors


_validator_factory: ValidatorFactory | None = None
_validator_factory_lock: threading.Lock = threading.Lock()


def make_or_get_validator() -> ValidatorFactory:
    """Get the process-wide validator factory, creating it on first use."""
    global _validator_factory  # pylint: disable=global-statement
    with _validator_factory_lock:
        if _validator_factory is None:
            _logger.debug("Creating validator factory")
            _validator_factory = ValidatorFactory()
        return _validator_factory
