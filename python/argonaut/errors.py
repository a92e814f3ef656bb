"""
Errors raised by Argonaut.

Every error derives from `ArgonautError` and from the builtin exception that
best matches its meaning, so callers can catch either.
"""

from typing import Any


class ArgonautError(Exception):
    """Base class for all Argonaut errors."""


class MissingAssemblyMethod(ArgonautError, LookupError):
    """No adapter method on an assembler matches the requested target."""

    def __init__(self, assembler_cls: type, target: Any, candidates: list[str]):
        self.assembler_cls = assembler_cls
        self.target = target
        self.candidates = candidates
        names = " or ".join(f"[{name}]" for name in candidates)
        super().__init__(
            f"Missing method {names} for assembling to {_target_name(target)} "
            f"on [{assembler_cls.__qualname__}]"
        )


class UnboundMethodCall(ArgonautError, TypeError):
    """An instance adapter method was resolved but no assembler instance was given."""

    def __init__(self, assembler_cls: type, method_name: str):
        self.assembler_cls = assembler_cls
        self.method_name = method_name
        super().__init__(
            f"Cannot call instance method {method_name} on "
            f"[{assembler_cls.__qualname__}] without an instance."
        )


class InvalidInput(ArgonautError, ValueError):
    """A value has a shape its cast directive cannot accept."""


class MissingValidationRules(ArgonautError, NotImplementedError):
    """A DTO was validated without declaring `rules()`."""

    def __init__(self, dto_cls: type):
        self.dto_cls = dto_cls
        super().__init__(
            f"{dto_cls.__qualname__} must implement a rules() method for validation."
        )


class ValidationFailed(ArgonautError, ValueError):
    """Declared rules rejected the data. `errors` maps field names to messages."""

    errors: dict[str, list[str]]

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        summary = "; ".join(
            f"{field}: {', '.join(messages)}" for field, messages in errors.items()
        )
        super().__init__(f"The given data was invalid. {summary}")


class SerializationError(ArgonautError, ValueError):
    """A DTO could not be encoded to JSON."""


class ImmutableFieldViolation(ArgonautError, AttributeError):
    """A write-once field of an immutable DTO was written again."""

    def __init__(self, dto_cls: type, field_name: str):
        self.dto_cls = dto_cls
        self.field_name = field_name
        super().__init__(
            f"Cannot modify readonly property {dto_cls.__qualname__}.{field_name}"
        )


def _target_name(target: Any) -> str:
    if isinstance(target, type):
        return f"{target.__module__}.{target.__qualname__}"
    return str(target)
