"""
Argonaut: DTOs with declarative casting, and assemblers to build them.
"""

from .assembler import ArgonautAssembler, assembles
from .dto import ArgonautDTO, ArgonautImmutableDTO, setter
from .errors import (
    ArgonautError,
    ImmutableFieldViolation,
    InvalidInput,
    MissingAssemblyMethod,
    MissingValidationRules,
    SerializationError,
    UnboundMethodCall,
    ValidationFailed,
)
from .setting import Settings, get_settings, set_settings
from .typing import Collection, Record
from .validation import ValidationResult, ValidatorFactory, make_or_get_validator

__all__ = [
    # .assembler
    "ArgonautAssembler",
    "assembles",
    # .dto
    "ArgonautDTO",
    "ArgonautImmutableDTO",
    "setter",
    # .errors
    "ArgonautError",
    "ImmutableFieldViolation",
    "InvalidInput",
    "MissingAssemblyMethod",
    "MissingValidationRules",
    "SerializationError",
    "UnboundMethodCall",
    "ValidationFailed",
    # .setting
    "Settings",
    "get_settings",
    "set_settings",
    # .typing
    "Collection",
    "Record",
    # .validation
    "ValidationResult",
    "ValidatorFactory",
    "make_or_get_validator",
]
