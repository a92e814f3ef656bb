"""
Data transfer objects with declarative casting, serialization and validation.

Fields are declared with class annotations. Class-level `casts` declare how raw
values are casted, `nested_assemblers` route the construction of nested models
through assemblers:

    class ProductDTO(ArgonautDTO):
        title: str
        features: list[ProductFeatureDTO]
        reviews: Collection[ProductReviewDTO]
        user: UserDTO | None = None

        casts = {
            "features": [ProductFeatureDTO],
            "reviews": Collection[ProductReviewDTO],
            "user": UserDTO,
        }
        nested_assemblers = {"user": UserDTOAssembler}
"""

from __future__ import annotations

import importlib
import logging
import reprlib
import sys
from typing import Any, Callable, ClassVar, Iterable, Mapping, Self, TypeVar

from . import casting
from .errors import (
    ImmutableFieldViolation,
    InvalidInput,
    MissingValidationRules,
    ValidationFailed,
)
from .serialization import Serializable, cast_output_value, encode_json
from .setting import get_settings
from .typing import (
    AnalyzedCast,
    Collection,
    DeclaredField,
    analyze_cast,
    collect_declared_fields,
)
from .validation import ValidatorFactory, make_or_get_validator

F = TypeVar("F", bound=Callable[..., Any])

_logger = logging.getLogger(__name__)

# Class-level declarations that are never fields.
INTERNAL_ATTRIBUTES = frozenset(
    ["casts", "nested_assemblers", "prioritized_attributes", "validator_factory"]
)

_SETTER_ATTR = "__argonaut_setter__"


def setter(field_name: str) -> Callable[[F], F]:
    """
    Decorate a method of an `ArgonautDTO` to make it the setter of `field_name`.

    The setter receives the raw value and is responsible for storing it.
    """

    def _inner(fn: F) -> F:
        setattr(fn, _SETTER_ATTR, field_name)
        return fn

    return _inner


def _attribute_map(
    attributes: Mapping[str, Any] | Any | None, kwargs: Mapping[str, Any]
) -> dict[str, Any]:
    if attributes is None:
        values: dict[str, Any] = {}
    elif isinstance(attributes, Mapping):
        values = dict(attributes)
    elif hasattr(attributes, "__dict__"):
        values = dict(vars(attributes))
    else:
        raise InvalidInput(
            f"Cannot take attributes from a value of type {type(attributes).__qualname__}"
        )
    values.update(kwargs)
    return values


class _DTOBase(Serializable):
    """Casting, serialization and validation shared by mutable and immutable DTOs."""

    casts: ClassVar[Mapping[str, Any]] = {}
    nested_assemblers: ClassVar[Mapping[str, type]] = {}

    _analyzed_casts: ClassVar[dict[str, AnalyzedCast] | None] = None
    _declared_fields: ClassVar[dict[str, DeclaredField] | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Analyzed on first use, when names used in annotations and casts are bound.
        cls._analyzed_casts = None
        cls._declared_fields = None

    @classmethod
    def _resolve_type_name(cls, name: str) -> type | None:
        """
        Resolve a class name used in `casts`: the class itself or one of its bases,
        a name in the module of the class (or of the base declaring the casts), or
        a fully qualified name.
        """
        module_name, _, attr = name.rpartition(".")
        if module_name:
            try:
                module = sys.modules.get(module_name) or importlib.import_module(
                    module_name
                )
            except ImportError:
                return None
            resolved = getattr(module, attr, None)
            return resolved if isinstance(resolved, type) else None

        for klass in cls.__mro__[:-1]:
            if klass.__name__ == name:
                return klass
            resolved = getattr(sys.modules.get(klass.__module__), name, None)
            if isinstance(resolved, type):
                return resolved
        return None

    @classmethod
    def analyzed_casts(cls) -> dict[str, AnalyzedCast]:
        analyzed = cls._analyzed_casts
        if analyzed is None:
            analyzed = {
                name: analyze_cast(directive, cls._resolve_type_name)
                for name, directive in cls.casts.items()
            }
            cls._analyzed_casts = analyzed
        return analyzed

    @classmethod
    def declared_fields(cls) -> dict[str, DeclaredField]:
        fields = cls._declared_fields
        if fields is None:
            fields = collect_declared_fields(cls, INTERNAL_ATTRIBUTES)
            cls._declared_fields = fields
        return fields

    def cast_input_value(self, name: str, value: Any) -> Any:
        return casting.cast_input_value(
            name, value, self.analyzed_casts(), self.nested_assemblers
        )

    def get_attributes_to_update(self) -> dict[str, Any]:
        """The field values, without internal declarations. Nested values are kept as is."""
        return {name: getattr(self, name, None) for name in self.declared_fields()}

    def to_dict(self, depth: int | None = None) -> dict[str, Any]:
        """
        Serialize the fields to plain values.

        Args:
            depth: How many DTO levels to serialize, including this one. Deeper DTOs
                are serialized as empty dicts. Defaults to `Settings.serialization_depth`.
        """
        if depth is None:
            depth = get_settings().serialization_depth
        if depth <= 0:
            return {}
        return {
            name: cast_output_value(value, depth - 1)
            for name, value in self.get_attributes_to_update().items()
        }

    def to_json(self, **options: Any) -> str:
        """Serialize to JSON text. `options` are passed to `json.dumps()`."""
        return encode_json(self.to_dict(), **options)

    @classmethod
    def collection(cls, items: Iterable[Any] = ()) -> Collection:
        return Collection(cls(item) for item in items)

    @classmethod
    def validator_factory(cls) -> ValidatorFactory:
        return make_or_get_validator()

    def validate(self, throw: bool = True) -> bool | dict[str, list[str]]:
        """
        Validate the serialized fields against `rules()`.

        Returns:
            True if the data passes. Otherwise the messages of the failed rules
            keyed by field, unless `throw` is set.

        Raises:
            MissingValidationRules: The DTO doesn't declare `rules()`.
            ValidationFailed: The data doesn't pass and `throw` is set.
        """
        rules = getattr(self, "rules", None)
        if not callable(rules):
            raise MissingValidationRules(type(self))

        result = self.validator_factory().validate(self.to_dict(), rules())
        if result.passed:
            return True
        if throw:
            raise ValidationFailed(result.errors)
        return result.errors

    def is_valid(self, throw: bool = False) -> bool:
        if throw:
            return self.validate(throw=True) is True
        try:
            return self.validate(throw=False) is True
        except Exception as e:  # pylint: disable=broad-except
            _logger.debug("Validation of %s failed: %s", type(self).__qualname__, e)
            return False

    @reprlib.recursive_repr()
    def __repr__(self) -> str:
        fields = ", ".join(
            f"{name}={value!r}"
            for name, value in self.get_attributes_to_update().items()
        )
        return f"{type(self).__qualname__}({fields})"


class ArgonautDTO(_DTOBase):
    """
    A mutable DTO.

    `prioritized_attributes` are assigned before all other input fields, so the
    setters of later fields can rely on them.
    """

    prioritized_attributes: ClassVar[list[str]] = []

    _setters: ClassVar[dict[str, Callable[[Any, Any], Any]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        setters: dict[str, Callable[[Any, Any], Any]] = {}
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                field_name = getattr(attr, _SETTER_ATTR, None)
                if field_name is not None and callable(attr):
                    setters[field_name] = attr
        cls._setters = setters

    def __init__(self, attributes: Mapping[str, Any] | Any | None = None, /, **kwargs: Any):
        for name, field in self.declared_fields().items():
            setattr(self, name, field.initial_value())
        self.set_attributes(_attribute_map(attributes, kwargs))

    def set_attributes(self, attributes: Mapping[str, Any]) -> Self:
        attributes = dict(attributes)
        for name in self.prioritized_attributes:
            if name in attributes:
                self.set_attribute(name, attributes.pop(name))

        for name, value in attributes.items():
            self.set_attribute(name, value)
        return self

    def set_attribute(self, name: str, value: Any) -> Self:
        """
        Assign a field through its setter if one is declared, otherwise through its
        cast. Names that are neither are ignored.
        """
        field_setter = self._setters.get(name)
        if field_setter is not None:
            field_setter(self, value)
        elif name in self.declared_fields():
            setattr(
                self, name, None if value is None else self.cast_input_value(name, value)
            )
        else:
            _logger.debug(
                "Ignoring undeclared attribute `%s` of %s", name, type(self).__qualname__
            )
        return self


class ArgonautImmutableDTO(_DTOBase):
    """
    A DTO whose fields are written once, at construction.

    Any later write raises `ImmutableFieldViolation`.
    """

    def __init__(self, attributes: Mapping[str, Any] | Any | None = None, /, **kwargs: Any):
        object.__setattr__(self, "_initialized_fields", set())
        fields = self.declared_fields()
        for name, value in _attribute_map(attributes, kwargs).items():
            if name in fields:
                self._initialize_readonly_field(
                    name, None if value is None else self.cast_input_value(name, value)
                )
        for name, field in fields.items():
            if name not in self._initialized_fields:
                self._initialize_readonly_field(name, field.initial_value())

    def _initialize_readonly_field(self, name: str, value: Any) -> None:
        initialized: set[str] = self.__dict__["_initialized_fields"]
        if name in initialized:
            raise ImmutableFieldViolation(type(self), name)
        object.__setattr__(self, name, value)
        initialized.add(name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise ImmutableFieldViolation(type(self), name)

    def __delattr__(self, name: str) -> None:
        raise ImmutableFieldViolation(type(self), name)
