import collections.abc
import copy
import dataclasses
import datetime
import decimal
import enum
import inspect
import types
import typing
from typing import (
    Annotated,
    Any,
    Callable,
    ClassVar,
    Iterable,
    Mapping,
    NamedTuple,
)

import numpy as np


class Collection(list):  # type: ignore[type-arg]
    """
    An ordered collection of items.

    `Collection[T]` as a cast directive makes a field hold a `Collection` of `T`.
    """

    def first(self, default: Any = None) -> Any:
        return self[0] if self else default

    def map(self, fn: Callable[[Any], Any]) -> "Collection":
        return Collection(fn(item) for item in self)

    def all(self) -> list[Any]:
        return list(self)


class Record(types.SimpleNamespace):
    """
    A mapping viewed as an object, the shape assemblers receive their input in.
    Missing attributes can be read with `get()`.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, /, **kwargs: Any):
        super().__init__()
        if values is not None:
            self.__dict__.update(values)
        self.__dict__.update(kwargs)

    def get(self, name: str, default: Any = None) -> Any:
        return self.__dict__.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.__dict__[name]

    def __contains__(self, name: object) -> bool:
        return name in self.__dict__


_SCALAR_TYPES = (
    str,
    bytes,
    bytearray,
    int,
    float,
    complex,
    decimal.Decimal,
    enum.Enum,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    np.generic,
)


def is_structured_value(value: Any) -> bool:
    """Whether the value is a mapping or an object exposing named fields."""
    if isinstance(value, Mapping):
        return True
    if value is None or isinstance(value, _SCALAR_TYPES):
        return False
    return hasattr(value, "__dict__")


def is_sequence_value(value: Any) -> bool:
    """Whether the value is an ordered sequence of items (strings excluded)."""
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (collections.abc.Sequence, np.ndarray))


class AnalyzedScalarCast(NamedTuple):
    """
    A directive that doesn't name a type, e.g. `"string"`. Values pass through.
    """

    directive: Any


class AnalyzedSingleModelCast(NamedTuple):
    """
    A bare type, e.g. `UserDTO` or `datetime.datetime`.
    """

    target_type: type


class AnalyzedArrayOfModelsCast(NamedTuple):
    """
    A one-element list of a type, e.g. `[ProductFeatureDTO]`, or `list[T]`.
    """

    target_type: type


class AnalyzedCollectionOfModelsCast(NamedTuple):
    """
    `Collection[T]`.
    """

    target_type: type


AnalyzedCast = (
    AnalyzedScalarCast
    | AnalyzedSingleModelCast
    | AnalyzedArrayOfModelsCast
    | AnalyzedCollectionOfModelsCast
)


def analyze_cast(
    directive: Any, resolve_name: Callable[[str], type | None] | None = None
) -> AnalyzedCast:
    """
    Analyze a cast directive declared in a DTO's `casts`.

    Types may be given by name (e.g. `Collection["ProductFeatureDTO"]`) to refer
    to classes not defined yet; `resolve_name` looks them up. A name that doesn't
    resolve to a class, e.g. `"string"`, makes a scalar cast.
    """

    def resolve(t: Any) -> Any:
        if isinstance(t, typing.ForwardRef):
            t = t.__forward_arg__
        if isinstance(t, str) and resolve_name is not None:
            return resolve_name(t)
        return t

    if isinstance(directive, (list, tuple)):
        target = resolve(directive[0]) if len(directive) == 1 else None
        if isinstance(target, type):
            return AnalyzedArrayOfModelsCast(target_type=target)
        return AnalyzedScalarCast(directive=directive)

    if isinstance(directive, str):
        target = resolve(directive)
        if isinstance(target, type):
            return AnalyzedSingleModelCast(target_type=target)
        return AnalyzedScalarCast(directive=directive)

    origin = typing.get_origin(directive)
    if origin is not None:
        args = typing.get_args(directive)
        target = resolve(args[0]) if len(args) == 1 else None
        if not isinstance(target, type):
            return AnalyzedScalarCast(directive=directive)
        if isinstance(origin, type) and issubclass(origin, Collection):
            return AnalyzedCollectionOfModelsCast(target_type=target)
        if origin is list or origin is collections.abc.Sequence:
            return AnalyzedArrayOfModelsCast(target_type=target)
        return AnalyzedScalarCast(directive=directive)

    if isinstance(directive, type):
        return AnalyzedSingleModelCast(target_type=directive)

    return AnalyzedScalarCast(directive=directive)


@dataclasses.dataclass
class AnalyzedFieldType:
    """
    Analyzed info of a field annotation.
    """

    # The type without annotations. e.g. int, list[int], dict[str, int]
    core_type: Any
    # The type without annotations and parameters. e.g. int, list, dict
    base_type: Any
    nullable: bool = False


def analyze_field_type(t: Any) -> AnalyzedFieldType:
    """
    Analyze a field annotation, unwrapping `Annotated` and optional unions.
    """
    while True:
        base_type = typing.get_origin(t)
        if base_type is Annotated:
            t = t.__origin__
        else:
            break

    if base_type in (types.UnionType, typing.Union):
        type_args = typing.get_args(t)
        non_none_types = [arg for arg in type_args if arg not in (None, types.NoneType)]
        nullable = len(non_none_types) < len(type_args)
        if len(non_none_types) == 1:
            result = analyze_field_type(non_none_types[0])
            result.nullable = result.nullable or nullable
            return result
        return AnalyzedFieldType(core_type=t, base_type=base_type, nullable=nullable)

    if t is None or t is types.NoneType:
        return AnalyzedFieldType(core_type=None, base_type=None, nullable=True)

    return AnalyzedFieldType(
        core_type=t, base_type=t if base_type is None else base_type
    )


_SCALAR_ZERO_VALUES: dict[Any, Any] = {str: "", int: 0, float: 0.0, bool: False}


def zero_value_for(type_info: AnalyzedFieldType) -> Any:
    """
    The value a field takes when its input is absent. A new container is returned
    on each call.
    """
    if type_info.nullable:
        return None

    base_type = type_info.base_type
    if isinstance(base_type, type):
        if issubclass(base_type, Collection):
            return Collection()
        if base_type in (list, collections.abc.Sequence):
            return []
        if base_type in (dict, collections.abc.Mapping):
            return {}
    return _SCALAR_ZERO_VALUES.get(base_type)


@dataclasses.dataclass
class DeclaredField:
    """A field declared by an annotation on a DTO class."""

    name: str
    type_info: AnalyzedFieldType
    default: Any = dataclasses.MISSING

    def initial_value(self) -> Any:
        if self.default is dataclasses.MISSING:
            return zero_value_for(self.type_info)
        if isinstance(self.default, (list, dict, set)):
            return copy.copy(self.default)
        return self.default


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is ClassVar or typing.get_origin(annotation) is ClassVar


def _class_annotations(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        # Unresolvable forward references: fall back to the raw annotations.
        hints: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(inspect.get_annotations(klass))
        return hints


def collect_declared_fields(
    cls: type, excluded: Iterable[str] = ()
) -> dict[str, DeclaredField]:
    """
    Collect the fields declared by annotations on `cls` and its bases, base classes
    first. `ClassVar`s, private names and `excluded` names are skipped.
    """
    excluded = set(excluded)
    fields: dict[str, DeclaredField] = {}
    for name, annotation in _class_annotations(cls).items():
        if name.startswith("_") or name in excluded or _is_classvar(annotation):
            continue
        type_info = (
            AnalyzedFieldType(core_type=Any, base_type=Any)
            if isinstance(annotation, str)
            else analyze_field_type(annotation)
        )
        default = inspect.getattr_static(cls, name, dataclasses.MISSING)
        if callable(default) or isinstance(
            default, (property, staticmethod, classmethod)
        ):
            default = dataclasses.MISSING
        fields[name] = DeclaredField(name=name, type_info=type_info, default=default)
    return fields
