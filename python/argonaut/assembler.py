"""
Facilities for assembling target objects from arbitrary input with adapter methods.

An assembler declares one adapter method per target it can produce, named by
convention after the target class: `to_product_dto` (preferred) or
`from_product_dto` for a target named `ProductDTO`. A method can also be bound
to a target explicitly with `@assembles(Target)`.
"""

from __future__ import annotations

import inspect
import logging
import re
from typing import Any, Callable, ClassVar, Iterable, Mapping, TypeVar

from .errors import MissingAssemblyMethod, UnboundMethodCall
from .typing import Collection, Record

F = TypeVar("F", bound=Callable[..., Any])

_logger = logging.getLogger(__name__)

_ASSEMBLES_ATTR = "__argonaut_assembles__"
_CONVENTION_PREFIXES = ("to_", "from_")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

# Resolved method names, keyed by (assembler class, target).
# Entries are never invalidated: they only depend on the methods declared on the class.
_METHOD_MAP: dict[tuple[type, Any], str] = {}


def snake_case(name: str) -> str:
    """`ProductDTO` -> `product_dto`, `TestEloquentModel` -> `test_eloquent_model`."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def target_base_name(target: Any) -> str:
    """The snake_case base name of a target class, or of a dotted class name."""
    name = target.__name__ if isinstance(target, type) else str(target)
    return snake_case(name.rsplit(".", 1)[-1])


def assembles(*targets: Any) -> Callable[[F], F]:
    """
    Decorate an assembler method to make it the adapter for the given targets,
    whatever its name is.
    """

    def _inner(fn: F) -> F:
        func = fn.__func__ if isinstance(fn, (staticmethod, classmethod)) else fn
        setattr(func, _ASSEMBLES_ATTR, getattr(func, _ASSEMBLES_ATTR, ()) + targets)
        return fn

    return _inner


def get_cached_assemble_method(assembler_cls: type, target: Any) -> str | None:
    """The cached method name for the pair, or `None` if not resolved yet."""
    return _METHOD_MAP.get((assembler_cls, target))


def _unwrap_function(attr: Any) -> Any:
    if isinstance(attr, (staticmethod, classmethod)):
        return attr.__func__
    return attr


class ArgonautAssembler:
    """
    Base class for assemblers.

    Adapter methods may be static methods, class methods or instance methods. An
    instance method can only be used when an assembler instance is provided.
    """

    _transformations: ClassVar[frozenset[str]] = frozenset()
    _registered_targets: ClassVar[dict[Any, str]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        transformations: set[str] = set()
        registered_targets: dict[Any, str] = {}
        for klass in reversed(cls.__mro__):
            if klass is object or klass is ArgonautAssembler:
                continue
            for name, attr in vars(klass).items():
                func = _unwrap_function(attr)
                if not inspect.isfunction(func):
                    transformations.discard(name)
                    continue
                if name.startswith(_CONVENTION_PREFIXES):
                    transformations.add(name)
                for target in getattr(func, _ASSEMBLES_ATTR, ()):
                    registered_targets[target] = name
        cls._transformations = frozenset(transformations)
        cls._registered_targets = registered_targets

    @classmethod
    def resolve_assemble_method(cls, target: Any) -> str:
        """
        Determine the adapter method for `target`: an explicit `@assembles`
        registration, then `to_<name>`, then `from_<name>`.
        """
        registered = cls._registered_targets.get(target)
        if registered is not None:
            return registered

        base_name = target_base_name(target)
        to_method = f"to_{base_name}"
        if to_method in cls._transformations:
            return to_method

        from_method = f"from_{base_name}"
        if from_method in cls._transformations:
            return from_method

        raise MissingAssemblyMethod(cls, target, [to_method, from_method])

    @classmethod
    def resolve_assemble_method_cached(cls, target: Any) -> str:
        key = (cls, target)
        method = _METHOD_MAP.get(key)
        if method is None:
            method = cls.resolve_assemble_method(target)
            # Concurrent first resolutions compute the same name; last writer wins.
            _METHOD_MAP[key] = method
            _logger.debug(
                "Resolved %s.%s for assembling to %s",
                cls.__qualname__,
                method,
                target_base_name(target),
            )
        return method

    @classmethod
    def assemble(cls, input: Any, target: Any, instance: Any = None) -> Any:
        """
        Transform `input` into `target` with the resolved adapter method.

        Args:
            input: A mapping (handed to the adapter as a `Record`) or any object.
            target: The target class (or its name).
            instance: The assembler instance to call instance adapter methods on.

        Returns:
            Whatever the adapter method returns.
        """
        method_name = cls.resolve_assemble_method_cached(target)
        record = Record(input) if isinstance(input, Mapping) else input

        attr = inspect.getattr_static(cls, method_name)
        if isinstance(attr, (staticmethod, classmethod)):
            return getattr(cls, method_name)(record)
        if instance is None:
            raise UnboundMethodCall(cls, method_name)
        return getattr(instance, method_name)(record)

    @classmethod
    def assemble_many(
        cls, inputs: Iterable[Any], target: Any, instance: Any = None
    ) -> Collection:
        """Assemble each input, preserving order. Mappings assemble their values."""
        items = inputs.values() if isinstance(inputs, Mapping) else inputs
        return Collection(cls.assemble(item, target, instance) for item in items)

    @classmethod
    def assemble_from_record_map(
        cls, values: Mapping[str, Any], target: Any, instance: Any = None
    ) -> Any:
        return cls.assemble(Record(values), target, instance)

    def assemble_instance(self, input: Any, target: Any) -> Any:
        """Same as `assemble()`, with this assembler as the instance."""
        return type(self).assemble(input, target, self)

    def assemble_many_instance(self, inputs: Iterable[Any], target: Any) -> Collection:
        return type(self).assemble_many(inputs, target, self)
