"""Type metadata — what a model class declares, reflected once per class.

A model is an ordinary class.  Its *properties* are its public annotated
attributes (base classes first, ``ClassVar`` excluded).  Everything the
converter needs to know about a property is attached through
``typing.Annotated`` metadata::

    @Cache(duration=300)
    @handled_by(AuditHandler)
    class Article:
        title: str                                         # default processor
        body: Annotated[str, Property("bodyText")]
        tags: Annotated[list[str], Property(), Delimited(",")]
        related: Annotated[list["Article"], Lazy()]
        draft: Annotated[bool, Ignore()]
        version: Final[int]                                 # never overridable

        @on_converted
        def _done(self, ctx): ...

``describe(cls)`` turns that into a frozen ``TypeDescriptor``.  Descriptors
are stored in a process-wide append-only map; concurrent first calls for the
same class may both compute, only the first stored descriptor is kept.
"""

from __future__ import annotations

import collections
import collections.abc as abc
import enum
import inspect
import logging
import types
import typing
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional, Tuple, Union

from .cache import CACHE_ATTR, Cache
from .core import ContentSource, ConversionHandler, ConversionPhase, Processor
from .errors import InvalidConversionSetupError

logger = logging.getLogger(__name__)

PROCESSORS_ATTR = "__content_processors__"
HANDLERS_ATTR = "__content_handlers__"
LAZY_ATTR = "__content_lazy__"
PHASE_ATTR = "__content_conversion_phase__"

#: Types substituted with ``T()`` when a non-optional property resolves to ``None``.
VALUE_TYPES: Tuple[type, ...] = (int, float, bool, complex, Decimal)

#: Generic origins treated as enumerable-of-T → concrete type of an empty value.
_ENUMERABLE_ORIGINS: dict[Any, type] = {
    list: list,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    collections.deque: collections.deque,
    abc.Iterable: list,
    abc.Collection: list,
    abc.Sequence: list,
    abc.MutableSequence: list,
    abc.Set: set,
    abc.MutableSet: set,
}


# ─────────────────────────────────────────────────────────────────────────────
# Declarations — markers and decorators
# ─────────────────────────────────────────────────────────────────────────────


class Ignore:
    """Property marker: never populate this property."""

    def __repr__(self) -> str:
        return "Ignore()"


class Lazy:
    """Deferred evaluation.

    As ``Annotated`` metadata, the property is computed on first read.  As a
    class decorator, every overridable property of the class is.
    """

    def __call__(self, cls: type) -> type:
        setattr(cls, LAZY_ATTR, True)
        return cls

    def __repr__(self) -> str:
        return "Lazy()"


def with_processors(*processors: Processor) -> Callable[[type], type]:
    """Class decorator: processors applied to every property *of this type*.

    They run after the property's own processors whenever the decorated class
    is the declared type (or element type) of a property on another model.
    """
    for processor in processors:
        if not isinstance(processor, Processor):
            raise TypeError(f"with_processors expects Processor instances, got {processor!r}")

    def decorator(cls: type) -> type:
        setattr(cls, PROCESSORS_ATTR, tuple(getattr(cls, PROCESSORS_ATTR, ())) + processors)
        return cls

    return decorator


def handled_by(*handler_types: type[ConversionHandler]) -> Callable[[type], type]:
    """Class decorator: attach conversion handler types, run in the given order."""
    for handler_type in handler_types:
        if not (isinstance(handler_type, type) and issubclass(handler_type, ConversionHandler)):
            raise TypeError(f"handled_by expects ConversionHandler subclasses, got {handler_type!r}")

    def decorator(cls: type) -> type:
        setattr(cls, HANDLERS_ATTR, tuple(getattr(cls, HANDLERS_ATTR, ())) + handler_types)
        return cls

    return decorator


def _phase_hook(phase: ConversionPhase) -> Callable[[Callable], Callable]:
    def decorator(func: Callable) -> Callable:
        params = list(inspect.signature(func).parameters.values())
        if len(params) != 2:
            raise TypeError(
                f"{func.__qualname__} must take exactly one argument besides self "
                f"(the ConversionHandlerContext)"
            )
        setattr(func, PHASE_ATTR, phase)
        return func

    return decorator


on_converting = _phase_hook(ConversionPhase.CONVERTING)
on_converting.__doc__ = "Mark ``method(self, ctx)`` to run before properties are populated."

on_converted = _phase_hook(ConversionPhase.CONVERTED)
on_converted.__doc__ = "Mark ``method(self, ctx)`` to run after properties are populated."


# ─────────────────────────────────────────────────────────────────────────────
# Descriptors
# ─────────────────────────────────────────────────────────────────────────────


class ConstructorShape(enum.Enum):
    NO_ARGS = "no_args"
    CONTENT_ARG = "content_arg"
    INVALID = "invalid"


@dataclass(frozen=True)
class PropertyDescriptor:
    """One writable property of a model.

    Attributes:
        name:           Attribute name.
        declaring_type: Class whose annotations declare the property.
        property_type:  Declared type with ``Annotated`` / ``Final`` /
                        ``Optional`` peeled off (may be a generic alias).
        nullable:       Declared as ``Optional[...]`` / ``X | None``.
        processors:     Processors from the ``Annotated`` metadata, in
                        declaration order.
        lazy:           Selected for deferred evaluation.
        ignore:         Carries ``Ignore``.
        cache:          Property-level ``Cache`` directive.
        overridable:    Not ``Final`` and not declared on an ``@final`` class.
        element_type:   ``T`` for enumerable-of-T properties, else ``None``.
    """

    name: str
    declaring_type: type
    property_type: Any
    nullable: bool
    processors: Tuple[Processor, ...]
    lazy: bool
    ignore: bool
    cache: Optional[Cache]
    overridable: bool
    element_type: Any = None

    @property
    def enumerable(self) -> bool:
        return self.element_type is not None

    @property
    def runtime_type(self) -> type:
        return runtime_type(self.property_type)

    @property
    def element_runtime_type(self) -> Optional[type]:
        return runtime_type(self.element_type) if self.element_type is not None else None

    def empty_collection(self) -> Any:
        """A fresh empty instance of this enumerable property's concrete type."""
        return concrete_collection_type(self.property_type)()


@dataclass(frozen=True)
class TypeDescriptor:
    target_type: type
    properties: Tuple[PropertyDescriptor, ...]
    constructor: ConstructorShape
    cache: Optional[Cache]
    handler_types: Tuple[type[ConversionHandler], ...]
    converting_hooks: Tuple[str, ...]
    converted_hooks: Tuple[str, ...]

    @property
    def lazy_properties(self) -> Tuple[PropertyDescriptor, ...]:
        return tuple(p for p in self.properties if p.lazy and not p.ignore)

    def hooks_for(self, phase: ConversionPhase) -> Tuple[str, ...]:
        if phase is ConversionPhase.CONVERTING:
            return self.converting_hooks
        return self.converted_hooks


# ─────────────────────────────────────────────────────────────────────────────
# Type helpers
# ─────────────────────────────────────────────────────────────────────────────


def runtime_type(tp: Any) -> type:
    """Best runtime class for an annotation (``list[str]`` → ``list``)."""
    origin = typing.get_origin(tp)
    if isinstance(origin, type):
        return origin
    # typing.Any is a class since 3.11
    if isinstance(tp, type) and tp is not Any:
        return tp
    return object


def concrete_collection_type(tp: Any) -> type:
    """Concrete class used to materialise a value for an enumerable annotation."""
    origin = typing.get_origin(tp) or tp
    return _ENUMERABLE_ORIGINS.get(origin, list)


def element_type_of(tp: Any) -> Any:
    """Return ``T`` when *tp* is an enumerable-of-T shape, else ``None``.

    ``str`` and ``bytes`` are never enumerable; neither are mappings.
    """
    origin = typing.get_origin(tp)
    if origin not in _ENUMERABLE_ORIGINS:
        return None
    args = typing.get_args(tp)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return _strip(args[0])[0]
        return None
    if len(args) != 1:
        return None
    return _strip(args[0])[0]


def _strip(tp: Any) -> Tuple[Any, tuple, bool, bool]:
    """Peel ``Annotated`` / ``Final`` / ``Optional`` wrappers.

    Returns ``(type, metadata, final, nullable)``.
    """
    metadata: tuple = ()
    final = False
    nullable = False
    while True:
        origin = typing.get_origin(tp)
        if origin is typing.Annotated:
            args = typing.get_args(tp)
            tp, metadata = args[0], metadata + tuple(args[1:])
        elif origin is typing.Final:
            final = True
            tp = typing.get_args(tp)[0]
        elif tp is typing.Final:
            final = True
            tp = Any
        elif origin is Union or origin is types.UnionType:
            args = typing.get_args(tp)
            if type(None) not in args:
                break
            nullable = True
            rest = tuple(a for a in args if a is not type(None))
            if len(rest) != 1:
                tp = Union[rest]
                break
            tp = rest[0]
        else:
            break
    return tp, metadata, final, nullable


def _is_marker(value: Any, marker: type) -> bool:
    return value is marker or isinstance(value, marker)


# ─────────────────────────────────────────────────────────────────────────────
# Reflection
# ─────────────────────────────────────────────────────────────────────────────


def _constructor_shape(cls: type) -> ConstructorShape:
    init = cls.__init__
    if init is object.__init__:
        return ConstructorShape.NO_ARGS
    try:
        signature = inspect.signature(init)
    except (TypeError, ValueError):
        return ConstructorShape.INVALID

    params = list(signature.parameters.values())[1:]
    required = [
        p for p in params
        if p.default is inspect.Parameter.empty
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if not required:
        return ConstructorShape.NO_ARGS
    if len(required) == 1 and required[0].kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        try:
            annotation = typing.get_type_hints(init).get(required[0].name)
        except NameError:
            annotation = required[0].annotation
        if annotation == ContentSource.__name__:
            return ConstructorShape.CONTENT_ARG
        if isinstance(annotation, type) and issubclass(annotation, ContentSource):
            return ConstructorShape.CONTENT_ARG
    return ConstructorShape.INVALID


def _declared_names(cls: type) -> dict[str, type]:
    """Annotated attribute name → declaring class, base classes first."""
    names: dict[str, type] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in inspect.get_annotations(klass):
            names.setdefault(name, klass)
    return names


def _is_writable(cls: type, name: str) -> bool:
    attr = inspect.getattr_static(cls, name, None)
    if isinstance(attr, property):
        return attr.fset is not None
    return True


def _describe_property(cls: type, name: str, declaring: type, hint: Any) -> Optional[PropertyDescriptor]:
    if name.startswith("_") or typing.get_origin(hint) is typing.ClassVar or hint is typing.ClassVar:
        return None
    if not _is_writable(cls, name):
        return None

    tp, metadata, final, nullable = _strip(hint)
    overridable = not final and not declaring.__dict__.get("__final__", False)

    lazy_marker = any(_is_marker(m, Lazy) for m in metadata)
    class_lazy = bool(getattr(declaring, LAZY_ATTR, False))

    return PropertyDescriptor(
        name=name,
        declaring_type=declaring,
        property_type=tp,
        nullable=nullable,
        processors=tuple(m for m in metadata if isinstance(m, Processor)),
        lazy=lazy_marker or (class_lazy and overridable),
        ignore=any(_is_marker(m, Ignore) for m in metadata),
        cache=next((m for m in metadata if isinstance(m, Cache)), None),
        overridable=overridable,
        element_type=element_type_of(tp),
    )


def _conversion_hooks(cls: type) -> dict[str, ConversionPhase]:
    hooks: dict[str, ConversionPhase] = {}
    for klass in reversed(cls.__mro__):
        for name, member in vars(klass).items():
            phase = getattr(member, PHASE_ATTR, None)
            if isinstance(phase, ConversionPhase):
                hooks[name] = phase
            elif name in hooks:
                # overridden without the decorator
                del hooks[name]
    return hooks


def _build_descriptor(cls: type) -> TypeDescriptor:
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except NameError as exc:
        raise InvalidConversionSetupError(
            f"Cannot resolve the annotations of {cls.__qualname__}: {exc}"
        ) from exc

    properties = []
    for name, declaring in _declared_names(cls).items():
        prop = _describe_property(cls, name, declaring, hints.get(name, Any))
        if prop is not None:
            properties.append(prop)

    hooks = _conversion_hooks(cls)
    return TypeDescriptor(
        target_type=cls,
        properties=tuple(properties),
        constructor=_constructor_shape(cls),
        cache=getattr(cls, CACHE_ATTR, None),
        handler_types=tuple(getattr(cls, HANDLERS_ATTR, ())),
        converting_hooks=tuple(n for n, p in hooks.items() if p is ConversionPhase.CONVERTING),
        converted_hooks=tuple(n for n, p in hooks.items() if p is ConversionPhase.CONVERTED),
    )


_DESCRIPTORS: dict[type, TypeDescriptor] = {}


def describe(cls: type) -> TypeDescriptor:
    """Return the (cached) ``TypeDescriptor`` of *cls*."""
    descriptor = _DESCRIPTORS.get(cls)
    if descriptor is None:
        descriptor = _DESCRIPTORS.setdefault(cls, _build_descriptor(cls))
        logger.debug(
            "Described %s: %d properties, constructor=%s",
            cls.__qualname__, len(descriptor.properties), descriptor.constructor.value,
        )
    return descriptor


def type_processors(tp: Any) -> Tuple[Processor, ...]:
    """Processors declared on a type with ``with_processors`` (none for builtins)."""
    cls = runtime_type(tp)
    return tuple(getattr(cls, PROCESSORS_ATTR, ()))
