"""Core post processors — the fixed tail of every processor chain.

``build_default_converter`` registers them in this order:

EnumerableConverter
    Reconcile single values and collections with the property's shape.

RecursiveConvert
    Convert ``ContentSource`` values into the property's model type.

CastToType
    Cast scalars (and collection items) to the declared type.
"""

from __future__ import annotations

import collections.abc as abc
import enum
from typing import Any, Callable, Mapping, Optional

from ..casters import BUILTIN_CASTERS
from ..core import ChainContext, ContentSource, Processor, ProcessorContext
from ..metadata import concrete_collection_type, runtime_type


def is_enumerable_value(value: Any) -> bool:
    """Collections that map onto enumerable properties (not text, not mappings)."""
    return (
        isinstance(value, abc.Iterable)
        and not isinstance(value, (str, bytes, abc.Mapping, ContentSource))
    )


def _accepts_enumerable(tp: Any) -> bool:
    cls = runtime_type(tp)
    if cls is object:
        return True
    if issubclass(cls, (str, bytes)):
        return False
    return issubclass(cls, abc.Iterable)


# value types: castable scalars and enums are never nested models
_VALUE_BASES: tuple[type, ...] = tuple(BUILTIN_CASTERS) + (enum.Enum, ContentSource)


def _is_model_type(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and tp.__module__ != "builtins"
        and not issubclass(tp, _VALUE_BASES)
    )


class EnumerableConverter(Processor):
    """Match the value's shape to the property's.

    * enumerable property, ``None``            → ``()``
    * enumerable property, single value        → ``[value]``
    * scalar property, collection value        → first item (or ``None``)
    """

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        prop = ctx.property
        if prop is None:
            return value

        if prop.enumerable:
            if value is None:
                return ()
            if is_enumerable_value(value):
                return value
            return [value]

        if is_enumerable_value(value) and not _accepts_enumerable(prop.property_type):
            return next(iter(value), None)
        return value


class RecursiveConvert(Processor):
    """Convert content sources into nested models.

    Applies when the property's type (or element type) is a user model class
    and the value is a ``ContentSource`` (or a collection containing them).
    The nested conversion joins the current chain context and culture; the
    shared context is re-populated by it, so its fields are read up front.
    """

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        prop = ctx.property
        converter = ctx.converter
        culture = ctx.culture
        if prop is None or converter is None or value is None:
            return value

        model_type = prop.element_runtime_type if prop.enumerable else prop.runtime_type
        if not _is_model_type(model_type):
            return value

        def convert(item: Any) -> Any:
            if isinstance(item, ContentSource) and not isinstance(item, model_type):
                return converter.convert(item, model_type, culture=culture, chain_context=chain)
            return item

        if prop.enumerable and is_enumerable_value(value):
            return [convert(item) for item in value]
        return convert(value)


class CastToType(Processor):
    """Cast the value to the property's declared type.

    * values already of the declared type, ``None`` and ``Any`` / ``object``
      properties pass through;
    * blank strings become ``None`` for non-``str`` types (the pipeline then
      substitutes value-type defaults);
    * collection items are cast to the element type and the collection is
      rebuilt as the property's concrete collection type;
    * types without a caster pass through.

    Cast failures (``int("abc")``) propagate.
    """

    def __init__(
            self,
            casters: Optional[Mapping[type, Callable[[Any], Any]]] = None,
            *,
            order: int = 0,
    ) -> None:
        super().__init__(order=order)
        self._casters = dict(casters if casters is not None else BUILTIN_CASTERS)

    def _cast(self, value: Any, tp: Any) -> Any:
        cls = runtime_type(tp)
        if value is None or cls is object or isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.strip() and cls is not str:
            return None
        caster = self._casters.get(cls)
        if caster is None:
            return value
        return caster(value)

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        prop = ctx.property
        if prop is None or value is None:
            return value

        if prop.enumerable:
            if not is_enumerable_value(value):
                return value
            items = [self._cast(item, prop.element_type) for item in value]
            return concrete_collection_type(prop.property_type)(items)

        return self._cast(value, prop.property_type)
