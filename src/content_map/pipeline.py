"""Value pipeline — resolve and run the processor chain of one property.

Resolution (``ValuePipeline.resolve``) concatenates five groups, each sorted
by ``Processor.order`` (stable), the groups themselves never re-sorted::

    (a) processors in the property's Annotated metadata
        (or exactly one registry default when there are none)
    (b) processors declared on the property's type (``with_processors``)
    (c) processors declared on the element type, for enumerable-of-T
    (d) processors registered for the property type in the registry
    (e) the registry's post processors

Execution (``ValuePipeline.run``) seeds the value with the ``ContentSource``
itself and threads it through the chain; each processor receives the chain's
context of its ``context_type``.  Afterwards the value is normalised: empty
sequences for enumerable properties become an empty instance of the
property's concrete collection type, and ``None`` for a non-optional value
type becomes that type's default.
"""

from __future__ import annotations

import collections.abc as abc
import logging
from typing import Any, List, TYPE_CHECKING

from .cache import CacheContext, ConversionCache
from .core import ChainContext, ContentSource, Processor, ProcessorContext
from .metadata import VALUE_TYPES, PropertyDescriptor, type_processors
from .registry import ProcessorRegistry
from .timing import debug_duration

if TYPE_CHECKING:
    from .converter import Converter

logger = logging.getLogger(__name__)


def _ordered(processors: Any) -> List[Processor]:
    return sorted(processors, key=lambda p: p.order)


def _is_empty_sequence(value: Any) -> bool:
    return (
        isinstance(value, abc.Iterable)
        and isinstance(value, abc.Sized)
        and not isinstance(value, (str, bytes, abc.Mapping))
        and len(value) == 0
    )


def normalize_value(value: Any, prop: PropertyDescriptor) -> Any:
    """Post-pipeline fix-ups that make *value* assignable to *prop*."""
    if prop.enumerable and _is_empty_sequence(value):
        return prop.empty_collection()
    if value is None and not prop.nullable and prop.property_type in VALUE_TYPES:
        return prop.property_type()
    return value


class ValuePipeline:
    """Build and execute processor chains.

    Holds no per-call state; one instance serves every conversion of its
    ``Converter``.
    """

    def __init__(self, registry: ProcessorRegistry, cache: ConversionCache) -> None:
        self.registry = registry
        self.cache = cache

    def resolve(self, prop: PropertyDescriptor, target_type: type) -> List[Processor]:
        """Return the ordered processor chain for *prop* on *target_type*."""
        processors = _ordered(prop.processors)
        if not processors:
            processors = [self.registry.default_for(prop.property_type, target_type)]

        processors.extend(_ordered(type_processors(prop.property_type)))
        if prop.enumerable:
            processors.extend(_ordered(type_processors(prop.element_type)))
        processors.extend(_ordered(self.registry.registered_for(prop.property_type)))
        processors.extend(_ordered(self.registry.post_processors()))
        return processors

    def value_for(
            self,
            content: ContentSource,
            prop: PropertyDescriptor,
            target_type: type,
            culture: str,
            chain: ChainContext,
            converter: 'Converter',
    ) -> Any:
        """Processed value of *prop*, through the property cache when declared."""
        with debug_duration(logger, "Processing %r (%s)", prop.name, content.id):
            if prop.cache is not None:
                cache_ctx = CacheContext.create(prop.cache, content, target_type, culture, prop)
                return self.cache.get_or_compute(
                    cache_ctx,
                    lambda: self.run(content, prop, target_type, culture, chain, converter),
                )
            return self.run(content, prop, target_type, culture, chain, converter)

    def run(
            self,
            content: ContentSource,
            prop: PropertyDescriptor,
            target_type: type,
            culture: str,
            chain: ChainContext,
            converter: 'Converter',
    ) -> Any:
        base = ProcessorContext(
            content=content,
            target_type=target_type,
            property=prop,
            culture=culture,
            converter=converter,
        )

        value: Any = content
        for processor in self.resolve(prop, target_type):
            with debug_duration(logger, "Processor %s (%s)", type(processor).__name__, content.id):
                ctx = chain.processor_contexts.get_or_create(base, processor.context_type)
                value = processor.process(value, ctx, chain)

        return normalize_value(value, prop)
