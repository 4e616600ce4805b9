"""Converter — the top-level orchestrator and public entry point.

``Converter.convert`` algorithm::

    source is None                       → None
    instance given but not a target_type → ArgumentValidationError
    culture                              ← argument / culture_scope / locale
    chain                                ← argument or fresh ChainContext
                                           (+ caller processor contexts)
    model has @Cache                     → cache.get_or_compute(object key, convert)

    convert:
        constructor shape INVALID and source not a target_type
                                         → InvalidConversionSetupError
        lazy properties (new instances only)
            any not overridable          → InvalidLazyPropertyError
            instance = proxy(target_type)
        elif source is a target_type     → instance = source
        else                             → target_type() / target_type(source)
        dispatch CONVERTING
        install LazyValue per lazy property
        set every other non-ignored property from ValuePipeline
        dispatch CONVERTED
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Iterable, List, Optional, TypeVar, overload

from .cache import CacheContext, ConversionCache
from .core import ChainContext, ContentSource, ConversionPhase, ProcessorContext
from .culture import resolve_culture
from .dispatch import ConversionCallback, HandlerDispatcher
from .errors import ArgumentValidationError, InvalidConversionSetupError, InvalidLazyPropertyError
from .metadata import ConstructorShape, TypeDescriptor, describe
from .pipeline import ValuePipeline
from .proxy import LazyValue, create_proxy, install_lazy_values
from .registry import HandlerRegistry, ProcessorRegistry
from .timing import debug_duration

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Converter:
    """Materialise model instances from ``ContentSource`` records.

    Args:
        processors: Default / registered / post processor configuration.
        handlers:   Conversion handlers registered per model type.
        cache:      Backend for ``@Cache`` models and ``Cache`` properties.

    Prefer ``build_default_converter()`` over wiring this by hand.
    """

    def __init__(
            self,
            *,
            processors: ProcessorRegistry,
            handlers: HandlerRegistry,
            cache: ConversionCache,
    ) -> None:
        self.processors = processors
        self.handlers = handlers
        self.cache = cache
        self.pipeline = ValuePipeline(processors, cache)
        self.dispatcher = HandlerDispatcher(handlers)

    # -- public API ---------------------------------------------------------

    @overload
    def convert(self, source: None, target_type: type[T], **kwargs: Any) -> None: ...

    @overload
    def convert(self, source: ContentSource, target_type: type[T], **kwargs: Any) -> T: ...

    def convert(
            self,
            source: Optional[ContentSource],
            target_type: type[T],
            *,
            culture: Optional[str] = None,
            instance: Optional[T] = None,
            processor_contexts: Optional[Iterable[ProcessorContext]] = None,
            on_converting: Optional[ConversionCallback] = None,
            on_converted: Optional[ConversionCallback] = None,
            chain_context: Optional[ChainContext] = None,
    ) -> Optional[T]:
        """Convert *source* into an instance of *target_type*.

        Args:
            source:             Record to read; ``None`` → returns ``None``.
            target_type:        Model class to materialise.
            culture:            Culture of the conversion; defaults to the
                                ambient culture.
            instance:           Existing *target_type* instance to populate
                                instead of creating one (never proxied).
            processor_contexts: Contexts made available to processors whose
                                ``context_type`` matches.
            on_converting:      Callback fired last among CONVERTING handlers.
            on_converted:       Callback fired last among CONVERTED handlers.
            chain_context:      Chain to join (nested conversions pass their
                                parent's).

        Raises:
            ArgumentValidationError:     *instance* is not a *target_type*.
            InvalidConversionSetupError: *target_type* cannot be constructed.
            InvalidLazyPropertyError:    a lazy property is not overridable.
        """
        if source is None:
            return None

        if instance is not None and not isinstance(instance, target_type):
            raise ArgumentValidationError(
                f"The instance parameter does not implement type '{target_type.__qualname__}'"
            )

        culture = resolve_culture(culture)
        chain = chain_context if chain_context is not None else ChainContext()
        chain.processor_contexts.extend(processor_contexts or ())

        descriptor = describe(target_type)
        with debug_duration(logger, "Convert %s (%s %s)", target_type.__qualname__, source.source_type, source.id):
            if descriptor.cache is not None:
                cache_ctx = CacheContext.create(descriptor.cache, source, target_type, culture)
                return self.cache.get_or_compute(
                    cache_ctx,
                    lambda: self._convert_content(
                        descriptor, source, culture, instance, on_converting, on_converted, chain,
                    ),
                )
            return self._convert_content(
                descriptor, source, culture, instance, on_converting, on_converted, chain,
            )

    def convert_many(
            self,
            sources: Iterable[Optional[ContentSource]],
            target_type: type[T],
            **kwargs: Any,
    ) -> List[Optional[T]]:
        """``convert`` each source in turn; keyword arguments apply to all."""
        return [self.convert(source, target_type, **kwargs) for source in sources]

    # -- internals ----------------------------------------------------------

    def _convert_content(
            self,
            descriptor: TypeDescriptor,
            content: ContentSource,
            culture: str,
            instance: Any,
            on_converting: Optional[ConversionCallback],
            on_converted: Optional[ConversionCallback],
            chain: ChainContext,
    ) -> Any:
        target_type = descriptor.target_type
        shape = descriptor.constructor
        is_type = isinstance(content, target_type)

        if shape is ConstructorShape.INVALID and not is_type:
            raise InvalidConversionSetupError(
                f"Cannot convert {type(content).__qualname__} to {target_type.__qualname__} as it has no "
                f"valid constructor. A valid constructor is either an empty one, or one accepting a "
                f"single ContentSource parameter."
            )

        lazy_properties = descriptor.lazy_properties if instance is None else ()

        if instance is None:
            if lazy_properties:
                for prop in lazy_properties:
                    if not prop.overridable:
                        raise InvalidLazyPropertyError(
                            f"Lazy property '{prop.name}' of type '{target_type.__module__}."
                            f"{target_type.__qualname__}' must be overridable (not Final) in order "
                            f"to be lazy loadable."
                        )
                if shape is ConstructorShape.INVALID:
                    raise InvalidConversionSetupError(
                        f"Cannot create a lazy proxy of {target_type.__qualname__}: it has no valid constructor."
                    )
                instance = create_proxy(
                    target_type,
                    [p.name for p in lazy_properties],
                    content if shape is ConstructorShape.CONTENT_ARG else None,
                )
            elif is_type:
                instance = content
            elif shape is ConstructorShape.CONTENT_ARG:
                instance = target_type(content)
            else:
                instance = target_type()

        self.dispatcher.dispatch(ConversionPhase.CONVERTING, content, target_type, culture, instance, on_converting)

        if lazy_properties:
            install_lazy_values(instance, {
                prop.name: LazyValue(functools.partial(
                    self.pipeline.value_for, content, prop, target_type, culture, chain, self,
                ))
                for prop in lazy_properties
            })

        lazy_names = {p.name for p in lazy_properties}
        for prop in descriptor.properties:
            if prop.ignore or prop.name in lazy_names:
                continue
            value = self.pipeline.value_for(content, prop, target_type, culture, chain, self)
            setattr(instance, prop.name, value)

        self.dispatcher.dispatch(ConversionPhase.CONVERTED, content, target_type, culture, instance, on_converted)
        return instance
