"""content_map — materialise typed models from semi-structured content.

::

    from typing import Annotated
    from content_map import MappingSource, Property, build_default_converter

    class Page:
        title: str
        body: Annotated[str, Property("bodyText")]

    converter = build_default_converter()
    page = converter.convert(MappingSource(42, "page", {"title": "Hello", "bodyText": "…"}), Page)
"""

from .cache import Cache, CacheBy, CacheContext, ConversionCache, MemoryCache, NullCache
from .casters import BUILTIN_CASTERS
from .converter import Converter
from .core import (
    ChainContext,
    ContentSource,
    ConversionHandler,
    ConversionHandlerContext,
    ConversionPhase,
    Processor,
    ProcessorContext,
    ProcessorContextCollection,
)
from .culture import INVARIANT, culture_scope, current_culture
from .dispatch import HandlerDispatcher
from .errors import (
    ArgumentValidationError,
    ContentMapError,
    InvalidConversionSetupError,
    InvalidLazyPropertyError,
    ProcessorError,
)
from .factory import build_default_converter, build_default_processor_registry
from .metadata import (
    ConstructorShape,
    Ignore,
    Lazy,
    PropertyDescriptor,
    TypeDescriptor,
    describe,
    handled_by,
    on_converted,
    on_converting,
    with_processors,
)
from .pipeline import ValuePipeline
from .processors import (
    CastToType,
    CurrentContent,
    DefaultValue,
    Delimited,
    EnumerableConverter,
    Property,
    Query,
    RecursiveConvert,
)
from .proxy import LazyValue, is_proxy, unproxied_type
from .registry import HandlerRegistry, ProcessorRegistry
from .sources import MappingSource

__all__ = [
    # core
    "ContentSource",
    "Processor",
    "ProcessorContext",
    "ProcessorContextCollection",
    "ChainContext",
    "ConversionHandler",
    "ConversionHandlerContext",
    "ConversionPhase",
    # entry points
    "Converter",
    "build_default_converter",
    "build_default_processor_registry",
    "ValuePipeline",
    "HandlerDispatcher",
    # declarations
    "Ignore",
    "Lazy",
    "Cache",
    "CacheBy",
    "with_processors",
    "handled_by",
    "on_converting",
    "on_converted",
    # metadata
    "describe",
    "TypeDescriptor",
    "PropertyDescriptor",
    "ConstructorShape",
    # registries
    "ProcessorRegistry",
    "HandlerRegistry",
    # cache
    "CacheContext",
    "ConversionCache",
    "MemoryCache",
    "NullCache",
    # processors
    "Property",
    "CurrentContent",
    "DefaultValue",
    "Delimited",
    "Query",
    "EnumerableConverter",
    "RecursiveConvert",
    "CastToType",
    "BUILTIN_CASTERS",
    # proxies
    "LazyValue",
    "is_proxy",
    "unproxied_type",
    # culture
    "culture_scope",
    "current_culture",
    "INVARIANT",
    # sources
    "MappingSource",
    # errors
    "ContentMapError",
    "ArgumentValidationError",
    "InvalidConversionSetupError",
    "InvalidLazyPropertyError",
    "ProcessorError",
]
