"""Converter factory — the single place where all pieces are assembled.

``build_default_converter`` is the recommended entry point for users who want
a fully functional Converter without hand-wiring every registry.

Customisation points:

* **cache**             – ``ConversionCache`` backend.  ``None`` → ``MemoryCache``.
* **processors**        – pre-built ``ProcessorRegistry``.  ``None`` → defaults.
* **handlers**          – pre-built ``HandlerRegistry``.  ``None`` → empty.
* **casters**           – merged over ``BUILTIN_CASTERS`` for ``CastToType``.
* **default_processor** – used for properties that declare no processors.
* **post_processors**   – replaces the core post-processor tail.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from .cache import ConversionCache, MemoryCache
from .casters import BUILTIN_CASTERS
from .converter import Converter
from .core import Processor
from .processors import CastToType, EnumerableConverter, Property, RecursiveConvert
from .registry import HandlerRegistry, ProcessorRegistry


def build_default_processor_registry(
        *,
        casters: Optional[Mapping[type, Callable[[Any], Any]]] = None,
        default_processor: Optional[Processor] = None,
        post_processors: Optional[Iterable[Processor]] = None,
) -> ProcessorRegistry:
    """Registry with ``Property()`` as default and the core post processors.

    Post processors, in order:

    * ``EnumerableConverter`` – reconcile single values / collections.
    * ``RecursiveConvert``    – content sources → nested models.
    * ``CastToType``          – scalars → declared type, via *casters*.
    """
    registry = ProcessorRegistry(default_processor or Property())

    if post_processors is None:
        resolved_casters = {**BUILTIN_CASTERS, **(casters or {})}
        post_processors = (
            EnumerableConverter(),
            RecursiveConvert(),
            CastToType(resolved_casters),
        )
    for processor in post_processors:
        registry.register_post_processor(processor)
    return registry


def build_default_converter(
        *,
        cache: Optional[ConversionCache] = None,
        processors: Optional[ProcessorRegistry] = None,
        handlers: Optional[HandlerRegistry] = None,
        casters: Optional[Mapping[type, Callable[[Any], Any]]] = None,
        default_processor: Optional[Processor] = None,
        post_processors: Optional[Iterable[Processor]] = None,
) -> Converter:
    """Assemble a Converter with the standard registries and cache.

    *casters*, *default_processor* and *post_processors* are ignored when a
    ready-made *processors* registry is passed.

    Example::

        converter = build_default_converter()
        page = converter.convert(MappingSource(42, "page", {"title": "Hello"}), Page)
        # → Page(title="Hello")
    """
    if processors is None:
        processors = build_default_processor_registry(
            casters=casters,
            default_processor=default_processor,
            post_processors=post_processors,
        )

    return Converter(
        processors=processors,
        handlers=handlers if handlers is not None else HandlerRegistry(),
        cache=cache if cache is not None else MemoryCache(),
    )
