"""Registration surfaces for processors and conversion handlers.

Both registries are plain objects owned by a ``Converter``.  Build them (or
let ``build_default_converter`` build them) and pass them in.

ProcessorRegistry
    * default processors, chosen when a property declares none;
    * processors registered for a property type, appended to its chain;
    * post processors, appended to every chain.

HandlerRegistry
    Conversion handler types registered for a model type (or a base class).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .core import ConversionHandler, Processor
from .metadata import runtime_type


@dataclass
class ProcessorEntry:
    for_type: type
    processor: Processor


@dataclass
class HandlerEntry:
    for_type: type
    handler_type: type[ConversionHandler]


class ProcessorRegistry:
    """Process-wide processor configuration for one converter.

    Lookups match on the runtime class of an annotation (``list[str]`` →
    ``list``) and honour inheritance: an entry registered for ``Base`` applies
    to properties typed ``Derived``.
    """

    def __init__(self, default_processor: Processor) -> None:
        self._fallback = default_processor
        self._defaults: dict[type, Processor] = {}
        self._entries: List[ProcessorEntry] = []
        self._post: List[Processor] = []

    # -- registration -------------------------------------------------------

    def register_default(self, processor: Processor, for_type: type = object) -> None:
        """Use *processor* for properties that declare none.

        *for_type* is matched against the property's declared type first and
        the declaring model type second.  ``object`` replaces the fallback.
        """
        if for_type is object:
            self._fallback = processor
        else:
            self._defaults[for_type] = processor

    def register(self, processor: Processor, for_type: type) -> None:
        """Append *processor* to the chain of every property typed *for_type*."""
        self._entries.append(ProcessorEntry(for_type=for_type, processor=processor))

    def register_post_processor(self, processor: Processor) -> None:
        """Append *processor* to the fixed tail of every chain."""
        self._post.append(processor)

    # -- lookup -------------------------------------------------------------

    def default_for(self, property_type: Any, target_type: Optional[type] = None) -> Processor:
        for tp in (runtime_type(property_type), target_type):
            if tp is None:
                continue
            for klass in tp.__mro__:
                if klass in self._defaults:
                    return self._defaults[klass]
        return self._fallback

    def registered_for(self, property_type: Any) -> Tuple[Processor, ...]:
        cls = runtime_type(property_type)
        return tuple(e.processor for e in self._entries if issubclass(cls, e.for_type))

    def post_processors(self) -> Tuple[Processor, ...]:
        return tuple(self._post)


class HandlerRegistry:
    """Conversion handler types registered per model type."""

    def __init__(self) -> None:
        self._entries: List[HandlerEntry] = []

    def register(self, handler_type: type[ConversionHandler], for_type: type) -> None:
        if not (isinstance(handler_type, type) and issubclass(handler_type, ConversionHandler)):
            raise TypeError(f"expected a ConversionHandler subclass, got {handler_type!r}")
        self._entries.append(HandlerEntry(for_type=for_type, handler_type=handler_type))

    def handlers_for(self, target_type: type) -> Tuple[type[ConversionHandler], ...]:
        return tuple(e.handler_type for e in self._entries if issubclass(target_type, e.for_type))
