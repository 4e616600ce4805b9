"""Core abstractions: content sources, processors, contexts and handlers.

This module owns every *interface* in the system.  Nothing here depends on a
concrete implementation.  The concrete processors live in ``processors``,
reflection in ``metadata``, the orchestration in ``converter`` and the wiring
in ``factory``.

Conversion flow (``Converter.convert`` entry point)::

    ContentSource + target type
      │
      ▼
    describe(target type)              ← TypeDescriptor (cached per type)
      │
      ▼
    instance / proxy creation
    HandlerDispatcher(CONVERTING)
      │
      ▼
    for property in descriptor.properties:
        ValuePipeline.value_for(property)
            value = content
            for processor in resolve(property):        ← ordered groups
                ctx = chain.processor_contexts.get_or_create(base, processor.context_type)
                value = processor.process(value, ctx, chain)
      │
      ▼
    HandlerDispatcher(CONVERTED)
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Iterator, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .converter import Converter
    from .metadata import PropertyDescriptor


# ─────────────────────────────────────────────────────────────────────────────
# ContentSource — the record being converted
# ─────────────────────────────────────────────────────────────────────────────


class ContentSource(ABC):
    """Read-only named-value store for one logical record.

    Implementations adapt a concrete content repository.  The converter only
    reads from a source and never writes back to it; a source must not change
    for the duration of one ``convert`` call.

    ``version`` is any comparable token; it is part of every cache key so a
    new version implicitly invalidates cached conversions.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Opaque identity of the record."""

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Type discriminator (document type alias, table name, …)."""

    @property
    @abstractmethod
    def version(self) -> Any:
        """Version token of the record."""

    @abstractmethod
    def has_value(self, key: str) -> bool:
        """Return ``True`` when the record exposes a field named *key*."""

    @abstractmethod
    def value(self, key: str, recursive: bool = False) -> Any:
        """Return the raw value of *key*, or ``None``.

        With ``recursive=True`` an implementation may walk up to ancestor
        records until a value is found.
        """


# ─────────────────────────────────────────────────────────────────────────────
# Processor contexts — per-processor payload and chain-scoped state
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class ProcessorContext:
    """Payload handed to a processor for one property.

    Subclass it (as a dataclass whose extra fields have defaults) when a
    processor needs its own settings; set the processor's ``context_type`` to
    the subclass.  Within one chain a single instance exists per context type:
    it is re-populated with the current property before each use.

    Attributes:
        content:     The content source being converted.
        target_type: The model type that declares ``property``.
        property:    The property being resolved.
        culture:     The culture of the conversion.
        converter:   Back-reference to the owning ``Converter`` (used for
                     nested conversions).
    """

    content: Optional[ContentSource] = None
    target_type: Optional[type] = None
    property: Optional['PropertyDescriptor'] = None
    culture: Optional[str] = None
    converter: Optional['Converter'] = None

    def populate(self, base: ProcessorContext) -> ProcessorContext:
        """Copy the base fields of *base* onto this context and return it."""
        for f in fields(ProcessorContext):
            setattr(self, f.name, getattr(base, f.name))
        return self


class ProcessorContextCollection:
    """At-most-one ``ProcessorContext`` per context type.

    Contexts supplied by the caller of ``convert`` are added up front, so a
    processor declaring their type receives the caller's instance.
    """

    def __init__(self, contexts: Optional[Iterable[ProcessorContext]] = None) -> None:
        self._contexts: List[ProcessorContext] = []
        self.extend(contexts or ())

    def add(self, context: ProcessorContext) -> None:
        """Add *context*, replacing any context of the exact same type."""
        self._contexts = [c for c in self._contexts if type(c) is not type(context)]
        self._contexts.append(context)

    def extend(self, contexts: Iterable[ProcessorContext]) -> None:
        for context in contexts:
            self.add(context)

    def get(self, context_type: type[ProcessorContext]) -> Optional[ProcessorContext]:
        for context in self._contexts:
            if type(context) is context_type:
                return context
        return None

    def get_or_create(
            self,
            base: ProcessorContext,
            context_type: type[ProcessorContext],
    ) -> ProcessorContext:
        """Return the context of *context_type*, creating it on first use.

        The returned context is always re-populated from *base*.
        """
        context = self.get(context_type)
        if context is None:
            context = context_type()
            self._contexts.append(context)
        return context.populate(base)

    def __iter__(self) -> Iterator[ProcessorContext]:
        return iter(list(self._contexts))

    def __len__(self) -> int:
        return len(self._contexts)


@dataclass
class ChainContext:
    """Mutable state shared by every processor run of one object graph.

    A nested conversion (see ``RecursiveConvert``) re-uses its parent's chain
    context, so contexts and metadata survive across the whole graph.

    Attributes:
        processor_contexts: One context per context type.
        metadata:           Free-form dict for processors that need to keep
                            intermediate state between invocations.
    """

    processor_contexts: ProcessorContextCollection = field(default_factory=ProcessorContextCollection)
    metadata: dict[str, Any] = field(default_factory=dict)


# ─────────────────────────────────────────────────────────────────────────────
# Processor — one ordered value transformation
# ─────────────────────────────────────────────────────────────────────────────


class Processor(ABC):
    """Transform the value of a property one step further.

    Processors are attached to properties via ``typing.Annotated``, to types
    via ``with_processors`` or to a ``ProcessorRegistry``.  Within each group
    they run in ascending ``order``; ties keep declaration order.

    Instances are shared by every conversion that uses the declaring type, so
    ``process`` must not keep per-call state on ``self``; use the context or
    ``chain.metadata`` instead.

    Class attributes::

        context_type: type[ProcessorContext]  – context instance to receive
    """

    context_type: type[ProcessorContext] = ProcessorContext

    def __init__(self, *, order: int = 0) -> None:
        self.order = order

    @abstractmethod
    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        """Return the next value.

        The first processor of a chain receives the ``ContentSource`` itself
        and is responsible for extracting the field value from it.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(order={self.order})"


# ─────────────────────────────────────────────────────────────────────────────
# Conversion handlers — hooks around one conversion
# ─────────────────────────────────────────────────────────────────────────────


class ConversionPhase(enum.Enum):
    CONVERTING = "converting"
    CONVERTED = "converted"


@dataclass
class ConversionHandlerContext:
    """What a conversion hook gets to see.

    ``model`` is the instance being populated; during ``CONVERTING`` none of
    its properties have been set yet.
    """

    content: ContentSource
    culture: str
    model_type: type
    model: Any


class ConversionHandler:
    """Base class for handlers attached with ``handled_by`` or a
    ``HandlerRegistry``.

    A fresh handler instance is created for every dispatch, so state kept on
    ``self`` does not survive from ``on_converting`` to ``on_converted``.
    Override the phase methods you need.
    """

    def on_converting(self, ctx: ConversionHandlerContext) -> None:
        """Called after the instance exists and before properties are set."""

    def on_converted(self, ctx: ConversionHandlerContext) -> None:
        """Called after every property has been set."""

    def run(self, ctx: ConversionHandlerContext, phase: ConversionPhase) -> None:
        if phase is ConversionPhase.CONVERTING:
            self.on_converting(ctx)
        else:
            self.on_converted(ctx)
