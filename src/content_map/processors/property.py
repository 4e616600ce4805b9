"""Extraction processors — turn the seed ``ContentSource`` into a field value.

Property
    Read a named field, with an alternative name and a fallback default.
    The registry default for properties that declare no processors.

CurrentContent
    Yield the content source itself (for nested model properties).

DefaultValue
    Substitute a constant when the value so far is empty.
"""

from __future__ import annotations

import collections.abc as abc
from typing import Any, Mapping, Optional

from ..core import ChainContext, ContentSource, Processor, ProcessorContext


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _source_of(value: Any, ctx: ProcessorContext) -> Any:
    if isinstance(value, (ContentSource, Mapping)):
        return value
    if value is None or isinstance(value, (str, bytes, int, float, abc.Iterable)):
        return ctx.content
    return value


def _read(source: Any, key: str, recursive: bool) -> Any:
    if isinstance(source, ContentSource):
        if not source.has_value(key) and not recursive:
            return None
        return source.value(key, recursive)
    if isinstance(source, Mapping):
        return source.get(key)
    if source is None:
        return None
    return getattr(source, key, None)


class Property(Processor):
    """Read a field from the content source.

    Schema::

        Property()                                   # field named like the property
        Property("bodyText")                         # explicit alias
        Property("summary", alt_alias="bodyText")    # fallback field
        Property("footer", recursive=True)           # walk up ancestors
        Property("title", default="Untitled")

    * A ``ContentSource`` value is read with ``has_value`` / ``value``; a
      mapping value with ``get``.
    * ``None``, scalars and collections fall back to the context's content,
      so a ``Property`` placed after another processor still reads the record.
    * Any other object is read with ``getattr``.
    * ``None`` and ``""`` count as empty: ``alt_alias`` is tried next, then
      ``default``.
    """

    def __init__(
            self,
            alias: Optional[str] = None,
            *,
            alt_alias: Optional[str] = None,
            recursive: bool = False,
            default: Any = None,
            order: int = 0,
    ) -> None:
        super().__init__(order=order)
        self.alias = alias
        self.alt_alias = alt_alias
        self.recursive = recursive
        self.default = default

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        source = _source_of(value, ctx)
        alias = self.alias or (ctx.property.name if ctx.property is not None else None)
        if alias is None:
            return self.default

        result = _read(source, alias, self.recursive)
        if _is_empty(result) and self.alt_alias:
            result = _read(source, self.alt_alias, self.recursive)
        if _is_empty(result) and self.default is not None:
            result = self.default
        return result

    def __repr__(self) -> str:
        return f"Property({self.alias!r}, order={self.order})"


class CurrentContent(Processor):
    """Yield the content being converted.

    Combine with a model-typed property so ``RecursiveConvert`` maps the
    same record onto a second model::

        seo: Annotated[SeoMeta, CurrentContent()]
    """

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        return ctx.content


class DefaultValue(Processor):
    """Replace an empty value (``None`` or ``""``) with *value*."""

    def __init__(self, value: Any, *, order: int = 0) -> None:
        super().__init__(order=order)
        self.value = value

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        return self.value if _is_empty(value) else value
