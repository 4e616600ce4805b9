"""Conversion cache — memoise whole objects or single property values.

Exports
-------
CacheBy
    Flags selecting which parts of a ``CacheContext`` feed the key.

Cache
    The directive.  Decorate a model class with ``@Cache(...)`` to cache whole
    conversions, or put ``Cache(...)`` into a property's ``Annotated``
    metadata to cache that property's processed value.

CacheContext
    Frozen key seed derived from (content id, version, source type, target
    type, property, culture).

ConversionCache
    Backend interface: ``get_or_compute(context, compute)``.

MemoryCache / NullCache
    In-process dict backend with optional expiry and size cap / no caching
    at all.

Policy: backends do not serialise computations.  Two concurrent calls with
the same context may both run ``compute``; each returns its own result and
the last write is what later calls observe.
"""

from __future__ import annotations

import enum
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .core import ContentSource
    from .metadata import PropertyDescriptor

CACHE_ATTR = "__content_cache__"


class CacheBy(enum.Flag):
    CONTENT_ID = 1
    CONTENT_VERSION = 2
    SOURCE_TYPE = 4
    TARGET_TYPE = 8
    PROPERTY_NAME = 16
    CULTURE = 32
    DEFAULT = 1 | 2 | 8 | 16 | 32


class Cache:
    """Cache directive.

    Args:
        duration:    Seconds an entry stays valid; ``None`` → until evicted.
        cache_by:    Which context parts make up the key.
        key_builder: Optional ``CacheContext → str`` overriding the default
                     key format entirely.
    """

    def __init__(
            self,
            duration: Optional[float] = None,
            cache_by: CacheBy = CacheBy.DEFAULT,
            key_builder: Optional[Callable[['CacheContext'], str]] = None,
    ) -> None:
        self.duration = duration
        self.cache_by = cache_by
        self.key_builder = key_builder

    def __call__(self, cls: type) -> type:
        setattr(cls, CACHE_ATTR, self)
        return cls

    def __repr__(self) -> str:
        return f"Cache(duration={self.duration!r}, cache_by={self.cache_by!r})"


@dataclass(frozen=True)
class CacheContext:
    """Everything a cache key may be derived from."""

    cache: Cache = field(compare=False, hash=False)
    content_id: str
    content_version: Any
    source_type: str
    target_type: type
    property_name: Optional[str]
    culture: str

    @classmethod
    def create(
            cls,
            cache: Cache,
            content: 'ContentSource',
            target_type: type,
            culture: str,
            prop: Optional['PropertyDescriptor'] = None,
    ) -> CacheContext:
        return cls(
            cache=cache,
            content_id=content.id,
            content_version=content.version,
            source_type=content.source_type,
            target_type=target_type,
            property_name=prop.name if prop is not None else None,
            culture=culture,
        )

    def key(self) -> str:
        if self.cache.key_builder is not None:
            return self.cache.key_builder(self)

        by = self.cache.cache_by
        parts = ["content_map"]
        if CacheBy.CONTENT_ID in by:
            parts.append(f"id={self.content_id}")
        if CacheBy.CONTENT_VERSION in by:
            parts.append(f"v={self.content_version}")
        if CacheBy.SOURCE_TYPE in by:
            parts.append(f"st={self.source_type}")
        if CacheBy.TARGET_TYPE in by:
            parts.append(f"t={self.target_type.__module__}.{self.target_type.__qualname__}")
        if CacheBy.PROPERTY_NAME in by and self.property_name is not None:
            parts.append(f"p={self.property_name}")
        if CacheBy.CULTURE in by:
            parts.append(f"c={self.culture}")
        return "|".join(parts)

    def entry_key(self) -> tuple[Optional[type], str]:
        """``key()`` paired with the target type object itself.

        Distinct classes sharing a module and qualname (factory-made or
        reloaded) never share an entry.  Without ``TARGET_TYPE`` in
        ``cache_by`` the type part is ``None``.
        """
        target = self.target_type if CacheBy.TARGET_TYPE in self.cache.cache_by else None
        return target, self.key()


class ConversionCache(ABC):
    """Get-or-compute backend.

    Must be safe to call concurrently for different contexts.
    """

    @abstractmethod
    def get_or_compute(self, context: CacheContext, compute: Callable[[], Any]) -> Any:
        """Return the cached value for *context*, computing and storing it
        when absent or expired."""


class NullCache(ConversionCache):
    """Never caches; every call computes."""

    def get_or_compute(self, context: CacheContext, compute: Callable[[], Any]) -> Any:
        return compute()


class MemoryCache(ConversionCache):
    """Process-memory backend keyed by ``CacheContext.entry_key()``.

    Args:
        clock:       Monotonic time source, in seconds.
        max_entries: Upper bound on stored entries; the oldest writes are
                     evicted first.  ``None`` → unbounded.

    Expired entries are dropped when read and swept on the next write after
    the earliest expiry.  The lock guards the entry map only; ``compute``
    runs outside it.
    """

    def __init__(
            self,
            clock: Callable[[], float] = time.monotonic,
            max_entries: Optional[int] = None,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[tuple[Optional[type], str], tuple[Optional[float], Any]] = {}
        self._next_expiry: Optional[float] = None
        self._lock = threading.Lock()

    def get_or_compute(self, context: CacheContext, compute: Callable[[], Any]) -> Any:
        key = context.entry_key()
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] is not None and entry[0] <= now:
                del self._entries[key]
                entry = None
        if entry is not None:
            return entry[1]

        value = compute()
        duration = context.cache.duration
        now = self._clock()
        expires_at = now + duration if duration is not None else None
        with self._lock:
            self._sweep(now)
            # re-inserting moves the key to the end of the eviction order
            self._entries.pop(key, None)
            self._entries[key] = (expires_at, value)
            if expires_at is not None and (self._next_expiry is None or expires_at < self._next_expiry):
                self._next_expiry = expires_at
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    del self._entries[next(iter(self._entries))]
        return value

    def _sweep(self, now: float) -> None:
        """Drop expired entries once the earliest expiry has passed.  Lock held."""
        if self._next_expiry is None or now < self._next_expiry:
            return
        self._entries = {
            k: entry for k, entry in self._entries.items()
            if entry[0] is None or entry[0] > now
        }
        self._next_expiry = min(
            (entry[0] for entry in self._entries.values() if entry[0] is not None),
            default=None,
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_expiry = None

    def __contains__(self, context: CacheContext) -> bool:
        with self._lock:
            return context.entry_key() in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
