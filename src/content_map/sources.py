"""In-memory ``ContentSource`` adapter.

``MappingSource`` wraps a plain mapping of field values.  It serves tests,
fixtures and any repository that can hand over a record as a dict; adapters
for real content stores implement ``ContentSource`` the same way.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .core import ContentSource


class MappingSource(ContentSource):
    """Record backed by a mapping, with an optional parent for recursive reads.

    ::

        home = MappingSource(1, "home", {"footer": "© ACME"})
        page = MappingSource(42, "page", {"title": "Hello"}, parent=home)

        page.value("footer")                  # None
        page.value("footer", recursive=True)  # "© ACME"
    """

    def __init__(
            self,
            id: Any,
            source_type: str,
            fields: Optional[Mapping[str, Any]] = None,
            *,
            version: Any = 1,
            parent: Optional[ContentSource] = None,
    ) -> None:
        self._id = str(id)
        self._source_type = source_type
        self._fields = dict(fields or {})
        self._version = version
        self.parent = parent

    @property
    def id(self) -> str:
        return self._id

    @property
    def source_type(self) -> str:
        return self._source_type

    @property
    def version(self) -> Any:
        return self._version

    def has_value(self, key: str) -> bool:
        return key in self._fields

    def value(self, key: str, recursive: bool = False) -> Any:
        result = self._fields.get(key)
        if recursive and (result is None or result == "") and self.parent is not None:
            return self.parent.value(key, recursive=True)
        return result

    def __repr__(self) -> str:
        return f"MappingSource(id={self._id!r}, source_type={self._source_type!r}, version={self._version!r})"
