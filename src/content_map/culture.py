"""Ambient culture resolution.

A conversion runs under one culture string (``"en-US"``, ``"da_DK"``, …).
When the caller passes none, the innermost ``culture_scope`` wins, then the
process locale, then ``INVARIANT``.
"""

from __future__ import annotations

import locale
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

INVARIANT = "invariant"

_current_culture: ContextVar[Optional[str]] = ContextVar("content_map_culture", default=None)


@contextmanager
def culture_scope(culture: str) -> Iterator[str]:
    """Make *culture* the ambient culture for the enclosed block.

    ::

        with culture_scope("da-DK"):
            converter.convert(source, Page)   # culture == "da-DK"
    """
    token = _current_culture.set(culture)
    try:
        yield culture
    finally:
        _current_culture.reset(token)


def current_culture() -> str:
    culture = _current_culture.get()
    if culture:
        return culture
    try:
        language = locale.getlocale()[0]
    except ValueError:
        language = None
    return language or INVARIANT


def resolve_culture(culture: Optional[str]) -> str:
    return culture if culture else current_culture()
