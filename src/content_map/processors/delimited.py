"""Split delimited text into a list of strings."""

from __future__ import annotations

import collections.abc as abc
from typing import Any, Optional

import regex

from ..core import ChainContext, Processor, ProcessorContext
from ..errors import ProcessorError


class Delimited(Processor):
    """Split a string value on a separator.

    Schema::

        Delimited()                       # "a, b,c"   → ["a", "b", "c"]
        Delimited(";")                    # "a;b"      → ["a", "b"]
        Delimited(pattern=r"[,;|]")       # regex separator
        Delimited(",", trim=False)        # keep surrounding whitespace

    * ``None`` becomes an empty tuple (re-materialised by the pipeline).
    * Non-string iterables pass through unchanged; other scalars are wrapped
      in a one-item list.
    * Empty parts are dropped.
    * ``timeout`` (seconds) bounds the regex split.
    """

    def __init__(
            self,
            separator: str = ",",
            *,
            pattern: Optional[str] = None,
            trim: bool = True,
            timeout: Optional[float] = 1.0,
            order: int = 0,
    ) -> None:
        super().__init__(order=order)
        if pattern is None and not separator:
            raise ValueError("Delimited requires a non-empty separator or a pattern")
        try:
            self._pattern = regex.compile(pattern if pattern is not None else regex.escape(separator))
        except regex.error as exc:
            raise ProcessorError(f"Delimited: invalid pattern {pattern!r}: {exc}") from exc
        self.trim = trim
        self.timeout = timeout

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        if value is None:
            return ()
        if isinstance(value, bytes):
            value = value.decode()
        if isinstance(value, str):
            parts = self._pattern.split(value, timeout=self.timeout)
            if self.trim:
                parts = [p.strip() for p in parts]
            return [p for p in parts if p]
        if isinstance(value, abc.Iterable) and not isinstance(value, abc.Mapping):
            return value
        return [value]
