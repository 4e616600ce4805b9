"""JMESPath queries over structured field values.

Built-in JMESPath functions
---------------------------
* ``lower(s)`` – lower-case a string
* ``upper(s)`` – upper-case a string
* ``split(s, sep)`` – split a string on a literal separator
"""

from __future__ import annotations

import json
from typing import Any, Optional

import jmespath
from jmespath import exceptions as _jp_exceptions
from jmespath import functions as _jp_funcs

from ..core import ChainContext, ContentSource, Processor, ProcessorContext
from ..errors import ProcessorError


class _QueryFunctions(_jp_funcs.Functions):
    """Custom JMESPath functions available to ``Query`` expressions."""

    @_jp_funcs.signature({"types": ["string"]})
    def _func_lower(self, s: str) -> str:
        return s.lower()

    @_jp_funcs.signature({"types": ["string"]})
    def _func_upper(self, s: str) -> str:
        return s.upper()

    @_jp_funcs.signature({"types": ["string"]}, {"types": ["string"]})
    def _func_split(self, s: str, sep: str) -> list:
        return s.split(sep)


QUERY_OPTIONS = jmespath.Options(custom_functions=_QueryFunctions())


class Query(Processor):
    """Evaluate a JMESPath expression against the current value.

    Schema::

        Query("links[].url")
        Query("lower(name)")

    * A string value is parsed as JSON first (structured editors store JSON).
    * A ``ContentSource`` cannot be queried; put a ``Property`` first.
    * ``None`` stays ``None``.
    """

    def __init__(
            self,
            expression: str,
            *,
            options: Optional[jmespath.Options] = None,
            order: int = 0,
    ) -> None:
        super().__init__(order=order)
        self.expression = expression
        try:
            self._compiled = jmespath.compile(expression)
        except _jp_exceptions.ParseError as exc:
            raise ProcessorError(f"Query: invalid expression {expression!r}: {exc}") from exc
        self._options = options or QUERY_OPTIONS

    def process(self, value: Any, ctx: ProcessorContext, chain: ChainContext) -> Any:
        if value is None:
            return None
        if isinstance(value, ContentSource):
            raise ProcessorError(
                f"Query {self.expression!r} received a ContentSource; add a Property processor before it"
            )
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ProcessorError(f"Query {self.expression!r}: value is not JSON: {exc}") from exc
        return self._compiled.search(value, options=self._options)

    def __repr__(self) -> str:
        return f"Query({self.expression!r}, order={self.order})"
