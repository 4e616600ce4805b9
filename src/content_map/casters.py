"""Built-in type casters for the ``CastToType`` post processor.

Exports
-------
BUILTIN_CASTERS
    Dictionary mapping a declared property type to a caster function.
    Default types: int, float, bool, str, Decimal, date, datetime.

Custom casters can be registered by passing a custom casters dict to
``build_default_converter(casters=...)``; it is merged over the built-ins.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def _to_bool(x: Any) -> bool:
    if isinstance(x, str):
        return x.strip().lower() in _TRUE_STRINGS
    return bool(x)


def _to_date(x: Any) -> date:
    if isinstance(x, datetime):
        return x.date()
    return date.fromisoformat(str(x).strip())


def _to_datetime(x: Any) -> datetime:
    if isinstance(x, date):
        return datetime(x.year, x.month, x.day)
    return datetime.fromisoformat(str(x).strip())


# ─────────────────────────────────────────────────────────────────────────────
# Built-in casters
# ─────────────────────────────────────────────────────────────────────────────

BUILTIN_CASTERS: dict[type, Callable[[Any], Any]] = {
    int: lambda x: int(x),
    float: lambda x: float(x),
    bool: _to_bool,
    str: lambda x: str(x),
    Decimal: lambda x: Decimal(str(x)),
    date: _to_date,
    datetime: _to_datetime,
}
