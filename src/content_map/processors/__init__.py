"""Processors sub-package — the built-in ``Processor`` implementations,
grouped by role.

property  – field extraction (``Property``, ``CurrentContent``, ``DefaultValue``)
delimited – delimited-text splitting (``Delimited``)
query     – JMESPath queries over structured values (``Query``)
post      – the core post processors appended to every chain
"""

from .delimited import Delimited
from .post import CastToType, EnumerableConverter, RecursiveConvert, is_enumerable_value
from .property import CurrentContent, DefaultValue, Property
from .query import QUERY_OPTIONS, Query

__all__ = [
    # property
    "Property",
    "CurrentContent",
    "DefaultValue",
    # delimited
    "Delimited",
    # query
    "Query",
    "QUERY_OPTIONS",
    # post
    "EnumerableConverter",
    "RecursiveConvert",
    "CastToType",
    "is_enumerable_value",
]
