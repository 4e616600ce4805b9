"""Deferred-property proxies.

A proxy is an instance of a generated subclass of the model type.  Each lazy
property is replaced on that subclass by a ``LazyAttribute`` data descriptor
that reads from the instance's ``{name: LazyValue}`` mapping, so the object
still passes ``isinstance(obj, Model)`` and reads like a concrete instance.

One subclass is generated per (model type, lazy property set) and re-used.
"""

from __future__ import annotations

import types
from typing import Any, Callable, Iterable, Mapping, Optional

_MISSING = object()

LAZY_VALUES_ATTR = "__content_lazy_values__"


class LazyValue:
    """Single-evaluation memoised computation.

    ``get`` runs the factory on first call only.  Two threads racing on the
    first read may both run it; each stores the same kind of result, so the
    instance stays consistent.
    """

    __slots__ = ("_factory", "_value")

    def __init__(self, factory: Optional[Callable[[], Any]]) -> None:
        self._factory = factory
        self._value: Any = _MISSING

    @classmethod
    def resolved(cls, value: Any) -> LazyValue:
        lazy = cls(None)
        lazy._value = value
        return lazy

    @property
    def evaluated(self) -> bool:
        return self._value is not _MISSING

    def get(self) -> Any:
        value = self._value
        if value is _MISSING:
            value = self._factory()
            self._value = value
        return value


class LazyAttribute:
    """Data descriptor installed on a proxy class for one lazy property.

    Before ``install_lazy_values`` runs (i.e. inside the model's ``__init__``)
    the attribute behaves like a plain instance attribute.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.owner: Optional[type] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.owner = owner

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        values = instance.__dict__.get(LAZY_VALUES_ATTR)
        if values is not None and self.name in values:
            return values[self.name].get()
        if self.name in instance.__dict__:
            return instance.__dict__[self.name]
        return getattr(super(self.owner, instance), self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        values = instance.__dict__.get(LAZY_VALUES_ATTR)
        if values is not None and self.name in values:
            values[self.name] = LazyValue.resolved(value)
        else:
            instance.__dict__[self.name] = value

    def __delete__(self, instance: Any) -> None:
        values = instance.__dict__.get(LAZY_VALUES_ATTR)
        if values is not None:
            values.pop(self.name, None)
        instance.__dict__.pop(self.name, None)


_PROXY_TYPES: dict[tuple[type, frozenset[str]], type] = {}


def proxy_type_for(cls: type, names: Iterable[str]) -> type:
    """Return the proxy subclass of *cls* for the lazy property *names*."""
    key = (cls, frozenset(names))
    proxy = _PROXY_TYPES.get(key)
    if proxy is None:
        def body(ns: dict[str, Any]) -> None:
            ns["__module__"] = cls.__module__
            ns["__qualname__"] = f"{cls.__qualname__}Proxy"
            ns["__content_proxy_of__"] = cls
            for name in sorted(key[1]):
                ns[name] = LazyAttribute(name)

        proxy = _PROXY_TYPES.setdefault(key, types.new_class(f"{cls.__name__}Proxy", (cls,), exec_body=body))
    return proxy


def create_proxy(cls: type, names: Iterable[str], content: Any = None) -> Any:
    """Instantiate the proxy type, passing *content* to the constructor when given."""
    proxy_type = proxy_type_for(cls, names)
    return proxy_type(content) if content is not None else proxy_type()


def install_lazy_values(instance: Any, values: Mapping[str, LazyValue]) -> None:
    """Attach the lazy mapping; values assigned during ``__init__`` are dropped."""
    instance.__dict__[LAZY_VALUES_ATTR] = dict(values)
    for name in values:
        instance.__dict__.pop(name, None)


def is_proxy(obj: Any) -> bool:
    return LAZY_VALUES_ATTR in getattr(obj, "__dict__", {})


def unproxied_type(obj: Any) -> type:
    """The model type behind *obj* (its own type when it is not a proxy)."""
    return getattr(type(obj), "__content_proxy_of__", type(obj))
