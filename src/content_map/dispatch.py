"""Conversion handler dispatch.

For one phase, handlers fire in this order:

1. handler types attached to the model with ``handled_by`` (declaration order);
2. handler types registered for the model in the ``HandlerRegistry``;
3. the model's ``@on_converting`` / ``@on_converted`` methods, looked up on
   the instance so subclass overrides apply;
4. the caller's callback.

A fresh handler instance is created per dispatch.  Any exception aborts the
remaining handlers and the conversion.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .core import ContentSource, ConversionHandlerContext, ConversionPhase
from .metadata import describe
from .registry import HandlerRegistry

logger = logging.getLogger(__name__)

ConversionCallback = Callable[[ConversionHandlerContext], None]


class HandlerDispatcher:

    def __init__(self, registry: HandlerRegistry) -> None:
        self.registry = registry

    def dispatch(
            self,
            phase: ConversionPhase,
            content: ContentSource,
            model_type: type,
            culture: str,
            model: Any,
            callback: Optional[ConversionCallback] = None,
    ) -> ConversionHandlerContext:
        ctx = ConversionHandlerContext(
            content=content,
            culture=culture,
            model_type=model_type,
            model=model,
        )
        descriptor = describe(model_type)

        for handler_type in descriptor.handler_types:
            handler_type().run(ctx, phase)

        for handler_type in self.registry.handlers_for(model_type):
            handler_type().run(ctx, phase)

        for name in descriptor.hooks_for(phase):
            getattr(model, name)(ctx)

        if callback is not None:
            callback(ctx)

        logger.debug("Dispatched %s handlers for %s (%s)", phase.value, model_type.__qualname__, content.id)
        return ctx
