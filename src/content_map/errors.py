"""Exception hierarchy for content_map.

Every error raised by the converter itself derives from ``ContentMapError``.
Each concrete error also inherits the closest builtin so callers that only
know about ``ValueError`` / ``TypeError`` still catch it.

Failures raised *inside* processors and conversion handlers are never wrapped:
they propagate to the ``Converter.convert`` caller unchanged.
"""

from __future__ import annotations


class ContentMapError(Exception):
    """Base exception for content_map."""


class ArgumentValidationError(ContentMapError, ValueError):
    """A caller-supplied argument is incompatible with the requested conversion.

    Raised when an existing ``instance`` is not an instance of the target type.
    """


class InvalidConversionSetupError(ContentMapError, TypeError):
    """The target type cannot be materialised from a content source.

    Raised before any instance is created: the type has neither a no-argument
    constructor nor one taking a single ``ContentSource``, and the source
    itself is not an instance of the type.
    """


class InvalidLazyPropertyError(ContentMapError, TypeError):
    """A property selected for deferred evaluation cannot be overridden."""


class ProcessorError(ContentMapError, ValueError):
    """A built-in processor rejected the value it was given."""
