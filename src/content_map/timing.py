"""DEBUG-level duration logging."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator


@contextmanager
def debug_duration(logger: logging.Logger, message: str, *args: Any) -> Iterator[None]:
    """Log how long the enclosed block took, at DEBUG level.

    *message* and *args* follow the ``logging`` lazy formatting convention;
    nothing is measured when DEBUG is disabled for *logger*.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        yield
        return

    t0 = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - t0) * 1000
        logger.debug(message + " took %.2fms", *args, elapsed_ms)
