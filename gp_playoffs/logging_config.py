from __future__ import annotations

import functools
import logging
import os
import reprlib
import time
from typing import Any, Callable, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "gp_playoffs"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package logger. Safe to call more than once."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def log_service_call(fn: F) -> F:
    """Log start, duration and failure of a service-layer call."""
    logger = logging.getLogger(fn.__module__)

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        # Sessions are skipped; long argument reprs are shortened.
        arg_parts = [reprlib.repr(a) for a in args if not hasattr(a, "execute")]
        arg_parts += [f"{k}={reprlib.repr(v)}" for k, v in kwargs.items() if k != "db"]
        arg_str = ", ".join(arg_parts)
        logger.debug("SERVICE CALL: %s(%s)", fn.__qualname__, arg_str)

        start = time.monotonic()
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            logger.error(
                "SERVICE FAIL: %s(%s) -> %s: %s (%.3fs)",
                fn.__qualname__, arg_str, type(exc).__name__, exc, time.monotonic() - start,
            )
            raise
        logger.info("SERVICE OK: %s(%s) -> %.3fs", fn.__qualname__, arg_str, time.monotonic() - start)
        return result

    return wrapper  # type: ignore[return-value]
