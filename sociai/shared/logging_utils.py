"""
Structured logging on the ``sociai`` logger.

Every record carries a ``custom_dimensions`` dict (the Application Insights
convention picked up by the Azure Functions host) with the ``traceId`` of the
generation request and any keyword dimensions. The same dimensions are also
rendered into the message so they are visible in a plain console.
"""
import logging
from contextlib import contextmanager
from enum import Enum
from time import perf_counter
from typing import Any, Dict, Iterator, Optional


LOGGER_NAME = "sociai"
_LOGGER = logging.getLogger(LOGGER_NAME)


def _dimensions(trace_id: Optional[str], dimensions: Dict[str, Any]) -> Dict[str, Any]:
    dims: Dict[str, Any] = {"traceId": trace_id} if trace_id else {}
    for key, value in dimensions.items():
        if value is None:
            continue
        dims[key] = value.value if isinstance(value, Enum) else value
    return dims


def log(level: int, trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    if not _LOGGER.isEnabledFor(level):
        return
    dims = _dimensions(trace_id, dimensions)
    rendered = " ".join(f"{k}={v}" for k, v in dims.items())
    _LOGGER.log(level, "%s %s" if rendered else "%s%s", message, rendered, extra={"custom_dimensions": dims})


def info(trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, trace_id, message, **dimensions)


def warning(trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, trace_id, message, **dimensions)


def error(trace_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, trace_id, message, **dimensions)


@contextmanager
def timed(trace_id: Optional[str], message: str, **dimensions: Any) -> Iterator[Dict[str, Any]]:
    """Log ``message`` with ``durationMs`` when the block exits normally.

    The yielded dict can be filled with extra dimensions inside the block.
    """
    extra: Dict[str, Any] = {}
    start = perf_counter()
    yield extra
    info(trace_id, message, durationMs=int((perf_counter() - start) * 1000), **{**dimensions, **extra})
