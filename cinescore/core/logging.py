"""Structured logging for cinescore.

Events are emitted through structlog and rendered by the stdlib logging
machinery, so third-party loggers share the same output. Each record carries:

- a correlation ID, one per CLI invocation or cache recompute job
- any fields bound with ``bind_context``
- the package version and the hostname

Output is a colored console format for humans or one JSON object per line.

Example usage:
    from cinescore.core.logging import configure_logging, get_logger

    configure_logging(level="INFO")
    logger = get_logger(__name__)

    with correlation_context("recompute-42"):
        logger.info("weighted_cache_recomputed", updated=120)
"""

import logging
import re
import socket
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from functools import lru_cache
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from cinescore import __version__

CINESCORE_VERSION = __version__

MAX_EVENT_LENGTH = 10000

_TRUNCATION_MARK = "... [TRUNCATED]"

# ANSI CSI sequences such as color codes.
_ANSI_CSI = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

# Control characters that could forge extra lines in a log file.
_ESCAPES = str.maketrans({"\r": "\\r", "\n": "\\n", "\x1b": ""})

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Logger name prefix to minimum level.
_module_levels: dict[str, int] = {}


def _to_level(level: int | str) -> int:
    """Numeric level for a level number, level name or logger method name."""
    if isinstance(level, int):
        return level
    name = level.upper()
    if name == "EXCEPTION":
        return logging.ERROR
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context; None clears it."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Tag every event inside the block with one correlation ID.

    A fresh ID is generated when none is given. The previous ID is restored
    on exit, so blocks nest.
    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get() or ""
    finally:
        _correlation_id.reset(token)


def bind_context(**fields: Any) -> Any:
    """Bind fields to every event logged inside a ``with`` block.

    Example:
        with bind_context(dataset="catalog.yaml"):
            logger.info("dataset_loaded")  # includes dataset
    """
    return structlog.contextvars.bound_contextvars(**fields)


# =============================================================================
# Processors
# =============================================================================


def add_correlation_id(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


@lru_cache(maxsize=1)
def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


def add_package_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ``cinescore_version`` and ``hostname`` unless already present."""
    event_dict.setdefault("cinescore_version", CINESCORE_VERSION)
    event_dict.setdefault("hostname", _hostname())
    return event_dict


def sanitize_log_message(message: str) -> str:
    """Strip ANSI sequences, escape line breaks and cap the length."""
    cleaned = _ANSI_CSI.sub("", message).translate(_ESCAPES)
    if len(cleaned) > MAX_EVENT_LENGTH:
        keep = MAX_EVENT_LENGTH - len(_TRUNCATION_MARK)
        cleaned = cleaned[:keep] + _TRUNCATION_MARK
    return cleaned


def sanitize_event(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = sanitize_log_message(event)
    return event_dict


def _threshold_for(logger_name: str) -> int | None:
    """Level configured for the logger or its closest configured parent."""
    parts = logger_name.split(".")
    while parts:
        level = _module_levels.get(".".join(parts))
        if level is not None:
            return level
        parts.pop()
    return None


def filter_by_module_level(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Drop events below the level set for their module."""
    if not _module_levels:
        return event_dict
    threshold = _threshold_for(event_dict.get("logger") or "")
    if threshold is not None and _to_level(method_name) < threshold:
        raise structlog.DropEvent
    return event_dict


def set_module_log_level(module: str, level: int | str) -> None:
    """Set a minimum level for a module and its children."""
    _module_levels[module] = _to_level(level)


def get_module_log_level(module: str) -> int | None:
    return _module_levels.get(module)


def clear_module_log_levels() -> None:
    _module_levels.clear()


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        filter_by_module_level,
        add_correlation_id,
        add_package_fields,
        sanitize_event,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


# =============================================================================
# Configuration
# =============================================================================


def _handler(
    handler: logging.Handler, level: int, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str | int = logging.INFO,
    json_output: bool | None = None,
    log_file: str | None = None,
    module_levels: dict[str, str | int] | None = None,
) -> None:
    """Route structlog and stdlib logging to stderr and an optional file.

    Args:
        level: Global log level name or number.
        json_output: JSON lines instead of console output. None picks JSON
            when stderr is not a terminal.
        log_file: Also write records to this file.
        module_levels: Per-module minimum levels.
    """
    numeric_level = _to_level(level)
    if json_output is None:
        json_output = not sys.stderr.isatty()

    for module, module_level in (module_levels or {}).items():
        set_module_log_level(module, module_level)

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer, foreign_pre_chain=pre_chain
    )

    # stderr keeps command output on stdout parseable.
    console = logging.StreamHandler(sys.stderr)
    handlers = [_handler(console, numeric_level, formatter)]
    if log_file:
        handlers.append(
            _handler(logging.FileHandler(log_file), numeric_level, formatter)
        )

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(numeric_level)


def configure_logging_from_settings() -> None:
    """Apply the ``logging`` section of the cached settings."""
    from cinescore.core.settings import get_cached_settings

    log_settings = get_cached_settings().logging
    configure_logging(
        level=log_settings.level,
        json_output=log_settings.json_output,
        log_file=log_settings.file,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def reset_logging() -> None:
    """Undo configure_logging and clear all context. Used by tests."""
    clear_module_log_levels()
    _correlation_id.set(None)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.WARNING)
