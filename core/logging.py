# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across workflows and activities
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Provides structured, JSON-formatted logging for the extraction orchestrator.

Features:
- Component-based loggers
- Contextual fields (workflow_id, run_id, task_id, relay_key)
- JSON output for log aggregation
- Named checkpoints at every continue-as-new and pipeline milestone

Context is kept in a contextvars stack, so every workflow instance and
activity (each its own asyncio task) sees only the fields it pushed.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("orchestrator.expansion")

    with log_context(workflow_id="job-123/expansion"):
        logger.info("Launching task", extra={"discovered": 5})
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union
from enum import Enum


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    PIPELINE = "pipeline"
    EXPANSION = "expansion"
    RELAY = "relay"
    AGGREGATOR = "aggregator"
    RUNTIME = "runtime"
    HANDLER = "handler"
    REPOSITORY = "repository"
    INFRASTRUCTURE = "infrastructure"


@dataclass
class LogContext:
    """
    Context for structured logging.

    Task-local storage for contextual fields.
    """
    workflow_id: Optional[str] = None
    run_id: Optional[str] = None
    relay_key: Optional[str] = None
    task_id: Optional[str] = None
    worker_id: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


_CONTEXT_FIELDS = (
    "workflow_id",
    "run_id",
    "relay_key",
    "task_id",
    "worker_id",
    "component",
    "operation",
)

# Immutable stack so a child task inheriting the variable never mutates
# its parent's view
_context_stack: contextvars.ContextVar[Tuple[LogContext, ...]] = contextvars.ContextVar(
    "log_context_stack", default=()
)


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _context_stack.get()
    if stack:
        return stack[-1]
    return LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Args:
        **kwargs: Context fields to add; unknown keys go into `extra`

    Example:
        with log_context(workflow_id="job-123", task_id="job-123/extract-4"):
            logger.info("Extracting")
    """
    # Merge with parent context
    parent = get_current_context()
    extra = dict(parent.extra)
    extra.update(kwargs.pop("extra", {}) or {})
    for key in list(kwargs):
        if key not in _CONTEXT_FIELDS:
            extra[key] = kwargs.pop(key)

    new_context = LogContext(
        **{name: kwargs.get(name, getattr(parent, name)) for name in _CONTEXT_FIELDS},
        extra=extra,
    )

    token = _context_stack.set(_context_stack.get() + (new_context,))
    try:
        yield new_context
    finally:
        _context_stack.reset(token)


def _timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _record_data(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured payload attached by ContextLogger or log_checkpoint."""
    data = getattr(record, "extra", None)
    return data if isinstance(data, dict) else {}


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line.

        {"timestamp", "level", "logger", "message",
         "context": {...}, "data": {...}, "exception": "..."}

    `context` is the log_context active where the record was emitted;
    `data` is whatever the caller attached.
    """

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context = get_current_context().to_dict()
            if context:
                entry["context"] = context

        data = _record_data(record)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.levelno >= logging.WARNING:
            entry["source"] = f"{record.pathname}:{record.lineno}"

        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Single-line format for local runs:

        12:00:01.250 INFO     orchestrator.expansion [wf=job-1/expansion run=3f2a9c1e]: Launching 4 task(s)
    """

    _SHORT = (
        ("workflow_id", "wf"),
        ("run_id", "run"),
        ("task_id", "task"),
        ("worker_id", "worker"),
    )

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        tags = []
        for name, short in self._SHORT:
            value = getattr(context, name)
            if value:
                tags.append(f"{short}={value[:8] if name == 'run_id' else value}")

        clock = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        line = f"{clock} {record.levelname:<8} {record.name}"
        if tags:
            line += f" [{' '.join(tags)}]"
        line += f": {record.getMessage()}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps records with the active log context.

    Caller `extra` and context fields are merged into one dict stored on
    the record as `record.extra`, which both formatters read.
    """

    def process(self, msg, kwargs):
        merged = dict(kwargs.get("extra") or {})
        merged.update(get_current_context().to_dict())
        component = (self.extra or {}).get("component")
        if component:
            merged.setdefault("component", component)
        kwargs["extra"] = {"extra": merged}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name, usually __name__
        component: Component the records are tagged with

    Returns:
        ContextLogger instance
    """
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component is not None else None},
    )


# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("azure", "aiohttp", "psycopg", "psycopg.pool")


def configure_logging(
    level: Union[str, int, None] = None,
    json_output: Optional[bool] = None,
) -> None:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Log level; LOG_LEVEL when None, INFO when unset
        json_output: JSON lines; LOG_FORMAT=json when None
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if json_output is None:
        json_output = os.getenv("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if json_output else HumanFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

_checkpoint_logger = logging.getLogger("checkpoint")


def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Emit a named milestone such as "expansion_continued" or "pipeline_uploaded".

    The record carries the milestone name, the active log context and
    `data`, so one query on `checkpoint` reconstructs a run across restarts.
    """
    payload: Dict[str, Any] = {"checkpoint": name, **get_current_context().to_dict()}
    if data:
        payload["data"] = data
    (logger or _checkpoint_logger).info(f"CHECKPOINT: {name}", extra={"extra": payload})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
