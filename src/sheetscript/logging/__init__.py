"""Structured event logging for sheetscript.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from sheetscript.logging.events import (
    EventLevel,
    EventType,
    ScriptEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    redact_context,
    set_echo,
    set_log_dir,
)
from sheetscript.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "ScriptEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "redact_context",
    "set_echo",
    "set_log_dir",
]
