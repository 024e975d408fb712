"""Structured event logging for studioreport.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from studioreport.logging.events import (
    EventLevel,
    EventType,
    ReportEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_report_event,
    redact_context,
    reset_sink,
    set_project_dir,
)
from studioreport.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "ReportEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "make_report_event",
    "redact_context",
    "reset_sink",
    "set_project_dir",
]
