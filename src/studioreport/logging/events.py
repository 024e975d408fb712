"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import re
import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from urllib.parse import urlparse, urlunparse

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Report lifecycle
    report_built = "report_built"
    report_input_invalid = "report_input_invalid"

    # Item diagnostics
    timeline_date_invalid = "timeline_date_invalid"
    budget_overrun = "budget_overrun"

    # Standalone computations (CLI / API)
    rollup_computed = "rollup_computed"
    timeline_computed = "timeline_computed"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

LEDGER_NON_NUMERIC = "ledger_non_numeric"
SNAPSHOT_NEGATIVE = "snapshot_negative"
DATE_UNPARSEABLE = "date_unparseable"


# ---------------------------------------------------------------------------
# Secret redaction
# ---------------------------------------------------------------------------

_SENSITIVE_KEY_RE = re.compile(
    r"(password|secret|token|api_key|apikey|authorization|cookie|session)",
    re.IGNORECASE,
)

_MAX_VALUE_LEN = 256


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with sensitive values redacted.

    Rules:
    - Keys matching sensitive patterns (portal tokens included) have their
      values replaced with ``"[REDACTED]"``.
    - URLs lose their query string and path after ``/portal/``.
    - String values longer than 256 chars are truncated.
    """
    out: dict[str, Any] = {}
    for k, v in context.items():
        if _SENSITIVE_KEY_RE.search(k):
            out[k] = "[REDACTED]"
        elif isinstance(v, dict):
            out[k] = redact_context(v)
        elif isinstance(v, list):
            out[k] = [_redact_value(item) for item in v]
        else:
            out[k] = _redact_value(v)
    return out


def _redact_value(v: Any) -> Any:
    if isinstance(v, dict):
        return redact_context(v)
    if isinstance(v, str):
        if "://" in v:
            parsed = urlparse(v)
            if parsed.scheme in ("http", "https"):
                path = parsed.path
                if "/portal/" in path:
                    path = path.split("/portal/", 1)[0] + "/portal/[REDACTED]"
                clean = urlunparse((parsed.scheme, parsed.hostname or "", path, "", "", ""))
                return clean + "?[REDACTED]" if parsed.query else clean
        if len(v) > _MAX_VALUE_LEN:
            return v[:_MAX_VALUE_LEN] + "...[truncated]"
    return v


# ---------------------------------------------------------------------------
# Attribution invariants
# ---------------------------------------------------------------------------

_EVENT_REQUIRED_KEYS: dict[str, set[str]] = {
    EventType.report_built.value: {"project_id"},
    EventType.report_input_invalid.value: set(),  # project id may be missing from bad rows
    EventType.timeline_date_invalid.value: {"project_id", "item_id"},
    EventType.budget_overrun.value: {"project_id"},
    EventType.rollup_computed.value: set(),
    EventType.timeline_computed.value: set(),
}


def _validate_attribution(event: ReportEvent) -> ReportEvent:
    """Check required context keys; downgrade to warning if missing."""
    key = event.event_type.value if isinstance(event.event_type, EventType) else event.event_type
    required = _EVENT_REQUIRED_KEYS.get(key, set())
    missing = required - set(event.context.keys())
    if not missing:
        return event
    ctx = dict(event.context)
    ctx["_missing_attribution"] = sorted(missing)
    return event.model_copy(update={"level": EventLevel.warning, "context": ctx})


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ReportEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


def make_report_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    project_id: str | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> ReportEvent:
    """Build an event with project attribution context."""
    ctx: dict[str, Any] = {}
    if project_id is not None:
        ctx["project_id"] = project_id
    if extra:
        ctx.update(extra)
    return ReportEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Lazily initialised when ``set_project_dir`` is called.
_sink: Any = None  # EventSink | None


def set_project_dir(project_dir: Any) -> None:
    """Configure the module-level event sink for a project directory.

    This should be called early in a CLI command or server startup.  If
    it is never called, ``emit()`` silently discards events.
    """
    global _sink
    from pathlib import Path

    from studioreport.logging.sink import EventSink
    from studioreport.project import load_project_config

    cfg = load_project_config(Path(project_dir))
    _sink = EventSink(
        Path(project_dir),
        fsync=bool(cfg.get("logging_fsync", False)),
        tail_bytes=int(cfg["logging_tail_bytes"]) if cfg.get("logging_tail_bytes") else None,
    )


def reset_sink() -> None:
    """Detach the module-level sink (events are discarded afterwards)."""
    global _sink
    _sink = None


def _get_sink() -> Any:
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    print(f"[studioreport] {msg}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: ReportEvent) -> None:
    """Write an event to the global log and, when attributed, the project log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = _get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": redact_context(event.context)})
        event = _validate_attribution(event)
        sink.write(event, project_id=event.context.get("project_id"))
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def _emit_level(
    level: EventLevel,
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None,
    error_code: str | None,
) -> None:
    emit(
        ReportEvent(
            level=level,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )


def emit_info(event_type: EventType, message: str, context: dict[str, Any] | None = None) -> None:
    """Convenience: emit an info-level event."""
    _emit_level(EventLevel.info, event_type, message, context, None)


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    _emit_level(EventLevel.warning, event_type, message, context, error_code)


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    _emit_level(EventLevel.error, event_type, message, context, error_code)
