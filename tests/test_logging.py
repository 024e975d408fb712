"""Tests for the studioreport structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture
def sink(tmp_path: Path):
    from studioreport.logging.sink import EventSink

    return EventSink(tmp_path)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestReportEvent:
    def test_event_defaults(self):
        from studioreport.logging.events import EventLevel, EventType, ReportEvent

        evt = ReportEvent(level=EventLevel.info, event_type=EventType.report_built, message="hello")
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "report_built"
        assert evt.context == {}
        assert evt.error_code is None

    def test_make_report_event(self):
        from studioreport.logging.events import EventLevel, EventType, make_report_event

        evt = make_report_event(
            EventType.timeline_date_invalid,
            EventLevel.warning,
            "bad date",
            project_id="p1",
            error_code="date_unparseable",
            extra={"item_id": "ph1"},
        )
        assert evt.context == {"project_id": "p1", "item_id": "ph1"}
        assert evt.error_code == "date_unparseable"


# ---------------------------------------------------------------------------
# B) Filesystem NDJSON sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_write_creates_global_and_project_logs(self, sink, tmp_path):
        from studioreport.logging.events import EventLevel, EventType, make_report_event

        sink.write(
            make_report_event(EventType.report_built, EventLevel.info, "ok", project_id="p1"),
            project_id="p1",
        )
        global_lines = (tmp_path / "logs" / "events.ndjson").read_text().splitlines()
        assert len(global_lines) == 1
        assert json.loads(global_lines[0])["message"] == "ok"
        assert len(sink.read_project_log("p1")) == 1

    def test_read_global_filters_and_order(self, sink):
        from studioreport.logging.events import EventLevel, EventType, make_report_event

        sink.write(make_report_event(EventType.report_built, EventLevel.info, "first", project_id="a"))
        sink.write(make_report_event(EventType.budget_overrun, EventLevel.warning, "second", project_id="b"))
        sink.write(make_report_event(EventType.report_built, EventLevel.info, "third", project_id="b"))

        assert [e["message"] for e in sink.read_global()] == ["third", "second", "first"]
        assert [e["message"] for e in sink.read_global(level="warning")] == ["second"]
        assert [e["message"] for e in sink.read_global(event_type="report_built")] == ["third", "first"]
        assert [e["message"] for e in sink.read_global(project_id="b")] == ["third", "second"]
        assert len(sink.read_global(limit=1)) == 1

    def test_unsafe_project_id_not_used_as_path(self, sink, tmp_path):
        from studioreport.logging.events import EventLevel, EventType, make_report_event

        sink.write(
            make_report_event(EventType.report_built, EventLevel.info, "x", project_id="../evil"),
            project_id="../evil",
        )
        assert not (tmp_path / "logs" / "evil.ndjson").exists()
        assert sink.read_project_log("../evil") == []

    def test_corrupt_lines_skipped(self, sink, tmp_path):
        path = tmp_path / "logs" / "events.ndjson"
        path.write_text('{"message": "ok"}\nnot json\n')
        assert [e["message"] for e in sink.read_global()] == ["ok"]

    def test_tail_read_drops_partial_line(self, tmp_path):
        from studioreport.logging.sink import EventSink

        small = EventSink(tmp_path, tail_bytes=40)
        path = tmp_path / "logs" / "events.ndjson"
        path.write_text('{"message": "old-old-old-old-old"}\n{"message": "new"}\n')
        assert [e["message"] for e in small.read_global()] == ["new"]


# ---------------------------------------------------------------------------
# C) Emit helpers
# ---------------------------------------------------------------------------


class TestEmitHelpers:
    def test_emit_without_sink_is_noop(self, tmp_path):
        from studioreport.logging.events import EventType, emit_info

        emit_info(EventType.rollup_computed, "nowhere")
        assert not (tmp_path / "logs").exists()

    def test_emit_levels(self, project_dir):
        from studioreport.logging.events import (
            EventType,
            emit_error,
            emit_info,
            emit_warning,
            set_project_dir,
        )
        from studioreport.logging.sink import EventSink

        set_project_dir(project_dir)
        emit_info(EventType.rollup_computed, "i")
        emit_warning(EventType.timeline_computed, "w", error_code="x")
        emit_error(EventType.report_input_invalid, "e", error_code="y")
        events = EventSink(project_dir).read_global()
        assert [e["level"] for e in events] == ["error", "warning", "info"]

    def test_missing_attribution_downgrades(self, project_dir):
        from studioreport.logging.events import EventType, emit_info, set_project_dir
        from studioreport.logging.sink import EventSink

        set_project_dir(project_dir)
        emit_info(EventType.report_built, "no project")
        evt = EventSink(project_dir).read_global()[0]
        assert evt["level"] == "warning"
        assert evt["context"]["_missing_attribution"] == ["project_id"]

    def test_emit_swallows_sink_failure(self, project_dir, monkeypatch, capsys):
        from studioreport.logging import events

        events.set_project_dir(project_dir)

        def boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(events._sink, "write", boom)
        monkeypatch.setattr(events, "_last_stderr_ts", -1e12)
        events.emit_info(events.EventType.rollup_computed, "lost")
        assert "logging failed" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# D) Redaction
# ---------------------------------------------------------------------------


class TestRedaction:
    def test_sensitive_keys(self):
        from studioreport.logging.events import redact_context

        out = redact_context({"portal_token": "abc", "nested": {"api_key": "k"}, "project_id": "p"})
        assert out["portal_token"] == "[REDACTED]"
        assert out["nested"]["api_key"] == "[REDACTED]"
        assert out["project_id"] == "p"

    def test_portal_url(self):
        from studioreport.logging.events import redact_context

        out = redact_context({"link": "https://studio.example.com/portal/deadbeef?x=1"})
        assert out["link"] == "https://studio.example.com/portal/[REDACTED]?[REDACTED]"

    def test_long_values_truncated(self):
        from studioreport.logging.events import redact_context

        out = redact_context({"notes": "x" * 1000})
        assert out["notes"].endswith("...[truncated]")
        assert len(out["notes"]) < 300

    def test_redaction_applied_on_emit(self, project_dir):
        from studioreport.logging.events import EventType, emit_info, set_project_dir
        from studioreport.logging.sink import EventSink

        set_project_dir(project_dir)
        emit_info(EventType.rollup_computed, "m", {"portal_token": "secret"})
        assert EventSink(project_dir).read_global()[0]["context"]["portal_token"] == "[REDACTED]"


class TestExports:
    def test_package_exports(self):
        import studioreport.logging as lg

        for name in lg.__all__:
            assert hasattr(lg, name)
