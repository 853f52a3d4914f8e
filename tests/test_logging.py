"""Tests for structured event logging."""

from __future__ import annotations

import json

from sheetscript.interpreter import run_script
from sheetscript.logging import (
    EventLevel,
    EventSink,
    EventType,
    ScriptEvent,
    emit,
    emit_info,
    redact_context,
    set_echo,
    set_log_dir,
)


class TestRedaction:
    def test_sensitive_keys_redacted(self) -> None:
        out = redact_context({"api_key": "abc", "nested": {"password": "p", "ok": 1}, "user": "ann"})
        assert out["api_key"] == "[REDACTED]"
        assert out["nested"] == {"password": "[REDACTED]", "ok": 1}
        assert out["user"] == "ann"

    def test_long_strings_truncated(self) -> None:
        out = redact_context({"text": "a" * 300, "items": ["b" * 300]})
        assert out["text"].endswith("...[truncated]")
        assert len(out["text"]) == 256 + len("...[truncated]")
        assert out["items"][0].endswith("...[truncated]")


class TestEventSink:
    def test_writes_global_and_run_logs(self, tmp_path) -> None:
        sink = EventSink(tmp_path)
        sink.write(ScriptEvent(level=EventLevel.info, event_type=EventType.script_started, run_id="r1"))
        sink.write(ScriptEvent(level=EventLevel.info, event_type=EventType.script_started))
        assert (tmp_path / "events.ndjson").exists()
        assert len(sink.read_global()) == 2
        assert len(sink.read_run_log("r1")) == 1

    def test_lines_are_sorted_json(self, tmp_path) -> None:
        sink = EventSink(tmp_path)
        sink.write(ScriptEvent(level=EventLevel.info, event_type=EventType.script_started, message="hi"))
        line = (tmp_path / "events.ndjson").read_text(encoding="utf-8").strip()
        record = json.loads(line)
        assert list(record) == sorted(record)
        assert record["ts"].endswith("Z")

    def test_read_global_filters_most_recent_first(self, tmp_path) -> None:
        sink = EventSink(tmp_path)
        for i, level in enumerate([EventLevel.info, EventLevel.error, EventLevel.info]):
            sink.write(
                ScriptEvent(level=level, event_type=EventType.script_started, message=str(i))
            )
        assert [e["message"] for e in sink.read_global()] == ["2", "1", "0"]
        assert [e["message"] for e in sink.read_global(level="info")] == ["2", "0"]
        assert [e["message"] for e in sink.read_global(limit=1)] == ["2"]

    def test_unsafe_run_id_not_used_as_path(self, tmp_path) -> None:
        sink = EventSink(tmp_path)
        sink.write(
            ScriptEvent(level=EventLevel.info, event_type=EventType.script_started, run_id="../x")
        )
        assert sink.read_run_log("../x") == []
        assert list((tmp_path / "runs").iterdir()) == []

    def test_corrupt_lines_skipped(self, tmp_path) -> None:
        sink = EventSink(tmp_path)
        (tmp_path / "events.ndjson").write_text('{"level": "info"}\nnot json\n', encoding="utf-8")
        assert sink.read_global() == [{"level": "info"}]


class TestEmit:
    def test_no_sink_discards(self, tmp_path) -> None:
        emit_info(EventType.script_started, "ignored")
        assert not (tmp_path / "events.ndjson").exists()

    def test_missing_attribution_downgrades_to_warning(self, tmp_path) -> None:
        set_log_dir(tmp_path)
        emit(ScriptEvent(level=EventLevel.info, event_type=EventType.sheet_imported))
        event = EventSink(tmp_path).read_global()[0]
        assert event["level"] == "warning"
        assert event["context"]["_missing_attribution"] == ["path", "sheet"]

    def test_echo_goes_to_stderr(self, capsys) -> None:
        set_echo(True)
        emit_info(EventType.script_started, "hello")
        assert "script_started: hello" in capsys.readouterr().err


class TestScriptEvents:
    def test_successful_run(self, tmp_path) -> None:
        set_log_dir(tmp_path)
        result = run_script("x = 1\ny = 2\n")
        events = EventSink(tmp_path).read_run_log(result.run_id)
        assert [e["event_type"] for e in events] == ["script_started", "script_completed"]
        assert events[1]["context"]["statements"] == 2

    def test_runtime_failure(self, tmp_path) -> None:
        set_log_dir(tmp_path)
        run_script("x = 1\ny = x / 0\n")
        event = EventSink(tmp_path).read_global(event_type="script_failed")[0]
        assert event["level"] == "error"
        assert event["error_code"] == "script_runtime_error"
        assert event["context"]["line"] == 2

    def test_parse_failure(self, tmp_path) -> None:
        set_log_dir(tmp_path)
        result = run_script("x = (1 +\n")
        assert result.error is not None
        event = EventSink(tmp_path).read_global()[0]
        assert event["event_type"] == "parse_failed"
        assert event["error_code"] == "parse_error"

    def test_unsupported_feature(self, tmp_path) -> None:
        set_log_dir(tmp_path)
        run_script('x = fetch("http://example.com")')
        sink = EventSink(tmp_path)
        warning = sink.read_global(event_type="unsupported_feature")[0]
        assert warning["context"]["feature"] == "fetch"
        failed = sink.read_global(event_type="script_failed")[0]
        assert failed["error_code"] == "unsupported_feature"

    def test_import_event(self, tmp_path) -> None:
        csv_path = tmp_path / "data.csv"
        csv_path.write_text("a\n1\n", encoding="utf-8")
        set_log_dir(tmp_path / "logs")
        run_script(f'import_csv("{csv_path.as_posix()}")').raise_for_error()
        event = EventSink(tmp_path / "logs").read_global(event_type="sheet_imported")[0]
        assert event["context"]["path"] == csv_path.as_posix()
        assert event["context"]["sheet"] == "data"
