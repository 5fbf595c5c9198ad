"""Tests for metrics tracking and logging setup."""

from __future__ import annotations

import json
import logging

import pytest

from psychoanalyze.metrics import MetricsTracker, RunMetrics, setup_logging


def test_track_records_success(tmp_path):
    tracker = MetricsTracker(tmp_path)

    with tracker.track("analyze", profile_id="p1", media_type="IMAGE") as m:
        m.input_tokens = 100
        m.output_tokens = 20
        m.files_processed = 3

    run = json.loads(tracker.metrics_file.read_text().strip())
    assert run["operation"] == "analyze"
    assert run["profile_id"] == "p1"
    assert run["details"] == {"media_type": "IMAGE"}
    assert run["success"] is True
    assert "error" not in run
    assert run["duration_seconds"] >= 0


def test_track_records_failure_and_reraises(tmp_path):
    tracker = MetricsTracker(tmp_path)

    with pytest.raises(RuntimeError):
        with tracker.track("analyze"):
            raise RuntimeError("boom")

    run = json.loads(tracker.metrics_file.read_text().strip())
    assert run["success"] is False
    assert run["error"] == "boom"


def test_summary_aggregates_runs(tmp_path):
    tracker = MetricsTracker(tmp_path)
    tracker.record(RunMetrics(operation="analyze", input_tokens=10, output_tokens=5, files_processed=2))
    tracker.record(RunMetrics(operation="analyze", success=False, error="x", files_processed=1))
    with open(tracker.metrics_file, "a") as f:
        f.write("not json\n")

    summary = MetricsTracker(tmp_path).get_summary()

    assert summary["total_runs"] == 2
    assert summary["total_tokens"] == 15
    assert summary["total_files_processed"] == 3
    assert summary["by_operation"]["analyze"] == {"count": 2, "total_tokens": 15, "errors": 1}
    assert summary["last_run"]["error"] == "x"


def test_summary_empty(tmp_path):
    summary = MetricsTracker(tmp_path).get_summary()
    assert summary["total_runs"] == 0
    assert summary["last_run"] is None


def test_setup_logging_writes_log_file(tmp_path):
    setup_logging(tmp_path, verbose=True)
    logging.getLogger("psychoanalyze.test").debug("hello from test")
    for handler in logging.getLogger("psychoanalyze").handlers:
        handler.flush()

    assert "hello from test" in (tmp_path / "psychoanalyze.log").read_text()
