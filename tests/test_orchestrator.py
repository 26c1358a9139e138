"""Tests for the pipeline orchestrator."""

import json
import logging
import os
import time

import pytest

from conftest import CAPTURED_AT, FakeSource
from pymon import orchestrator, sources
from pymon.app import configure_logging
from pymon.config import MonitorConfig
from pymon.models import PublishResult, RunState
from pymon.orchestrator import Orchestrator
from pymon.sources import MetricSource


class FakePublisher:
    """Publisher stand-in returning a fixed result."""

    def __init__(self, result=PublishResult.SUCCEEDED, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def publish(self, report_paths, *, stamp, host):
        self.calls.append((list(report_paths), stamp, host))
        if self.error is not None:
            raise self.error
        return self.result


def _orchestrator(tmp_path, source=None, publisher=None, **config):
    cfg = MonitorConfig(report_root=tmp_path / "monitor", **config)
    return Orchestrator(
        cfg,
        source=source or FakeSource(),
        publisher=publisher or FakePublisher(),
        now=lambda: CAPTURED_AT,
    )


class TestRun:
    """Tests for Orchestrator.run()."""

    def test_happy_path(self, tmp_path):
        """Test a full run reaches DONE and writes both reports."""
        publisher = FakePublisher()
        orch = _orchestrator(tmp_path, publisher=publisher)

        result = orch.run()

        assert result.state is RunState.DONE
        assert result.exit_code == 0
        assert result.publish is PublishResult.SUCCEEDED
        assert [t.state for t in result.transitions] == [
            RunState.IDLE,
            RunState.COLLECTING,
            RunState.EVALUATING,
            RunState.RENDERING,
            RunState.PRUNING,
            RunState.PUBLISHING,
            RunState.DONE,
        ]
        assert len(result.report_paths) == 2
        for path in result.report_paths:
            assert path.exists()
        assert publisher.calls[0][0] == result.report_paths
        assert publisher.calls[0][1] == "20260210_143005"

    def test_reports_share_stem(self, tmp_path):
        """Test the two files differ only by extension."""
        result = _orchestrator(tmp_path).run()

        stems = {p.stem for p in result.report_paths}
        suffixes = {p.suffix for p in result.report_paths}
        assert len(stems) == 1
        assert suffixes == {".json", ".html"}

    def test_alert_scenario(self, tmp_path, caplog):
        """Test 81% disk with threshold 80 fires and paints the bar red."""
        orch = _orchestrator(tmp_path, source=FakeSource(root_disk_usage=81), disk_alert_threshold_pct=80)

        with caplog.at_level(logging.INFO):
            result = orch.run()

        assert result.alert.triggered is True
        html = next(p for p in result.report_paths if p.suffix == ".html").read_text()
        assert "background:red" in html
        assert "Root partition above 80%" in caplog.text

    def test_unknown_disk_scenario(self, tmp_path):
        """Test a failed disk query still produces both reports."""
        result = _orchestrator(tmp_path, source=FakeSource(root_disk_usage=None)).run()

        assert result.state is RunState.DONE
        assert result.snapshot.root_disk_usage_pct is None
        assert result.alert.triggered is False
        json_path = next(p for p in result.report_paths if p.suffix == ".json")
        html_path = next(p for p in result.report_paths if p.suffix == ".html")
        assert json.loads(json_path.read_text())["root_usage"] == "unknown"
        assert '<span id="root_usage">unknown</span>' in html_path.read_text()

    @pytest.mark.parametrize("outcome", [PublishResult.FAILED, PublishResult.SKIPPED])
    def test_publish_outcome_does_not_fail_run(self, tmp_path, outcome):
        """Test publish failures and skips still end in DONE."""
        result = _orchestrator(tmp_path, publisher=FakePublisher(result=outcome)).run()

        assert result.state is RunState.DONE
        assert result.exit_code == 0
        assert result.publish is outcome

    def test_publisher_exception_is_contained(self, tmp_path):
        """Test an exploding publisher is reported as a failed publish."""
        result = _orchestrator(tmp_path, publisher=FakePublisher(error=RuntimeError("network"))).run()

        assert result.state is RunState.DONE
        assert result.publish is PublishResult.FAILED
        assert result.transitions[-1].outcome == "completed with publish failure"

    def test_store_inaccessible_fails(self, tmp_path):
        """Test an unusable report root ends in FAILED with exit code 1."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not directory")
        orch = Orchestrator(
            MonitorConfig(report_root=blocker),
            source=FakeSource(),
            publisher=FakePublisher(),
            now=lambda: CAPTURED_AT,
        )

        result = orch.run()

        assert result.state is RunState.FAILED
        assert result.exit_code == 1
        assert result.report_paths == []
        assert result.publish is None

    def test_failed_query_still_writes_reports(self, tmp_path):
        """Test a raising metric query is reported as unknown, not a failed run."""
        source = FakeSource(memory_usage=RuntimeError("provider broke"))

        result = _orchestrator(tmp_path, source=source).run()

        assert result.state is RunState.DONE
        assert result.snapshot.memory_usage_pct is None
        assert result.snapshot.cpu_usage_pct == 12.3
        json_path = next(p for p in result.report_paths if p.suffix == ".json")
        html_path = next(p for p in result.report_paths if p.suffix == ".html")
        assert json.loads(json_path.read_text())["memory_usage"] == "unknown"
        assert '<span id="memory_usage">unknown</span>' in html_path.read_text()

    def test_real_source_with_broken_provider(self, tmp_path, monkeypatch):
        """Test a psutil failure on the live source degrades to unknown."""

        def broken():
            raise RuntimeError("provider broke")

        monkeypatch.setattr(sources.psutil, "virtual_memory", broken)
        scan_root = tmp_path / "scan"
        scan_root.mkdir()
        (scan_root / "data.bin").write_bytes(b"x" * 64)
        source = MetricSource(scan_root=str(scan_root), cpu_interval=0.0)

        result = _orchestrator(tmp_path, source=source, publish=False).run()

        assert result.state is RunState.DONE
        json_path = next(p for p in result.report_paths if p.suffix == ".json")
        assert json.loads(json_path.read_text())["memory_usage"] == "unknown"

    def test_unexpected_error_fails(self, tmp_path, monkeypatch):
        """Test an unrecoverable error in a stage is captured as FAILED."""

        def explode(snapshot, alert):
            raise RuntimeError("boom")

        monkeypatch.setattr(orchestrator, "render_structured", explode)

        result = _orchestrator(tmp_path).run()

        assert result.state is RunState.FAILED
        assert result.exit_code == 1
        assert result.transitions[-2].state is RunState.RENDERING
        assert result.publish is None

    def test_prune_and_publish_can_be_disabled(self, tmp_path):
        """Test the optional stages are skipped when turned off."""
        publisher = FakePublisher()

        result = _orchestrator(tmp_path, publisher=publisher, prune=False, publish=False).run()

        states = [t.state for t in result.transitions]
        assert RunState.PRUNING not in states
        assert RunState.PUBLISHING not in states
        assert result.state is RunState.DONE
        assert publisher.calls == []

    def test_prunes_old_reports_but_not_current(self, tmp_path):
        """Test retention removes stale artifacts and keeps this run's."""
        orch = _orchestrator(tmp_path, retention_days=30)
        orch.store.ensure()
        stale = orch.store.json_dir / "20200101_000000_web01_ops.json"
        stale.write_text("{}")
        old = time.time() - 40 * 86400
        os.utime(stale, (old, old))

        result = orch.run()

        assert not stale.exists()
        assert result.prune.total == 1
        for path in result.report_paths:
            assert path.exists()

    def test_logs_start_and_end(self, tmp_path, caplog):
        """Test the run start and completion are logged."""
        with caplog.at_level(logging.INFO):
            _orchestrator(tmp_path).run()

        assert "Starting monitoring execution" in caplog.text
        assert "Execution completed successfully" in caplog.text


class TestExecutionLog:
    """Tests for what a run leaves in the execution log."""

    @pytest.fixture(autouse=True)
    def _restore_logging(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in list(root.handlers):
            if getattr(handler, "_pymon", False):
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)

    def test_transitions_reach_log_file(self, tmp_path):
        """Test every state change is written to the log at INFO."""
        orch = _orchestrator(tmp_path, publish=False)
        configure_logging(orch.store.log_file, "INFO")

        orch.run()

        for handler in logging.getLogger().handlers:
            handler.flush()
        text = orch.store.log_file.read_text()
        for line in (
            "State collecting: started",
            "State evaluating: started",
            "State rendering: started",
            "State pruning: started",
            "State done: completed",
        ):
            assert line in text
        assert text.index("State collecting") < text.index("State done")
