"""Run the collect, evaluate, render, prune and publish pipeline once."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pymon.alerts import evaluate
from pymon.config import MonitorConfig
from pymon.errors import PymonError
from pymon.models import Alert, PublishResult, RunState, Snapshot
from pymon.publisher import GitPublisher
from pymon.render import (
    HTML_SUFFIX,
    JSON_SUFFIX,
    render_presentation,
    render_structured,
    report_basename,
)
from pymon.retention import PruneResult, ReportStore, prune
from pymon.snapshot import build_snapshot, local_now
from pymon.sources import MetricSource

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Transition:
    """One state change recorded during a run."""

    at: datetime
    state: RunState
    outcome: str


@dataclass(slots=True)
class RunResult:
    """Everything a run produced, plus how it got there."""

    state: RunState = RunState.IDLE
    snapshot: Snapshot | None = None
    alert: Alert | None = None
    report_paths: list[Path] = field(default_factory=list)
    prune: PruneResult | None = None
    publish: PublishResult | None = None
    transitions: list[Transition] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        """Process exit status for this run."""
        return 0 if self.state is RunState.DONE else 1


class Orchestrator:
    """
    Sequences one pipeline run.

    Collaborators default to the real psutil source and git publisher; tests
    pass fakes with the same methods.
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        source=None,
        publisher=None,
        now: Callable[[], datetime] = local_now,
    ) -> None:
        self.config = config
        self.store = ReportStore(config.report_root)
        self.source = source or MetricSource(
            scan_root=config.scan_root,
            cpu_interval=config.cpu_interval,
            scan_timeout=config.scan_timeout,
        )
        self.publisher = publisher or GitPublisher(
            config.report_root,
            remote=config.git_remote,
            branch=config.git_branch,
            timeout=config.command_timeout,
        )
        self._now = now

    def _enter(self, result: RunResult, state: RunState, outcome: str = "started") -> None:
        result.state = state
        result.transitions.append(Transition(at=self._now(), state=state, outcome=outcome))
        logger.info("State %s: %s", state.value, outcome)

    def run(self) -> RunResult:
        """Execute every stage in order and return the outcome."""
        result = RunResult()
        result.transitions.append(Transition(at=self._now(), state=RunState.IDLE, outcome="ready"))
        logger.info("Starting monitoring execution")

        try:
            self.store.ensure()

            self._enter(result, RunState.COLLECTING)
            result.snapshot = build_snapshot(
                self.source,
                top_n=self.config.top_n,
                now=self._now,
            )

            self._enter(result, RunState.EVALUATING)
            result.alert = evaluate(result.snapshot, self.config.disk_alert_threshold_pct)
            if result.alert.triggered:
                logger.warning("%s", result.alert.message)

            self._enter(result, RunState.RENDERING)
            result.report_paths = self._write_reports(result.snapshot, result.alert)

            if self.config.prune:
                self._enter(result, RunState.PRUNING)
                result.prune = prune(self.store, self.config.retention_days)
                logger.info(
                    "Pruned %d report(s) older than %d days",
                    result.prune.total,
                    self.config.retention_days,
                )
        except PymonError as exc:
            logger.error("ERROR: %s", exc)
            self._enter(result, RunState.FAILED, str(exc))
            return result
        except Exception as exc:
            logger.exception("ERROR: unexpected failure during %s", result.state.value)
            self._enter(result, RunState.FAILED, repr(exc))
            return result

        if self.config.publish:
            self._enter(result, RunState.PUBLISHING)
            result.publish = self._publish(result)

        outcome = "completed"
        if result.publish is PublishResult.FAILED:
            outcome = "completed with publish failure"
        self._enter(result, RunState.DONE, outcome)
        logger.info("Execution completed successfully")
        return result

    def _write_reports(self, snapshot: Snapshot, alert: Alert) -> list[Path]:
        stem = report_basename(snapshot)
        json_path = self.store.write(
            self.store.json_dir, stem + JSON_SUFFIX, render_structured(snapshot, alert)
        )
        html_path = self.store.write(
            self.store.html_dir, stem + HTML_SUFFIX, render_presentation(snapshot, alert)
        )
        logger.info("Reports written: %s, %s", json_path.name, html_path.name)
        return [html_path, json_path]

    def _publish(self, result: RunResult) -> PublishResult:
        snapshot = result.snapshot
        try:
            return self.publisher.publish(
                result.report_paths,
                stamp=snapshot.captured_at.strftime("%Y%m%d_%H%M%S"),
                host=snapshot.host_name,
            )
        except Exception:
            logger.exception("ERROR: Git push failed")
            return PublishResult.FAILED
