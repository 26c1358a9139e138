"""Data models for pymon."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(slots=True, frozen=True)
class FileEntry:
    """A file found by the largest-files scan."""

    path: str
    size: int  # Bytes


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """A process row from the top-CPU listing."""

    pid: int
    command: str
    cpu_pct: float


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable set of metrics captured in one pipeline run.

    ``None`` marks a metric whose source query failed ("unknown").
    """

    captured_at: datetime
    host_name: str
    acting_user: str
    uptime: str | None
    cpu_usage_pct: float | None
    memory_usage_pct: float | None
    root_disk_usage_pct: int | None
    top_files: tuple[FileEntry, ...] = ()
    top_processes: tuple[ProcessEntry, ...] = ()


class AlertKind(Enum):
    """Metric an alert was evaluated against."""

    DISK = "disk"
    CPU = "cpu"
    MEMORY = "memory"


@dataclass(slots=True, frozen=True)
class Alert:
    """Outcome of evaluating a threshold rule against a snapshot."""

    kind: AlertKind
    triggered: bool
    message: str
    threshold_pct: int


class PublishResult(Enum):
    """Outcome of handing reports to the publish sink."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunState(Enum):
    """Stages of a single pipeline run."""

    IDLE = "idle"
    COLLECTING = "collecting"
    EVALUATING = "evaluating"
    RENDERING = "rendering"
    PRUNING = "pruning"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"
