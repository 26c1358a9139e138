"""Assemble a Snapshot from metric source queries."""

import getpass
import logging
import socket
from collections.abc import Callable
from datetime import datetime

from pymon.models import Snapshot

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current wall-clock time with the local timezone attached."""
    return datetime.now().astimezone()


def current_user() -> str:
    """Name of the user running the process."""
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def _query(name: str, call: Callable, *args, default=None):
    """Run one source query; a raising query counts as unknown."""
    try:
        return call(*args)
    except Exception as exc:
        logger.warning("Metric %s unavailable: %s", name, exc)
        return default


def build_snapshot(
    source,
    *,
    top_n: int = 10,
    now: Callable[[], datetime] = local_now,
    host_name: str | None = None,
    acting_user: str | None = None,
) -> Snapshot:
    """
    Query every metric once and freeze the results into a Snapshot.

    A query that raises leaves its field unknown; the other metrics are
    still collected.

    Args:
        source: Object exposing the MetricSource queries.
        top_n: How many files and processes to keep.
        now: Clock used to stamp ``captured_at``.
        host_name: Overrides the detected host name.
        acting_user: Overrides the detected user.
    """
    captured_at = now()
    snapshot = Snapshot(
        captured_at=captured_at,
        host_name=host_name or socket.gethostname(),
        acting_user=acting_user or current_user(),
        uptime=_query("uptime", source.uptime),
        cpu_usage_pct=_query("cpu_usage", source.cpu_usage),
        memory_usage_pct=_query("memory_usage", source.memory_usage),
        root_disk_usage_pct=_query("root_disk_usage", source.root_disk_usage),
        top_files=tuple(_query("top_files", source.top_files, top_n, default=())),
        top_processes=tuple(_query("top_processes", source.top_processes, top_n, default=())),
    )
    logger.debug(
        "Snapshot captured: cpu=%s mem=%s disk=%s files=%d procs=%d",
        snapshot.cpu_usage_pct,
        snapshot.memory_usage_pct,
        snapshot.root_disk_usage_pct,
        len(snapshot.top_files),
        len(snapshot.top_processes),
    )
    return snapshot
