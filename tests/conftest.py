"""Shared fixtures for pymon tests."""

from datetime import datetime, timezone

import pytest

from pymon.models import FileEntry, ProcessEntry, Snapshot

CAPTURED_AT = datetime(2026, 2, 10, 14, 30, 5, tzinfo=timezone.utc)


class FakeSource:
    """MetricSource stand-in returning fixed values and counting calls."""

    def __init__(self, **values):
        self.values = {
            "uptime": "up 3 hours, 12 minutes",
            "cpu_usage": 12.3,
            "memory_usage": 45.67,
            "root_disk_usage": 42,
            "top_files": (
                FileEntry(path="/var/lib/big.img", size=5 * 1024**3),
                FileEntry(path="/home/u/video.mp4", size=700 * 1024**2),
            ),
            "top_processes": (
                ProcessEntry(pid=101, command="python", cpu_pct=25.5),
                ProcessEntry(pid=1, command="systemd", cpu_pct=0.1),
            ),
        }
        self.values.update(values)
        self.calls: list[str] = []

    def _get(self, name):
        self.calls.append(name)
        value = self.values[name]
        if isinstance(value, Exception):
            raise value
        return value

    def uptime(self):
        return self._get("uptime")

    def cpu_usage(self):
        return self._get("cpu_usage")

    def memory_usage(self):
        return self._get("memory_usage")

    def root_disk_usage(self):
        return self._get("root_disk_usage")

    def top_files(self, n=10):
        return self._get("top_files")[:n]

    def top_processes(self, n=10):
        return self._get("top_processes")[:n]


def make_snapshot(**overrides) -> Snapshot:
    """Build a Snapshot with realistic defaults."""
    fields = {
        "captured_at": CAPTURED_AT,
        "host_name": "web01",
        "acting_user": "ops",
        "uptime": "up 3 hours, 12 minutes",
        "cpu_usage_pct": 12.3,
        "memory_usage_pct": 45.67,
        "root_disk_usage_pct": 42,
        "top_files": (
            FileEntry(path="/var/lib/big.img", size=5 * 1024**3),
            FileEntry(path="/home/u/<video>.mp4", size=700 * 1024**2),
        ),
        "top_processes": (
            ProcessEntry(pid=101, command="python", cpu_pct=25.5),
            ProcessEntry(pid=1, command="systemd", cpu_pct=0.1),
        ),
    }
    fields.update(overrides)
    return Snapshot(**fields)


@pytest.fixture
def snapshot() -> Snapshot:
    """Default snapshot."""
    return make_snapshot()


@pytest.fixture
def fake_source() -> FakeSource:
    """Default fake metric source."""
    return FakeSource()
