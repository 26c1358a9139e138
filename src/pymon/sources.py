"""Metric sources for pymon.

Wraps psutil and the filesystem behind one query per metric family. Every
query degrades to ``None`` or an empty tuple instead of raising, so one
broken source never stops the rest of the collection.
"""

import heapq
import logging
import os
import stat
import time

import psutil

from pymon.models import FileEntry, ProcessEntry

logger = logging.getLogger(__name__)

# Pseudo filesystems whose "files" are not disk usage
SKIP_DIRS = frozenset({"/proc", "/sys", "/dev", "/run"})


def format_uptime(seconds: float) -> str:
    """Format a duration the way ``uptime -p`` does."""
    minutes_total = int(seconds // 60)
    weeks, rem = divmod(minutes_total, 7 * 24 * 60)
    days, rem = divmod(rem, 24 * 60)
    hours, minutes = divmod(rem, 60)

    parts = []
    for value, unit in ((weeks, "week"), (days, "day"), (hours, "hour"), (minutes, "minute")):
        if value:
            parts.append(f"{value} {unit}" + ("s" if value != 1 else ""))
    if not parts:
        return "up 0 minutes"
    return "up " + ", ".join(parts)


class MetricSource:
    """
    Local host metric queries backed by psutil.

    Each query takes no host argument and returns a typed value, or ``None`` /
    an empty tuple when the underlying provider fails.
    """

    def __init__(
        self,
        root: str = "/",
        scan_root: str = "/",
        cpu_interval: float = 1.0,
        scan_timeout: float | None = None,
    ) -> None:
        """
        Initialize the MetricSource.

        Args:
            root: Mount point whose usage is reported as the root partition.
            scan_root: Directory the largest-files walk starts from.
            cpu_interval: Sampling window for CPU percentages (seconds).
            scan_timeout: Time budget for the file walk; None means unbounded.
        """
        self._root = root
        self._scan_root = scan_root
        self._cpu_interval = max(0.0, cpu_interval)
        self._scan_timeout = scan_timeout

    def uptime(self) -> str | None:
        """Human-readable time since boot."""
        try:
            return format_uptime(time.time() - psutil.boot_time())
        except Exception as exc:
            logger.warning("Uptime unavailable: %s", exc)
            return None

    def cpu_usage(self) -> float | None:
        """Non-idle CPU percentage over the sampling interval."""
        try:
            value = psutil.cpu_percent(interval=self._cpu_interval)
            return round(float(value), 1)
        except Exception as exc:
            logger.warning("CPU usage unavailable: %s", exc)
            return None

    def memory_usage(self) -> float | None:
        """Used memory as a percentage of total, two decimals."""
        try:
            mem = psutil.virtual_memory()
            if not mem.total:
                logger.warning("Memory usage unavailable: total memory reported as 0")
                return None
            return round(mem.used / mem.total * 100, 2)
        except Exception as exc:
            logger.warning("Memory usage unavailable: %s", exc)
            return None

    def root_disk_usage(self) -> int | None:
        """Integral usage percentage of the root partition, as df reports it."""
        try:
            usage = psutil.disk_usage(self._root)
            capacity = usage.used + usage.free
            if capacity <= 0:
                logger.warning("Disk usage unavailable: %s reports no capacity", self._root)
                return None
            # df rounds the percentage up
            return -(-usage.used * 100 // capacity)
        except Exception as exc:
            logger.warning("Disk usage unavailable for %s: %s", self._root, exc)
            return None

    def top_files(self, n: int = 10) -> tuple[FileEntry, ...]:
        """
        Find the ``n`` largest files and directories under the scan root.

        Directories are ranked by the total size of everything below them,
        as ``du -a`` reports. Directories that cannot be listed and files
        that cannot be statted are skipped. Symlinks are never followed.
        """
        try:
            return self._scan(n)
        except Exception as exc:
            logger.warning("Largest files unavailable: %s", exc)
            return ()

    def _scan(self, n: int) -> tuple[FileEntry, ...]:
        """Walk the scan root, summing file sizes into every ancestor."""
        if n <= 0:
            return ()
        deadline = None
        if self._scan_timeout:
            deadline = time.monotonic() + self._scan_timeout

        dir_totals: dict[str, int] = {self._scan_root: 0}
        largest: list[tuple[int, str]] = []  # min-heap of the n biggest files
        stack: list[tuple[str, tuple[str, ...]]] = [(self._scan_root, (self._scan_root,))]
        skipped = 0
        while stack:
            if deadline is not None and time.monotonic() > deadline:
                logger.warning(
                    "File scan of %s stopped after %ss; results are partial",
                    self._scan_root,
                    self._scan_timeout,
                )
                break

            directory, ancestors = stack.pop()
            try:
                with os.scandir(directory) as entries:
                    for entry in entries:
                        try:
                            st = entry.stat(follow_symlinks=False)
                        except OSError:
                            skipped += 1
                            continue
                        if stat.S_ISDIR(st.st_mode):
                            if entry.path not in SKIP_DIRS:
                                dir_totals[entry.path] = 0
                                stack.append((entry.path, ancestors + (entry.path,)))
                        elif stat.S_ISREG(st.st_mode):
                            size = st.st_size
                            for parent in ancestors:
                                dir_totals[parent] += size
                            if len(largest) < n:
                                heapq.heappush(largest, (size, entry.path))
                            elif size > largest[0][0]:
                                heapq.heapreplace(largest, (size, entry.path))
            except OSError as exc:
                if directory == self._scan_root:
                    logger.warning("Largest files unavailable: %s", exc)
                    return ()
                skipped += 1
                continue

        if skipped:
            logger.debug("File scan skipped %d unreadable entries", skipped)

        candidates = [FileEntry(path=path, size=size) for size, path in largest]
        candidates.extend(FileEntry(path=path, size=size) for path, size in dir_totals.items())
        return tuple(heapq.nlargest(n, candidates, key=lambda f: f.size))

    def top_processes(self, n: int = 10) -> tuple[ProcessEntry, ...]:
        """
        List the ``n`` processes using the most CPU, highest first.

        CPU is sampled over the configured interval. Processes that vanish
        or deny access mid-poll are skipped.
        """
        try:
            procs = list(psutil.process_iter(attrs=["pid", "name"]))
        except Exception as exc:
            logger.warning("Process list unavailable: %s", exc)
            return ()

        # First cpu_percent call per process only primes the counter
        for proc in procs:
            try:
                proc.cpu_percent(interval=None)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        if self._cpu_interval:
            time.sleep(self._cpu_interval)

        entries: list[ProcessEntry] = []
        for proc in procs:
            try:
                cpu = proc.cpu_percent(interval=None)
                info = proc.info
                entries.append(
                    ProcessEntry(
                        pid=info.get("pid", proc.pid),
                        command=info.get("name") or "",
                        cpu_pct=round(float(cpu or 0.0), 1),
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        entries.sort(key=lambda p: p.cpu_pct, reverse=True)
        return tuple(entries[:n])
