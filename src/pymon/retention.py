"""Report store layout and age-based pruning."""

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from pymon.errors import StoreInaccessible

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
DEFAULT_RETENTION_DAYS = 30


class ReportStore:
    """Directory layout holding the JSON and HTML reports plus the run log."""

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root).expanduser()
        self.json_dir = self.root / "reports" / "json"
        self.html_dir = self.root / "reports" / "html"
        self.log_dir = self.root / "logs"

    @property
    def log_file(self) -> Path:
        """Append-only execution log."""
        return self.log_dir / "monitor.log"

    def format_dirs(self) -> dict[str, Path]:
        """Report directories keyed by format name."""
        return {"json": self.json_dir, "html": self.html_dir}

    def ensure(self) -> None:
        """Create every store directory, raising StoreInaccessible on failure."""
        for directory in (self.json_dir, self.html_dir, self.log_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreInaccessible(f"Cannot create {directory}: {exc}") from exc

    def write(self, directory: Path, name: str, text: str) -> Path:
        """Write one report artifact and return its path."""
        path = directory / name
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StoreInaccessible(f"Cannot write {path}: {exc}") from exc
        return path


@dataclass(slots=True)
class PruneResult:
    """Counts of artifacts removed by a prune pass."""

    deleted: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Artifacts deleted across all formats."""
        return sum(self.deleted.values())


def age_in_days(mtime: float, now: float) -> int:
    """Whole days elapsed since ``mtime``, rounded down like ``find -mtime``."""
    return int((now - mtime) // SECONDS_PER_DAY)


def prune(
    store: ReportStore,
    max_age_days: int = DEFAULT_RETENTION_DAYS,
    now: float | None = None,
) -> PruneResult:
    """
    Delete report artifacts older than ``max_age_days``.

    Age comes from each file's modification time, never from its name. A
    file that cannot be statted or removed is logged and skipped.
    """
    if now is None:
        now = time.time()

    result = PruneResult()
    for fmt, directory in store.format_dirs().items():
        result.deleted[fmt] = 0
        try:
            candidates = list(directory.iterdir())
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Cannot scan %s: %s", directory, exc)
            result.skipped.append(str(directory))
            continue

        for path in sorted(candidates):
            try:
                st = path.lstat()
                if not path.is_file() or path.is_symlink():
                    continue
                if age_in_days(st.st_mtime, now) <= max_age_days:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Skipping %s during pruning: %s", path, exc)
                result.skipped.append(str(path))
                continue
            result.deleted[fmt] += 1
            logger.debug("Pruned %s", path)

    return result
