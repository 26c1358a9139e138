"""pymon - command line entry point."""

import argparse
import logging
import shutil
import sys
from pathlib import Path

from pymon.config import MonitorConfig, load_config
from pymon.errors import ConfigError
from pymon.orchestrator import Orchestrator
from pymon.retention import ReportStore

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE = "0 */2 * * *"
LOG_FORMAT = "%(asctime)s - %(message)s"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_file: Path | None, level: str = "INFO") -> None:
    """
    Route records to the execution log and to stderr.

    The log file gets one ``<timestamp> - <message>`` line per record and
    is only ever appended to.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Replace only handlers installed by an earlier call
    for handler in list(root.handlers):
        if getattr(handler, "_pymon", False):
            root.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console._pymon = True
    root.addHandler(console)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            logger.error("ERROR: cannot open log file %s: %s", log_file, exc)
            return
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler._pymon = True
        root.addHandler(file_handler)


def cron_line(schedule: str = DEFAULT_SCHEDULE, command: str | None = None) -> str:
    """Crontab entry that runs pymon on the given schedule."""
    command = command or shutil.which("pymon") or f"{sys.executable} -m pymon.app"
    return f"{schedule} {command}"


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``pymon`` command."""
    p = argparse.ArgumentParser(
        description="Capture a host metrics snapshot, write JSON and HTML reports, prune and publish them."
    )
    p.add_argument("--report-root", default=None, help="Directory holding reports/ and logs/ (default: ~/server_monitor)")
    p.add_argument("--threshold", type=int, default=None, help="Root partition alert threshold in percent (default: 80)")
    p.add_argument("--retention-days", type=int, default=None, help="Delete reports older than N days (default: 30)")
    p.add_argument("--scan-root", default=None, help="Directory the largest-files scan starts from (default: /)")
    p.add_argument("--no-publish", dest="publish", action="store_const", const=False, default=None)
    p.add_argument("--no-prune", dest="prune", action="store_const", const=False, default=None)
    p.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--print-cron", action="store_true", help="Print a crontab line for this tool and exit")
    p.add_argument("--schedule", default=DEFAULT_SCHEDULE, help=f"Cron schedule for --print-cron (default: {DEFAULT_SCHEDULE!r})")
    return p


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    """Load the environment configuration and apply command-line overrides."""
    return load_config(
        report_root=args.report_root,
        disk_alert_threshold_pct=args.threshold,
        retention_days=args.retention_days,
        scan_root=args.scan_root,
        publish=args.publish,
        prune=args.prune,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the pymon command."""
    args = build_parser().parse_args(argv)

    if args.print_cron:
        print(cron_line(args.schedule))
        return 0

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        print(f"pymon: {exc}", file=sys.stderr)
        return 2

    configure_logging(ReportStore(config.report_root).log_file, config.log_level)
    result = Orchestrator(config).run()
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
