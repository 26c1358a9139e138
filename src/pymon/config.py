"""
Runtime configuration for pymon.

Reads from environment variables (and a ``.env`` file, if present) with
sensible defaults. Command-line flags override individual fields.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

from pymon.errors import ConfigError

ENV_PREFIX = "PYMON_"
DEFAULT_REPORT_ROOT = "~/server_monitor"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Settings for one pipeline run."""

    report_root: Path = field(default_factory=lambda: Path(DEFAULT_REPORT_ROOT).expanduser())
    disk_alert_threshold_pct: int = 80
    retention_days: int = 30
    top_n: int = 10
    scan_root: str = "/"
    scan_timeout: float | None = 300.0
    cpu_interval: float = 1.0
    prune: bool = True
    publish: bool = True
    git_remote: str = "origin"
    git_branch: str = "main"
    command_timeout: float = 60.0
    log_level: str = "INFO"


def _get(env: Mapping[str, str], name: str) -> str | None:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{ENV_PREFIX}{name} must be >= {minimum}, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must not be negative, got {value}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name)
    if raw is None:
        return default
    if raw.lower() in _TRUE:
        return True
    if raw.lower() in _FALSE:
        return False
    raise ConfigError(f"{ENV_PREFIX}{name} must be true or false, got {raw!r}")


def load_config(env: Mapping[str, str] | None = None, **overrides) -> MonitorConfig:
    """
    Build a MonitorConfig from the environment.

    Args:
        env: Mapping to read instead of ``os.environ``. When omitted, a
            ``.env`` file is loaded first.
        **overrides: Field values that win over the environment; ``None``
            values are ignored.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    defaults = MonitorConfig()
    root = _get(env, "REPORT_ROOT")
    scan_timeout = _float(env, "SCAN_TIMEOUT", defaults.scan_timeout or 0.0)

    config = MonitorConfig(
        report_root=Path(root or DEFAULT_REPORT_ROOT).expanduser(),
        disk_alert_threshold_pct=_int(env, "DISK_ALERT_THRESHOLD", defaults.disk_alert_threshold_pct),
        retention_days=_int(env, "RETENTION_DAYS", defaults.retention_days),
        top_n=_int(env, "TOP_N", defaults.top_n, minimum=1),
        scan_root=_get(env, "SCAN_ROOT") or defaults.scan_root,
        scan_timeout=scan_timeout or None,
        cpu_interval=_float(env, "CPU_INTERVAL", defaults.cpu_interval),
        prune=_bool(env, "PRUNE", defaults.prune),
        publish=_bool(env, "PUBLISH", defaults.publish),
        git_remote=_get(env, "GIT_REMOTE") or defaults.git_remote,
        git_branch=_get(env, "GIT_BRANCH") or defaults.git_branch,
        command_timeout=_float(env, "COMMAND_TIMEOUT", defaults.command_timeout),
        log_level=(_get(env, "LOG_LEVEL") or defaults.log_level).upper(),
    )

    changes = {key: value for key, value in overrides.items() if value is not None}
    if "report_root" in changes:
        changes["report_root"] = Path(changes["report_root"]).expanduser()
    for key in ("disk_alert_threshold_pct", "retention_days"):
        if key in changes and changes[key] < 0:
            raise ConfigError(f"{key} must not be negative, got {changes[key]}")
    try:
        return replace(config, **changes)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
