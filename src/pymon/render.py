"""Report rendering for pymon.

Pure functions that turn a (Snapshot, Alert) pair into the JSON and HTML
report texts. Writing the files is left to the caller.
"""

import json
import re
from html import escape

from pymon.models import Alert, Snapshot

UNKNOWN = "unknown"
ALERT_COLOR = "red"
NORMAL_COLOR = "green"

JSON_SUFFIX = ".json"
HTML_SUFFIX = ".html"

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")

CSS_STYLES = """
body { font-family: Arial; background:#f0f2f5; padding:30px; }
.card { background:white; padding:20px; margin-bottom:20px; border-radius:10px; box-shadow:0 2px 5px rgba(0,0,0,0.1);}
.bar { height:20px; background:steelblue; margin-bottom:10px;}
.alert { color:red; font-weight:bold; }
table { border-collapse: collapse; font-family: monospace; }
th, td { text-align: left; padding: 2px 12px 2px 0; }
"""


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:.1f}{unit}" if unit != "B" else f"{size:d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_percent(value: float | int | None, digits: int = 0) -> str:
    """Render a metric percentage, or ``unknown`` when it is missing."""
    if value is None:
        return UNKNOWN
    if digits == 0:
        return str(int(value))
    return f"{value:.{digits}f}"


def bar_width(value: float | int | None) -> float:
    """Clamp a percentage into a valid bar width."""
    if value is None:
        return 0.0
    return min(100.0, max(0.0, float(value)))


def disk_color(alert: Alert) -> str:
    """Color of the root partition bar."""
    return ALERT_COLOR if alert.triggered else NORMAL_COLOR


def metric_values(snapshot: Snapshot) -> dict[str, str]:
    """Display strings for the percentage metrics, shared by both formats."""
    return {
        "cpu_usage": format_percent(snapshot.cpu_usage_pct, 1),
        "memory_usage": format_percent(snapshot.memory_usage_pct, 2),
        "root_usage": format_percent(snapshot.root_disk_usage_pct),
    }


def full_date(snapshot: Snapshot) -> str:
    """Capture time as a full human-readable string."""
    return " ".join(snapshot.captured_at.strftime("%a %b %d %H:%M:%S %Z %Y").split())


def report_basename(snapshot: Snapshot) -> str:
    """
    Shared file stem for a run's reports.

    ``{YYYYmmdd_HHMMSS}_{host}_{user}``, so names sort by capture time.
    """
    stamp = snapshot.captured_at.strftime("%Y%m%d_%H%M%S")
    host = _UNSAFE_NAME_RE.sub("-", snapshot.host_name) or UNKNOWN
    user = _UNSAFE_NAME_RE.sub("-", snapshot.acting_user) or UNKNOWN
    return f"{stamp}_{host}_{user}"


def render_structured(snapshot: Snapshot, alert: Alert) -> str:
    """Render the machine-readable JSON report."""
    metrics = metric_values(snapshot)
    document = {
        "hostname": snapshot.host_name,
        "user": snapshot.acting_user,
        "date": full_date(snapshot),
        "uptime": snapshot.uptime if snapshot.uptime is not None else UNKNOWN,
        "cpu_usage": metrics["cpu_usage"],
        "memory_usage": metrics["memory_usage"],
        "root_usage": metrics["root_usage"],
        "alert": alert.message,
        "top_files": [
            {"path": f.path, "size": f.size, "size_human": format_bytes(f.size)}
            for f in snapshot.top_files
        ],
        "top_processes": [
            {"pid": p.pid, "command": p.command, "cpu": format_percent(p.cpu_pct, 1)}
            for p in snapshot.top_processes
        ],
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _bar(value: float | int | None, color: str | None = None) -> str:
    style = f"width:{bar_width(value):g}%"
    if color:
        style += f"; background:{color};"
    return f'<div class="bar" style="{style}"></div>'


def _files_table(snapshot: Snapshot) -> str:
    if not snapshot.top_files:
        return f"<p>{UNKNOWN}</p>"
    rows = [
        f"<tr><td>{escape(format_bytes(f.size))}</td><td>{escape(f.path)}</td></tr>"
        for f in snapshot.top_files
    ]
    return "<table>\n<tr><th>Size</th><th>Path</th></tr>\n" + "\n".join(rows) + "\n</table>"


def _processes_table(snapshot: Snapshot) -> str:
    if not snapshot.top_processes:
        return f"<p>{UNKNOWN}</p>"
    rows = [
        f"<tr><td>{p.pid}</td><td>{escape(p.command)}</td>"
        f"<td>{format_percent(p.cpu_pct, 1)}</td></tr>"
        for p in snapshot.top_processes
    ]
    return (
        "<table>\n<tr><th>PID</th><th>COMMAND</th><th>%CPU</th></tr>\n"
        + "\n".join(rows)
        + "\n</table>"
    )


def render_presentation(snapshot: Snapshot, alert: Alert) -> str:
    """Render the self-contained HTML dashboard."""
    metrics = metric_values(snapshot)
    host = escape(snapshot.host_name)
    uptime = escape(snapshot.uptime if snapshot.uptime is not None else UNKNOWN)

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Server Report - {host}</title>
<style>{CSS_STYLES}</style>
</head>

<body>

<h1>Server Monitoring Dashboard</h1>

<div class="card">
<h2>General Info</h2>
<p><b>Hostname:</b> {host}</p>
<p><b>User:</b> {escape(snapshot.acting_user)}</p>
<p><b>Date:</b> {escape(full_date(snapshot))}</p>
<p><b>Uptime:</b> {uptime}</p>
<p class="alert">{escape(alert.message)}</p>
</div>

<div class="card">
<h2>Performance Metrics</h2>

<p>CPU Usage: <span id="cpu_usage">{metrics["cpu_usage"]}</span>%</p>
{_bar(snapshot.cpu_usage_pct)}

<p>Memory Usage: <span id="memory_usage">{metrics["memory_usage"]}</span>%</p>
{_bar(snapshot.memory_usage_pct)}

<p>Root Partition: <span id="root_usage">{metrics["root_usage"]}</span>%</p>
{_bar(snapshot.root_disk_usage_pct, disk_color(alert))}

</div>

<div class="card">
<h2>Top 10 Largest Files</h2>
{_files_table(snapshot)}
</div>

<div class="card">
<h2>Top 10 CPU Processes</h2>
{_processes_table(snapshot)}
</div>

</body>
</html>
"""
