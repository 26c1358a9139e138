"""Threshold alert evaluation."""

from pymon.models import Alert, AlertKind, Snapshot

DEFAULT_DISK_THRESHOLD = 80


def evaluate(snapshot: Snapshot, threshold_pct: int = DEFAULT_DISK_THRESHOLD) -> Alert:
    """
    Check root partition usage against the threshold.

    Fires only when usage is strictly greater than the threshold. An unknown
    disk reading never fires.
    """
    usage = snapshot.root_disk_usage_pct
    triggered = usage is not None and usage > threshold_pct
    message = f"⚠ ALERT: Root partition above {threshold_pct}%" if triggered else ""
    return Alert(
        kind=AlertKind.DISK,
        triggered=triggered,
        message=message,
        threshold_pct=threshold_pct,
    )
