"""
Heartbeat Value Objects
========================

Status normalization and presentation hints.

Both mappings are total: unrecognized values are treated as down.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping

from src.config import ComponentStatus


_RAW_STATUS_MAP = {
    "ok": ComponentStatus.OK,
    "connected": ComponentStatus.OK,
    "healthy": ComponentStatus.OK,
    "degraded": ComponentStatus.DEGRADED,
    "connecting": ComponentStatus.DEGRADED,
    "unknown": ComponentStatus.DEGRADED,
    "down": ComponentStatus.DOWN,
    "disconnected": ComponentStatus.DOWN,
}


def normalize_status(raw: Any) -> ComponentStatus:
    """
    Map a collaborator-reported status onto ``ComponentStatus``.

    Accepts enum members or strings such as ``"connected"`` from the
    realtime channel. Unrecognized values map to down.
    """
    if isinstance(raw, ComponentStatus):
        return raw
    if isinstance(raw, str):
        return _RAW_STATUS_MAP.get(raw.strip().lower(), ComponentStatus.DOWN)
    return ComponentStatus.DOWN


@dataclass(frozen=True)
class StatusPresentation:
    """Display hints for a status: colour and human label."""
    color: str
    label: str


_PRESENTATION = {
    ComponentStatus.OK: StatusPresentation(color="#34d399", label="All systems nominal"),
    ComponentStatus.DEGRADED: StatusPresentation(color="#fbbf24", label="Partial outage"),
    ComponentStatus.DOWN: StatusPresentation(color="#f87171", label="Disconnected"),
}


def present(status: Any) -> StatusPresentation:
    """Presentation for a status; unrecognized values render as down."""
    return _PRESENTATION[normalize_status(status)]


def component_tooltip(
    statuses: Mapping[str, ComponentStatus],
    order: Iterable[str],
) -> List[str]:
    """
    Per-component tooltip lines, e.g. ``"API: OK"``.

    Short names (three letters or fewer) are upper-cased, longer ones title-cased.
    """
    lines = []
    for name in order:
        label = name.upper() if len(name) <= 3 else name.title()
        status = normalize_status(statuses.get(name))
        lines.append(f"{label}: {status.value.upper()}")
    return lines
