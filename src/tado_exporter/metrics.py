"""Prometheus text exposition of room telemetry.

Every function here is pure: it turns decoded models into text lines without
touching the network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tado_exporter.const import METRIC_PREFIX


if TYPE_CHECKING:
    from collections.abc import Iterable

    from tado_exporter.models import RateLimit, Room


__all__ = [
    "ROOM_METRICS",
    "escape_label_value",
    "format_room_metrics",
    "format_service_health",
]

# Emitted once per room, in this order.
ROOM_METRICS = ("temperature", "humidity", "set_temperature", "heating_power")


def escape_label_value(value: str) -> str:
    """Escape a label value for the exposition format."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _line(name: str, labels: dict[str, str], value: str) -> str:
    rendered = ",".join(f'{key}="{escape_label_value(label)}"' for key, label in labels.items())
    return f"{METRIC_PREFIX}{name}{{{rendered}}} {value}"


def format_room_metrics(home_id: int, rooms: Iterable[Room]) -> list[str]:
    """Render four lines per room.

    Temperatures are printed with six decimals, humidity and heating power as
    integers. Rooms keep the order the API returned them in.

    Args:
        home_id: Home the rooms belong to.
        rooms: Decoded room telemetry.

    Returns:
        Lines without trailing newlines.
    """
    lines: list[str] = []
    for room in rooms:
        labels = {"room": room.name, "home": str(home_id)}
        values = {
            "temperature": f"{room.inside_temperature:f}",
            "humidity": f"{room.humidity:d}",
            "set_temperature": f"{room.set_temperature:f}",
            "heating_power": f"{room.heating_power:d}",
        }
        lines.extend(_line(metric, labels, values[metric]) for metric in ROOM_METRICS)
    return lines


def format_service_health(home_id: int, status: int, rate_limit: RateLimit) -> list[str]:
    """Render the two upstream health lines for a home.

    The upstream status code travels as a label on both lines so a scrape
    exposes status, remaining quota and refill count together.
    """
    labels = {"home": str(home_id), "type": rate_limit.limit_type, "status": str(status)}
    return [
        _line("ratelimit_remaining", labels, str(rate_limit.remaining)),
        _line("ratelimit_refill", labels, str(rate_limit.refill)),
    ]
