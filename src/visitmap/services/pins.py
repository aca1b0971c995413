"""Map-ready projections of address records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..models.domain import AddressRecord
from .classifier import classify, entry_style, style_for
from .visibility import VisibilityFilter

logger = logging.getLogger(__name__)


def _format_timestamp(timestamp: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        logger.warning(f"Visit timestamp out of range: {timestamp}")
        return ""


def hover_summary(record: AddressRecord) -> dict[str, Any]:
    last = record.last_entry
    return {
        "name": last.display_name if last else "",
        "line1": f"{record.house_number} {record.street_name}",
        "line2": f"{record.city}, {record.state} {record.zip}",
        "lastResult": ", ".join(last.outcomes) if last else "",
    }


def history_view(record: AddressRecord) -> list[dict[str, Any]]:
    entries = []
    for entry in record.history:
        style = entry_style(entry.outcomes)
        entries.append(
            {
                "timestamp": entry.timestamp,
                "visitedAt": _format_timestamp(entry.timestamp),
                "spokeWith": entry.display_name,
                "results": list(entry.outcomes),
                "visitedBy": entry.visited_by,
                "comment": entry.comment or "",
                "background": style.background,
                "text": style.text,
            }
        )
    return entries


def build_pin(record: AddressRecord, visibility: VisibilityFilter) -> dict[str, Any] | None:
    """Pin data for one record, or ``None`` when it has no coordinates yet."""
    if record.coordinates is None:
        return None
    color = classify(record.current_outcomes)
    return {
        "id": record.id,
        "lat": record.coordinates.lat,
        "lon": record.coordinates.lon,
        "color": color.value,
        "hex": style_for(color).hex,
        "visible": color in visibility.enabled,
        "hover": hover_summary(record),
        "history": history_view(record),
    }
