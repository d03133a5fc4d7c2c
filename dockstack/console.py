"""Console output helpers.

Windows consoles can use legacy code pages that cannot encode every Unicode
character. These helpers make sure engine output and event rendering never
crash due to UnicodeEncodeError.
"""

from __future__ import annotations

import sys
from typing import List, Optional, Tuple

from .models import (
    EngineAvailability,
    Failure,
    InventoryUpdated,
    LogLine,
    OperationFinished,
    OrchestrationEvent,
    StatsUpdated,
    StatusChanged,
)


def write_stdout_text(text: str) -> None:
    """Write text to stdout without crashing on UnicodeEncodeError."""
    if text is None:
        return

    if not text.endswith("\n"):
        text = f"{text}\n"

    try:
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    except UnicodeEncodeError:
        encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
        data = text.encode(encoding, errors="backslashreplace")
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def _format_table(rows: List[Tuple[str, ...]]) -> str:
    widths = [max(len(row[idx]) for row in rows) for idx in range(len(rows[0]))]
    return "\n".join("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip() for row in rows)


def format_container_table(event: InventoryUpdated) -> str:
    if not event.containers:
        return "No containers found."
    rows = [("NAME", "IMAGE", "STATE", "STATUS", "PORTS")]
    rows.extend((c.name, c.image, c.state, c.status, c.ports) for c in event.containers)
    return _format_table(rows)


def format_stats_table(event: StatsUpdated) -> str:
    if not event.stats:
        return "No running containers."
    rows = [("NAME", "CPU %", "MEM USAGE / LIMIT", "MEM %", "NET I/O", "BLOCK I/O")]
    rows.extend((s.name, s.cpu_percent, s.mem_usage, s.mem_percent, s.net_io, s.block_io) for s in event.stats)
    return _format_table(rows)


def format_event(event: OrchestrationEvent) -> Optional[str]:
    """Return the console line for an event, or None for silent events."""
    if isinstance(event, LogLine):
        return event.text
    if isinstance(event, StatusChanged):
        return f"status: {event.status}"
    if isinstance(event, Failure):
        return f"error: {event.message}"
    if isinstance(event, InventoryUpdated):
        return format_container_table(event)
    if isinstance(event, StatsUpdated):
        return format_stats_table(event)
    if isinstance(event, EngineAvailability):
        state = "available" if event.available else "not reachable"
        return f"engine {state} (compose dialect: {event.dialect.value})"
    if isinstance(event, OperationFinished):
        return None
    return str(event)
