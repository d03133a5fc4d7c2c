"""Command lines for the container engine and parsing of its output."""
from __future__ import annotations

from typing import Iterable, List

from .constants import INVENTORY_DELIMITER, INVENTORY_FORMAT, LOG_TAIL_LINES, STATS_FORMAT, compose_project_name
from .models import ComposeDialect, ContainerRecord, ContainerStats, EngineSettings

UP_ARGS = ["up", "-d", "--remove-orphans"]
DOWN_ARGS = ["down"]
LOGS_ARGS = ["logs", "-f", "--tail", str(LOG_TAIL_LINES)]

_INVENTORY_FIELDS = ("id", "name", "image", "status", "ports", "state")
_STATS_FIELDS = ("name", "cpu_percent", "mem_usage", "mem_percent", "net_io", "block_io")


def compose_command(settings: EngineSettings, dialect: ComposeDialect, args: Iterable[str]) -> List[str]:
    if dialect is ComposeDialect.PLUGIN:
        return [settings.engine_binary, "compose", *args]
    return [settings.compose_binary, *args]


def inventory_command(settings: EngineSettings, project_id: str) -> List[str]:
    label = f"label={settings.label_key}={compose_project_name(project_id)}"
    return [settings.engine_binary, "ps", "-a", "--filter", label, "--format", INVENTORY_FORMAT]


def parse_inventory_line(line: str) -> ContainerRecord:
    """Split one ``ps`` line into a record.

    Only the first six fields are used; missing trailing fields become ''.
    """
    parts = line.split(INVENTORY_DELIMITER)
    values = {name: (parts[idx] if idx < len(parts) else "") for idx, name in enumerate(_INVENTORY_FIELDS)}
    return ContainerRecord(**values)


def parse_inventory(text: str) -> List[ContainerRecord]:
    return [parse_inventory_line(line) for line in text.splitlines() if line.strip()]


def stats_command(settings: EngineSettings) -> List[str]:
    return [settings.engine_binary, "stats", "--no-stream", "--format", STATS_FORMAT]


def parse_stats_line(line: str) -> ContainerStats:
    parts = line.split(INVENTORY_DELIMITER)
    values = {name: (parts[idx].strip() if idx < len(parts) else "") for idx, name in enumerate(_STATS_FIELDS)}
    return ContainerStats(**values)


def parse_stats(text: str) -> List[ContainerStats]:
    return [parse_stats_line(line) for line in text.splitlines() if line.strip()]
