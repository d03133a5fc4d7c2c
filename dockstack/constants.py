"""Shared constants and small naming helpers for manifest generation."""

from __future__ import annotations

import re

MANIFEST_FILENAME = "docker-compose.yml"
NAME_PREFIX = "dockstack"
LOG_PREFIX = "[dockstack]"

SSL_SERVICE_KEY = "ssl"

RESTART_POLICY = "unless-stopped"
HEALTHCHECK_INTERVAL = 10
HEALTHCHECK_TIMEOUT = 5
HEALTHCHECK_RETRIES = 5

LOG_BUFFER_HIGH_WATER = 5000
LOG_BUFFER_LOW_WATER = 3000
LOG_TAIL_LINES = 100

INVENTORY_DELIMITER = "|"
INVENTORY_FORMAT = "{{.ID}}|{{.Names}}|{{.Image}}|{{.Status}}|{{.Ports}}|{{.State}}"
STATS_FORMAT = "{{.Name}}|{{.CPUPerc}}|{{.MemUsage}}|{{.MemPerc}}|{{.NetIO}}|{{.BlockIO}}"
STATS_INTERVAL_SECONDS = 2.0
API_VERSION_FORMAT = "{{.Server.APIVersion}}"
PROBE_TIMEOUT_SECONDS = 10

WWW_DIR = "www"
CERTS_DIR = "certs"
NGINX_CONFIG = "nginx/default.conf"
APACHE_CONFIG = "apache/httpd.conf"
PHP_CONFIG = "php/php.ini"

_INVALID_PROJECT_CHARS = re.compile(r"[^a-z0-9_-]+")


def compose_project_name(project_id: str) -> str:
    """Return the compose project name used for the ``name`` key and label filter.

    Example: 'My Proj' -> 'my_proj'
    """
    cleaned = _INVALID_PROJECT_CHARS.sub("_", project_id.strip().lower()).strip("_-")
    return cleaned or NAME_PREFIX


def build_network_name(project_id: str) -> str:
    return f"{NAME_PREFIX}_{project_id}"


def build_container_name(project_id: str, suffix: str) -> str:
    return f"{NAME_PREFIX}_{project_id}_{suffix}"
