"""Detect whether the container engine answers and which compose dialect exists."""
from __future__ import annotations

import logging
import subprocess
from typing import Callable, List, Optional

from .constants import API_VERSION_FORMAT, PROBE_TIMEOUT_SECONDS
from .models import ComposeDialect, EngineProbeResult, EngineSettings

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


def _succeeds(run: Runner, command: List[str]) -> Optional[subprocess.CompletedProcess]:
    try:
        result = run(
            command,
            capture_output=True,
            text=True,
            timeout=PROBE_TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("Probe command %s failed: %s", command, exc)
        return None
    if result.returncode != 0:
        logger.debug("Probe command %s exited with %s", command, result.returncode)
        return None
    return result


def detect_api_version(settings: EngineSettings, run: Runner = subprocess.run) -> Optional[str]:
    result = _succeeds(run, [settings.engine_binary, "version", "--format", API_VERSION_FORMAT])
    if result is None:
        logger.warning("Could not read the engine API version")
        return None
    version = (result.stdout or "").strip()
    return version or None


def probe_engine(settings: EngineSettings, run: Runner = subprocess.run) -> EngineProbeResult:
    """Run ``info`` and ``compose version`` and report what is usable.

    Blocking; callers run it from a background worker.
    """
    available = _succeeds(run, [settings.engine_binary, "info"]) is not None
    dialect = ComposeDialect.STANDALONE
    if _succeeds(run, [settings.engine_binary, "compose", "version"]) is not None:
        dialect = ComposeDialect.PLUGIN

    api_version = detect_api_version(settings, run) if available else None
    logger.info(
        "Engine available: %s, compose dialect: %s, API version: %s",
        available,
        dialect.value,
        api_version or "unknown",
    )
    return EngineProbeResult(available=available, dialect=dialect, api_version=api_version)
