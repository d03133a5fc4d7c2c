"""Persist the manifest and its ancillary files under the project directory."""
from __future__ import annotations

import logging
from pathlib import Path

from .ancillary import render_apache_config, render_index_page, render_nginx_config, render_php_ini
from .catalog import ServiceKind
from .constants import APACHE_CONFIG, MANIFEST_FILENAME, NGINX_CONFIG, PHP_CONFIG, WWW_DIR
from .manifest import generate_manifest
from .models import ProjectDeclaration
from .yaml_out import write_text_file

logger = logging.getLogger(__name__)


def _should_regenerate(project: ProjectDeclaration, kind: ServiceKind) -> bool:
    svc = project.services.get(kind.value)
    if svc is None or not svc.enabled:
        return False
    if svc.is_locked:
        logger.info("%s is locked; keeping its config untouched", kind.value)
        return False
    return True


def _write_relative(project: ProjectDeclaration, relative: str, text: str) -> Path:
    path = Path(project.directory) / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    write_text_file(path, text)
    return path


def write_default_index(project: ProjectDeclaration) -> None:
    www_dir = Path(project.directory) / WWW_DIR
    www_dir.mkdir(parents=True, exist_ok=True)
    index_php = www_dir / "index.php"
    if index_php.exists() or (www_dir / "index.html").exists():
        return
    write_text_file(index_php, render_index_page(project.name or project.id))
    logger.info("Placeholder page written to %s", index_php)


def write_project_files(project: ProjectDeclaration) -> Path:
    """Write the manifest plus ancillary configs and return the manifest path.

    Any ``OSError`` aborts the sequence and propagates to the caller.
    """
    directory = Path(project.directory)
    directory.mkdir(parents=True, exist_ok=True)

    manifest_path = directory / MANIFEST_FILENAME
    write_text_file(manifest_path, generate_manifest(project))
    logger.info("Manifest written to %s", manifest_path)

    with_php = project.is_enabled(ServiceKind.PHP.value)

    if _should_regenerate(project, ServiceKind.NGINX):
        _write_relative(project, NGINX_CONFIG, render_nginx_config(project.domain, project.tls_active, with_php))

    if _should_regenerate(project, ServiceKind.APACHE):
        _write_relative(project, APACHE_CONFIG, render_apache_config(project.domain, with_php))

    write_default_index(project)

    if _should_regenerate(project, ServiceKind.PHP):
        settings = project.services[ServiceKind.PHP.value].settings
        _write_relative(project, PHP_CONFIG, render_php_ini(settings))

    return manifest_path
