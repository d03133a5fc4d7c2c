"""Render a project declaration into a docker-compose manifest."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .catalog import CATALOG, CatalogEntry, ServiceKind, resolve_kind
from .constants import (
    APACHE_CONFIG,
    CERTS_DIR,
    HEALTHCHECK_INTERVAL,
    HEALTHCHECK_RETRIES,
    HEALTHCHECK_TIMEOUT,
    NGINX_CONFIG,
    PHP_CONFIG,
    RESTART_POLICY,
    WWW_DIR,
    build_container_name,
    build_network_name,
    compose_project_name,
)
from .models import ProjectDeclaration, ServiceDeclaration
from .yaml_out import dump_compose_yaml

logger = logging.getLogger(__name__)

Stanza = Dict[str, Any]


@dataclass
class _RenderContext:
    project: ProjectDeclaration
    network: str
    volumes: Dict[str, Dict] = field(default_factory=dict)

    def project_path(self, relative: str) -> str:
        return str(Path(self.project.directory) / relative)


def healthcheck(test: str) -> Dict[str, Any]:
    return {
        "test": ["CMD-SHELL", test],
        "interval": f"{HEALTHCHECK_INTERVAL}s",
        "timeout": f"{HEALTHCHECK_TIMEOUT}s",
        "retries": HEALTHCHECK_RETRIES,
    }


def _has_tag(image: str) -> bool:
    return ":" in image.rsplit("/", 1)[-1]


def _base_stanza(ctx: _RenderContext, image: str, suffix: str) -> Stanza:
    return {
        "image": image,
        "container_name": build_container_name(ctx.project.id, suffix),
        "restart": RESTART_POLICY,
    }


def _catalog_stanza(ctx: _RenderContext, key: str, svc: ServiceDeclaration, entry: CatalogEntry) -> Stanza:
    image = svc.image or f"{entry.image}:{svc.version}"
    stanza = _base_stanza(ctx, image, entry.suffix)
    if svc.env_vars:
        stanza["environment"] = dict(svc.env_vars)
    if entry.container_port is not None:
        stanza["ports"] = [f"{ctx.project.host_port(key)}:{entry.container_port}"]
    if entry.named_volume is not None:
        volume_name, mount = entry.named_volume
        stanza["volumes"] = [f"{volume_name}:{mount}"]
        ctx.volumes[volume_name] = {}
    stanza["networks"] = [ctx.network]
    if entry.healthcheck:
        stanza["healthcheck"] = healthcheck(entry.healthcheck)
    return stanza


def _depends_on(ctx: _RenderContext, stanza: Stanza, dependency: ServiceKind) -> None:
    if ctx.project.is_enabled(dependency.value):
        stanza["depends_on"] = [dependency.value]


def _render_datastore(ctx, key, svc, entry) -> Optional[Stanza]:
    return _catalog_stanza(ctx, key, svc, entry)


def _render_nginx(ctx, key, svc, entry) -> Optional[Stanza]:
    stanza = _catalog_stanza(ctx, key, svc, entry)
    stanza["volumes"] = [
        f"{ctx.project_path(WWW_DIR)}:/usr/share/nginx/html",
        f"{ctx.project_path(NGINX_CONFIG)}:/etc/nginx/conf.d/default.conf",
    ]
    return stanza


def _render_apache(ctx, key, svc, entry) -> Optional[Stanza]:
    stanza = _catalog_stanza(ctx, key, svc, entry)
    stanza["volumes"] = [
        f"{ctx.project_path(WWW_DIR)}:/usr/local/apache2/htdocs/",
        f"{ctx.project_path(APACHE_CONFIG)}:/usr/local/apache2/conf/httpd.conf",
    ]
    return stanza


def _render_php(ctx, key, svc, entry) -> Optional[Stanza]:
    stanza = _catalog_stanza(ctx, key, svc, entry)
    stanza["volumes"] = [
        f"{ctx.project_path(WWW_DIR)}:/var/www/html",
        f"{ctx.project_path(PHP_CONFIG)}:/usr/local/etc/php/conf.d/dockstack.ini",
    ]
    return stanza


def _render_phpmyadmin(ctx, key, svc, entry) -> Optional[Stanza]:
    stanza = _catalog_stanza(ctx, key, svc, entry)
    env = stanza.setdefault("environment", {})
    env.setdefault("PMA_HOST", ServiceKind.MYSQL.value)
    env.setdefault("PMA_ARBITRARY", "1")
    _depends_on(ctx, stanza, ServiceKind.MYSQL)
    return stanza


def _render_pgadmin(ctx, key, svc, entry) -> Optional[Stanza]:
    stanza = _catalog_stanza(ctx, key, svc, entry)
    _depends_on(ctx, stanza, ServiceKind.POSTGRESQL)
    return stanza


def _render_ssl(ctx, key, svc, entry) -> Optional[Stanza]:
    # Handled by the reverse proxy; see _apply_tls.
    return None


def _render_custom(ctx, key, svc, entry) -> Optional[Stanza]:
    image = (svc.image or "").strip()
    if not image:
        logger.debug("Custom service %s has no image; skipping", key)
        return None
    if svc.version and not _has_tag(image):
        image = f"{image}:{svc.version}"
    stanza = _base_stanza(ctx, image, key)
    if svc.env_vars:
        stanza["environment"] = dict(svc.env_vars)
    host_port = ctx.project.host_port(key)
    if host_port > 0:
        container_port = svc.settings.get("container_port", "").strip() or str(host_port)
        stanza["ports"] = [f"{host_port}:{container_port}"]
    mounts = [item.strip() for item in svc.settings.get("volumes", "").split(",") if item.strip()]
    if mounts:
        stanza["volumes"] = mounts
    stanza["networks"] = [ctx.network]
    return stanza


Renderer = Callable[[_RenderContext, str, ServiceDeclaration, Optional[CatalogEntry]], Optional[Stanza]]

RENDERERS: Dict[ServiceKind, Renderer] = {
    ServiceKind.POSTGRESQL: _render_datastore,
    ServiceKind.MYSQL: _render_datastore,
    ServiceKind.REDIS: _render_datastore,
    ServiceKind.ADMINER: _render_datastore,
    ServiceKind.NGINX: _render_nginx,
    ServiceKind.APACHE: _render_apache,
    ServiceKind.PHP: _render_php,
    ServiceKind.PHPMYADMIN: _render_phpmyadmin,
    ServiceKind.PGADMIN: _render_pgadmin,
    ServiceKind.SSL: _render_ssl,
    ServiceKind.CUSTOM: _render_custom,
}


def _apply_tls(ctx: _RenderContext, services: Dict[str, Stanza]) -> None:
    proxy = services.get(ServiceKind.NGINX.value)
    if proxy is None:
        return
    ports: List[str] = proxy.setdefault("ports", [])
    ports.append("443:443")
    volumes: List[str] = proxy.setdefault("volumes", [])
    volumes.append(f"{ctx.project_path(CERTS_DIR)}:/etc/nginx/certs:ro")


def build_manifest(project: ProjectDeclaration) -> Dict[str, Any]:
    """Return the manifest as plain python data (services/volumes/networks)."""
    ctx = _RenderContext(project=project, network=build_network_name(project.id))
    services: Dict[str, Stanza] = {}

    for key in sorted(project.services):
        svc = project.services[key]
        if not svc.enabled:
            continue
        kind = resolve_kind(key, svc)
        if kind is None:
            logger.debug("Service %s is not in the catalog; skipping", key)
            continue
        stanza = RENDERERS[kind](ctx, key, svc, CATALOG.get(kind))
        if stanza is not None:
            services[key] = stanza

    if project.tls_active:
        _apply_tls(ctx, services)

    manifest: Dict[str, Any] = {
        "name": compose_project_name(project.id),
        "services": services,
    }
    if ctx.volumes:
        manifest["volumes"] = ctx.volumes
    manifest["networks"] = {ctx.network: {"driver": "bridge"}}
    return manifest


def generate_manifest(project: ProjectDeclaration) -> str:
    return dump_compose_yaml(build_manifest(project))
