"""Turn an existing docker-compose file into a project of custom services."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Dict, Optional, Tuple

from .models import ProjectDeclaration, ServiceDeclaration
from .yaml_out import load_yaml_mapping

logger = logging.getLogger(__name__)


def parse_port_entry(entry) -> Tuple[Optional[str], Optional[str]]:
    def normalize(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value)
        if "/" in value:
            value = value.split("/", 1)[0]
        value = value.strip()
        return value or None

    if isinstance(entry, int):
        text = str(entry)
        return text, text

    if isinstance(entry, str):
        cleaned = entry.strip()
        if "/" in cleaned:
            cleaned = cleaned.split("/", 1)[0]
        parts = cleaned.split(":")
        # Support ip:host:container, host:container, container
        if len(parts) >= 3:
            host = parts[-2]
            container = parts[-1]
        elif len(parts) == 2:
            host, container = parts
        else:
            host, container = None, parts[0]
        return normalize(host), normalize(container)

    if isinstance(entry, dict):
        host = entry.get("published") or entry.get("host")
        container = entry.get("target") or entry.get("containerPort")
        return normalize(host), normalize(container)

    return None, None


def split_image(image: str) -> Tuple[str, str]:
    """'nginx:1.25' -> ('nginx', '1.25'); registry ports are not tags."""
    name, sep, tag = image.rpartition(":")
    if not sep or "/" in tag:
        return image, "latest"
    return name, tag


def extract_env(service: Dict) -> Dict[str, str]:
    env_data = service.get("environment") or {}
    env: Dict[str, str] = {}
    if isinstance(env_data, dict):
        for key, value in env_data.items():
            env[str(key)] = "" if value is None else str(value)
        return env
    for entry in env_data:
        if isinstance(entry, str):
            key, _, value = entry.partition("=")
            if key.strip():
                env[key.strip()] = value
    return env


def build_service(service: Dict, name: str) -> ServiceDeclaration:
    svc = ServiceDeclaration(enabled=True, is_custom=True, display_name=name, port=0, version="latest")

    image = service.get("image")
    if isinstance(image, str) and image.strip():
        svc.image, svc.version = split_image(image.strip())

    ports = service.get("ports") or []
    if ports:
        host, container = parse_port_entry(ports[0])
        if host and host.isdigit():
            svc.port = int(host)
            if container and container != host:
                svc.settings["container_port"] = container

    svc.env_vars = extract_env(service)
    return svc


def import_compose(path: Path, project_id: Optional[str] = None) -> ProjectDeclaration:
    compose = load_yaml_mapping(path, "Compose file")
    services = compose.get("services") or {}
    if not isinstance(services, dict):
        raise ValueError("Compose file 'services' must be a mapping")

    project_dir = path.resolve().parent
    dir_name = project_dir.name
    declarations: Dict[str, ServiceDeclaration] = {}
    for name, service in services.items():
        if not isinstance(service, dict):
            logger.debug("Skipping malformed service entry %s", name)
            continue
        declarations[str(name)] = build_service(service, str(name))

    logger.info("Imported %d services from %s", len(declarations), path)
    return ProjectDeclaration(
        id=project_id or uuid.uuid4().hex[:8],
        name=f"Imported: {dir_name}",
        directory=str(project_dir),
        services=declarations,
        domain=f"{dir_name.lower().replace(' ', '-')}.test",
    )
