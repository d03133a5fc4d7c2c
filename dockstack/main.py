"""High level helpers consumed by the CLI and the web API."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .catalog import default_project
from .models import ProjectDeclaration
from .yaml_out import dump_yaml, load_yaml_mapping, write_text_file

logger = logging.getLogger(__name__)


def load_project_file(path: Path) -> ProjectDeclaration:
    data = load_yaml_mapping(path, "Project file")
    project = ProjectDeclaration.model_validate(data)
    logger.debug("Loaded project %s (%d services)", project.id, len(project.services))
    return project


def save_project_file(project: ProjectDeclaration, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    write_text_file(path, dump_yaml(project.model_dump(mode="json")))
    logger.info("Project %s written to %s", project.id, path)


def init_project_file(
    path: Path,
    project_id: str = "default",
    name: Optional[str] = None,
    directory: Optional[str] = None,
) -> ProjectDeclaration:
    if path.exists():
        raise FileExistsError(f"Project file already exists: {path}")
    project = default_project(project_id, name or f"{project_id} project", directory)
    save_project_file(project, path)
    return project
