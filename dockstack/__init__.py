"""Docker-compose stack generator and engine supervisor."""

from .manifest import build_manifest, generate_manifest
from .models import (
    ContainerRecord,
    ContainerStats,
    OrchestrationStatus,
    ProjectDeclaration,
    ServiceDeclaration,
)
from .supervisor import OrchestrationSupervisor
from .writer import write_project_files

__all__ = [
    "ContainerRecord",
    "ContainerStats",
    "OrchestrationStatus",
    "OrchestrationSupervisor",
    "ProjectDeclaration",
    "ServiceDeclaration",
    "build_manifest",
    "generate_manifest",
    "write_project_files",
]
