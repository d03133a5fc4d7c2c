"""Fixed catalog of known service kinds and their default metadata."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from .constants import SSL_SERVICE_KEY
from .models import ProjectDeclaration, ServiceDeclaration


class ServiceKind(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    REDIS = "redis"
    NGINX = "nginx"
    APACHE = "apache"
    PHP = "php"
    PHPMYADMIN = "phpmyadmin"
    PGADMIN = "pgadmin"
    ADMINER = "adminer"
    SSL = SSL_SERVICE_KEY
    CUSTOM = "custom"


class ServiceCategory(str, Enum):
    DATABASE = "Database"
    CACHE = "Cache"
    WEB_SERVER = "Web Server"
    RUNTIME = "Runtime"
    ADMIN = "Admin Tools"
    SECURITY = "Security"
    CUSTOM = "Custom Services"


@dataclass(frozen=True)
class CatalogEntry:
    kind: ServiceKind
    display_name: str
    description: str
    category: ServiceCategory
    image: str
    default_port: int
    default_version: str
    container_port: Optional[int] = None
    container_suffix: Optional[str] = None
    # (volume name, mount point) for services that keep state
    named_volume: Optional[Tuple[str, str]] = None
    healthcheck: Optional[str] = None
    default_env: Dict[str, str] = field(default_factory=dict)
    default_settings: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return self.kind.value

    @property
    def suffix(self) -> str:
        return self.container_suffix or self.key

    @property
    def is_stateful(self) -> bool:
        return self.named_volume is not None


CATALOG: Dict[ServiceKind, CatalogEntry] = {
    entry.kind: entry
    for entry in (
        CatalogEntry(
            kind=ServiceKind.POSTGRESQL,
            display_name="PostgreSQL",
            description="Advanced open source relational database",
            category=ServiceCategory.DATABASE,
            image="postgres",
            default_port=5432,
            default_version="16",
            container_port=5432,
            container_suffix="postgres",
            named_volume=("postgres_data", "/var/lib/postgresql/data"),
            healthcheck="pg_isready -U postgres",
            default_env={
                "POSTGRES_USER": "postgres",
                "POSTGRES_PASSWORD": "postgres",
                "POSTGRES_DB": "devdb",
            },
        ),
        CatalogEntry(
            kind=ServiceKind.MYSQL,
            display_name="MySQL",
            description="Popular open source relational database",
            category=ServiceCategory.DATABASE,
            image="mysql",
            default_port=3306,
            default_version="8.0",
            container_port=3306,
            named_volume=("mysql_data", "/var/lib/mysql"),
            healthcheck="mysqladmin ping -h localhost",
            default_env={"MYSQL_ROOT_PASSWORD": "root", "MYSQL_DATABASE": "devdb"},
        ),
        CatalogEntry(
            kind=ServiceKind.REDIS,
            display_name="Redis",
            description="In-memory data structure store",
            category=ServiceCategory.CACHE,
            image="redis",
            default_port=6379,
            default_version="7",
            container_port=6379,
            named_volume=("redis_data", "/data"),
            healthcheck="redis-cli ping",
        ),
        CatalogEntry(
            kind=ServiceKind.NGINX,
            display_name="Nginx",
            description="High performance web server & reverse proxy",
            category=ServiceCategory.WEB_SERVER,
            image="nginx",
            default_port=80,
            default_version="latest",
            container_port=80,
        ),
        CatalogEntry(
            kind=ServiceKind.APACHE,
            display_name="Apache",
            description="The most widely used web server",
            category=ServiceCategory.WEB_SERVER,
            image="httpd",
            default_port=8080,
            default_version="2.4",
            container_port=80,
        ),
        CatalogEntry(
            kind=ServiceKind.PHP,
            display_name="PHP-FPM",
            description="PHP FastCGI Process Manager",
            category=ServiceCategory.RUNTIME,
            image="php",
            default_port=9000,
            default_version="8.3-fpm",
            container_port=9000,
            default_settings={"extensions": "pdo_mysql,gd,zip,intl", "memory_limit": "256M"},
        ),
        CatalogEntry(
            kind=ServiceKind.PHPMYADMIN,
            display_name="phpMyAdmin",
            description="Web interface for MySQL administration",
            category=ServiceCategory.ADMIN,
            image="phpmyadmin",
            default_port=8081,
            default_version="latest",
            container_port=80,
            default_env={"PMA_USER": "root", "PMA_PASSWORD": "root"},
        ),
        CatalogEntry(
            kind=ServiceKind.PGADMIN,
            display_name="pgAdmin",
            description="Web interface for PostgreSQL administration",
            category=ServiceCategory.ADMIN,
            image="dpage/pgadmin4",
            default_port=8082,
            default_version="latest",
            container_port=80,
            named_volume=("pgadmin_data", "/var/lib/pgadmin"),
            default_env={
                "PGADMIN_DEFAULT_EMAIL": "admin@admin.com",
                "PGADMIN_DEFAULT_PASSWORD": "admin",
            },
        ),
        CatalogEntry(
            kind=ServiceKind.ADMINER,
            display_name="Adminer",
            description="Universal database management in single PHP file",
            category=ServiceCategory.ADMIN,
            image="adminer",
            default_port=8083,
            default_version="latest",
            container_port=8080,
        ),
        CatalogEntry(
            kind=ServiceKind.SSL,
            display_name="SSL/HTTPS",
            description="Self-signed HTTPS reverse proxy",
            category=ServiceCategory.SECURITY,
            image="",
            default_port=443,
            default_version="latest",
        ),
    )
}


def resolve_kind(key: str, svc: ServiceDeclaration) -> Optional[ServiceKind]:
    """Map a declaration key onto a catalog kind.

    Custom declarations always resolve to ``CUSTOM``. A non-custom key that
    is not in the catalog resolves to ``None`` and is not renderable.
    """
    if svc.is_custom:
        return ServiceKind.CUSTOM
    try:
        kind = ServiceKind(key)
    except ValueError:
        return None
    if kind is ServiceKind.CUSTOM:
        return None
    return kind


def get_entry(key: str) -> Optional[CatalogEntry]:
    try:
        return CATALOG.get(ServiceKind(key))
    except ValueError:
        return None


def default_service(entry: CatalogEntry) -> ServiceDeclaration:
    return ServiceDeclaration(
        enabled=False,
        port=entry.default_port,
        version=entry.default_version,
        env_vars=dict(entry.default_env),
        settings=dict(entry.default_settings),
    )


def default_project(
    project_id: str = "default",
    name: str = "Default Project",
    directory: Optional[str] = None,
) -> ProjectDeclaration:
    """Return a project listing the whole catalog, every service disabled."""
    if directory is None:
        directory = str(Path.home() / "dockstack-projects" / project_id)
    services = {entry.key: default_service(entry) for entry in CATALOG.values()}
    return ProjectDeclaration(
        id=project_id,
        name=name,
        directory=directory,
        services=services,
        domain="dockstack.test",
    )
