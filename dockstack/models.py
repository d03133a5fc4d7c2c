"""Pydantic data models shared across the dockstack supervisor."""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .constants import SSL_SERVICE_KEY


class ServiceDeclaration(BaseModel):
    enabled: bool = False
    port: int = 0
    version: str = "latest"
    display_name: Optional[str] = None
    image: Optional[str] = None
    is_custom: bool = False
    is_locked: bool = False
    env_vars: Dict[str, str] = Field(default_factory=dict)
    settings: Dict[str, str] = Field(default_factory=dict)


class ProjectDeclaration(BaseModel):
    id: str
    name: str = ""
    directory: str
    services: Dict[str, ServiceDeclaration] = Field(default_factory=dict)
    ssl_enabled: bool = False
    custom_ports: Dict[str, int] = Field(default_factory=dict)
    domain: str = "dockstack.test"

    def enabled_services(self) -> List[str]:
        return sorted(key for key, svc in self.services.items() if svc.enabled)

    def is_enabled(self, key: str) -> bool:
        svc = self.services.get(key)
        return bool(svc and svc.enabled)

    @property
    def tls_active(self) -> bool:
        """The ``ssl`` toggle only flips TLS on; it never becomes a container."""
        return self.ssl_enabled or self.is_enabled(SSL_SERVICE_KEY)

    def host_port(self, key: str) -> int:
        if key in self.custom_ports:
            return self.custom_ports[key]
        svc = self.services.get(key)
        return svc.port if svc else 0


class StatusState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class OrchestrationStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: StatusState = StatusState.STOPPED
    detail: str = ""

    @classmethod
    def stopped(cls) -> "OrchestrationStatus":
        return cls(state=StatusState.STOPPED)

    @classmethod
    def starting(cls) -> "OrchestrationStatus":
        return cls(state=StatusState.STARTING)

    @classmethod
    def running(cls) -> "OrchestrationStatus":
        return cls(state=StatusState.RUNNING)

    @classmethod
    def stopping(cls) -> "OrchestrationStatus":
        return cls(state=StatusState.STOPPING)

    @classmethod
    def error(cls, detail: str) -> "OrchestrationStatus":
        return cls(state=StatusState.ERROR, detail=detail)

    @property
    def is_error(self) -> bool:
        return self.state is StatusState.ERROR

    def __str__(self) -> str:
        if self.is_error:
            return f"Error: {self.detail}"
        return self.state.value.capitalize()


class ContainerRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    image: str = ""
    status: str = ""
    ports: str = ""
    state: str = ""

    @property
    def is_running(self) -> bool:
        return "running" in self.state.lower()


class ContainerStats(BaseModel):
    """One row of `docker stats --no-stream`; values are kept as the engine prints them."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    cpu_percent: str = ""
    mem_usage: str = ""
    mem_percent: str = ""
    net_io: str = ""
    block_io: str = ""


class ComposeDialect(str, Enum):
    PLUGIN = "plugin"
    STANDALONE = "standalone"


class EngineSettings(BaseModel):
    engine_binary: str = "docker"
    compose_binary: str = "docker-compose"
    label_key: str = "com.docker.compose.project"


class EngineProbeResult(BaseModel):
    available: bool = False
    dialect: ComposeDialect = ComposeDialect.STANDALONE
    api_version: Optional[str] = None


class LogLine(BaseModel):
    kind: Literal["log"] = "log"
    text: str


class StatusChanged(BaseModel):
    kind: Literal["status"] = "status"
    scope: str = "all"
    status: OrchestrationStatus


class InventoryUpdated(BaseModel):
    kind: Literal["inventory"] = "inventory"
    containers: List[ContainerRecord] = Field(default_factory=list)


class StatsUpdated(BaseModel):
    kind: Literal["stats"] = "stats"
    stats: List[ContainerStats] = Field(default_factory=list)


class Failure(BaseModel):
    kind: Literal["failure"] = "failure"
    message: str


class EngineAvailability(BaseModel):
    kind: Literal["engine"] = "engine"
    available: bool
    dialect: ComposeDialect = ComposeDialect.STANDALONE


class OperationFinished(BaseModel):
    kind: Literal["finished"] = "finished"
    operation: str
    ok: bool = True


OrchestrationEvent = Union[
    LogLine,
    StatusChanged,
    InventoryUpdated,
    StatsUpdated,
    Failure,
    EngineAvailability,
    OperationFinished,
]
