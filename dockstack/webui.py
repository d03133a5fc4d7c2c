"""FastAPI JSON control API over one supervisor and one loaded project."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from .manifest import generate_manifest
from .models import ProjectDeclaration, StatusState
from .supervisor import OperationHandle, OrchestrationSupervisor

logger = logging.getLogger(__name__)


@dataclass
class WebState:
    supervisor: Optional[OrchestrationSupervisor] = None
    project: Optional[ProjectDeclaration] = None


STATE = WebState()
app = FastAPI(title="DockStack control API")


def _require_supervisor() -> OrchestrationSupervisor:
    if STATE.supervisor is None:
        STATE.supervisor = OrchestrationSupervisor()
    return STATE.supervisor


def _require_project() -> ProjectDeclaration:
    if STATE.project is None:
        raise HTTPException(status_code=400, detail="No project is loaded yet.")
    return STATE.project


def _accepted(handle: OperationHandle) -> dict:
    return {"status": "accepted", "operation": handle.name}


@app.get("/api/state")
async def get_state() -> dict:
    supervisor = _require_supervisor()
    status = supervisor.status
    return {
        "project": STATE.project.id if STATE.project else None,
        "status": status.state.value,
        "detail": status.detail,
        "engine_available": supervisor.engine_available,
        "dialect": supervisor.dialect.value,
    }


@app.get("/api/logs")
async def get_logs() -> dict:
    return {"lines": _require_supervisor().logs()}


@app.delete("/api/logs")
async def clear_logs() -> dict:
    _require_supervisor().clear_logs()
    return {"status": "ok"}


@app.get("/api/containers")
async def get_containers() -> dict:
    return {"containers": [record.model_dump() for record in _require_supervisor().containers()]}


@app.get("/api/stats")
async def get_stats() -> dict:
    return {"stats": [row.model_dump() for row in _require_supervisor().stats()]}


@app.get("/api/events")
async def get_events() -> dict:
    events = _require_supervisor().drain_events()
    return {"events": [event.model_dump(mode="json") for event in events]}


@app.get("/api/manifest", response_class=PlainTextResponse)
async def get_manifest() -> PlainTextResponse:
    return PlainTextResponse(generate_manifest(_require_project()), media_type="text/yaml")


@app.post("/api/project")
async def load_project(project: ProjectDeclaration) -> dict:
    STATE.project = project
    return {"status": "ok", "project": project.id, "enabled": project.enabled_services()}


@app.post("/api/start")
async def start() -> dict:
    return _accepted(_require_supervisor().start(_require_project()))


@app.post("/api/stop")
async def stop() -> dict:
    return _accepted(_require_supervisor().stop(_require_project()))


@app.post("/api/restart")
async def restart() -> dict:
    return _accepted(_require_supervisor().restart(_require_project()))


@app.post("/api/refresh")
async def refresh() -> dict:
    return _accepted(_require_supervisor().refresh_containers(_require_project()))


@app.post("/api/logs/stream")
async def stream_logs() -> dict:
    return _accepted(_require_supervisor().stream_logs(_require_project()))


@app.post("/api/stats/refresh")
async def refresh_stats() -> dict:
    return _accepted(_require_supervisor().refresh_stats())


@app.post("/api/probe")
async def probe() -> dict:
    return _accepted(_require_supervisor().check_engine())


def serve(
    project: ProjectDeclaration,
    supervisor: Optional[OrchestrationSupervisor] = None,
    host: str = "127.0.0.1",
    port: int = 8765,
) -> None:
    STATE.project = project
    STATE.supervisor = supervisor or OrchestrationSupervisor()
    STATE.supervisor.check_engine()
    logger.info("Serving project %s on http://%s:%s", project.id, host, port)
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        status = STATE.supervisor.status
        if status.state in (StatusState.RUNNING, StatusState.STARTING):
            logger.info("Stopping running containers before exit...")
            STATE.supervisor.stop_sync(project)
