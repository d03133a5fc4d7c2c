"""Lifecycle supervisor for compose invocations.

Every public operation (start, stop, restart, refresh, stream logs, stats,
engine probe) runs on its own freshly spawned worker thread that owns its
external process end to end: spawn, pipe consumption and wait. Workers report
through an unbounded event queue and mutate the shared status, log buffer,
container inventory and stats snapshot in short critical sections; no lock is
held while a worker blocks on a pipe or on process exit.

Each worker puts an ``OperationFinished`` event last, so a consumer can wait
for completion deterministically. Overlapping operations are not serialized:
a stop issued while a start is in flight races with it.
"""
from __future__ import annotations

import logging
import os
import queue
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .constants import LOG_PREFIX, STATS_INTERVAL_SECONDS
from .engine import (
    DOWN_ARGS,
    LOGS_ARGS,
    UP_ARGS,
    compose_command,
    inventory_command,
    parse_inventory,
    parse_stats,
    stats_command,
)
from .errors import (
    ProcessError,
    ProcessExitError,
    ProcessLaunchError,
    ProcessWaitError,
    format_command,
)
from .logbuffer import LogBuffer
from .models import (
    ComposeDialect,
    ContainerRecord,
    ContainerStats,
    EngineAvailability,
    EngineProbeResult,
    EngineSettings,
    Failure,
    InventoryUpdated,
    LogLine,
    OperationFinished,
    OrchestrationEvent,
    OrchestrationStatus,
    ProjectDeclaration,
    StatsUpdated,
    StatusChanged,
)
from .probe import probe_engine
from .writer import write_project_files

logger = logging.getLogger(__name__)

NO_SERVICES_MESSAGE = "No services enabled! Enable at least one service before starting."
UNEXPECTED_ERROR_MESSAGE = "Unexpected error. See logs."

# Workers that drive the shared status.
LIFECYCLE_OPERATIONS = frozenset({"start", "stop", "restart"})


class OperationHandle:
    """Tracks one worker and the external process it currently owns."""

    def __init__(self, name: str):
        self.name = name
        self.thread: Optional[threading.Thread] = None
        self.cancelled = False
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._cancel_requested = threading.Event()

    def attach(self, process: subprocess.Popen) -> None:
        with self._lock:
            self._process = process
            cancelled = self.cancelled
        if cancelled:
            self._kill(process)

    def detach(self) -> None:
        with self._lock:
            self._process = None

    def cancel(self) -> bool:
        """Kill the external process owned by this worker, if one is running."""
        with self._lock:
            self.cancelled = True
            process = self._process
        self._cancel_requested.set()
        if process is None:
            return False
        return self._kill(process)

    def _kill(self, process: subprocess.Popen) -> bool:
        if process.poll() is not None:
            return False
        logger.info("Killing %s process (pid %s)", self.name, getattr(process, "pid", "?"))
        try:
            process.kill()
        except OSError as exc:
            logger.warning("Could not kill %s process: %s", self.name, exc)
            return False
        return True

    def wait_cancelled(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True as soon as cancel() was called."""
        return self._cancel_requested.wait(timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        if self.thread is not None:
            self.thread.join(timeout)
        return self.done

    @property
    def done(self) -> bool:
        return self.thread is None or not self.thread.is_alive()


class OrchestrationSupervisor:
    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        writer: Callable[[ProjectDeclaration], Path] = write_project_files,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        log_buffer: Optional[LogBuffer] = None,
    ):
        self.settings = settings or EngineSettings()
        self._writer = writer
        self._popen = popen
        self._run = run
        self._events: "queue.Queue[OrchestrationEvent]" = queue.Queue()
        self._logs = log_buffer or LogBuffer()

        self._status = OrchestrationStatus.stopped()
        self._status_lock = threading.Lock()
        self._containers: List[ContainerRecord] = []
        self._containers_lock = threading.Lock()
        self._stats: List[ContainerStats] = []
        self._stats_lock = threading.Lock()
        self._engine = EngineProbeResult()
        self._engine_lock = threading.Lock()
        self._workers: List[OperationHandle] = []
        self._workers_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    @property
    def status(self) -> OrchestrationStatus:
        with self._status_lock:
            return self._status

    def logs(self) -> List[str]:
        return self._logs.snapshot()

    def clear_logs(self) -> None:
        self._logs.clear()

    def containers(self) -> List[ContainerRecord]:
        with self._containers_lock:
            return list(self._containers)

    def stats(self) -> List[ContainerStats]:
        with self._stats_lock:
            return list(self._stats)

    @property
    def engine(self) -> EngineProbeResult:
        with self._engine_lock:
            return self._engine

    @property
    def engine_available(self) -> bool:
        return self.engine.available

    @property
    def dialect(self) -> ComposeDialect:
        return self.engine.dialect

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------
    def drain_events(self) -> List[OrchestrationEvent]:
        """Return every queued event without blocking."""
        events: List[OrchestrationEvent] = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def next_event(self, timeout: Optional[float] = None) -> Optional[OrchestrationEvent]:
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    def _emit(self, event: OrchestrationEvent) -> None:
        self._events.put_nowait(event)

    def _log(self, line: str) -> None:
        self._logs.append(line)
        self._emit(LogLine(text=line))

    def _info(self, message: str) -> None:
        self._log(f"{LOG_PREFIX} {message}")

    def _set_status(self, status: OrchestrationStatus, scope: str = "all") -> None:
        with self._status_lock:
            self._status = status
        self._emit(StatusChanged(scope=scope, status=status))

    def _fail(self, short: str, message: str) -> None:
        self._set_status(OrchestrationStatus.error(short))
        self._emit(Failure(message=message))

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------
    def _spawn(self, name: str, target: Callable[..., bool], *args) -> OperationHandle:
        handle = OperationHandle(name)

        def runner() -> None:
            ok = False
            try:
                ok = target(handle, *args)
            except Exception:
                logger.exception("Unexpected error in %s worker", name)
                if name in LIFECYCLE_OPERATIONS:
                    self._set_status(OrchestrationStatus.error(UNEXPECTED_ERROR_MESSAGE))
                self._emit(Failure(message=f"{LOG_PREFIX} Unexpected error during {name}. See logs."))
            finally:
                self._emit(OperationFinished(operation=name, ok=ok))

        handle.thread = threading.Thread(target=runner, name=f"dockstack-{name}", daemon=True)
        with self._workers_lock:
            self._workers = [worker for worker in self._workers if not worker.done]
            self._workers.append(handle)
            handle.thread.start()
        return handle

    def _finished_immediately(self, name: str) -> OperationHandle:
        self._emit(OperationFinished(operation=name, ok=False))
        return OperationHandle(name)

    def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Join every worker spawned so far; True when all of them finished."""
        with self._workers_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)
        return all(worker.done for worker in workers)

    # ------------------------------------------------------------------
    # Process helpers
    # ------------------------------------------------------------------
    def _compose(self, args: List[str]) -> List[str]:
        return compose_command(self.settings, self.dialect, args)

    def _env(self) -> Optional[Dict[str, str]]:
        api_version = self.engine.api_version
        if not api_version:
            return None
        env = dict(os.environ)
        env["DOCKER_API_VERSION"] = api_version
        return env

    def _run_streaming(
        self,
        handle: OperationHandle,
        command: List[str],
        cwd: str,
        read_stdout: bool = False,
        capture: bool = True,
    ) -> str:
        """Spawn ``command`` and forward its output line by line as it arrives.

        Reads stderr (stdout discarded) by default; with ``read_stdout`` the
        two streams are merged and read together.
        """
        logger.debug("Running %s in %s", format_command(command), cwd)
        try:
            process = self._popen(
                command,
                cwd=cwd,
                env=self._env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if read_stdout else subprocess.DEVNULL,
                stderr=subprocess.STDOUT if read_stdout else subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise ProcessLaunchError(command, exc) from exc

        handle.attach(process)
        captured: List[str] = []
        try:
            pipe = process.stdout if read_stdout else process.stderr
            if pipe is not None:
                for raw in pipe:
                    line = raw.rstrip("\r\n")
                    if capture:
                        captured.append(line)
                    self._log(line)
            try:
                returncode = process.wait()
            except (OSError, subprocess.SubprocessError) as exc:
                raise ProcessWaitError(command, exc) from exc
        finally:
            handle.detach()

        output = "\n".join(captured)
        if returncode != 0:
            raise ProcessExitError(command, returncode, output)
        return output

    def _process_failed(self, exc: ProcessError, action: str) -> None:
        """Full diagnostics go to the log buffer; status gets a one-line summary."""
        if isinstance(exc, ProcessLaunchError):
            message = f"{LOG_PREFIX} Failed to execute compose command ({format_command(exc.command)}): {exc.cause}"
            short = "Exec error. See logs."
            failure = message
        elif isinstance(exc, ProcessExitError):
            message = f"{LOG_PREFIX} Failed to {action}: {exc.detail}\nCommand tried: {format_command(exc.command)}"
            short = f"Failed to {action}. See logs."
            failure = short
        else:
            message = f"{LOG_PREFIX} {exc}"
            short = "Process error. See logs."
            failure = message
        logger.error("%s", message)
        self._log(message)
        self._fail(short, failure)

    def _write_manifest(self, project: ProjectDeclaration) -> bool:
        try:
            path = self._writer(project)
        except OSError as exc:
            message = f"{LOG_PREFIX} Error writing manifest: {exc}"
            logger.error("%s", message)
            self._log(message)
            self._fail(f"Could not write manifest: {exc.strerror or exc}", message)
            return False
        self._info(f"Manifest written: {path}")
        return True

    def _compose_up(self, handle: OperationHandle, project: ProjectDeclaration, success: str) -> bool:
        self._info("Starting services...")
        try:
            self._run_streaming(handle, self._compose(UP_ARGS), project.directory)
        except ProcessError as exc:
            self._process_failed(exc, "start services")
            return False
        self._info(success)
        self._set_status(OrchestrationStatus.running())
        return True

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def check_engine(self) -> OperationHandle:
        return self._spawn("probe", self._probe_worker)

    def _probe_worker(self, handle: OperationHandle) -> bool:
        result = probe_engine(self.settings, self._run)
        with self._engine_lock:
            self._engine = result
        self._emit(EngineAvailability(available=result.available, dialect=result.dialect))
        return result.available

    def start(self, project: ProjectDeclaration) -> OperationHandle:
        if not project.enabled_services():
            logger.warning("Start requested for %s with no enabled services", project.id)
            self._fail(NO_SERVICES_MESSAGE, NO_SERVICES_MESSAGE)
            return self._finished_immediately("start")

        self._set_status(OrchestrationStatus.starting())
        return self._spawn("start", self._start_worker, project.model_copy(deep=True))

    def _start_worker(self, handle: OperationHandle, project: ProjectDeclaration) -> bool:
        if not self._write_manifest(project):
            return False
        return self._compose_up(handle, project, "Services started successfully")

    def stop(self, project: ProjectDeclaration) -> OperationHandle:
        self._set_status(OrchestrationStatus.stopping())
        return self._spawn("stop", self._stop_worker, project.model_copy(deep=True))

    def _stop_worker(self, handle: OperationHandle, project: ProjectDeclaration) -> bool:
        self._info("Stopping services...")
        try:
            self._run_streaming(handle, self._compose(DOWN_ARGS), project.directory)
        except ProcessError as exc:
            self._process_failed(exc, "stop services")
            return False
        self._info("Services stopped")
        self._set_status(OrchestrationStatus.stopped())
        return True

    def stop_sync(self, project: ProjectDeclaration) -> Optional[int]:
        """Run ``down`` on the calling thread with inherited stdio.

        Meant for process shutdown: it returns only once the engine exits.
        """
        self._info("Stopping services before exit...")
        command = self._compose(DOWN_ARGS)
        try:
            completed = self._run(command, cwd=project.directory, env=self._env(), check=False)
        except OSError as exc:
            message = f"{LOG_PREFIX} Failed to execute compose command ({format_command(command)}): {exc}"
            logger.error("%s", message)
            self._log(message)
            return None
        if completed.returncode == 0:
            with self._status_lock:
                self._status = OrchestrationStatus.stopped()
        else:
            logger.warning("%s exited with %s", format_command(command), completed.returncode)
        return completed.returncode

    def restart(self, project: ProjectDeclaration) -> OperationHandle:
        self._set_status(OrchestrationStatus.stopping())
        return self._spawn("restart", self._restart_worker, project.model_copy(deep=True))

    def _restart_worker(self, handle: OperationHandle, project: ProjectDeclaration) -> bool:
        self._info("Restarting services...")
        try:
            self._run_streaming(handle, self._compose(DOWN_ARGS), project.directory)
        except ProcessError as exc:
            self._process_failed(exc, "stop services during restart")
            return False

        if not project.enabled_services():
            self._fail(NO_SERVICES_MESSAGE, NO_SERVICES_MESSAGE)
            return False
        if not self._write_manifest(project):
            return False

        self._set_status(OrchestrationStatus.starting())
        return self._compose_up(handle, project, "Services restarted successfully")

    def refresh_containers(self, project: ProjectDeclaration) -> OperationHandle:
        return self._spawn("refresh", self._refresh_worker, project.id)

    def _refresh_worker(self, handle: OperationHandle, project_id: str) -> bool:
        command = inventory_command(self.settings, project_id)
        try:
            result = self._run(command, capture_output=True, text=True, env=self._env(), check=False)
        except OSError as exc:
            logger.error("Failed to list containers: %s", exc)
            self._emit(Failure(message=f"Failed to list containers: {exc}"))
            return False
        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"Exit code: {result.returncode}"
            logger.error("Failed to list containers: %s", detail)
            self._emit(Failure(message=f"Failed to list containers: {detail}"))
            return False

        records = parse_inventory(result.stdout or "")
        with self._containers_lock:
            self._containers = records
        self._emit(InventoryUpdated(containers=list(records)))
        return True

    def stream_logs(self, project: ProjectDeclaration) -> OperationHandle:
        return self._spawn("logs", self._logs_worker, project.model_copy(deep=True))

    def _logs_worker(self, handle: OperationHandle, project: ProjectDeclaration) -> bool:
        try:
            self._run_streaming(
                handle,
                self._compose(LOGS_ARGS),
                project.directory,
                read_stdout=True,
                capture=False,
            )
        except ProcessLaunchError as exc:
            logger.error("%s", exc)
            self._emit(Failure(message=f"Failed to stream logs: {exc.cause}"))
            return False
        except ProcessExitError as exc:
            if handle.cancelled:
                return True
            self._info(f"Log stream ended ({exc.detail})")
            return False
        except ProcessWaitError as exc:
            logger.error("%s", exc)
            self._emit(Failure(message=f"Failed to stream logs: {exc.cause}"))
            return False
        return True

    def refresh_stats(self) -> OperationHandle:
        return self._spawn("stats", self._stats_worker)

    def monitor_stats(self, interval: float = STATS_INTERVAL_SECONDS) -> OperationHandle:
        """Poll resource usage every ``interval`` seconds until the handle is cancelled."""
        return self._spawn("monitor", self._monitor_worker, interval)

    def _stats_worker(self, handle: OperationHandle) -> bool:
        return self._collect_stats()

    def _monitor_worker(self, handle: OperationHandle, interval: float) -> bool:
        while not handle.cancelled:
            self._collect_stats()
            if handle.wait_cancelled(interval):
                break
        return True

    def _collect_stats(self) -> bool:
        command = stats_command(self.settings)
        try:
            result = self._run(command, capture_output=True, text=True, env=self._env(), check=False)
        except OSError as exc:
            logger.error("Failed to read container stats: %s", exc)
            self._emit(Failure(message=f"Failed to read container stats: {exc}"))
            return False
        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"Exit code: {result.returncode}"
            logger.error("Failed to read container stats: %s", detail)
            self._emit(Failure(message=f"Failed to read container stats: {detail}"))
            return False

        stats = parse_stats(result.stdout or "")
        with self._stats_lock:
            self._stats = stats
        self._emit(StatsUpdated(stats=list(stats)))
        return True
