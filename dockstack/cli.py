"""Command line interface for dockstack projects."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .console import format_event, write_stdout_text
from .constants import STATS_INTERVAL_SECONDS
from .importer import import_compose
from .main import init_project_file, load_project_file, save_project_file
from .manifest import generate_manifest
from .models import EngineSettings, OperationFinished
from .supervisor import OperationHandle, OrchestrationSupervisor
from .webui import serve
from .writer import write_project_files

logger = logging.getLogger(__name__)

PROJECT_OPERATIONS = {
    "up": "start",
    "down": "stop",
    "restart": "restart",
    "ps": "refresh_containers",
    "logs": "stream_logs",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dockstack",
        description="Generate docker-compose stacks for local projects and drive the container engine.",
    )
    parser.add_argument(
        "--engine",
        default=os.environ.get("DOCKSTACK_ENGINE", "docker"),
        help="Container engine binary (env: DOCKSTACK_ENGINE).",
    )
    parser.add_argument(
        "--compose-binary",
        default=os.environ.get("DOCKSTACK_COMPOSE", "docker-compose"),
        help="Standalone compose binary used when the engine has no compose plugin (env: DOCKSTACK_COMPOSE).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Write a project file listing the whole service catalog.")
    init.add_argument("project_file", type=Path)
    init.add_argument("--id", dest="project_id", default="default", help="Project identifier.")
    init.add_argument("--name", help="Display name.")
    init.add_argument("--directory", help="Working directory (default: ~/dockstack-projects/<id>).")

    generate = sub.add_parser("generate", help="Write the manifest and config files.")
    generate.add_argument("project_file", type=Path)
    generate.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the generated manifest without writing to disk.",
    )

    for name, help_text in (
        ("up", "Start the enabled services."),
        ("down", "Stop and remove the project's containers."),
        ("restart", "Stop, regenerate and start again."),
        ("ps", "List the project's containers."),
        ("logs", "Follow container logs (Ctrl-C to stop)."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("project_file", type=Path)

    sub.add_parser("probe", help="Check the engine and the available compose dialect.")

    stats = sub.add_parser("stats", help="Show CPU, memory and I/O usage of running containers.")
    stats.add_argument("--watch", action="store_true", help="Keep polling until interrupted.")
    stats.add_argument(
        "--interval",
        type=float,
        default=STATS_INTERVAL_SECONDS,
        help="Seconds between polls with --watch (default: %(default)s).",
    )

    importer = sub.add_parser("import", help="Create a project file from an existing compose file.")
    importer.add_argument("compose_file", type=Path)
    importer.add_argument("-o", "--output", type=Path, required=True, help="Project file to write.")
    importer.add_argument("--id", dest="project_id", help="Project identifier (default: random).")

    serve_cmd = sub.add_parser("serve", help="Serve the JSON control API for one project.")
    serve_cmd.add_argument("project_file", type=Path)
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=8765)
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def follow(supervisor: OrchestrationSupervisor, handle: OperationHandle, poll: float = 0.25) -> bool:
    """Print events until ``handle``'s operation reports completion."""
    try:
        while True:
            event = supervisor.next_event(timeout=poll)
            if event is None:
                continue
            if isinstance(event, OperationFinished) and event.operation == handle.name:
                return event.ok
            line = format_event(event)
            if line is not None:
                write_stdout_text(line)
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping %s", handle.name)
        handle.cancel()
        handle.join()
        return True


def probe_first(supervisor: OrchestrationSupervisor) -> None:
    if not follow(supervisor, supervisor.check_engine()):
        logger.warning("Container engine is not reachable; trying anyway")


def run_operation(supervisor: OrchestrationSupervisor, command: str, project_file: Path) -> int:
    project = load_project_file(project_file)
    probe_first(supervisor)
    handle = getattr(supervisor, PROJECT_OPERATIONS[command])(project)
    ok = follow(supervisor, handle)
    return 0 if ok else 1


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    settings = EngineSettings(engine_binary=args.engine, compose_binary=args.compose_binary)

    try:
        if args.command == "init":
            project = init_project_file(args.project_file, args.project_id, args.name, args.directory)
            logger.info("Project %s created in %s", project.id, project.directory)
            return 0

        if args.command == "generate":
            project = load_project_file(args.project_file)
            if args.dry_run:
                logger.info("Dry run enabled; nothing written to disk.")
                write_stdout_text(generate_manifest(project))
                return 0
            write_stdout_text(str(write_project_files(project)))
            return 0

        if args.command == "import":
            project = import_compose(args.compose_file, args.project_id)
            save_project_file(project, args.output)
            return 0

        supervisor = OrchestrationSupervisor(settings)

        if args.command == "probe":
            return 0 if follow(supervisor, supervisor.check_engine()) else 1

        if args.command == "stats":
            probe_first(supervisor)
            handle = supervisor.monitor_stats(args.interval) if args.watch else supervisor.refresh_stats()
            return 0 if follow(supervisor, handle) else 1

        if args.command == "serve":
            serve(load_project_file(args.project_file), supervisor, host=args.host, port=args.port)
            return 0

        return run_operation(supervisor, args.command, args.project_file)
    except Exception as exc:  # pragma: no cover - protects CLI UX
        logging.error("dockstack failed: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
