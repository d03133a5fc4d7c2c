import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from fakes import FakePopen, FakeProcess, FakeRun, RecordingWriter, make_project

from dockstack.cli import build_parser, follow, main
from dockstack.console import format_event
from dockstack.main import load_project_file, save_project_file
from dockstack.models import (
    ContainerRecord,
    ContainerStats,
    InventoryUpdated,
    OrchestrationStatus,
    ServiceDeclaration,
    StatsUpdated,
    StatusChanged,
)
from dockstack.supervisor import OrchestrationSupervisor


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_parser_reads_engine_overrides(self):
        args = build_parser().parse_args(["--engine", "podman", "--compose-binary", "podman-compose", "up", "p.yml"])
        self.assertEqual(args.engine, "podman")
        self.assertEqual(args.compose_binary, "podman-compose")
        self.assertEqual(args.project_file, Path("p.yml"))

    def test_stats_options(self):
        args = build_parser().parse_args(["stats", "--watch", "--interval", "0.5"])
        self.assertTrue(args.watch)
        self.assertEqual(args.interval, 0.5)
        self.assertFalse(build_parser().parse_args(["stats"]).watch)

    def test_init_writes_catalog_once(self):
        project_file = self.root / "project.yml"
        workdir = self.root / "work"

        self.assertEqual(main(["init", str(project_file), "--id", "shop", "--directory", str(workdir)]), 0)
        project = load_project_file(project_file)
        self.assertEqual(project.id, "shop")
        self.assertEqual(project.directory, str(workdir))
        self.assertIn("postgresql", project.services)
        self.assertEqual(project.enabled_services(), [])

        self.assertEqual(main(["init", str(project_file)]), 1)

    def test_generate_dry_run_prints_manifest(self):
        project_file = self.root / "project.yml"
        save_project_file(make_project(self.root / "work", redis=6379), project_file)

        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.assertEqual(main(["generate", str(project_file), "--dry-run"]), 0)

        self.assertIn("redis:latest", buffer.getvalue())
        self.assertFalse((self.root / "work").exists())

    def test_generate_writes_project_directory(self):
        project_file = self.root / "project.yml"
        save_project_file(make_project(self.root / "work", redis=6379), project_file)

        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["generate", str(project_file)]), 0)

        self.assertTrue((self.root / "work" / "docker-compose.yml").exists())
        self.assertTrue((self.root / "work" / "www").is_dir())

    def test_import_writes_project_file(self):
        compose = self.root / "app" / "docker-compose.yml"
        compose.parent.mkdir()
        compose.write_text("services:\n  web:\n    image: nginx:1.25\n    ports: ['8080:80']\n", encoding="utf-8")
        output = self.root / "imported.yml"

        self.assertEqual(main(["import", str(compose), "-o", str(output), "--id", "app1"]), 0)

        project = load_project_file(output)
        self.assertEqual(project.id, "app1")
        self.assertEqual(project.services["web"].port, 8080)

    def test_project_file_keeps_services_named_like_compose_keys(self):
        project = make_project(self.root / "work")
        project.services["environment"] = ServiceDeclaration(
            enabled=True, is_custom=True, image="nginx", port=8080, env_vars={"A": "1"}, settings={"container_port": "80"}
        )
        project_file = self.root / "project.yml"

        save_project_file(project, project_file)

        self.assertEqual(load_project_file(project_file), project)

    def test_missing_project_file_fails(self):
        self.assertEqual(main(["generate", str(self.root / "missing.yml")]), 1)


class FollowTests(unittest.TestCase):
    def test_follow_prints_until_operation_finishes(self):
        with tempfile.TemporaryDirectory() as tmp:
            supervisor = OrchestrationSupervisor(
                writer=RecordingWriter(),
                popen=FakePopen(FakeProcess(["Container demo-redis Started"])),
                run=FakeRun(),
            )
            buffer = io.StringIO()
            with redirect_stdout(buffer):
                ok = follow(supervisor, supervisor.start(make_project(tmp, redis=6379)), poll=0.05)

        self.assertTrue(ok)
        output = buffer.getvalue()
        self.assertIn("status: Starting", output)
        self.assertIn("Container demo-redis Started", output)
        self.assertIn("status: Running", output)

    def test_follow_reports_failure(self):
        with tempfile.TemporaryDirectory() as tmp:
            supervisor = OrchestrationSupervisor(writer=RecordingWriter(), popen=FakePopen(), run=FakeRun())
            with redirect_stdout(io.StringIO()):
                self.assertFalse(follow(supervisor, supervisor.start(make_project(tmp)), poll=0.05))


class ConsoleFormatTests(unittest.TestCase):
    def test_status_and_inventory(self):
        self.assertEqual(
            format_event(StatusChanged(status=OrchestrationStatus.error("Exec error. See logs."))),
            "status: Error: Exec error. See logs.",
        )
        table = format_event(
            InventoryUpdated(containers=[ContainerRecord(id="a", name="web", image="nginx", status="Up", state="running")])
        )
        self.assertTrue(table.startswith("NAME"))
        self.assertIn("web", table)
        self.assertEqual(format_event(InventoryUpdated(containers=[])), "No containers found.")

    def test_stats_table(self):
        table = format_event(
            StatsUpdated(stats=[ContainerStats(name="web", cpu_percent="0.25%", mem_usage="3MiB / 1GiB", mem_percent="0.3%")])
        )
        header, row = table.splitlines()
        self.assertTrue(header.startswith("NAME"))
        self.assertIn("CPU %", header)
        self.assertIn("0.25%", row)
        self.assertEqual(format_event(StatsUpdated(stats=[])), "No running containers.")


if __name__ == "__main__":
    unittest.main()
