import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient
from fakes import FakePopen, FakeProcess, FakeRun, RecordingWriter, make_project

from dockstack import webui
from dockstack.supervisor import OrchestrationSupervisor


class WebApiTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name)
        self.popen = FakePopen(FakeProcess(["Container demo-redis Started"]))
        self.run = FakeRun()
        self.supervisor = OrchestrationSupervisor(writer=RecordingWriter(), popen=self.popen, run=self.run)
        webui.STATE.supervisor = self.supervisor
        webui.STATE.project = None
        self.client = TestClient(webui.app)

    def tearDown(self):
        webui.STATE.supervisor = None
        webui.STATE.project = None
        self._tmp.cleanup()

    def load(self, **enabled):
        project = make_project(self.directory, **enabled)
        response = self.client.post("/api/project", json=project.model_dump(mode="json"))
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_operations_need_a_project(self):
        response = self.client.post("/api/start")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.popen.calls, [])

    def test_load_project_reports_enabled_services(self):
        payload = self.load(redis=6379, postgresql=5432)
        self.assertEqual(payload["project"], "demo")
        self.assertEqual(payload["enabled"], ["postgresql", "redis"])

    def test_state_defaults(self):
        payload = self.client.get("/api/state").json()
        self.assertEqual(payload["status"], "stopped")
        self.assertFalse(payload["engine_available"])
        self.assertEqual(payload["dialect"], "standalone")
        self.assertIsNone(payload["project"])

    def test_start_is_accepted_and_reported_through_events(self):
        self.load(redis=6379)

        response = self.client.post("/api/start")
        self.assertEqual(response.json(), {"status": "accepted", "operation": "start"})
        self.assertTrue(self.supervisor.wait_all(5))

        state = self.client.get("/api/state").json()
        self.assertEqual(state["status"], "running")
        events = self.client.get("/api/events").json()["events"]
        kinds = [event["kind"] for event in events]
        self.assertEqual(kinds[0], "status")
        self.assertEqual(kinds[-1], "finished")
        self.assertIn("Container demo-redis Started", self.client.get("/api/logs").json()["lines"])

        self.assertEqual(self.client.delete("/api/logs").json(), {"status": "ok"})
        self.assertEqual(self.client.get("/api/logs").json()["lines"], [])

    def test_manifest_preview(self):
        self.load(redis=6379)
        response = self.client.get("/api/manifest")
        self.assertEqual(response.status_code, 200)
        self.assertIn("redis:latest", response.text)
        self.assertIn("dockstack_demo_redis", response.text)

    def test_stats_refresh_needs_no_project(self):
        stats = "docker stats --no-stream --format {{.Name}}|{{.CPUPerc}}|{{.MemUsage}}|{{.MemPerc}}|{{.NetIO}}|{{.BlockIO}}"
        self.run.responses[stats] = (0, "web|1.00%|10MiB / 1GiB|1.00%|0B / 0B|0B / 0B\n", "")

        response = self.client.post("/api/stats/refresh")
        self.assertEqual(response.json(), {"status": "accepted", "operation": "stats"})
        self.assertTrue(self.supervisor.wait_all(5))

        rows = self.client.get("/api/stats").json()["stats"]
        self.assertEqual([row["name"] for row in rows], ["web"])
        self.assertEqual(rows[0]["cpu_percent"], "1.00%")

    def test_containers_empty_before_refresh(self):
        self.assertEqual(self.client.get("/api/containers").json(), {"containers": []})


if __name__ == "__main__":
    unittest.main()
