import subprocess
import unittest

from fakes import FakeRun

from dockstack.models import ComposeDialect, EngineSettings
from dockstack.probe import probe_engine


class EngineProbeTests(unittest.TestCase):
    def test_reachable_engine_with_plugin(self):
        run = FakeRun({"docker version --format {{.Server.APIVersion}}": (0, "1.43\n", "")})
        result = probe_engine(EngineSettings(), run)
        self.assertTrue(result.available)
        self.assertEqual(result.dialect, ComposeDialect.PLUGIN)
        self.assertEqual(result.api_version, "1.43")
        self.assertEqual(run.calls[0][0], ["docker", "info"])
        self.assertEqual(run.calls[1][0], ["docker", "compose", "version"])
        self.assertIn("timeout", run.calls[0][1])

    def test_dialect_defaults_to_standalone(self):
        run = FakeRun({"docker compose version": (1, "", "unknown command")})
        result = probe_engine(EngineSettings(), run)
        self.assertTrue(result.available)
        self.assertEqual(result.dialect, ComposeDialect.STANDALONE)

    def test_missing_binary_means_unreachable(self):
        missing = FileNotFoundError(2, "No such file or directory")
        run = FakeRun(
            {
                "docker info": missing,
                "docker compose version": missing,
            }
        )
        result = probe_engine(EngineSettings(), run)
        self.assertFalse(result.available)
        self.assertEqual(result.dialect, ComposeDialect.STANDALONE)
        self.assertIsNone(result.api_version)

    def test_timeout_counts_as_failure(self):
        run = FakeRun({"docker info": subprocess.TimeoutExpired(["docker", "info"], 10)})
        self.assertFalse(probe_engine(EngineSettings(), run).available)


if __name__ == "__main__":
    unittest.main()
