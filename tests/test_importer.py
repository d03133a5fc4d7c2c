import tempfile
import textwrap
import unittest
from pathlib import Path

from dockstack.importer import extract_env, import_compose, parse_port_entry, split_image
from dockstack.manifest import build_manifest


class PortParsingTests(unittest.TestCase):
    def test_forms(self):
        self.assertEqual(parse_port_entry("8080:80"), ("8080", "80"))
        self.assertEqual(parse_port_entry("127.0.0.1:8443:443/tcp"), ("8443", "443"))
        self.assertEqual(parse_port_entry("3000"), (None, "3000"))
        self.assertEqual(parse_port_entry(5432), ("5432", "5432"))
        self.assertEqual(parse_port_entry({"published": 8081, "target": 80}), ("8081", "80"))
        self.assertEqual(parse_port_entry(None), (None, None))


class ImageAndEnvTests(unittest.TestCase):
    def test_split_image(self):
        self.assertEqual(split_image("nginx:1.25"), ("nginx", "1.25"))
        self.assertEqual(split_image("redis"), ("redis", "latest"))
        self.assertEqual(split_image("registry.local:5000/team/app"), ("registry.local:5000/team/app", "latest"))
        self.assertEqual(split_image("registry.local:5000/team/app:2"), ("registry.local:5000/team/app", "2"))

    def test_extract_env_accepts_list_and_mapping(self):
        self.assertEqual(extract_env({"environment": ["A=1", "B=x=y", "=skip"]}), {"A": "1", "B": "x=y"})
        self.assertEqual(extract_env({"environment": {"A": 1, "B": None}}), {"A": "1", "B": ""})
        self.assertEqual(extract_env({}), {})


class ImportComposeTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "My Shop"
        self.root.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def write_compose(self, text):
        path = self.root / "docker-compose.yml"
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    def test_services_become_custom_declarations(self):
        path = self.write_compose(
            """
            services:
              web:
                image: nginx:1.25
                ports:
                  - "8080:80"
                environment:
                  - TZ=UTC
              worker:
                image: busybox
              broken: just-a-string
            """
        )

        project = import_compose(path, project_id="shop")

        self.assertEqual(project.id, "shop")
        self.assertEqual(project.name, "Imported: My Shop")
        self.assertEqual(project.domain, "my-shop.test")
        self.assertEqual(project.directory, str(self.root.resolve()))
        self.assertEqual(sorted(project.services), ["web", "worker"])

        web = project.services["web"]
        self.assertTrue(web.enabled)
        self.assertTrue(web.is_custom)
        self.assertEqual((web.image, web.version, web.port), ("nginx", "1.25", 8080))
        self.assertEqual(web.settings["container_port"], "80")
        self.assertEqual(web.env_vars, {"TZ": "UTC"})

        worker = project.services["worker"]
        self.assertEqual((worker.image, worker.version, worker.port), ("busybox", "latest", 0))

    def test_random_identifier(self):
        project = import_compose(self.write_compose("services: {}\n"))
        self.assertEqual(len(project.id), 8)
        self.assertEqual(project.services, {})

    def test_imported_project_renders_back(self):
        path = self.write_compose(
            """
            services:
              web:
                image: nginx:1.25
                ports: ["8080:80"]
            """
        )
        manifest = build_manifest(import_compose(path, project_id="shop"))
        self.assertEqual(manifest["services"]["web"]["image"], "nginx:1.25")
        self.assertEqual(manifest["services"]["web"]["ports"], ["8080:80"])

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            import_compose(self.root / "nope.yml")

    def test_services_must_be_mapping(self):
        with self.assertRaises(ValueError):
            import_compose(self.write_compose("services:\n  - web\n"))


if __name__ == "__main__":
    unittest.main()
