"""Stand-ins for engine processes used by the supervisor tests."""
import io
import subprocess
import threading
from pathlib import Path

from dockstack.models import ProjectDeclaration, ServiceDeclaration


def make_project(directory, **enabled):
    """Build a project where each keyword enables one catalog service with the given port."""
    services = {
        key: ServiceDeclaration(enabled=True, port=port, version="latest")
        for key, port in enabled.items()
    }
    return ProjectDeclaration(id="demo", name="Demo", directory=str(directory), services=services)


class FakeProcess:
    def __init__(self, lines=(), returncode=0, wait_error=None):
        text = "".join(f"{line}\n" for line in lines)
        self.stderr = io.StringIO(text)
        self.stdout = io.StringIO(text)
        self.pid = 4242
        self.returncode = None
        self._final_code = returncode
        self._wait_error = wait_error
        self.waited = False
        self.killed = False

    def wait(self):
        if self._wait_error is not None:
            raise self._wait_error
        self.waited = True
        self.returncode = self._final_code
        return self.returncode

    def poll(self):
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9


class BlockingProcess(FakeProcess):
    """Emits one line, then blocks until killed (like ``logs -f``)."""

    def __init__(self):
        super().__init__()
        self._killed = threading.Event()
        self.stdout = self._follow()

    def _follow(self):
        yield "first\n"
        self._killed.wait(5)

    def wait(self):
        self._killed.wait(5)
        self.waited = True
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9
        self._killed.set()


class FakePopen:
    """Returns queued outcomes in order; an exception outcome is raised instead."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append((list(command), kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def commands(self):
        return [command for command, _ in self.calls]


class FakeRun:
    """Maps a joined command line to a CompletedProcess (or an exception)."""

    def __init__(self, responses=None, default_returncode=0):
        self.responses = responses or {}
        self.default_returncode = default_returncode
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append((list(command), kwargs))
        outcome = self.responses.get(" ".join(command))
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            outcome = (self.default_returncode, "", "")
        returncode, stdout, stderr = outcome
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)


class RecordingWriter:
    def __init__(self, error=None):
        self.error = error
        self.projects = []

    def __call__(self, project):
        self.projects.append(project)
        if self.error is not None:
            raise self.error
        return Path(project.directory) / "docker-compose.yml"
