"""Pytest configuration, fakes and fixtures."""

from __future__ import annotations

import pytest

from cfsync.domain.entities import (
    BuildSettings,
    CommandResult,
    DesiredArtifactConfig,
    DesiredProjectConfig,
    PreviewSettings,
    RemoteProjectRecord,
    RepoRef,
    SourceKind,
)
from cfsync.domain.errors import ProjectNotFoundError
from cfsync.domain.interfaces import ICommandRunner, IOutputSink, IPagesProjects, IWorkerScripts


# -----------------------------------------------------------------------------
# Fakes implementing the domain contracts
# -----------------------------------------------------------------------------


class FakePagesProjects(IPagesProjects):
    """In-memory Pages API. Records every call in order."""

    def __init__(self, assign_subdomain: bool = True) -> None:
        self.projects: dict[str, RemoteProjectRecord] = {}
        self.calls: list[tuple] = []
        self.get_error: Exception | None = None
        self._assign_subdomain = assign_subdomain

    async def get_project(self, account_id, name):
        self.calls.append(("get", account_id, name))
        if self.get_error is not None:
            raise self.get_error
        if name not in self.projects:
            raise ProjectNotFoundError(404, "Project not found", [{"code": 8000007, "message": "Project not found"}])
        return self.projects[name]

    async def create_project(self, account_id, body):
        self.calls.append(("create", account_id, body))
        name = body["name"]
        self.projects[name] = RemoteProjectRecord(
            name        = name,
            source_kind = SourceKind.from_wire(body["source"]["type"]),
            subdomain   = f"{name}-abc.pages.dev" if self._assign_subdomain else None,
        )

    async def edit_project(self, account_id, name, body):
        self.calls.append(("edit", account_id, name, body))

    async def delete_project(self, account_id, name):
        self.calls.append(("delete", account_id, name))
        del self.projects[name]

    def called(self, op: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == op]


class FakeWorkerScripts(IWorkerScripts):
    def __init__(self, subdomain: str = "myaccount") -> None:
        self.uploads: list[dict] = []
        self.upload_error: Exception | None = None
        self._subdomain = subdomain

    async def upsert_script(self, account_id, script_name, metadata, main_module, content):
        if self.upload_error is not None:
            raise self.upload_error
        self.uploads.append({
            "account_id":  account_id,
            "script_name": script_name,
            "metadata":    metadata,
            "main_module": main_module,
            "content":     content,
        })

    async def get_subdomain(self, account_id):
        return self._subdomain


class FakeRunner(ICommandRunner):
    def __init__(self, returncode: int = 0) -> None:
        self.commands: list[tuple[str, str]] = []
        self._returncode = returncode

    def run(self, command, cwd):
        self.commands.append((command, cwd))
        return CommandResult(command=command, returncode=self._returncode)


class RecordingOutputSink(IOutputSink):
    def __init__(self) -> None:
        self.outputs: dict[str, str] = {}

    def set_output(self, name, value):
        self.outputs[name] = value


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def project_config() -> DesiredProjectConfig:
    return DesiredProjectConfig(
        name              = "my-project",
        repo              = RepoRef(owner="myorg", name="myrepo"),
        production_branch = "main",
        build             = BuildSettings(command="npm run build", output="dist", root=""),
        preview           = PreviewSettings(branches=("*",), exclude=()),
    )


@pytest.fixture
def worker_config() -> DesiredArtifactConfig:
    return DesiredArtifactConfig(
        name               = "my-app",
        main               = "worker/worker.js",
        compatibility_date = "2024-01-01",
    )


@pytest.fixture
def worker_dir(tmp_path):
    """Working directory containing worker/worker.js."""
    script = tmp_path / "worker" / "worker.js"
    script.parent.mkdir()
    script.write_text('export default { fetch() { return new Response("Hello"); } }', encoding="utf-8")
    return tmp_path


@pytest.fixture
def pages() -> FakePagesProjects:
    return FakePagesProjects()


@pytest.fixture
def scripts() -> FakeWorkerScripts:
    return FakeWorkerScripts()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()
