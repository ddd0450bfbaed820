import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

import scripts.probe_services as probe_cli
from devlab.core.config import MicroservicesConfig, OrchestrationConfig
from devlab.orchestration.bootstrap import build_services
from devlab.orchestration.context import OrchestrationContext
from tests.mocks.sandbox_api import SandboxAPIMock

RUNNER = CliRunner()


def _services_http(up: set[str]) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host in up:
            return httpx.Response(200, json={"status": "ok"})
        return httpx.Response(503)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture()
def sandbox_api():
    api = SandboxAPIMock(api_key="")
    yield api
    api.close()


@pytest.fixture()
def wire_services(monkeypatch: pytest.MonkeyPatch, sandbox_api: SandboxAPIMock):
    def install(up: set[str]) -> None:
        config = OrchestrationConfig(
            microservices=MicroservicesConfig(
                learning_analytics="http://analytics.local",
                assessment="http://assessment.local",
                rag="http://rag.local",
            )
        )

        def fake_bootstrap(config_path, *, repo_root):
            return build_services(
                OrchestrationContext(config=config),
                sandbox_http=sandbox_api.build_httpx_client(),
                services_http=_services_http(up),
            )

        monkeypatch.setattr(probe_cli, "bootstrap_orchestration", fake_bootstrap)

    return install


def test_health_reports_each_dependency(wire_services) -> None:
    wire_services({"analytics.local", "rag.local"})

    result = RUNNER.invoke(probe_cli.app, ["health", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload == {
        "learning_analytics": True,
        "assessment": False,
        "course_builder": False,
        "content_studio": False,
        "rag": True,
        "sandbox": True,
    }


def test_health_strict_fails_when_anything_is_down(wire_services) -> None:
    wire_services({"analytics.local"})

    result = RUNNER.invoke(probe_cli.app, ["health", "--strict"])

    assert result.exit_code == 1
    assert "assessment" in result.stdout


def test_languages_lists_local_table(wire_services) -> None:
    wire_services(set())

    result = RUNNER.invoke(probe_cli.app, ["languages", "--json"])

    assert result.exit_code == 0
    rows = json.loads(result.stdout)
    assert {"language": "python", "id": 92} in rows
    assert [row["language"] for row in rows] == sorted(row["language"] for row in rows)


def test_languages_remote_queries_sandbox(wire_services, sandbox_api: SandboxAPIMock) -> None:
    wire_services(set())

    result = RUNNER.invoke(probe_cli.app, ["languages", "--remote", "--json"])

    assert result.exit_code == 0
    assert {"id": 93, "name": "JavaScript (Node.js 18.15.0)"} in json.loads(result.stdout)


def test_missing_config_is_rejected(tmp_path: Path) -> None:
    result = RUNNER.invoke(probe_cli.app, ["health", "--config", str(tmp_path / "nope.yaml")])

    assert result.exit_code != 0
    assert "not found" in result.output.lower()
