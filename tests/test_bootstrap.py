import json
import logging
import os
from pathlib import Path
from unittest import mock

import pytest

from apps.orchestrator.hint_store import InMemoryHintStore, SQLiteHintStore
from devlab.orchestration.bootstrap import bootstrap_orchestration, configure_logging

VALID_KEY = "AIzaSy" + "b" * 33


class HintLM:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, prompt=None, **_kwargs):
        self.calls += 1
        return ['{"hints": ["Read the input.", "Split on whitespace.", "Print the sum."]}']


@pytest.fixture()
def clean_env():
    with mock.patch.dict(os.environ, {}, clear=False):
        for name in ("GEMINI_API_KEY", "JUDGE0_API_KEY", "SERVICE_API_KEY", "DEVLAB_SANDBOX_KEY"):
            os.environ.pop(name, None)
        yield


def _write_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    (repo / "config").mkdir(parents=True)
    (repo / "config" / "orchestration.yaml").write_text(
        "\n".join(
            [
                "sandbox:",
                "  api_key_env: DEVLAB_SANDBOX_KEY",
                "microservices:",
                "  rag: http://rag.local",
                "hints:",
                "  sqlite_path: state/hints.sqlite",
                "logging:",
                "  level: debug",
                "  provenance_path: state/provenance.jsonl",
            ]
        ),
        encoding="utf-8",
    )
    (repo / ".env").write_text(f"DEVLAB_SANDBOX_KEY=from-dotenv\nGEMINI_API_KEY={VALID_KEY}\n", encoding="utf-8")
    return repo


def test_bootstrap_reads_repo_config_and_env(tmp_path: Path, clean_env) -> None:
    repo = _write_repo(tmp_path)

    services = bootstrap_orchestration(repo_root=repo)
    try:
        assert services.context.config.microservices.rag == "http://rag.local"
        assert services.sandbox._api_key == "from-dotenv"
        assert isinstance(services.hints.store, SQLiteHintStore)
        assert services.hints.store.db_path == (repo / "state" / "hints.sqlite").resolve()
        assert services.context.provenance is not None
        assert logging.getLogger("devlab").level == logging.DEBUG
        assert services.execution.context.logger.name == "devlab.execution"
    finally:
        services.close()


def test_bootstrap_without_config_uses_defaults(tmp_path: Path, clean_env) -> None:
    services = bootstrap_orchestration(repo_root=tmp_path)
    try:
        assert isinstance(services.hints.store, InMemoryHintStore)
        assert services.context.provenance is None
        assert services.context.config.sandbox.polling.max_attempts == 10
    finally:
        services.close()


def test_services_share_fallback_provenance(tmp_path: Path, clean_env) -> None:
    repo = _write_repo(tmp_path)
    lm = HintLM()

    services = bootstrap_orchestration(repo_root=repo, lm=lm)
    try:
        envelope = services.microservices.create_theoretical_questions({"lesson_id": "l-1"})
        hints = services.hints.generate_hints("q-1", {"question_text": "Sum two numbers"})
        services.hints.generate_hints("q-1", {"question_text": "Sum two numbers"})
    finally:
        services.close()

    assert envelope.is_mock
    assert hints.hints[2] == "Print the sum."
    assert lm.calls == 1
    lines = (repo / "state" / "provenance.jsonl").read_text(encoding="utf-8").splitlines()
    stages = [json.loads(line)["stage"] for line in lines]
    assert stages == ["fallback", "hints_generated"]


def test_configure_logging_ignores_unknown_levels() -> None:
    configure_logging("not-a-level")
    assert logging.getLogger("devlab").level == logging.INFO
