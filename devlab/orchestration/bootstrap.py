"""Bootstrap helpers wiring config, logging and every orchestration component."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
from dotenv import load_dotenv

from apps.clients.generative import ContentGenerationClient
from apps.clients.microservices import SiblingServiceClient
from apps.clients.sandbox import SandboxClient
from apps.orchestrator.execution import ExecutionOrchestrator
from apps.orchestrator.fallbacks import FallbackGenerator
from apps.orchestrator.fraud import FraudPolicy
from apps.orchestrator.hint_store import HintStore, InMemoryHintStore, SQLiteHintStore
from apps.orchestrator.hints import HintCache
from devlab.core.config import OrchestrationConfig, load_orchestration_config
from devlab.core.lm_runtime import LMHandle
from devlab.core.provenance import ProvenanceLogger

from .context import ROOT_LOGGER_NAME, OrchestrationContext

DEFAULT_CONFIG_PATH = Path("config/orchestration.yaml")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOGGER = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the package level."""

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(numeric)


@dataclass
class OrchestrationServices:
    """Every component a feature handler needs, sharing one context."""

    context: OrchestrationContext
    sandbox: SandboxClient
    execution: ExecutionOrchestrator
    generative: ContentGenerationClient
    microservices: SiblingServiceClient
    hints: HintCache
    fraud: FraudPolicy

    def close(self) -> None:
        self.sandbox.close()
        self.microservices.close()


def _hint_store(config: OrchestrationConfig) -> HintStore:
    if config.hints.sqlite_path is not None:
        return SQLiteHintStore(config.hints.sqlite_path)
    return InMemoryHintStore()


def build_services(
    context: OrchestrationContext,
    *,
    sandbox_http: httpx.Client | None = None,
    services_http: httpx.Client | None = None,
    lm: LMHandle | None = None,
) -> OrchestrationServices:
    config = context.config
    generator = FallbackGenerator()
    fraud = FraudPolicy()
    sandbox = SandboxClient(config.sandbox, client=sandbox_http)
    generative = ContentGenerationClient(
        config.generative,
        lm=lm,
        context=context.child("generative"),
        generator=generator,
        fraud_policy=fraud,
    )
    return OrchestrationServices(
        context=context,
        sandbox=sandbox,
        execution=ExecutionOrchestrator(sandbox, context=context.child("execution")),
        generative=generative,
        microservices=SiblingServiceClient(
            config.microservices,
            client=services_http,
            context=context.child("microservices"),
            generator=generator,
        ),
        hints=HintCache(generative, _hint_store(config), context=context.child("hints")),
        fraud=fraud,
    )


def bootstrap_orchestration(
    config_path: Path | None = None,
    *,
    repo_root: Path | None = None,
    sandbox_http: httpx.Client | None = None,
    services_http: httpx.Client | None = None,
    lm: LMHandle | None = None,
) -> OrchestrationServices:
    """
    Load ``.env`` and configuration, set up logging, and build the services.

    Parameters
    ----------
    config_path:
        Orchestration YAML. Defaults to ``config/orchestration.yaml`` under
        ``repo_root``; built-in defaults apply when that file is absent.
    repo_root:
        Directory holding ``.env`` and the config folder. Defaults to ``Path.cwd()``.
    sandbox_http, services_http, lm:
        Optional pre-built transports, mainly for tests.
    """

    repo_root = (repo_root or Path.cwd()).resolve()
    load_dotenv(repo_root / ".env")
    if config_path is None:
        candidate = repo_root / DEFAULT_CONFIG_PATH
        config_path = candidate if candidate.exists() else None

    if config_path is not None:
        config = load_orchestration_config(config_path, base_dir=repo_root)
    else:
        config = OrchestrationConfig()
    configure_logging(config.logging.level)
    if config_path is None:
        LOGGER.info("No orchestration config found under %s; using defaults", repo_root)

    provenance = ProvenanceLogger(config.logging.provenance_path) if config.logging.provenance_path else None
    context = OrchestrationContext(
        config=config,
        logger=logging.getLogger(ROOT_LOGGER_NAME),
        provenance=provenance,
    )
    return build_services(context, sandbox_http=sandbox_http, services_http=services_http, lm=lm)


__all__ = [
    "OrchestrationServices",
    "bootstrap_orchestration",
    "build_services",
    "configure_logging",
]
