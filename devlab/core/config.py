"""
Typed configuration for the orchestration layer.

Every outbound dependency (code sandbox, generative model, sibling
microservices) is described here so clients never read environment variables
on their own. Secrets are referenced by env var name and resolved lazily.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, get_args

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

DEFAULT_LANGUAGE_IDS: Dict[str, int] = {
    "python": 92,
    "java": 91,
    "javascript": 93,
    "cpp": 54,
    "c++": 54,
    "go": 95,
    "rust": 73,
}

ServiceName = Literal["learning_analytics", "assessment", "course_builder", "content_studio", "rag"]


def _read_env(name: str | None) -> str | None:
    if not name:
        return None
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


class ExecutionLimits(BaseModel):
    """Resource limits sent with every sandbox submission."""

    cpu_time_limit: float = Field(default=5, gt=0)
    memory_limit: int = Field(default=256000, gt=0, description="Kilobytes.")
    wall_time_limit: float = Field(default=5, gt=0)
    max_code_length: int = Field(default=1_000_000, ge=1)


class PollingConfig(BaseModel):
    """Attempt budget for the submit-then-poll loop."""

    max_attempts: int = Field(default=10, ge=1)
    interval_seconds: float = Field(default=1.0, ge=0.0)


class SandboxConfig(BaseModel):
    """Connection info for the code-execution sandbox."""

    model_config = ConfigDict(extra="ignore")

    api_url: str = "https://judge0-ce.p.rapidapi.com"
    api_host: Optional[str] = "judge0-ce.p.rapidapi.com"
    api_key: Optional[str] = None
    api_key_env: Optional[str] = "JUDGE0_API_KEY"
    request_timeout: float = Field(default=10.0, gt=0)
    limits: ExecutionLimits = Field(default_factory=ExecutionLimits)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    languages: Dict[str, int] = Field(default_factory=dict)

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("languages", mode="before")
    @classmethod
    def normalize_language_keys(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {str(key).strip().lower(): item for key, item in value.items()}

    @property
    def language_ids(self) -> Dict[str, int]:
        merged = dict(DEFAULT_LANGUAGE_IDS)
        merged.update(self.languages)
        return merged

    def resolve_api_key(self) -> str | None:
        return self.api_key or _read_env(self.api_key_env)


class GenerativeTimeouts(BaseModel):
    questions: float = Field(default=30.0, gt=0)
    feedback: float = Field(default=5.0, gt=0)
    hints: float = Field(default=5.0, gt=0)
    fraud: float = Field(default=3.0, gt=0)


class GenerativeConfig(BaseModel):
    """Provider settings for the generative content service."""

    model_config = ConfigDict(extra="allow")

    model: str = "gemini/gemini-pro"
    api_key: Optional[str] = None
    api_key_env: Optional[str] = "GEMINI_API_KEY"
    api_base: Optional[str] = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=64)
    timeouts: GenerativeTimeouts = Field(default_factory=GenerativeTimeouts)

    @property
    def extra_kwargs(self) -> Dict[str, Any]:
        return getattr(self, "model_extra", None) or {}

    def resolve_api_key(self) -> str | None:
        return self.api_key or _read_env(self.api_key_env)


class ServiceTimeouts(BaseModel):
    default: float = Field(default=5.0, gt=0)
    theoretical_questions: float = Field(default=10.0, gt=0)
    health: float = Field(default=3.0, gt=0)


class MicroservicesConfig(BaseModel):
    """Base URLs and shared credential for sibling platform services."""

    model_config = ConfigDict(extra="ignore")

    api_key: Optional[str] = None
    api_key_env: Optional[str] = "SERVICE_API_KEY"
    learning_analytics: Optional[str] = None
    assessment: Optional[str] = None
    course_builder: Optional[str] = None
    content_studio: Optional[str] = None
    rag: Optional[str] = None
    timeouts: ServiceTimeouts = Field(default_factory=ServiceTimeouts)

    @field_validator("learning_analytics", "assessment", "course_builder", "content_studio", "rag")
    @classmethod
    def strip_urls(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip().rstrip("/")
        return cleaned or None

    def base_url(self, service: str) -> str | None:
        if service not in get_args(ServiceName):
            raise KeyError(f"Unknown service: {service}")
        return getattr(self, service)

    def resolve_api_key(self) -> str | None:
        return self.api_key or _read_env(self.api_key_env)


class HintConfig(BaseModel):
    sqlite_path: Optional[Path] = None
    reveal_limit: int = Field(default=3, ge=1)

    @field_validator("sqlite_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return Path(value).expanduser().resolve()


class LoggingConfig(BaseModel):
    level: str = "INFO"
    provenance_path: Optional[Path] = None

    @field_validator("level")
    @classmethod
    def upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("provenance_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return Path(value).expanduser().resolve()


class OrchestrationConfig(BaseModel):
    """Top-level configuration consumed by bootstrap."""

    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    generative: GenerativeConfig = Field(default_factory=GenerativeConfig)
    microservices: MicroservicesConfig = Field(default_factory=MicroservicesConfig)
    hints: HintConfig = Field(default_factory=HintConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="before")
    @classmethod
    def coerce_legacy_format(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        payload = dict(data)
        # Older deployments nested the service URLs under "services".
        services = payload.get("microservices")
        if isinstance(services, dict) and isinstance(services.get("services"), dict):
            flattened = {key: value for key, value in services.items() if key != "services"}
            flattened.update(services["services"])
            payload["microservices"] = flattened
        if "judge0" in payload and "sandbox" not in payload:
            payload["sandbox"] = payload.pop("judge0")
        if "gemini" in payload and "generative" not in payload:
            payload["generative"] = payload.pop("gemini")
        return payload


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def _resolve_config_path(value: Any, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    else:
        path = path.resolve()
    return str(path)


def _absolutize_paths(data: Dict[str, Any], base_dir: Path) -> None:
    hints = data.get("hints")
    if isinstance(hints, dict) and hints.get("sqlite_path"):
        hints["sqlite_path"] = _resolve_config_path(hints["sqlite_path"], base_dir)
    logging_cfg = data.get("logging")
    if isinstance(logging_cfg, dict) and logging_cfg.get("provenance_path"):
        logging_cfg["provenance_path"] = _resolve_config_path(logging_cfg["provenance_path"], base_dir)


def load_orchestration_config(path: Path, *, base_dir: Path | None = None) -> OrchestrationConfig:
    """Load the orchestration config; relative paths resolve against ``base_dir``."""
    path = path.expanduser().resolve()
    data = read_yaml_file(path)
    _absolutize_paths(data, base_dir=(base_dir or path.parent).resolve())
    try:
        return OrchestrationConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid orchestration config in {path}") from exc


__all__ = [
    "DEFAULT_LANGUAGE_IDS",
    "ExecutionLimits",
    "GenerativeConfig",
    "GenerativeTimeouts",
    "HintConfig",
    "LoggingConfig",
    "MicroservicesConfig",
    "OrchestrationConfig",
    "PollingConfig",
    "SandboxConfig",
    "ServiceTimeouts",
    "load_orchestration_config",
    "read_yaml_file",
]
