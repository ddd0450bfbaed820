"""
Configuration, error taxonomy and provenance helpers for the orchestration layer.

Higher-level clients (``apps.clients``) and policies (``apps.orchestrator``)
depend on these modules; nothing here performs network I/O.
"""

from .config import OrchestrationConfig, load_orchestration_config
from .errors import (
    AuthenticationError,
    CredentialError,
    ExecutionError,
    ExecutionTimeoutError,
    GenerationError,
    HintLimitReachedError,
    NetworkError,
    OrchestrationError,
    ParseError,
    RateLimitError,
    RequestValidationError,
    ServerError,
)
from .provenance import ProvenanceEvent, ProvenanceLogger

__all__ = [
    "AuthenticationError",
    "CredentialError",
    "ExecutionError",
    "ExecutionTimeoutError",
    "GenerationError",
    "HintLimitReachedError",
    "NetworkError",
    "OrchestrationConfig",
    "OrchestrationError",
    "ParseError",
    "ProvenanceEvent",
    "ProvenanceLogger",
    "RateLimitError",
    "RequestValidationError",
    "ServerError",
    "load_orchestration_config",
]
