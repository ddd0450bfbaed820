"""Error taxonomy shared by every outbound dependency call."""

from __future__ import annotations

from typing import Any


class OrchestrationError(RuntimeError):
    """Base class for failures raised by the orchestration layer."""

    def __init__(self, message: str, *, status_code: int | None = None, state: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.state = state


class RequestValidationError(OrchestrationError, ValueError):
    """Local input problem (oversized code, unknown language, malformed input)."""


class AuthenticationError(OrchestrationError):
    """The sandbox rejected our credentials (HTTP 401/403)."""


class CredentialError(OrchestrationError):
    """A required API key is missing or still a placeholder."""


class RateLimitError(OrchestrationError):
    """The remote service answered HTTP 429."""


class ServerError(OrchestrationError):
    """The remote service answered with a 5xx status."""


class ExecutionError(OrchestrationError):
    """Any other sandbox failure that carries an HTTP response."""


class NetworkError(OrchestrationError):
    """No response was received (connection refused, DNS, unconfigured URL)."""


class ExecutionTimeoutError(OrchestrationError, TimeoutError):
    """The polling budget ran out before the sandbox reported a terminal status."""


class ParseError(OrchestrationError):
    """Model output could not be turned into the expected JSON shape."""


class GenerationError(OrchestrationError):
    """Generative call failed on a path that has no synthetic substitute."""


class HintLimitReachedError(OrchestrationError):
    """The learner already consumed every hint for the question."""


__all__ = [
    "AuthenticationError",
    "CredentialError",
    "ExecutionError",
    "ExecutionTimeoutError",
    "GenerationError",
    "HintLimitReachedError",
    "NetworkError",
    "OrchestrationError",
    "ParseError",
    "RateLimitError",
    "RequestValidationError",
    "ServerError",
]
