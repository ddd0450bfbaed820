"""Helpers for building the generative model handle from config."""

from __future__ import annotations

from typing import Any, Callable, Dict

import dspy

from devlab.core.config import GenerativeConfig
from devlab.core.errors import CredentialError

PLACEHOLDER_MARKERS = ("your-", "your_", "changeme", "placeholder", "xxxx")
MIN_KEY_LENGTH = 20

LMHandle = Callable[..., Any]


def credential_problem(api_key: str | None) -> str | None:
    """Return why ``api_key`` is unusable, or None when it looks real."""

    if not api_key or not api_key.strip():
        return "missing"
    lowered = api_key.strip().lower()
    if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
        return "placeholder detected"
    if len(api_key.strip()) < MIN_KEY_LENGTH:
        return "too short"
    return None


def require_credential(api_key: str | None, *, service: str) -> str:
    """Raise ``CredentialError`` unless ``api_key`` is present and well-formed."""

    problem = credential_problem(api_key)
    if api_key is None or problem is not None:
        raise CredentialError(f"Invalid {service} API key: {problem or 'missing'}")
    return api_key.strip()


def mask_key(api_key: str | None) -> str:
    if not api_key:
        return "N/A"
    return api_key[:6] + "..."


def build_generative_lm(config: GenerativeConfig, *, api_key: str | None = None) -> LMHandle:
    """Instantiate the DSPy LM used for question, feedback, hint and fraud prompts."""

    key = require_credential(api_key or config.resolve_api_key(), service="generative")
    kwargs: Dict[str, Any] = {"model": config.model, "api_key": key}
    if config.temperature is not None:
        kwargs["temperature"] = config.temperature
    if config.max_tokens is not None:
        kwargs["max_tokens"] = config.max_tokens
    if config.api_base:
        kwargs["api_base"] = config.api_base
    if config.extra_kwargs:
        kwargs.update(config.extra_kwargs)
    return dspy.LM(**kwargs)


__all__ = [
    "LMHandle",
    "build_generative_lm",
    "credential_problem",
    "mask_key",
    "require_credential",
]
