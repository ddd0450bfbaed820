"""HTTP client wrapper for the code-execution sandbox (Judge0 wire protocol)."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from devlab.core.config import ExecutionLimits, SandboxConfig
from devlab.core.errors import ExecutionError


class SandboxClient:
    """Thin synchronous client for ``/submissions`` and ``/languages``.

    HTTP failures surface as ``httpx`` exceptions; mapping them onto the
    orchestration error taxonomy is the caller's job.
    """

    def __init__(
        self,
        config: SandboxConfig,
        *,
        client: httpx.Client | None = None,
        api_key: str | None = None,
    ) -> None:
        self._config = config
        self._api_key = api_key or config.resolve_api_key()
        if client is None:
            self._client = httpx.Client(
                base_url=config.api_url,
                timeout=config.request_timeout,
            )
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    def submit(self, source_code: str, language_id: int, limits: ExecutionLimits | None = None) -> str:
        """Create a submission and return its token."""

        limits = limits or self._config.limits
        payload = {
            "source_code": source_code,
            "language_id": language_id,
            "stdin": "",
            "expected_output": "",
            "cpu_time_limit": limits.cpu_time_limit,
            "memory_limit": limits.memory_limit,
            "wall_time_limit": limits.wall_time_limit,
        }
        response = self._client.post(
            "/submissions",
            json=payload,
            params={"base64_encoded": "false", "wait": "false"},
            headers=self._build_headers(),
        )
        response.raise_for_status()
        data = self._json(response)
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ExecutionError("Code sandbox did not return a submission token", status_code=response.status_code)
        return str(token)

    def get_submission(self, token: str) -> Dict[str, Any]:
        response = self._client.get(
            f"/submissions/{token}",
            params={"base64_encoded": "false", "fields": "*"},
            headers=self._build_headers(),
        )
        response.raise_for_status()
        data = self._json(response)
        if not isinstance(data, dict):
            raise ExecutionError("Code sandbox returned an unexpected submission payload", status_code=response.status_code)
        return data

    def list_languages(self) -> List[Dict[str, Any]]:
        response = self._client.get("/languages", headers=self._build_headers())
        response.raise_for_status()
        data = self._json(response)
        return data if isinstance(data, list) else []

    def close(self) -> None:
        if getattr(self, "_owns_client", False):
            self._client.close()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-RapidAPI-Key"] = self._api_key
        if self._config.api_host:
            headers["X-RapidAPI-Host"] = self._config.api_host
        return headers

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ExecutionError(
                "Code sandbox returned non-JSON payload", status_code=response.status_code
            ) from exc

    def __enter__(self) -> "SandboxClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["SandboxClient"]
