"""FastAPI mock of the code sandbox (Judge0 wire protocol) used in tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import anyio
import httpx
from fastapi import FastAPI, Header, HTTPException
from httpx import ASGITransport, BaseTransport
from pydantic import BaseModel


class _SyncASGITransport(BaseTransport):
    """Bridge ASGI apps into sync httpx clients."""

    def __init__(self, app: FastAPI) -> None:
        self._asgi = ASGITransport(app=app)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        async def _send() -> tuple[httpx.Response, bytes]:
            response = await self._asgi.handle_async_request(request)
            body = await response.aread()
            await response.aclose()
            return response, body

        response, body = anyio.run(_send)
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            content=body,
            extensions=response.extensions,
            request=request,
        )

    def close(self) -> None:
        anyio.run(self._asgi.aclose)


class SubmissionPayload(BaseModel):
    source_code: str
    language_id: int
    stdin: str = ""
    expected_output: str = ""
    cpu_time_limit: float
    memory_limit: int
    wall_time_limit: float


STATUS_DESCRIPTIONS = {1: "In Queue", 2: "Processing", 3: "Accepted"}


class SandboxAPIMock:
    """In-memory sandbox that finishes each submission after ``pending_polls`` polls.

    ``poll_failures`` holds HTTP status codes returned (in order) by the first
    polls before the normal status sequence resumes.
    """

    def __init__(
        self,
        *,
        base_url: str = "http://sandbox-mock.local",
        api_key: str = "sandbox-test-key",
        stdout: str = "5\n",
        pending_polls: int = 0,
        never_finish: bool = False,
        poll_failures: Optional[List[int]] = None,
        submit_status: Optional[int] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.stdout = stdout
        self.pending_polls = pending_polls
        self.never_finish = never_finish
        self.poll_failures = list(poll_failures or [])
        self.submit_status = submit_status
        self.app = FastAPI()
        self.submissions: Dict[str, Dict[str, Any]] = {}
        self.requests: List[Dict[str, Any]] = []
        self._httpx_clients: List[httpx.Client] = []
        self._register_routes()

    def _check_key(self, key: Optional[str]) -> None:
        if self.api_key and key != self.api_key:
            raise HTTPException(status_code=401, detail="invalid key")

    def _register_routes(self) -> None:
        app = self.app

        @app.post("/submissions", status_code=201)
        def create_submission(
            payload: SubmissionPayload,
            base64_encoded: str = "true",
            wait: str = "true",
            x_rapidapi_key: Optional[str] = Header(default=None),
            x_rapidapi_host: Optional[str] = Header(default=None),
        ) -> Dict[str, Any]:
            self._check_key(x_rapidapi_key)
            self.requests.append(
                {
                    "path": "/submissions",
                    "params": {"base64_encoded": base64_encoded, "wait": wait},
                    "host": x_rapidapi_host,
                    "payload": payload.model_dump(),
                }
            )
            if self.submit_status is not None:
                raise HTTPException(status_code=self.submit_status, detail="submission rejected")
            token = f"tok-{len(self.submissions) + 1:04d}"
            self.submissions[token] = {"payload": payload.model_dump(), "polls": 0}
            return {"token": token}

        @app.get("/submissions/{token}")
        def get_submission(
            token: str,
            fields: Optional[str] = None,
            x_rapidapi_key: Optional[str] = Header(default=None),
        ) -> Dict[str, Any]:
            self._check_key(x_rapidapi_key)
            self.requests.append({"path": f"/submissions/{token}", "params": {"fields": fields}})
            if self.poll_failures:
                raise HTTPException(status_code=self.poll_failures.pop(0), detail="poll failed")
            record = self.submissions.get(token)
            if record is None:
                raise HTTPException(status_code=404, detail="unknown token")
            record["polls"] += 1
            finished = not self.never_finish and record["polls"] > self.pending_polls
            status_id = 3 if finished else min(record["polls"], 2)
            return {
                "token": token,
                "status": {"id": status_id, "description": STATUS_DESCRIPTIONS[status_id]},
                "stdout": self.stdout if finished else None,
                "stderr": None,
                "compile_output": None,
                "time": "0.012" if finished else None,
                "memory": 3412 if finished else None,
            }

        @app.get("/languages")
        def list_languages(x_rapidapi_key: Optional[str] = Header(default=None)) -> List[Dict[str, Any]]:
            self._check_key(x_rapidapi_key)
            return [
                {"id": 71, "name": "Python (3.8.1)"},
                {"id": 92, "name": "Python (3.11.2)"},
                {"id": 93, "name": "JavaScript (Node.js 18.15.0)"},
            ]

    # ------------------------------------------------------------------

    @property
    def poll_count(self) -> int:
        return sum(1 for request in self.requests if request["path"].startswith("/submissions/"))

    def build_httpx_client(self, *, timeout: float = 5.0) -> httpx.Client:
        client = httpx.Client(
            base_url=self.base_url,
            transport=_SyncASGITransport(app=self.app),
            timeout=timeout,
        )
        self._httpx_clients.append(client)
        return client

    def close(self) -> None:
        for client in self._httpx_clients:
            client.close()
        self._httpx_clients.clear()


__all__ = ["SandboxAPIMock", "SubmissionPayload"]
