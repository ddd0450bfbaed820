"""Submit, poll and normalize code executions against the sandbox."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Mapping, Sequence

import httpx

from apps.clients.sandbox import SandboxClient
from devlab.core.config import ExecutionLimits, PollingConfig
from devlab.core.errors import (
    AuthenticationError,
    ExecutionError,
    ExecutionTimeoutError,
    NetworkError,
    OrchestrationError,
    RateLimitError,
    RequestValidationError,
    ServerError,
)
from devlab.orchestration.context import OrchestrationContext

from .models import (
    FINISHED_STATUS_ID,
    ExecutionRequest,
    ExecutionResult,
    ExecutionState,
    TestCase,
    TestCaseOutcome,
)

AUTH_STATUSES = {401, 403}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


def classify_http_failure(error: BaseException, state: ExecutionState) -> OrchestrationError:
    """Translate a transport-level failure into the sandbox error taxonomy."""

    if isinstance(error, OrchestrationError):
        if error.state is None:
            error.state = state
        return error
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status in AUTH_STATUSES:
            return AuthenticationError(
                "Code sandbox authentication failed. Check the sandbox API key.",
                status_code=status,
                state=state,
            )
        if status == 429:
            return RateLimitError(
                "Code sandbox rate limit exceeded. Please try again later.",
                status_code=status,
                state=state,
            )
        if status >= 500:
            return ServerError(
                "Code sandbox server error. Please try again later.",
                status_code=status,
                state=state,
            )
        return ExecutionError(
            f"Code execution failed: {_error_message(error.response)}",
            status_code=status,
            state=state,
        )
    if isinstance(error, httpx.RequestError):
        return NetworkError(
            "Unable to connect to the code sandbox. Please check your network connection.",
            state=state,
        )
    return ExecutionError(f"Code execution failed: {error}", state=state)


def _is_auth_failure(error: BaseException) -> bool:
    return isinstance(error, httpx.HTTPStatusError) and error.response.status_code in AUTH_STATUSES


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_results(submission: Mapping[str, Any], test_cases: Sequence[TestCase]) -> ExecutionResult:
    """Compare sandbox stdout against every declared test case.

    A case passes when the trimmed stdout equals the trimmed expected output.
    The verdict is correct only when every case passes and the sandbox
    reported the finished status.
    """

    status = submission.get("status") or {}
    status_id = _int_or_none(status.get("id")) if isinstance(status, Mapping) else None
    description = _text(status.get("description")) if isinstance(status, Mapping) else ""
    stdout = _text(submission.get("stdout"))
    actual = stdout.strip()
    outcomes = tuple(
        TestCaseOutcome(
            input=case.input,
            expected_output=case.expected_output,
            actual_output=stdout,
            passed=actual == case.expected_output.strip(),
            is_hidden=case.is_hidden,
        )
        for case in test_cases
    )
    return ExecutionResult(
        status=description or "Unknown",
        status_id=status_id if status_id is not None else 0,
        stdout=stdout,
        stderr=_text(submission.get("stderr")),
        compile_output=_text(submission.get("compile_output")),
        time=_float_or_none(submission.get("time")),
        memory=_int_or_none(submission.get("memory")),
        test_case_results=outcomes,
        is_correct=all(outcome.passed for outcome in outcomes) and status_id == FINISHED_STATUS_ID,
    )


class ExecutionOrchestrator:
    """Drive one ExecutionRequest through Created -> Submitted -> Polling -> terminal."""

    def __init__(
        self,
        sandbox: SandboxClient,
        *,
        context: OrchestrationContext | None = None,
        limits: ExecutionLimits | None = None,
        polling: PollingConfig | None = None,
        language_ids: Mapping[str, int] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.sandbox = sandbox
        self.context = context or OrchestrationContext.default("execution")
        sandbox_config = self.context.config.sandbox
        self.limits = limits or sandbox_config.limits
        self.polling = polling or sandbox_config.polling
        ids = sandbox_config.language_ids
        if language_ids:
            ids.update({key.strip().lower(): value for key, value in language_ids.items()})
        self._language_ids = ids
        self._sleep = sleep

    @property
    def logger(self):
        return self.context.logger

    def language_id(self, language: str | None) -> int | None:
        if not language:
            return None
        return self._language_ids.get(language.strip().lower())

    def supported_languages(self) -> List[str]:
        return sorted(self._language_ids)

    def check_availability(self) -> bool:
        """Return True when the sandbox answers ``GET /languages``."""
        try:
            self.sandbox.list_languages()
        except (httpx.HTTPError, OrchestrationError) as exc:
            self.logger.warning("Code sandbox unavailable: %s", exc)
            return False
        return True

    def validate(self, request: ExecutionRequest) -> int:
        """Return the executor id for ``request`` or raise ``RequestValidationError``."""

        if len(request.source_code) > self.limits.max_code_length:
            raise RequestValidationError(
                f"Code exceeds maximum length of {self.limits.max_code_length} characters",
                state=ExecutionState.CREATED,
            )
        language_id = self.language_id(request.language)
        if language_id is None:
            raise RequestValidationError(
                f"Unsupported programming language: {request.language}",
                state=ExecutionState.CREATED,
            )
        return language_id

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        language_id = self.validate(request)
        log_extra: Dict[str, Any] = {"question_id": request.question_id, "language": request.language}

        try:
            token = self.sandbox.submit(request.source_code, language_id, self.limits)
        except Exception as exc:
            raise self._fail(exc, ExecutionState.CREATED, log_extra) from exc
        self._transition(ExecutionState.SUBMITTED, log_extra, token=token)

        submission = self._poll(token, log_extra)
        result = normalize_results(submission, request.test_cases)
        self._transition(ExecutionState.COMPLETED, log_extra, status=result.status, is_correct=result.is_correct)
        return result

    def _poll(self, token: str, log_extra: Dict[str, Any]) -> Dict[str, Any]:
        self._transition(ExecutionState.POLLING, log_extra, token=token)
        attempts = self.polling.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                submission = self.sandbox.get_submission(token)
            except Exception as exc:
                if _is_auth_failure(exc) or attempt >= attempts:
                    raise self._fail(exc, ExecutionState.POLLING, log_extra) from exc
                self.logger.debug("Poll attempt %s/%s failed: %s", attempt, attempts, exc, extra=log_extra)
            else:
                status = submission.get("status")
                status_id = status.get("id") if isinstance(status, Mapping) else None
                if status_id == FINISHED_STATUS_ID:
                    return submission
                self.logger.debug("Poll attempt %s/%s: status %s", attempt, attempts, status_id, extra=log_extra)
            self._sleep(self.polling.interval_seconds)

        self._transition(ExecutionState.TIMED_OUT, log_extra, attempts=attempts)
        raise ExecutionTimeoutError("Timeout waiting for execution results", state=ExecutionState.TIMED_OUT)

    def _fail(self, error: BaseException, stage: ExecutionState, log_extra: Dict[str, Any]) -> OrchestrationError:
        """Classify ``error`` raised while in ``stage`` and move the request to Failed."""

        classified = classify_http_failure(error, ExecutionState.FAILED)
        self.logger.error(
            "Code execution failed while %s: %s",
            stage.value,
            classified,
            extra={**log_extra, "error_type": type(classified).__name__},
        )
        self._transition(ExecutionState.FAILED, log_extra, failed_in=stage.value, status_code=classified.status_code)
        self.context.record_event(
            "execution_failed",
            str(classified),
            {**log_extra, "state": ExecutionState.FAILED.value, "failed_in": stage.value, "status_code": classified.status_code},
        )
        return classified

    def _transition(self, state: ExecutionState, log_extra: Dict[str, Any], **details: Any) -> None:
        self.logger.info("Execution %s", state.value, extra={**log_extra, "state": state.value, **details})


__all__ = ["ExecutionOrchestrator", "classify_http_failure", "normalize_results"]
