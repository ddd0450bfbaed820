"""Client for the sibling platform microservices.

Every call goes through ``FallbackPolicy.guard`` so an outage, a non-2xx
answer or a malformed body yields a schema-compatible synthetic payload
instead of an exception.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict

import httpx
from pydantic import BaseModel

from apps.orchestrator.fallbacks import FallbackEnvelope, FallbackGenerator, FallbackPolicy
from apps.orchestrator.payloads import (
    AnalyticsAcknowledgment,
    ContentValidationVerdict,
    CourseCompletionAcknowledgment,
    GenerationNotification,
    RagAnswer,
    TheoreticalQuestionBatch,
)
from devlab.core.config import MicroservicesConfig, ServiceName
from devlab.core.errors import NetworkError
from devlab.orchestration.context import OrchestrationContext

ENDPOINTS: Dict[str, tuple[ServiceName, str]] = {
    "competition_performance": ("learning_analytics", "/api/competitions/performance"),
    "theoretical_questions": ("assessment", "/api/questions/theoretical/create"),
    "course_completion": ("course_builder", "/api/courses/completion"),
    "rag_chat": ("rag", "/api/chat"),
    "question_generation": ("content_studio", "/api/questions/generated"),
    "content_validation": ("content_studio", "/api/content/validate"),
}


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, Mapping):
        return dict(data)
    return data


class SiblingServiceClient:
    def __init__(
        self,
        config: MicroservicesConfig,
        *,
        client: httpx.Client | None = None,
        context: OrchestrationContext | None = None,
        generator: FallbackGenerator | None = None,
        api_key: str | None = None,
    ) -> None:
        self._config = config
        self._api_key = api_key or config.resolve_api_key()
        self.context = context or OrchestrationContext.default("microservices")
        self.generator = generator or FallbackGenerator()
        self.policy = FallbackPolicy(self.context)
        if client is None:
            self._client = httpx.Client(timeout=config.timeouts.default)
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    def send_competition_performance(self, data: Any) -> FallbackEnvelope[AnalyticsAcknowledgment]:
        """Forward competition results to learning analytics."""

        fields = _jsonable(data)
        return self.policy.guard(
            "competition_performance",
            lambda: self._post("competition_performance", fields),
            schema=AnalyticsAcknowledgment,
            fallback=lambda reason: self.generator.analytics_ack(fields, reason=reason),
            log_payload={"competition_id": fields.get("competition_id") if isinstance(fields, dict) else None},
        )

    def create_theoretical_questions(self, params: Any) -> FallbackEnvelope[TheoreticalQuestionBatch]:
        """Ask the assessment service for a theoretical-question batch."""

        fields = _jsonable(params)
        return self.policy.guard(
            "theoretical_questions",
            lambda: self._post(
                "theoretical_questions",
                fields,
                timeout=self._config.timeouts.theoretical_questions,
            ),
            schema=TheoreticalQuestionBatch,
            fallback=lambda reason: self.generator.theoretical_questions(fields, reason=reason),
            expected_keys=("questions", "success"),
        )

    def notify_course_completion(self, data: Any) -> FallbackEnvelope[CourseCompletionAcknowledgment]:
        fields = _jsonable(data)
        return self.policy.guard(
            "course_completion",
            lambda: self._post("course_completion", fields),
            schema=CourseCompletionAcknowledgment,
            fallback=lambda reason: self.generator.course_completion_ack(fields, reason=reason),
        )

    def query_rag(self, query: str, context: Mapping[str, Any] | None = None) -> FallbackEnvelope[RagAnswer]:
        body = {"query": query, "context": dict(context or {})}
        return self.policy.guard(
            "rag_chat",
            lambda: self._post("rag_chat", body),
            schema=RagAnswer,
            fallback=lambda reason: self.generator.rag_answer(query, reason=reason),
        )

    def notify_question_generation(self, data: Any) -> FallbackEnvelope[GenerationNotification]:
        """Tell the content studio that a question batch was generated."""

        fields = _jsonable(data)
        source = fields if isinstance(fields, dict) else {}
        body = {
            "question_ids": source.get("question_ids") or [],
            "lesson_id": source.get("lesson_id"),
            "course_name": source.get("course_name"),
            "quantity": source.get("quantity"),
            "question_type": source.get("question_type"),
            "status": "completed",
        }
        return self.policy.guard(
            "question_generation",
            lambda: self._post("question_generation", body),
            schema=GenerationNotification,
            fallback=lambda reason: self.generator.generation_notification(fields, reason=reason),
            log_payload={"lesson_id": source.get("lesson_id")},
        )

    def validate_content(self, data: Any) -> FallbackEnvelope[ContentValidationVerdict]:
        fields = _jsonable(data)
        return self.policy.guard(
            "content_validation",
            lambda: self._post("content_validation", fields),
            schema=ContentValidationVerdict,
            fallback=lambda reason: self.generator.content_validation(fields, reason=reason),
        )

    def health_check(self, service: str) -> bool:
        """Return True when ``service`` answers ``GET /health`` with HTTP 200."""

        base_url = self._config.base_url(service)
        if not base_url:
            self.context.logger.warning("Service %s is not configured", service)
            return False
        try:
            response = self._client.get(
                f"{base_url}/health",
                headers=self._build_headers(),
                timeout=self._config.timeouts.health,
            )
        except httpx.HTTPError as exc:
            self.context.logger.warning("Health check failed for %s: %s", service, exc)
            return False
        return response.status_code == 200

    def close(self) -> None:
        if getattr(self, "_owns_client", False):
            self._client.close()

    def _post(self, endpoint: str, body: Any, *, timeout: float | None = None) -> httpx.Response:
        service, path = ENDPOINTS[endpoint]
        base_url = self._config.base_url(service)
        if not base_url:
            raise NetworkError(f"Service URL for {service} is not configured")
        return self._client.post(
            f"{base_url}{path}",
            json=body,
            headers=self._build_headers(),
            timeout=timeout or self._config.timeouts.default,
        )

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-API-Key"] = self._api_key
        return headers

    def __enter__(self) -> "SiblingServiceClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ENDPOINTS", "SiblingServiceClient"]
