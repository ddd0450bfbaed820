"""Synthetic stand-ins for every external capability plus the guard that serves them.

The generators are the last line of defense: they accept whatever the caller
passed in, coerce it, and always return a schema-valid envelope.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Callable, Generic, Iterable, List, Literal, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, SerializeAsAny, ValidationError

from devlab.orchestration.context import OrchestrationContext

from .classifier import describe_failure, is_valid_response, should_fallback
from .models import TestCase
from .payloads import (
    AnalyticsAcknowledgment,
    CodingQuestion,
    CodingQuestionBatch,
    ContentValidationVerdict,
    CourseCompletionAcknowledgment,
    GenerationNotification,
    LessonContext,
    RagAnswer,
    TheoreticalQuestion,
    TheoreticalQuestionBatch,
)

PayloadT = TypeVar("PayloadT", bound=BaseModel)

DIFFICULTIES = ("easy", "medium", "hard")
ESTIMATED_MINUTES = {"easy": 10, "medium": 15, "hard": 20}
DEFAULT_QUANTITY = 4
MAX_QUANTITY = 50


class FallbackEnvelope(BaseModel, Generic[PayloadT]):
    """Result of an external capability tagged with where it came from."""

    data: SerializeAsAny[PayloadT]
    provenance: Literal["real", "mock"] = "real"
    note: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def real(cls, data: PayloadT) -> "FallbackEnvelope[PayloadT]":
        return cls(data=data, provenance="real")

    @classmethod
    def mock(cls, data: PayloadT, *, note: str, reason: str | None = None) -> "FallbackEnvelope[PayloadT]":
        return cls(data=data, provenance="mock", note=note, reason=reason)

    @property
    def is_mock(self) -> bool:
        return self.provenance == "mock"


def _mapping(value: Any) -> dict:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, Iterable) and not isinstance(value, Mapping):
        return [str(item) for item in value if item is not None]
    return []


def _quantity(value: Any) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_QUANTITY
    return max(1, min(quantity, MAX_QUANTITY))


def _unavailable(service: str) -> str:
    return f"Generated using mock data - {service} unavailable"


class FallbackGenerator:
    """Schema-compatible synthetic payloads, one constructor per capability."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def _stamp(self) -> int:
        return int(self._clock() * 1000)

    def coding_questions(self, params: Any = None, *, reason: str | None = None) -> FallbackEnvelope[CodingQuestionBatch]:
        fields = _mapping(params)
        quantity = _quantity(fields.get("quantity", DEFAULT_QUANTITY))
        skills = _str_list(fields.get("nano_skills"))
        language = _opt_str(fields.get("programming_language")) or "python"
        course = _opt_str(fields.get("course_name")) or "Programming"
        lesson = LessonContext(
            lesson_id=_opt_str(fields.get("lesson_id")),
            lesson_name=_opt_str(fields.get("lesson_name")),
            course_name=_opt_str(fields.get("course_name")),
        )
        questions = []
        for index in range(quantity):
            difficulty = DIFFICULTIES[index % len(DIFFICULTIES)]
            skill = skills[index % len(skills)] if skills else "programming"
            questions.append(
                CodingQuestion(
                    question_text=(
                        f"[Mock] {course} Question {index + 1}: Write a function that demonstrates "
                        f"{skill} concepts in {language}."
                    ),
                    difficulty=difficulty,
                    test_cases=[
                        TestCase(input=f"test_input_{index + 1}", expected_output=f"expected_output_{index + 1}"),
                        TestCase(
                            input=f"hidden_test_{index + 1}",
                            expected_output=f"hidden_expected_{index + 1}",
                            is_hidden=True,
                        ),
                    ],
                    tags=[skill],
                    estimated_time=ESTIMATED_MINUTES[difficulty],
                    programming_language=language,
                    lesson_context=lesson,
                )
            )
        return FallbackEnvelope.mock(
            CodingQuestionBatch(questions=questions),
            note=_unavailable("generative content service"),
            reason=reason,
        )

    def theoretical_questions(self, params: Any = None, *, reason: str | None = None) -> FallbackEnvelope[TheoreticalQuestionBatch]:
        fields = _mapping(params)
        quantity = _quantity(fields.get("quantity", DEFAULT_QUANTITY))
        nano_skills = _str_list(fields.get("nano_skills"))
        micro_skills = _str_list(fields.get("micro_skills"))
        topic = _opt_str(fields.get("topic_name")) or _opt_str(fields.get("course_name")) or "Theoretical"
        lesson = LessonContext(
            lesson_id=_opt_str(fields.get("lesson_id")),
            lesson_name=_opt_str(fields.get("lesson_name")),
            course_name=_opt_str(fields.get("course_name")),
        )
        stamp = self._stamp()
        questions = []
        for index in range(quantity):
            concept = nano_skills[index % len(nano_skills)] if nano_skills else "core programming"
            questions.append(
                TheoreticalQuestion(
                    question_id=f"mock_q_{stamp}_{index}",
                    question_text=f"[Mock] {topic} Question {index + 1}: Explain the concept of {concept} principles.",
                    difficulty=DIFFICULTIES[index % len(DIFFICULTIES)],
                    options=[
                        "Option A: Correct answer",
                        "Option B: Incorrect answer",
                        "Option C: Incorrect answer",
                        "Option D: Incorrect answer",
                    ],
                    correct_answer="A",
                    explanation="Placeholder question served while the assessment service is unavailable.",
                    tags=nano_skills or micro_skills,
                    estimated_time=5,
                    lesson_context=lesson,
                )
            )
        return FallbackEnvelope.mock(
            TheoreticalQuestionBatch(success=True, questions=questions),
            note=_unavailable("assessment service"),
            reason=reason,
        )

    def analytics_ack(self, data: Any = None, *, reason: str | None = None) -> FallbackEnvelope[AnalyticsAcknowledgment]:
        fields = _mapping(data)
        return FallbackEnvelope.mock(
            AnalyticsAcknowledgment(
                success=True,
                message="Competition performance data received (mock mode)",
                competition_id=_opt_str(fields.get("competition_id")),
                status="recorded_mock",
            ),
            note="Learning analytics service unavailable - data logged locally",
            reason=reason,
        )

    def course_completion_ack(self, data: Any = None, *, reason: str | None = None) -> FallbackEnvelope[CourseCompletionAcknowledgment]:
        fields = _mapping(data)
        return FallbackEnvelope.mock(
            CourseCompletionAcknowledgment(
                success=True,
                message="Course completion notification received (mock mode)",
                course_id=_opt_str(fields.get("course_id")),
                learner_id=_opt_str(fields.get("learner_id")),
                status="notified_mock",
            ),
            note="Course builder service unavailable - notification logged locally",
            reason=reason,
        )

    def rag_answer(self, query: Any = None, *, reason: str | None = None) -> FallbackEnvelope[RagAnswer]:
        return FallbackEnvelope.mock(
            RagAnswer(
                success=True,
                response=(
                    "I apologize, but the chat assistant is currently unavailable. "
                    "Please try again later or contact support for assistance."
                ),
                confidence=0.0,
                suggestions=[
                    "Check the service status",
                    "Try again in a few moments",
                    "Contact customer support if the issue persists",
                ],
            ),
            note=_unavailable("RAG chat service"),
            reason=reason,
        )

    def content_validation(self, data: Any = None, *, reason: str | None = None) -> FallbackEnvelope[ContentValidationVerdict]:
        return FallbackEnvelope.mock(
            ContentValidationVerdict(
                success=True,
                validated=True,
                validation_id=f"mock_validation_{self._stamp()}",
                validation_status="approved",
                validation_score=85,
                feedback="Content validation completed using mock data - content studio unavailable",
                recommendations=[
                    "Content structure appears valid",
                    "Consider adding more examples",
                    "Ensure all required fields are present",
                ],
            ),
            note=_unavailable("content studio"),
            reason=reason,
        )

    def generation_notification(self, data: Any = None, *, reason: str | None = None) -> FallbackEnvelope[GenerationNotification]:
        fields = _mapping(data)
        quantity = fields.get("quantity")
        return FallbackEnvelope.mock(
            GenerationNotification(
                success=True,
                notification_id=f"mock_notification_{self._stamp()}",
                status="logged_locally",
                message="Question generation notification logged locally - content studio unavailable",
                question_ids=_str_list(fields.get("question_ids")),
                lesson_id=_opt_str(fields.get("lesson_id")),
                quantity=_quantity(quantity) if quantity is not None else None,
                question_type=_opt_str(fields.get("question_type")),
            ),
            note="Content studio unavailable - notification will be retried later",
            reason=reason,
        )


def response_body(response: Any) -> Any:
    if isinstance(response, httpx.Response):
        return response.json()
    return response


class FallbackPolicy:
    """Run one outbound call and swap in synthetic data when the classifier says so."""

    def __init__(self, context: OrchestrationContext | None = None) -> None:
        self.context = context or OrchestrationContext.default("fallback")

    def guard(
        self,
        capability: str,
        call: Callable[[], Any],
        *,
        schema: Type[PayloadT],
        fallback: Callable[[str], FallbackEnvelope[PayloadT]],
        expected_keys: Iterable[str] | None = None,
        log_payload: dict | None = None,
    ) -> FallbackEnvelope[PayloadT]:
        try:
            response = call()
        except Exception as exc:
            if not should_fallback(exc):
                raise
            return self._degrade(capability, describe_failure(exc), fallback, log_payload)

        if not is_valid_response(response, expected_keys):
            status = getattr(response, "status_code", None)
            reason = f"invalid response (HTTP {status})" if status is not None else "invalid response"
            return self._degrade(capability, reason, fallback, log_payload)

        try:
            data = schema.model_validate(response_body(response))
        except (ValueError, ValidationError):
            return self._degrade(capability, "malformed response", fallback, log_payload)

        self.context.logger.info("%s served by live dependency", capability, extra={"capability": capability})
        return FallbackEnvelope.real(data)

    def _degrade(
        self,
        capability: str,
        reason: str,
        fallback: Callable[[str], FallbackEnvelope[PayloadT]],
        log_payload: dict | None,
    ) -> FallbackEnvelope[PayloadT]:
        self.context.record_fallback(capability, reason, log_payload)
        return fallback(reason)


__all__ = ["FallbackEnvelope", "FallbackGenerator", "FallbackPolicy", "response_body"]
