"""Generative content client: question batches, feedback, hints and fraud scoring."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, TypeVar

from pydantic import BaseModel, ValidationError

from apps.orchestrator.classifier import should_fallback
from apps.orchestrator.extraction import extract_json, normalize_lm_output, require_list
from apps.orchestrator.fallbacks import FallbackEnvelope, FallbackGenerator, FallbackPolicy
from apps.orchestrator.fraud import FraudPolicy
from apps.orchestrator.hint_store import HINTS_PER_QUESTION
from apps.orchestrator.models import Feedback, FraudAssessment, QuestionContext
from apps.orchestrator.payloads import CodingQuestionBatch, QuestionGenerationRequest
from apps.orchestrator.prompts import (
    build_feedback_prompt,
    build_fraud_prompt,
    build_hints_prompt,
    build_question_prompt,
)
from devlab.core.config import GenerativeConfig
from devlab.core.errors import GenerationError, OrchestrationError, ParseError, RequestValidationError
from devlab.core.lm_runtime import LMHandle, build_generative_lm, require_credential
from devlab.orchestration.context import OrchestrationContext

T = TypeVar("T")

MAX_MINED_LINES = 5
SUGGESTION_MARKERS = ("suggest", "consider")
IMPROVEMENT_MARKERS = ("improve", "better")


def mine_lines(text: str, markers: tuple[str, ...], limit: int = MAX_MINED_LINES) -> List[str]:
    """Return up to ``limit`` lines of ``text`` that mention any marker."""
    found = [line.strip() for line in text.splitlines() if any(marker in line.lower() for marker in markers)]
    return [line for line in found if line][:limit]


def _string_list(value: Any) -> List[str] | None:
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    return None


def _as_question(value: QuestionContext | Mapping[str, Any]) -> QuestionContext:
    if isinstance(value, QuestionContext):
        return value
    try:
        return QuestionContext.model_validate(dict(value))
    except (TypeError, ValueError) as exc:
        raise RequestValidationError(f"Invalid question context: {exc}") from exc


class ContentGenerationClient:
    """Wraps the DSPy LM handle with prompt building, JSON extraction and fallbacks.

    Only question generation degrades to synthetic data. Feedback, hints and
    fraud scoring raise instead, because a fabricated verdict would mislead the
    learner.
    """

    def __init__(
        self,
        config: GenerativeConfig,
        *,
        lm: LMHandle | None = None,
        api_key: str | None = None,
        context: OrchestrationContext | None = None,
        generator: FallbackGenerator | None = None,
        fraud_policy: FraudPolicy | None = None,
    ) -> None:
        self.config = config
        self._api_key = api_key
        self._lm = lm
        self.context = context or OrchestrationContext.default("generative")
        self.generator = generator or FallbackGenerator()
        self.policy = FallbackPolicy(self.context)
        self.fraud_policy = fraud_policy or FraudPolicy()

    # ------------------------------------------------------------------
    # LM plumbing

    def _credential(self) -> str:
        return require_credential(self._api_key or self.config.resolve_api_key(), service="generative")

    def _complete(self, prompt: str, *, timeout: float) -> str:
        key = self._credential()
        if self._lm is None:
            self._lm = build_generative_lm(self.config, api_key=key)
        raw = self._lm(prompt=prompt, timeout=timeout)
        text = normalize_lm_output(raw).strip()
        if not text:
            raise ParseError("Generative service returned an empty response")
        return text

    def _strict(self, operation: str, call: Callable[[], T]) -> T:
        """Run ``call`` on a path with no synthetic substitute."""
        try:
            return call()
        except OrchestrationError:
            self.context.logger.error("Generative %s failed", operation, exc_info=True)
            raise
        except Exception as exc:
            if not should_fallback(exc):
                raise
            self.context.logger.error("Generative %s failed: %s", operation, exc)
            raise GenerationError(f"Failed to {operation}: {exc}") from exc

    # ------------------------------------------------------------------
    # Question batches

    def generate_questions(
        self, request: QuestionGenerationRequest | Mapping[str, Any]
    ) -> FallbackEnvelope[CodingQuestionBatch]:
        """Generate coding questions, falling back to synthetic ones on outage."""

        if not isinstance(request, QuestionGenerationRequest):
            try:
                request = QuestionGenerationRequest.model_validate(dict(request))
            except (TypeError, ValidationError) as exc:
                raise RequestValidationError(f"Invalid question generation parameters: {exc}") from exc

        def call() -> Dict[str, Any]:
            text = self._complete(build_question_prompt(request), timeout=self.config.timeouts.questions)
            payload = extract_json(text)
            questions = require_list(payload, "questions")
            return {"questions": questions[: request.quantity]}

        envelope = self.policy.guard(
            "coding_questions",
            call,
            schema=CodingQuestionBatch,
            fallback=lambda reason: self.generator.coding_questions(request, reason=reason),
            expected_keys=("questions",),
            log_payload={"lesson_id": request.lesson_id, "quantity": request.quantity},
        )
        if not envelope.is_mock:
            self.context.logger.info(
                "Generated %s coding questions",
                len(envelope.data.questions),
                extra={"lesson_id": request.lesson_id, "programming_language": request.programming_language},
            )
        return envelope

    # ------------------------------------------------------------------
    # Strict paths

    def generate_feedback(
        self,
        code: str,
        question_context: QuestionContext | Mapping[str, Any],
        execution_results: Any = None,
        is_correct: bool = False,
    ) -> Feedback:
        question = _as_question(question_context)
        if isinstance(execution_results, BaseModel):
            execution_results = execution_results.model_dump(mode="json")

        def call() -> Feedback:
            prompt = build_feedback_prompt(code, question, execution_results, is_correct)
            text = self._complete(prompt, timeout=self.config.timeouts.feedback)
            return self._parse_feedback(text, is_correct)

        return self._strict("generate feedback", call)

    def _parse_feedback(self, text: str, is_correct: bool) -> Feedback:
        payload = extract_json(text)
        feedback_text = payload.get("feedback") or payload.get("evaluation") or text
        feedback_text = str(feedback_text)
        reported = payload.get("is_correct")
        optimized = payload.get("optimized_version")
        quality = payload.get("code_quality")
        suggestions = _string_list(payload.get("suggestions"))
        improvements = _string_list(payload.get("improvements"))
        return Feedback(
            feedback=feedback_text,
            is_correct=reported if isinstance(reported, bool) else is_correct,
            suggestions=suggestions if suggestions is not None else mine_lines(feedback_text, SUGGESTION_MARKERS),
            improvements=improvements if improvements is not None else mine_lines(feedback_text, IMPROVEMENT_MARKERS),
            code_quality=str(quality) if quality else None,
            specific_issues=_string_list(payload.get("specific_issues")) or [],
            optimized_version=str(optimized) if optimized else None,
        )

    def generate_hints(self, question_id: str, context: QuestionContext | Mapping[str, Any]) -> List[str]:
        """Return exactly three progressive hints from a single model call."""

        question = _as_question(context)

        def call() -> List[str]:
            text = self._complete(build_hints_prompt(question), timeout=self.config.timeouts.hints)
            hints = require_list(extract_json(text), "hints")
            if len(hints) != HINTS_PER_QUESTION:
                raise ParseError(
                    f"Invalid hints format: expected exactly {HINTS_PER_QUESTION} hints, received {len(hints)}"
                )
            return [str(hint).strip() for hint in hints]

        hints = self._strict("generate hints", call)
        self.context.logger.info("Hints generated", extra={"question_id": question_id})
        return hints

    def assess_fraud(self, code: str, question_context: QuestionContext | Mapping[str, Any]) -> FraudAssessment:
        question = _as_question(question_context)

        def call() -> FraudAssessment:
            text = self._complete(build_fraud_prompt(code, question), timeout=self.config.timeouts.fraud)
            return self.fraud_policy.assess_payload(extract_json(text))

        assessment = self._strict("detect fraud", call)
        self.context.logger.info(
            "Fraud assessment complete",
            extra={"fraud_score": assessment.fraud_score, "fraud_action": assessment.action.value},
        )
        return assessment


__all__ = ["ContentGenerationClient", "mine_lines"]
