"""
Response schemas for every external capability.

Real responses are validated into these models and synthetic fallbacks are
built from them, so ``FallbackEnvelope.data`` has the same fields whichever
side produced it. Unknown keys from a live service are dropped.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import TestCase


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class LessonContext(_Payload):
    lesson_id: Optional[str] = None
    lesson_name: Optional[str] = None
    course_name: Optional[str] = None


class CodingQuestion(_Payload):
    question_text: str
    difficulty: str = "medium"
    test_cases: List[TestCase] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    estimated_time: int = 15
    programming_language: Optional[str] = None
    lesson_context: LessonContext = Field(default_factory=LessonContext)


class CodingQuestionBatch(_Payload):
    questions: List[CodingQuestion]


class TheoreticalQuestion(_Payload):
    question_id: str
    question_text: str
    question_type: str = "theoretical"
    difficulty: str = "medium"
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    estimated_time: int = 5
    lesson_context: LessonContext = Field(default_factory=LessonContext)


class TheoreticalQuestionBatch(_Payload):
    success: bool
    questions: List[TheoreticalQuestion]


class AnalyticsAcknowledgment(_Payload):
    success: bool = True
    message: str = ""
    competition_id: Optional[str] = None
    status: str = "recorded"


class CourseCompletionAcknowledgment(_Payload):
    success: bool = True
    message: str = ""
    course_id: Optional[str] = None
    learner_id: Optional[str] = None
    status: str = "notified"


class RagAnswer(_Payload):
    success: bool = True
    response: str
    confidence: float = 0.0
    suggestions: List[str] = Field(default_factory=list)


class ContentValidationVerdict(_Payload):
    success: bool = True
    validated: bool
    validation_id: Optional[str] = None
    validation_status: str = "approved"
    validation_score: Optional[float] = None
    feedback: str = ""
    recommendations: List[str] = Field(default_factory=list)


class GenerationNotification(_Payload):
    success: bool = True
    notification_id: Optional[str] = None
    status: str = "received"
    message: str = ""
    question_ids: List[str] = Field(default_factory=list)
    lesson_id: Optional[str] = None
    quantity: Optional[int] = None
    question_type: Optional[str] = None


class QuestionGenerationRequest(BaseModel):
    """Structured parameters for a coding-question batch."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    lesson_id: Optional[str] = None
    course_name: Optional[str] = None
    lesson_name: Optional[str] = None
    topic_name: Optional[str] = None
    nano_skills: List[str] = Field(default_factory=list)
    micro_skills: List[str] = Field(default_factory=list)
    programming_language: str = "python"
    quantity: int = Field(default=4, ge=1, le=50)
    language: str = "english"

    def lesson_context(self) -> Dict[str, Any]:
        return {"lesson_id": self.lesson_id, "lesson_name": self.lesson_name, "course_name": self.course_name}


__all__ = [
    "AnalyticsAcknowledgment",
    "CodingQuestion",
    "CodingQuestionBatch",
    "ContentValidationVerdict",
    "CourseCompletionAcknowledgment",
    "GenerationNotification",
    "LessonContext",
    "QuestionGenerationRequest",
    "RagAnswer",
    "TheoreticalQuestion",
    "TheoreticalQuestionBatch",
]
