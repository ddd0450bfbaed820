"""Value objects exchanged between feature handlers and the orchestration layer."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FINISHED_STATUS_ID = 3


class TestCase(BaseModel):
    """One declared input/expected-output pair for a coding question."""

    __test__ = False  # keep pytest from collecting this model

    model_config = ConfigDict(frozen=True)

    input: str = ""
    expected_output: str = ""
    is_hidden: bool = False

    @field_validator("input", "expected_output", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class ExecutionRequest(BaseModel):
    """Program submission to grade; immutable once created."""

    model_config = ConfigDict(frozen=True)

    source_code: str
    language: str
    test_cases: tuple[TestCase, ...] = ()
    question_id: Optional[str] = None


class ExecutionState(str, Enum):
    CREATED = "created"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {ExecutionState.COMPLETED, ExecutionState.TIMED_OUT, ExecutionState.FAILED}


class TestCaseOutcome(BaseModel):
    __test__ = False

    model_config = ConfigDict(frozen=True)

    input: str
    expected_output: str
    actual_output: str
    passed: bool
    is_hidden: bool = False


class ExecutionResult(BaseModel):
    """Normalized sandbox verdict for one ExecutionRequest."""

    model_config = ConfigDict(frozen=True)

    status: str
    status_id: int
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    time: Optional[float] = None
    memory: Optional[int] = None
    test_case_results: tuple[TestCaseOutcome, ...] = ()
    is_correct: bool = False

    @property
    def passed_count(self) -> int:
        return sum(1 for outcome in self.test_case_results if outcome.passed)


class HintSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    hints: tuple[str, str, str]


class HintReveal(BaseModel):
    hint_number: int
    hint_text: str
    remaining_hints: int


class FraudLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class FraudAction(str, Enum):
    PROCEED = "proceed"
    WARNING = "warning"
    RESTRICT = "restrict"
    BLOCK = "block"


class FraudAssessment(BaseModel):
    """Fraud score with its derived level and remediation action."""

    model_config = ConfigDict(frozen=True)

    fraud_score: float = Field(..., ge=0, le=100)
    fraud_level: FraudLevel
    action: FraudAction
    detection_details: Dict[str, Any] = Field(default_factory=dict)
    message: str = "Analysis complete"


class QuestionContext(BaseModel):
    """Question fields the hint, feedback and fraud prompts need."""

    question_text: str
    programming_language: str = "python"


class Feedback(BaseModel):
    feedback: str
    is_correct: bool = False
    suggestions: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    code_quality: Optional[str] = None
    specific_issues: List[str] = Field(default_factory=list)
    optimized_version: Optional[str] = None


__all__ = [
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionState",
    "FINISHED_STATUS_ID",
    "Feedback",
    "FraudAction",
    "FraudAssessment",
    "FraudLevel",
    "HintReveal",
    "HintSet",
    "QuestionContext",
    "TestCase",
    "TestCaseOutcome",
]
