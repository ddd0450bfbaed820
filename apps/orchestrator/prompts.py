"""Prompt builders for the generative content service."""

from __future__ import annotations

import json
from textwrap import dedent
from typing import Any, Iterable

from .models import QuestionContext
from .payloads import QuestionGenerationRequest

HUMAN_LANGUAGES = {
    "hebrew": "Hebrew",
    "english": "English",
    "arabic": "Arabic",
    "russian": "Russian",
    "spanish": "Spanish",
    "french": "French",
    "german": "German",
    "chinese": "Chinese",
    "japanese": "Japanese",
    "korean": "Korean",
}


def human_language_name(language: str | None) -> str:
    """Map a lowercase language key to the name used inside prompts."""
    if not language or not language.strip():
        return "English"
    return HUMAN_LANGUAGES.get(language.strip().lower(), language.strip())


def _joined(values: Iterable[str]) -> str:
    items = [value for value in values if value]
    return ", ".join(items) if items else "n/a"


def _code_block(code: str, label: str = "") -> str:
    return f"```{label}\n{code}\n```"


def build_question_prompt(request: QuestionGenerationRequest) -> str:
    target = human_language_name(request.language)
    return dedent(
        f"""
        Generate {request.quantity} coding practice questions for the following context.
        IMPORTANT: All questions, instructions, and explanations must be written in {target}.

        Course: {request.course_name or "n/a"}
        Lesson: {request.lesson_name or "n/a"}
        Topic: {request.topic_name or "n/a"}
        Programming Language: {request.programming_language}
        Nano Skills: {_joined(request.nano_skills)}
        Micro Skills: {_joined(request.micro_skills)}

        Requirements:
        1. All text (questions, instructions, explanations) MUST be in {target}
        2. Distribute difficulty levels from easy to hard across all questions
        3. Each question includes a clear problem statement and at least 3 test cases (2 public, 1 hidden)
        4. Questions must be relevant to the specified skills
        5. Code examples and variable names can be in English

        Respond with JSON using this schema:
        {{
          "questions": [
            {{
              "question_text": "...",
              "difficulty": "easy|medium|hard",
              "test_cases": [{{"input": "...", "expected_output": "...", "is_hidden": false}}],
              "tags": ["..."],
              "estimated_time": 15
            }}
          ]
        }}
        """
    ).strip()


def build_feedback_prompt(
    code: str,
    question: QuestionContext,
    execution_results: Any,
    is_correct: bool,
) -> str:
    language = question.programming_language or "code"
    intro = dedent(
        f"""
        You are an expert code reviewer. Evaluate this {language} code submission for correctness and quality.
        The automated grader marked it as {"correct" if is_correct else "incorrect"}.

        Question: {question.question_text}
        """
    ).strip()
    guidance = dedent(
        """
        If the code is wrong, point at the specific line or logic error without revealing the full solution.
        If the code is correct, comment on efficiency and optionally offer an optimized version.

        Return ONLY a JSON object wrapped in a ```json fenced block:
        {
          "is_correct": true,
          "feedback": "Comprehensive feedback text...",
          "code_quality": "good|fair|poor",
          "specific_issues": ["..."],
          "suggestions": ["..."],
          "improvements": ["..."],
          "optimized_version": "optional optimized code"
        }
        """
    ).strip()
    results = json.dumps(execution_results, default=str, ensure_ascii=False)
    return "\n\n".join(
        [intro, "Code:\n" + _code_block(code, language), f"Execution Results: {results}", guidance]
    )


def build_hints_prompt(question: QuestionContext) -> str:
    return dedent(
        f"""
        Generate 3 progressive hints for the following coding question.
        Each hint should be more helpful than the last but never reveal the final solution.

        Question: {question.question_text}
        Programming Language: {question.programming_language}

        1. Hint 1: very general direction
        2. Hint 2: points to the relevant concepts
        3. Hint 3: direct guidance toward the approach, not the answer
        Keep every hint to one or two sentences.

        Respond with JSON: {{"hints": ["Hint 1", "Hint 2", "Hint 3"]}}
        """
    ).strip()


def build_fraud_prompt(code: str, question: QuestionContext) -> str:
    intro = dedent(
        f"""
        Analyze the following code submission and decide whether it was likely generated by AI or written by a human.

        Question Context: {question.question_text}
        Programming Language: {question.programming_language}
        """
    ).strip()
    guidance = dedent(
        """
        Consider structure patterns, comment style, naming conventions, error handling and consistency.
        Score from 0 to 100: 0-30 likely human, 31-60 suspicious, 61-90 likely AI, 91-100 confirmed AI.

        Respond with JSON:
        {
          "fraud_score": 25,
          "fraud_level": "low|medium|high|very_high",
          "detection_details": {"code_patterns": "...", "comment_analysis": "...", "naming_analysis": "..."},
          "message": "Human-written code detected"
        }
        """
    ).strip()
    return "\n\n".join([intro, "Code:\n" + _code_block(code), guidance])


__all__ = [
    "HUMAN_LANGUAGES",
    "build_feedback_prompt",
    "build_fraud_prompt",
    "build_hints_prompt",
    "build_question_prompt",
    "human_language_name",
]
