"""Dependency orchestration: fallback policy, code execution, hints and fraud scoring."""
from .classifier import describe_failure, is_valid_response, should_fallback
from .execution import ExecutionOrchestrator, normalize_results
from .fallbacks import FallbackEnvelope, FallbackGenerator, FallbackPolicy
from .fraud import FraudPolicy
from .hint_store import InMemoryHintStore, SQLiteHintStore
from .hints import HintCache

__all__ = [
    "ExecutionOrchestrator",
    "FallbackEnvelope",
    "FallbackGenerator",
    "FallbackPolicy",
    "FraudPolicy",
    "HintCache",
    "InMemoryHintStore",
    "SQLiteHintStore",
    "describe_failure",
    "is_valid_response",
    "normalize_results",
    "should_fallback",
]
