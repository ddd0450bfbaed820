"""Hint generation cache with gated, per-learner reveal."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Protocol, Sequence, Tuple

from devlab.core.errors import HintLimitReachedError, ParseError
from devlab.orchestration.context import OrchestrationContext

from .hint_store import HINTS_PER_QUESTION, HintStore, InMemoryHintStore
from .models import HintReveal, HintSet, QuestionContext


class HintGenerator(Protocol):
    def generate_hints(self, question_id: str, context: QuestionContext) -> List[str]: ...


class _KeyedLocks:
    """Per-key locks that are dropped once no thread holds or waits on them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, List[Any]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class HintCache:
    """Read-through cache of exactly three hints per question.

    Generation for a question is serialized by a per-question lock, so
    concurrent first requests share one model call. A question holds either
    no hints or all three.
    """

    def __init__(
        self,
        generator: HintGenerator,
        store: HintStore | None = None,
        *,
        context: OrchestrationContext | None = None,
        reveal_limit: int | None = None,
    ) -> None:
        self.generator = generator
        self.store = store or InMemoryHintStore()
        self.context = context or OrchestrationContext.default("hints")
        self.reveal_limit = min(reveal_limit or self.context.config.hints.reveal_limit, HINTS_PER_QUESTION)
        self._generation_locks = _KeyedLocks()
        self._reveal_locks = _KeyedLocks()

    def _cached(self, question_id: str) -> Tuple[str, ...] | None:
        hints = self.store.get_hints(question_id)
        if hints is not None and len(hints) == HINTS_PER_QUESTION:
            return hints
        return None

    def generate_hints(self, question_id: str, context: QuestionContext | Any) -> HintSet:
        cached = self._cached(question_id)
        if cached is not None:
            return HintSet(question_id=question_id, hints=cached)

        with self._generation_locks.hold(question_id):
            cached = self._cached(question_id)
            if cached is not None:
                self.context.logger.debug("Hints for %s generated by a concurrent request", question_id)
                return HintSet(question_id=question_id, hints=cached)

            question = context if isinstance(context, QuestionContext) else QuestionContext.model_validate(context)
            hints = self._validated(question_id, self.generator.generate_hints(question_id, question))
            self.store.save_hints(question_id, hints)
            self.context.logger.info("Stored %s hints", len(hints), extra={"question_id": question_id})
            self.context.record_event("hints_generated", f"Generated hints for {question_id}", {"question_id": question_id})
            return HintSet(question_id=question_id, hints=hints)

    def get_hint(self, question_id: str, n: int) -> str | None:
        """Return the 1-indexed ``n``th stored hint; never triggers generation."""

        hints = self._cached(question_id)
        if hints is None or not 1 <= n <= len(hints):
            return None
        return hints[n - 1]

    def reveal_next_hint(self, learner_id: str, question_id: str) -> HintReveal:
        """Hand the learner their next stored hint, up to the reveal limit."""

        with self._reveal_locks.hold((learner_id, question_id)):
            used = self.store.hints_used(learner_id, question_id)
            if used >= self.reveal_limit:
                raise HintLimitReachedError(
                    f"All {self.reveal_limit} hints have been used for question {question_id}"
                )
            hint_number = used + 1
            hint = self.get_hint(question_id, hint_number)
            if hint is None:
                raise LookupError(f"No hints stored for question {question_id}")
            self.store.record_hint_used(learner_id, question_id, hint_number)
        return HintReveal(hint_number=hint_number, hint_text=hint, remaining_hints=self.reveal_limit - hint_number)

    def hints_used(self, learner_id: str, question_id: str) -> int:
        return self.store.hints_used(learner_id, question_id)

    def solution_unlocked(self, learner_id: str, question_id: str) -> bool:
        return self.store.hints_used(learner_id, question_id) >= self.reveal_limit

    @staticmethod
    def _validated(question_id: str, hints: Sequence[Any]) -> Tuple[str, str, str]:
        if isinstance(hints, str) or len(hints) != HINTS_PER_QUESTION:
            count = 1 if isinstance(hints, str) else len(hints)
            raise ParseError(f"Expected exactly {HINTS_PER_QUESTION} hints for {question_id}, received {count}")
        first, second, third = (str(hint).strip() for hint in hints)
        return first, second, third


__all__ = ["HintCache", "HintGenerator"]
