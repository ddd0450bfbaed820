"""Persistence for generated hint sets and per-learner hint usage."""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Protocol, Sequence, Tuple

HINTS_PER_QUESTION = 3

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS question_hints (
    question_id TEXT PRIMARY KEY,
    hints TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS hint_usage (
    learner_id TEXT NOT NULL,
    question_id TEXT NOT NULL,
    hints_used INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (learner_id, question_id)
);
"""


def _checked(question_id: str, hints: Sequence[str]) -> Tuple[str, ...]:
    stored = tuple(str(hint) for hint in hints)
    if len(stored) != HINTS_PER_QUESTION:
        raise ValueError(
            f"Refusing to store {len(stored)} hints for {question_id}; expected exactly {HINTS_PER_QUESTION}"
        )
    return stored


class HintStore(Protocol):
    def get_hints(self, question_id: str) -> Tuple[str, ...] | None: ...

    def save_hints(self, question_id: str, hints: Sequence[str]) -> None: ...

    def hints_used(self, learner_id: str, question_id: str) -> int: ...

    def record_hint_used(self, learner_id: str, question_id: str, count: int) -> None: ...


class InMemoryHintStore:
    """Process-local store; every operation is a single dict access under a lock."""

    def __init__(self) -> None:
        self._hints: Dict[str, Tuple[str, ...]] = {}
        self._usage: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def get_hints(self, question_id: str) -> Tuple[str, ...] | None:
        with self._lock:
            return self._hints.get(question_id)

    def save_hints(self, question_id: str, hints: Sequence[str]) -> None:
        stored = _checked(question_id, hints)
        with self._lock:
            self._hints[question_id] = stored

    def hints_used(self, learner_id: str, question_id: str) -> int:
        with self._lock:
            return self._usage.get((learner_id, question_id), 0)

    def record_hint_used(self, learner_id: str, question_id: str, count: int) -> None:
        with self._lock:
            self._usage[(learner_id, question_id)] = count


class SQLiteHintStore:
    """SQLite-backed store: one row per question holding the hints as a JSON array."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        """Create a connection, ensuring the parent directory exists."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as con:
            con.executescript(SCHEMA_SQL)

    def get_hints(self, question_id: str) -> Tuple[str, ...] | None:
        with self._connect() as con:
            row = con.execute("SELECT hints FROM question_hints WHERE question_id = ?", (question_id,)).fetchone()
        if row is None:
            return None
        hints = json.loads(row[0])
        if not isinstance(hints, list) or len(hints) != HINTS_PER_QUESTION:
            return None
        return tuple(str(hint) for hint in hints)

    def save_hints(self, question_id: str, hints: Sequence[str]) -> None:
        stored = _checked(question_id, hints)
        with self._connect() as con:
            con.execute(
                "INSERT OR REPLACE INTO question_hints (question_id, hints) VALUES (?, ?)",
                (question_id, json.dumps(list(stored), ensure_ascii=False)),
            )
            con.commit()

    def hints_used(self, learner_id: str, question_id: str) -> int:
        with self._connect() as con:
            row = con.execute(
                "SELECT hints_used FROM hint_usage WHERE learner_id = ? AND question_id = ?",
                (learner_id, question_id),
            ).fetchone()
        return int(row[0]) if row else 0

    def record_hint_used(self, learner_id: str, question_id: str, count: int) -> None:
        with self._connect() as con:
            con.execute(
                "INSERT OR REPLACE INTO hint_usage (learner_id, question_id, hints_used) VALUES (?, ?, ?)",
                (learner_id, question_id, count),
            )
            con.commit()


__all__ = ["HINTS_PER_QUESTION", "HintStore", "InMemoryHintStore", "SQLiteHintStore"]
