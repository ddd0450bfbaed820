"""Append-only JSONL trail of degraded-mode decisions."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, Field


class ProvenanceEvent(BaseModel):
    """Structured record for an orchestration decision."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stage: str = Field(..., description="Decision category, e.g. 'fallback' or 'execution'.")
    message: str = Field(..., description="Human-readable description of the event.")
    agent: str = Field(default="devlab")
    payload: Dict[str, Any] = Field(default_factory=dict)


class ProvenanceLogger:
    """JSONL logger so operators can spot when synthetic data was served."""

    def __init__(self, output_path: Path):
        self.output_path = output_path
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(self, event: ProvenanceEvent | Dict[str, Any]) -> ProvenanceEvent:
        """Write a single event to disk and return the normalized object."""
        if not isinstance(event, ProvenanceEvent):
            event = ProvenanceEvent(**event)
        line = event.model_dump_json()
        with self._lock, self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        return event

    def extend(self, events: Iterable[ProvenanceEvent | Dict[str, Any]]) -> None:
        """Batch-write multiple events."""
        for event in events:
            self.log(event)

    def read(self) -> List[ProvenanceEvent]:
        if not self.output_path.exists():
            return []
        lines = self.output_path.read_text(encoding="utf-8").splitlines()
        return [ProvenanceEvent.model_validate_json(line) for line in lines if line.strip()]


__all__ = ["ProvenanceEvent", "ProvenanceLogger"]
