"""Context object threaded through every orchestration component."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from devlab.core.config import OrchestrationConfig
from devlab.core.provenance import ProvenanceEvent, ProvenanceLogger

ROOT_LOGGER_NAME = "devlab"


class OrchestrationContext(BaseModel):
    """Config, leveled logger and optional provenance trail for one component."""

    config: OrchestrationConfig = Field(default_factory=OrchestrationConfig)
    logger: logging.Logger = Field(default_factory=lambda: logging.getLogger(ROOT_LOGGER_NAME))
    provenance: Optional[ProvenanceLogger] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def default(cls, name: str | None = None) -> "OrchestrationContext":
        ctx = cls()
        return ctx.child(name) if name else ctx

    def child(self, name: str) -> "OrchestrationContext":
        """Return a copy whose logger is a child of the current one."""
        return self.model_copy(update={"logger": self.logger.getChild(name)})

    def record_fallback(self, capability: str, reason: str, payload: Dict[str, Any] | None = None) -> None:
        """Log that synthetic data replaced a real dependency response."""

        details = {"capability": capability, "reason": reason, **(payload or {})}
        self.logger.warning("Falling back to synthetic %s payload: %s", capability, reason, extra={"fallback": details})
        if self.provenance is not None:
            self.provenance.log(
                ProvenanceEvent(
                    stage="fallback",
                    message=f"{capability} served from fallback generator",
                    agent=self.logger.name,
                    payload=details,
                )
            )

    def record_event(self, stage: str, message: str, payload: Dict[str, Any] | None = None) -> None:
        if self.provenance is None:
            return
        self.provenance.log(
            ProvenanceEvent(stage=stage, message=message, agent=self.logger.name, payload=payload or {})
        )


__all__ = ["OrchestrationContext", "ROOT_LOGGER_NAME"]
