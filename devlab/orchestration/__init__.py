"""Context object and wiring for the orchestration layer.

Import ``devlab.orchestration.bootstrap`` explicitly for the service
factory; it pulls in every client.
"""

from __future__ import annotations

from .context import ROOT_LOGGER_NAME, OrchestrationContext

__all__ = ["OrchestrationContext", "ROOT_LOGGER_NAME"]
