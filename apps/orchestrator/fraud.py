"""Map fraud scores to a level and a remediation action."""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Tuple

from .models import FraudAction, FraudAssessment, FraudLevel

# Lower bound of each band is inclusive; the last band also includes 100.
SCORE_BANDS: Tuple[Tuple[float, FraudLevel], ...] = (
    (91, FraudLevel.VERY_HIGH),
    (61, FraudLevel.HIGH),
    (31, FraudLevel.MEDIUM),
    (0, FraudLevel.LOW),
)

LEVEL_ACTIONS: Dict[FraudLevel, FraudAction] = {
    FraudLevel.LOW: FraudAction.PROCEED,
    FraudLevel.MEDIUM: FraudAction.WARNING,
    FraudLevel.HIGH: FraudAction.RESTRICT,
    FraudLevel.VERY_HIGH: FraudAction.BLOCK,
}

DEFAULT_MESSAGE = "Analysis complete"


def coerce_score(value: Any) -> float | None:
    """Return ``value`` as a finite number in [0, 100], or None."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(score) or score < 0 or score > 100:
        return None
    return score


class FraudPolicy:
    """Deterministic score -> level -> action table."""

    def level_for_score(self, score: Any) -> FraudLevel:
        value = coerce_score(score)
        if value is None:
            return FraudLevel.LOW
        for lower_bound, level in SCORE_BANDS:
            if value >= lower_bound:
                return level
        return FraudLevel.LOW

    def action_for_level(self, level: Any) -> FraudAction:
        try:
            return LEVEL_ACTIONS[FraudLevel(level)]
        except ValueError:
            return FraudAction.PROCEED

    def action_for_score(self, score: Any) -> FraudAction:
        return self.action_for_level(self.level_for_score(score))

    def assess(
        self,
        score: Any,
        *,
        details: Mapping[str, Any] | None = None,
        message: str | None = None,
    ) -> FraudAssessment:
        """Build an assessment whose level and action always agree with the score."""

        value = coerce_score(score)
        level = self.level_for_score(value)
        return FraudAssessment(
            fraud_score=value if value is not None else 0,
            fraud_level=level,
            action=self.action_for_level(level),
            detection_details=dict(details or {}),
            message=message or DEFAULT_MESSAGE,
        )

    def assess_payload(self, payload: Mapping[str, Any]) -> FraudAssessment:
        """Build an assessment from a raw model response; any reported level is ignored."""

        details = payload.get("detection_details")
        message = payload.get("message")
        return self.assess(
            payload.get("fraud_score"),
            details=details if isinstance(details, Mapping) else {},
            message=str(message) if message else None,
        )


__all__ = ["FraudPolicy", "LEVEL_ACTIONS", "SCORE_BANDS", "coerce_score"]
