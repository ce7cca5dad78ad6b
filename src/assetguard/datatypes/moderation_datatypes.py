"""
Verdict and decision types produced by the moderation pipeline.

Key Features:
- `VerdictSource`: which classifier produced a verdict.
- `ModerationVerdict`: normalized output of one classifier call. Raw third-party
  JSON never travels past the classifier adapters; this is what they return.
- `DecisionOutcome` / `ModerationDecision`: the terminal publish/reject result
  of one pipeline run, carrying every verdict gathered for the audit trail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class VerdictSource(Enum):
    """Classifier that produced a verdict."""

    IMAGE = "image"
    TEXT = "text"

    def __str__(self) -> str:
        return self.value


class DecisionOutcome(Enum):
    """Terminal outcome of a pipeline run."""

    PUBLISH = "publish"
    REJECT = "reject"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class ModerationVerdict:
    """Outcome of a single classifier invocation.

    Attributes:
        source: Classifier that produced the verdict.
        is_flagged: True when the content should not be published.
        confidence: Classifier confidence in [0, 1]; 0.0 when the source supplies none.
        category: Free-form classification label.
        reason: Human-readable explanation. Never empty on a flagged verdict.
        field_label: For text verdicts, the asset field that was checked.
        degraded: True when the verdict is a fail-open placeholder for a failed call.
    """

    source: VerdictSource
    is_flagged: bool
    confidence: float = 0.0
    category: str = ""
    reason: str = ""
    field_label: str | None = None
    degraded: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.is_flagged and not self.reason.strip():
            raise ValueError("a flagged verdict must carry a non-empty reason")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the verdict for audit details."""
        return {
            "source": self.source.value,
            "isFlagged": self.is_flagged,
            "confidence": self.confidence,
            "category": self.category,
            "reason": self.reason,
            "field": self.field_label,
            "degraded": self.degraded,
        }


@dataclass(slots=True)
class ModerationDecision:
    """Terminal decision for one asset evaluation.

    Attributes:
        outcome: Publish or reject.
        reason: User-facing reason string (rejection reason, empty when published).
        confidence: Confidence of the verdict that drove the decision, or the image
            confidence on publish.
        category: Category of the deciding verdict.
        audit_action: Audit tag recorded for this decision.
        verdicts: Every verdict gathered during the run, in evaluation order.
    """

    outcome: DecisionOutcome
    reason: str
    confidence: float
    category: str
    audit_action: str
    verdicts: List[ModerationVerdict] = field(default_factory=list)

    @property
    def is_rejected(self) -> bool:
        return self.outcome is DecisionOutcome.REJECT
