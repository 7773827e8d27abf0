"""Three-state link decision over the top-ranked candidate."""

from dataclasses import dataclass, field
from enum import Enum

from .policy import DEFAULT_POLICY, LinkPolicy
from .ranking import RankedCandidate
from .records import BatchRecord


class LinkState(str, Enum):
    """Outcome of one reconciliation run."""

    AUTO_LINKED = "auto_linked"
    PENDING_REVIEW = "pending_review"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class LinkDecision:
    """Decision for a single batch.

    linked_order_id is set only for AUTO_LINKED and PENDING_REVIEW.
    """

    batch_id: str
    state: LinkState
    confidence: int
    linked_order_id: str | None = None
    candidates: tuple[RankedCandidate, ...] = field(default_factory=tuple)

    @property
    def is_linked(self) -> bool:
        return self.linked_order_id is not None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "batch_id": self.batch_id,
            "state": self.state.value,
            "confidence": self.confidence,
            "linked_order_id": self.linked_order_id,
            "candidates": [c.to_dict() for c in self.candidates],
        }


def classify(confidence: int, policy: LinkPolicy = DEFAULT_POLICY) -> LinkState:
    """Map a confidence to its link state.

    Returns:
        AUTO_LINKED at or above the auto-link threshold, PENDING_REVIEW at or
        above the review threshold, NO_MATCH otherwise
    """
    if confidence >= policy.auto_link_threshold:
        return LinkState.AUTO_LINKED
    elif confidence >= policy.review_threshold:
        return LinkState.PENDING_REVIEW
    else:
        return LinkState.NO_MATCH


def decide(
    batch: BatchRecord,
    ranked: list[RankedCandidate],
    policy: LinkPolicy = DEFAULT_POLICY,
) -> LinkDecision:
    """Build the decision for a batch from its ranked candidates."""
    if not ranked:
        return LinkDecision(batch_id=batch.id, state=LinkState.NO_MATCH, confidence=0)

    best = ranked[0]
    state = classify(best.confidence, policy)
    return LinkDecision(
        batch_id=batch.id,
        state=state,
        confidence=best.confidence,
        linked_order_id=best.order.id if state != LinkState.NO_MATCH else None,
        candidates=tuple(ranked[: policy.top_candidates]),
    )
