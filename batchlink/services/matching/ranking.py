"""Composite scoring and candidate ranking."""

from collections.abc import Iterable
from dataclasses import dataclass

from .factors import ScoreBreakdown, Similarity, containment_similarity, score_candidate
from .policy import DEFAULT_POLICY, LinkPolicy
from .records import BatchRecord, OrderRecord


@dataclass(frozen=True)
class RankedCandidate:
    """An order scored against a batch."""

    order: OrderRecord
    scores: ScoreBreakdown

    @property
    def confidence(self) -> int:
        return self.scores.confidence

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "order_id": self.order.id,
            "confidence": self.confidence,
            "scores": self.scores.to_dict(),
        }


def _sort_key(candidate: RankedCandidate) -> tuple:
    # Ties: stronger client evidence, then closer time, then lowest order id
    return (
        -candidate.confidence,
        -candidate.scores.client,
        -candidate.scores.time,
        candidate.order.id,
    )


def rank(
    batch: BatchRecord,
    candidates: Iterable[OrderRecord],
    policy: LinkPolicy = DEFAULT_POLICY,
    similarity: Similarity = containment_similarity,
) -> list[RankedCandidate]:
    """Score every candidate and sort best first.

    The ordering does not depend on the order candidates were retrieved in,
    so replaying a run over the same inputs ranks identically.
    """
    scored = [
        RankedCandidate(order=order, scores=score_candidate(batch, order, policy, similarity))
        for order in candidates
    ]
    return sorted(scored, key=_sort_key)
