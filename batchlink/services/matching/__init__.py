"""Batch-to-order matching engine."""

from .decision import LinkDecision, LinkState, classify, decide
from .factors import (
    ScoreBreakdown,
    containment_similarity,
    get_similarity,
    normalize_name,
    score_candidate,
    score_client,
    score_formula,
    score_time,
    score_volume,
    token_set_similarity,
)
from .policy import DEFAULT_POLICY, LinkPolicy
from .ranking import RankedCandidate, rank
from .records import BatchRecord, OrderRecord

__all__ = [
    "BatchRecord",
    "OrderRecord",
    "LinkPolicy",
    "DEFAULT_POLICY",
    "ScoreBreakdown",
    "RankedCandidate",
    "LinkDecision",
    "LinkState",
    "normalize_name",
    "containment_similarity",
    "token_set_similarity",
    "get_similarity",
    "score_time",
    "score_client",
    "score_volume",
    "score_formula",
    "score_candidate",
    "rank",
    "classify",
    "decide",
]
