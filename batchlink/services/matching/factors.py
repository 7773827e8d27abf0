"""Factor scorers for batch-to-order linking.

Each scorer is a pure function of (batch, order, policy) returning a bounded
integer. Missing optional data (no scheduled time, zero batch volume, blank
text) always yields a number, never an exception.
"""

import re
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .policy import DEFAULT_POLICY, LinkPolicy
from .records import BatchRecord, OrderRecord


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points awarded by each factor to one candidate."""

    time: int = 0
    client: int = 0
    volume: int = 0
    formula: int = 0

    @property
    def confidence(self) -> int:
        return self.time + self.client + self.volume + self.formula

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return {
            "time": self.time,
            "client": self.client,
            "volume": self.volume,
            "formula": self.formula,
        }

# (a, b) -> 1.0 for a full match, 0.5 for a partial match, 0.0 otherwise
Similarity = Callable[[str, str], float]

FULL_MATCH = 1.0
PARTIAL_MATCH = 0.5
NO_MATCH = 0.0

# Share of the smaller word set that must appear in the larger one
TOKEN_OVERLAP_THRESHOLD = 0.8


def _fold(text: str) -> str:
    """Strip accents and case-fold."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def normalize_name(text: str) -> str:
    """Case-fold and drop every non-alphanumeric character."""
    return re.sub(r"[\W_]+", "", _fold(text))


def _tokens(text: str) -> set[str]:
    return {t for t in re.split(r"[\W_]+", _fold(text)) if t}


def containment_similarity(a: str, b: str) -> float:
    """Equality or substring containment of the normalized names."""
    na = normalize_name(a)
    nb = normalize_name(b)
    if not na or not nb:
        return NO_MATCH
    if na == nb:
        return FULL_MATCH
    if na in nb or nb in na:
        return PARTIAL_MATCH
    return NO_MATCH


def token_set_similarity(a: str, b: str) -> float:
    """Containment, then word-set overlap for reordered names.

    "Beton Plus SARL" and "SARL Beton Plus" are a partial match here but not
    under plain containment.
    """
    result = containment_similarity(a, b)
    if result > NO_MATCH:
        return result

    words_a = _tokens(a)
    words_b = _tokens(b)
    smaller, larger = (words_a, words_b) if len(words_a) <= len(words_b) else (words_b, words_a)
    if len(smaller) < 2:
        return NO_MATCH

    matched = len(smaller & larger)
    if matched / len(smaller) >= TOKEN_OVERLAP_THRESHOLD:
        return PARTIAL_MATCH
    return NO_MATCH


SIMILARITIES: dict[str, Similarity] = {
    "containment": containment_similarity,
    "token_set": token_set_similarity,
}


def get_similarity(name: str) -> Similarity:
    """Look up a client-name similarity function by its config name."""
    try:
        return SIMILARITIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown client similarity '{name}', expected one of {sorted(SIMILARITIES)}"
        ) from None


def _align(a: datetime, b: datetime) -> tuple[datetime, datetime]:
    """Give a naive datetime the zone of its aware counterpart.

    Candidates from CandidateRetriever already carry the plant zone, so a
    naive batch timestamp ends up read as plant wall-clock time.
    """
    if a.tzinfo is None and b.tzinfo is not None:
        a = a.replace(tzinfo=b.tzinfo)
    elif b.tzinfo is None and a.tzinfo is not None:
        b = b.replace(tzinfo=a.tzinfo)
    return a, b


def score_time(batch: BatchRecord, order: OrderRecord, policy: LinkPolicy = DEFAULT_POLICY) -> int:
    """Time proximity between the batch and the order's scheduled time."""
    if order.scheduled_time is None:
        return policy.time_unknown_score

    batch_time, order_time = _align(batch.timestamp, order.scheduled_time)
    diff = abs(batch_time - order_time)
    if diff > policy.time_window:
        return 0

    for limit, points in policy.time_tiers:
        if diff <= limit:
            return points
    return policy.time_in_window_floor


def score_client(
    batch: BatchRecord,
    order: OrderRecord,
    policy: LinkPolicy = DEFAULT_POLICY,
    similarity: Similarity = containment_similarity,
) -> int:
    """Client name similarity."""
    result = similarity(batch.client_name, order.client_name)
    if result >= FULL_MATCH:
        return policy.client_exact_score
    if result >= PARTIAL_MATCH:
        return policy.client_partial_score
    return 0


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def score_volume(batch: BatchRecord, order: OrderRecord, policy: LinkPolicy = DEFAULT_POLICY) -> int:
    """Relative volume difference, measured against the batch volume."""
    batch_volume = _decimal(batch.total_volume_m3)
    if batch_volume <= 0:
        return 0

    pct_diff = abs(_decimal(order.volume_m3) - batch_volume) / batch_volume
    for limit, points in policy.volume_tiers:
        if pct_diff <= limit:
            return points
    return 0


def score_formula(batch: BatchRecord, order: OrderRecord, policy: LinkPolicy = DEFAULT_POLICY) -> int:
    """Formula code equality or containment, case-insensitive."""
    batch_formula = (batch.formula_code or "").strip().casefold()
    order_formula = (order.formula_code or "").strip().casefold()
    if not batch_formula or not order_formula:
        return 0
    if batch_formula in order_formula or order_formula in batch_formula:
        return policy.formula_score
    return 0


def score_candidate(
    batch: BatchRecord,
    order: OrderRecord,
    policy: LinkPolicy = DEFAULT_POLICY,
    similarity: Similarity = containment_similarity,
) -> ScoreBreakdown:
    """Run all four scorers for one candidate."""
    return ScoreBreakdown(
        time=score_time(batch, order, policy),
        client=score_client(batch, order, policy, similarity),
        volume=score_volume(batch, order, policy),
        formula=score_formula(batch, order, policy),
    )
