"""Tunable scoring and decision policy for batch linking."""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal


@dataclass(frozen=True)
class LinkPolicy:
    """Weights, windows and thresholds used by the scorers and the decision.

    Factor caps: client 35, time 25, volume 25, formula 15. Client identity is
    the strongest signal; formula code is only a tie-breaker since several
    orders on one day often share a mix.
    """

    # Time proximity (max 25)
    time_window: timedelta = timedelta(hours=2)
    time_tiers: tuple[tuple[timedelta, int], ...] = (
        (timedelta(minutes=30), 25),
        (timedelta(minutes=60), 20),
    )
    time_in_window_floor: int = 15
    time_unknown_score: int = 10

    # Client name (max 35)
    client_exact_score: int = 35
    client_partial_score: int = 25

    # Volume proximity (max 25), relative difference -> points
    volume_tiers: tuple[tuple[Decimal, int], ...] = (
        (Decimal("0.02"), 25),
        (Decimal("0.05"), 20),
        (Decimal("0.10"), 15),
    )

    # Formula code (max 15)
    formula_score: int = 15

    # Decision thresholds
    auto_link_threshold: int = 90
    review_threshold: int = 70

    # Candidates kept on the decision for review tooling
    top_candidates: int = 5

    @property
    def time_max(self) -> int:
        return max([self.time_in_window_floor, self.time_unknown_score] + [p for _, p in self.time_tiers])

    @property
    def client_max(self) -> int:
        return max(self.client_exact_score, self.client_partial_score)

    @property
    def volume_max(self) -> int:
        return max((p for _, p in self.volume_tiers), default=0)

    @property
    def max_confidence(self) -> int:
        """Highest confidence a single candidate can reach."""
        return self.time_max + self.client_max + self.volume_max + self.formula_score

    def validate(self) -> None:
        """Reject policies that break the 0-100 confidence scale.

        Raises:
            ValueError: If any points are negative, tiers are unsorted, caps
                sum past 100 or thresholds are out of order
        """
        points = {
            "time_in_window_floor": self.time_in_window_floor,
            "time_unknown_score": self.time_unknown_score,
            "client_exact_score": self.client_exact_score,
            "client_partial_score": self.client_partial_score,
            "formula_score": self.formula_score,
        }
        points.update({f"time_tiers[{i}]": p for i, (_, p) in enumerate(self.time_tiers)})
        points.update({f"volume_tiers[{i}]": p for i, (_, p) in enumerate(self.volume_tiers)})
        negative = sorted(name for name, value in points.items() if value < 0)
        if negative:
            raise ValueError(f"Negative points in policy: {', '.join(negative)}")

        for name, tiers in (("time_tiers", self.time_tiers), ("volume_tiers", self.volume_tiers)):
            limits = [limit for limit, _ in tiers]
            if limits != sorted(limits):
                raise ValueError(f"{name} must be sorted by ascending limit")

        if self.max_confidence > 100:
            raise ValueError(f"Factor caps sum to {self.max_confidence}, above 100")
        if not 0 <= self.review_threshold <= self.auto_link_threshold <= 100:
            raise ValueError(
                f"Thresholds out of order: review={self.review_threshold} "
                f"auto_link={self.auto_link_threshold}"
            )
        if self.time_window <= timedelta(0):
            raise ValueError("time_window must be positive")
        if self.top_candidates < 1:
            raise ValueError("top_candidates must be at least 1")


DEFAULT_POLICY = LinkPolicy()
