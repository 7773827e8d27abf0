"""Configuration from environment variables."""

from datetime import timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings

from batchlink.services.matching.policy import LinkPolicy


class Settings(BaseSettings):
    # App
    log_level: str = "INFO"

    # PostgreSQL (from postgresql-credentials secret)
    postgres_host: str = "postgresql.plant.svc.cluster.local"
    postgres_port: int = 5432
    postgres_user: str = "app"
    postgres_password: str = ""
    postgres_db: str = "app"

    # Plant
    plant_timezone: str = "Africa/Casablanca"

    # Candidate retrieval
    retrieval_timeout_seconds: float = 5.0
    candidate_limit: int | None = None  # unset: every order on the day

    # Link policy
    link_time_window_minutes: int = 120
    link_time_tiers: list[tuple[int, int]] = [(30, 25), (60, 20)]  # (minutes, points)
    link_time_in_window_floor: int = 15
    link_time_unknown_score: int = 10
    link_client_exact_score: int = 35
    link_client_partial_score: int = 25
    link_volume_tiers: list[tuple[Decimal, int]] = [
        (Decimal("0.02"), 25),
        (Decimal("0.05"), 20),
        (Decimal("0.10"), 15),
    ]  # (relative difference, points)
    link_formula_score: int = 15
    link_auto_threshold: int = 90
    link_review_threshold: int = 70
    link_top_candidates: int = 5
    client_similarity: str = "containment"  # containment, token_set

    # Polling sweep
    sweep_enabled: bool = False
    sweep_interval_minutes: int = 15
    sweep_lookback_days: int = 2
    sweep_concurrency: int = 8

    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        """Synchronous database URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def plant_tz(self) -> ZoneInfo:
        """Time zone the batching plant keeps its calendar in."""
        return ZoneInfo(self.plant_timezone)

    def link_policy(self) -> LinkPolicy:
        """Build the scoring/decision policy from the environment."""
        policy = LinkPolicy(
            time_window=timedelta(minutes=self.link_time_window_minutes),
            time_tiers=tuple(
                (timedelta(minutes=minutes), points) for minutes, points in self.link_time_tiers
            ),
            time_in_window_floor=self.link_time_in_window_floor,
            time_unknown_score=self.link_time_unknown_score,
            client_exact_score=self.link_client_exact_score,
            client_partial_score=self.link_client_partial_score,
            volume_tiers=tuple((limit, points) for limit, points in self.link_volume_tiers),
            formula_score=self.link_formula_score,
            auto_link_threshold=self.link_auto_threshold,
            review_threshold=self.link_review_threshold,
            top_candidates=self.link_top_candidates,
        )
        policy.validate()
        return policy

    class Config:
        env_prefix = ""
        case_sensitive = False


settings = Settings()
