"""Link engine - one batch in, one persisted decision out."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from batchlink.services.batches import BatchRepository
from batchlink.services.linker import LinkApplier
from batchlink.services.matching.decision import LinkDecision, LinkState, decide
from batchlink.services.matching.factors import Similarity, containment_similarity
from batchlink.services.matching.policy import DEFAULT_POLICY, LinkPolicy
from batchlink.services.matching.ranking import rank
from batchlink.services.matching.records import BatchRecord
from batchlink.services.orders import CandidateRetriever

logger = logging.getLogger(__name__)


@dataclass
class LinkRunSummary:
    """Result of reconciling a set of batches."""

    batches_processed: int = 0
    auto_linked: int = 0
    pending_review: int = 0
    no_match: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, decision: LinkDecision) -> None:
        """Count a decision under its state."""
        if decision.state == LinkState.AUTO_LINKED:
            self.auto_linked += 1
        elif decision.state == LinkState.PENDING_REVIEW:
            self.pending_review += 1
        else:
            self.no_match += 1

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "batches_processed": self.batches_processed,
            "auto_linked": self.auto_linked,
            "pending_review": self.pending_review,
            "no_match": self.no_match,
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


class BatchLinkEngine:
    """Links a batch to at most one delivery order.

    Flow:
    1. Retrieve same-day candidate orders
    2. Score each candidate on time, client, volume and formula
    3. Rank candidates, best first
    4. Classify the best confidence into a link state
    5. Apply the decision, once

    Every run recomputes from current data; nothing is carried between runs,
    so runs for different batches may execute concurrently.
    """

    DEFAULT_CONCURRENCY = 8

    def __init__(
        self,
        retriever: CandidateRetriever,
        applier: LinkApplier,
        policy: LinkPolicy = DEFAULT_POLICY,
        similarity: Similarity = containment_similarity,
    ):
        """Initialize engine.

        Args:
            retriever: Same-day candidate lookup
            applier: Persistence for the final decision
            policy: Scoring weights and decision thresholds
            similarity: Client-name similarity function
        """
        self.retriever = retriever
        self.applier = applier
        self.policy = policy
        self.similarity = similarity

    async def evaluate(self, batch: BatchRecord) -> LinkDecision:
        """Compute the decision for a batch without persisting it.

        Raises:
            RetrievalError: If candidates cannot be retrieved
        """
        candidates = await self.retriever.find_candidates(batch)
        ranked = rank(batch, candidates, self.policy, self.similarity)
        decision = decide(batch, ranked, self.policy)

        logger.info(
            f"Batch {batch.id}: {len(candidates)} candidates, best confidence "
            f"{decision.confidence} -> {decision.state.value}"
        )
        return decision

    async def reconcile(self, batch: BatchRecord) -> LinkDecision:
        """Evaluate a batch and apply the decision.

        A retrieval failure aborts before anything is written. Persistence
        failures propagate; retrying is left to the caller.

        Raises:
            RetrievalError: If candidates cannot be retrieved
            PersistError: If the decision cannot be written
        """
        decision = await self.evaluate(batch)
        await self.applier.apply_decision(decision)
        return decision

    async def reconcile_many(
        self,
        batches: Iterable[BatchRecord],
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> LinkRunSummary:
        """Reconcile several batches concurrently.

        A failing batch is logged and counted in errors; the rest still run.
        """
        start_time = datetime.now(UTC)
        summary = LinkRunSummary()
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def run_one(batch: BatchRecord) -> None:
            async with semaphore:
                try:
                    decision = await self.reconcile(batch)
                except Exception as e:
                    logger.error(f"Error linking batch {batch.id}: {e}")
                    summary.errors.append(f"{batch.id}: {e}")
                    return
                summary.record(decision)

        batches = list(batches)
        summary.batches_processed = len(batches)
        await asyncio.gather(*(run_one(batch) for batch in batches))

        summary.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            f"Linked {summary.batches_processed} batches: {summary.auto_linked} auto, "
            f"{summary.pending_review} pending, {summary.no_match} no match, "
            f"{len(summary.errors)} errors"
        )
        return summary


async def sweep_open_batches(
    engine: BatchLinkEngine,
    repository: BatchRepository,
    lookback_days: int = 2,
    concurrency: int = BatchLinkEngine.DEFAULT_CONCURRENCY,
) -> LinkRunSummary:
    """Re-run linking for recent batches that are not auto-linked yet.

    This is the pull trigger: late-arriving orders can move a batch from
    no_match to pending_review or auto_linked on a later sweep.
    """
    since = datetime.now(UTC) - timedelta(days=lookback_days)
    batches = await repository.open_batches(since)
    logger.info(f"Sweeping {len(batches)} open batches since {since:%Y-%m-%d %H:%M}")
    return await engine.reconcile_many(batches, concurrency=concurrency)
