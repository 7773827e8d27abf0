"""Link applier - persists link decisions against production batches."""

import logging
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from batchlink.models.production import LinkCandidate, ProductionBatch
from batchlink.services.errors import PersistError
from batchlink.services.matching.decision import LinkDecision, LinkState

logger = logging.getLogger(__name__)


class LinkApplier(Protocol):
    """Write side of a reconciliation run.

    Implementations overwrite any previous decision for the batch and must be
    idempotent. Failures are raised as PersistError.
    """

    async def apply_decision(self, decision: LinkDecision) -> None: ...


def _candidate_rows(decision: LinkDecision) -> list[tuple]:
    return [
        (
            c.order.id,
            rank,
            c.confidence,
            c.scores.time,
            c.scores.client,
            c.scores.volume,
            c.scores.formula,
        )
        for rank, c in enumerate(decision.candidates, start=1)
    ]


class SqlLinkApplier:
    """Writes decisions to production_batches and link_candidates."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def apply_decision(self, decision: LinkDecision) -> None:
        """Persist a decision, replacing the batch's previous one.

        Raises:
            PersistError: If the batch is missing or the write fails
        """
        try:
            async with self.session_factory() as session:
                batch = await session.get(ProductionBatch, decision.batch_id)
                if batch is None:
                    raise PersistError(
                        f"Cannot link unknown batch {decision.batch_id}",
                        batch_id=decision.batch_id,
                    )

                existing = await self._load_candidates(session, decision.batch_id)
                if self._is_current(batch, existing, decision):
                    logger.debug(f"Batch {decision.batch_id} already holds this decision")
                    return

                if decision.state == LinkState.AUTO_LINKED:
                    await self._warn_shared_order(session, decision)

                batch.link_status = decision.state.value
                batch.linked_order_id = decision.linked_order_id
                batch.link_confidence = decision.confidence
                batch.linked_at = datetime.now(UTC) if decision.is_linked else None
                batch.link_attempts = (batch.link_attempts or 0) + 1

                await session.execute(
                    delete(LinkCandidate).where(LinkCandidate.batch_id == decision.batch_id)
                )
                session.add_all(
                    LinkCandidate(
                        batch_id=decision.batch_id,
                        order_id=order_id,
                        rank=rank,
                        confidence=confidence,
                        time_score=time_score,
                        client_score=client_score,
                        volume_score=volume_score,
                        formula_score=formula_score,
                    )
                    for (
                        order_id,
                        rank,
                        confidence,
                        time_score,
                        client_score,
                        volume_score,
                        formula_score,
                    ) in _candidate_rows(decision)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistError(
                f"Failed to persist decision for {decision.batch_id}: {e}",
                batch_id=decision.batch_id,
            ) from e

        logger.info(
            f"Batch {decision.batch_id} -> {decision.state.value} "
            f"(order={decision.linked_order_id}, confidence={decision.confidence})"
        )

    async def _load_candidates(self, session: AsyncSession, batch_id: str) -> list[tuple]:
        result = await session.execute(
            select(LinkCandidate)
            .where(LinkCandidate.batch_id == batch_id)
            .order_by(LinkCandidate.rank)
        )
        return [
            (
                row.order_id,
                row.rank,
                row.confidence,
                row.time_score,
                row.client_score,
                row.volume_score,
                row.formula_score,
            )
            for row in result.scalars().all()
        ]

    def _is_current(
        self,
        batch: ProductionBatch,
        existing: list[tuple],
        decision: LinkDecision,
    ) -> bool:
        return (
            batch.link_status == decision.state.value
            and batch.linked_order_id == decision.linked_order_id
            and batch.link_confidence == decision.confidence
            and existing == _candidate_rows(decision)
        )

    async def _warn_shared_order(self, session: AsyncSession, decision: LinkDecision) -> None:
        """Log when another batch is already auto-linked to the same order.

        Several batches per order is allowed (split deliveries), so this only
        surfaces it.
        """
        result = await session.execute(
            select(ProductionBatch.id).where(
                ProductionBatch.linked_order_id == decision.linked_order_id,
                ProductionBatch.link_status == LinkState.AUTO_LINKED.value,
                ProductionBatch.id != decision.batch_id,
            )
        )
        others = list(result.scalars().all())
        if others:
            logger.warning(
                f"Order {decision.linked_order_id} auto-linked to batch {decision.batch_id}, "
                f"already auto-linked to {', '.join(sorted(others))}"
            )


class InMemoryLinkApplier:
    """Keeps the latest decision per batch in a dict."""

    def __init__(self):
        self.decisions: dict[str, LinkDecision] = {}
        self.calls = 0

    async def apply_decision(self, decision: LinkDecision) -> None:
        self.calls += 1
        self.decisions[decision.batch_id] = decision
