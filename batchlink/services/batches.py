"""Read access to production batches awaiting a link."""

from datetime import datetime, tzinfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from batchlink.models.production import LinkCandidate, ProductionBatch
from batchlink.services.errors import BatchNotFoundError, RetrievalError
from batchlink.services.matching.decision import LinkState
from batchlink.services.matching.records import BatchRecord
from batchlink.services.orders import to_plant_time

# Statuses a sweep re-evaluates; auto-linked batches are settled
OPEN_STATUSES = ("unlinked", LinkState.PENDING_REVIEW.value, LinkState.NO_MATCH.value)


class BatchRepository:
    """Loads ProductionBatch rows as BatchRecords."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], plant_tz: tzinfo):
        self.session_factory = session_factory
        self.plant_tz = plant_tz

    def _to_record(self, row: ProductionBatch) -> BatchRecord:
        return BatchRecord(
            id=row.id,
            timestamp=to_plant_time(row.batch_datetime, self.plant_tz),
            client_name=row.client_name,
            formula_code=row.formula,
            total_volume_m3=row.total_volume_m3,
        )

    async def get(self, batch_id: str) -> BatchRecord:
        """Load one batch.

        Raises:
            BatchNotFoundError: If no batch has this ID
            RetrievalError: If the query fails
        """
        try:
            async with self.session_factory() as session:
                row = await session.get(ProductionBatch, batch_id)
        except SQLAlchemyError as e:
            raise RetrievalError(f"Batch query for {batch_id} failed: {e}") from e

        if row is None:
            raise BatchNotFoundError(batch_id)
        return self._to_record(row)

    async def open_batches(self, since: datetime) -> list[BatchRecord]:
        """Batches produced since a point in time that are not auto-linked.

        Raises:
            RetrievalError: If the query fails
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ProductionBatch)
                    .where(
                        ProductionBatch.batch_datetime >= since,
                        ProductionBatch.link_status.in_(OPEN_STATUSES),
                    )
                    .order_by(ProductionBatch.batch_datetime, ProductionBatch.id)
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RetrievalError(f"Open batch query since {since} failed: {e}") from e

        return [self._to_record(row) for row in rows]

    async def link_status(self, batch_id: str) -> dict:
        """Currently persisted link state and candidates of a batch.

        Raises:
            BatchNotFoundError: If no batch has this ID
        """
        async with self.session_factory() as session:
            row = await session.get(ProductionBatch, batch_id)
            if row is None:
                raise BatchNotFoundError(batch_id)

            result = await session.execute(
                select(LinkCandidate)
                .where(LinkCandidate.batch_id == batch_id)
                .order_by(LinkCandidate.rank)
            )
            candidates = [
                {
                    "order_id": c.order_id,
                    "confidence": c.confidence,
                    "scores": {
                        "time": c.time_score,
                        "client": c.client_score,
                        "volume": c.volume_score,
                        "formula": c.formula_score,
                    },
                }
                for c in result.scalars().all()
            ]

            return {
                "batch_id": row.id,
                "state": row.link_status,
                "confidence": row.link_confidence or 0,
                "linked_order_id": row.linked_order_id,
                "linked_at": row.linked_at,
                "candidates": candidates,
            }
