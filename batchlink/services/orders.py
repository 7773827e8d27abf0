"""Candidate retrieval - same-day delivery orders for a batch."""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, tzinfo
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from batchlink.models.production import DeliveryOrder
from batchlink.services.errors import RetrievalError
from batchlink.services.matching.records import BatchRecord, OrderRecord

logger = logging.getLogger(__name__)


class OrderStore(Protocol):
    """Read-only query interface to the delivery-order store."""

    async def find_orders_by_date(self, day: date) -> list[OrderRecord]: ...


def to_plant_time(value: datetime, plant_tz: tzinfo) -> datetime:
    """Express a timestamp in plant-local time.

    Naive values are taken to already be plant wall-clock time.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=plant_tz)
    return value.astimezone(plant_tz)


class SqlOrderStore:
    """Order store backed by the delivery_orders table.

    Opens a short-lived session per query so concurrent runs never share one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        plant_tz: tzinfo,
        limit: int | None = None,
    ):
        self.session_factory = session_factory
        self.plant_tz = plant_tz
        self.limit = limit

    async def find_orders_by_date(self, day: date) -> list[OrderRecord]:
        """Fetch every order scheduled for delivery on a plant-local date.

        Raises:
            RetrievalError: If the query fails, or the day holds more orders
                than the configured limit
        """
        query = (
            select(DeliveryOrder)
            .where(DeliveryOrder.delivery_date == day)
            .order_by(DeliveryOrder.id)
        )
        if self.limit is not None:
            # One extra row tells a full day apart from a truncated one
            query = query.limit(self.limit + 1)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise RetrievalError(f"Order query for {day} failed: {e}") from e

        if self.limit is not None and len(rows) > self.limit:
            logger.error(f"Order query for {day} exceeds the limit of {self.limit} rows")
            raise RetrievalError(
                f"More than {self.limit} orders on {day}, refusing a partial candidate set"
            )

        return [self._to_record(row) for row in rows]

    def _to_record(self, row: DeliveryOrder) -> OrderRecord:
        # Departure from the plant is the closer signal; planned time is the fallback
        wall_clock = row.departure_time or row.planned_time
        scheduled = (
            datetime.combine(row.delivery_date, wall_clock, tzinfo=self.plant_tz)
            if wall_clock is not None
            else None
        )
        return OrderRecord(
            id=row.id,
            client_name=row.client_name,
            formula_code=row.formula_code,
            volume_m3=row.volume_m3,
            delivery_date=row.delivery_date,
            scheduled_time=scheduled,
        )


class InMemoryOrderStore:
    """Order store over a fixed list of records."""

    def __init__(self, orders: Iterable[OrderRecord] = ()):
        self._by_date: dict[date, list[OrderRecord]] = defaultdict(list)
        for order in orders:
            self.add(order)

    def add(self, order: OrderRecord) -> None:
        self._by_date[order.delivery_date].append(order)

    async def find_orders_by_date(self, day: date) -> list[OrderRecord]:
        return list(self._by_date.get(day, []))


class CandidateRetriever:
    """Finds the candidate orders for a batch.

    Candidates are every order on the batch's plant-local calendar date, with
    scheduled times expressed in the plant zone. A failed or timed-out query
    raises RetrievalError; partial or cached results are never substituted.
    """

    DEFAULT_TIMEOUT_SECONDS = 5.0

    def __init__(
        self,
        store: OrderStore,
        plant_tz: tzinfo,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.plant_tz = plant_tz
        self.timeout_seconds = timeout_seconds

    def plant_date(self, batch: BatchRecord) -> date:
        """Calendar date of the batch in plant-local time."""
        return to_plant_time(batch.timestamp, self.plant_tz).date()

    async def find_candidates(self, batch: BatchRecord) -> list[OrderRecord]:
        """Fetch all orders on the batch's date.

        Raises:
            RetrievalError: If the store fails or does not answer in time
        """
        day = self.plant_date(batch)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                orders = await self.store.find_orders_by_date(day)
        except TimeoutError as e:
            raise RetrievalError(
                f"Order store timed out after {self.timeout_seconds}s for {day}"
            ) from e
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"Order store unavailable for {day}: {e}") from e

        logger.debug(f"Batch {batch.id}: {len(orders)} candidate orders on {day}")
        return [self._localize(order) for order in orders]

    def _localize(self, order: OrderRecord) -> OrderRecord:
        # Naive scheduled times are plant wall-clock, like naive batch timestamps
        if order.scheduled_time is None:
            return order
        return replace(order, scheduled_time=to_plant_time(order.scheduled_time, self.plant_tz))
