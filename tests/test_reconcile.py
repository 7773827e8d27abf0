"""Tests for the link engine."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from batchlink.models.production import DeliveryOrder
from batchlink.services.batches import BatchRepository
from batchlink.services.errors import PersistError, RetrievalError
from batchlink.services.linker import InMemoryLinkApplier, SqlLinkApplier
from batchlink.services.matching import LinkState, token_set_similarity
from batchlink.services.orders import CandidateRetriever, InMemoryOrderStore, SqlOrderStore
from batchlink.services.reconcile import BatchLinkEngine, LinkRunSummary, sweep_open_batches
from factories import PLANT_TZ, at, make_batch, make_batch_row, make_order


def build_engine(orders=(), applier=None, **kwargs):
    store = InMemoryOrderStore(orders)
    retriever = CandidateRetriever(store, plant_tz=PLANT_TZ)
    return BatchLinkEngine(retriever, applier or InMemoryLinkApplier(), **kwargs), store


class TestBatchLinkEngine:
    """Tests for BatchLinkEngine."""

    @pytest.mark.asyncio
    async def test_reconcile_auto_links(self):
        applier = InMemoryLinkApplier()
        engine, _ = build_engine([make_order()], applier)

        decision = await engine.reconcile(make_batch())

        assert decision.state == LinkState.AUTO_LINKED
        assert decision.linked_order_id == "ORD-001"
        assert applier.decisions["BATCH-001"] == decision
        assert applier.calls == 1

    @pytest.mark.asyncio
    async def test_evaluate_does_not_apply(self):
        applier = InMemoryLinkApplier()
        engine, _ = build_engine([make_order()], applier)

        decision = await engine.evaluate(make_batch())

        assert decision.state == LinkState.AUTO_LINKED
        assert applier.calls == 0

    @pytest.mark.asyncio
    async def test_no_candidates_is_no_match(self):
        applier = InMemoryLinkApplier()
        engine, _ = build_engine([], applier)

        decision = await engine.reconcile(make_batch())

        assert decision.state == LinkState.NO_MATCH
        assert decision.confidence == 0
        assert decision.linked_order_id is None
        assert applier.calls == 1

    @pytest.mark.asyncio
    async def test_retrieval_failure_writes_nothing(self):
        applier = InMemoryLinkApplier()
        retriever = MagicMock()
        retriever.find_candidates = AsyncMock(side_effect=RetrievalError("down"))
        engine = BatchLinkEngine(retriever, applier)

        with pytest.raises(RetrievalError):
            await engine.reconcile(make_batch())

        assert applier.calls == 0
        assert applier.decisions == {}

    @pytest.mark.asyncio
    async def test_persist_failure_propagates(self):
        applier = MagicMock()
        applier.apply_decision = AsyncMock(side_effect=PersistError("disk full", "BATCH-001"))
        engine, _ = build_engine([make_order()], applier)

        with pytest.raises(PersistError):
            await engine.reconcile(make_batch())

        applier.apply_decision.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_late_order_upgrades_no_match(self):
        """Test a rerun after the order arrives links the batch."""
        applier = InMemoryLinkApplier()
        engine, store = build_engine([], applier)

        first = await engine.reconcile(make_batch())
        store.add(make_order())
        second = await engine.reconcile(make_batch())

        assert first.state == LinkState.NO_MATCH
        assert second.state == LinkState.AUTO_LINKED
        assert applier.decisions["BATCH-001"] == second

    @pytest.mark.asyncio
    async def test_utc_batch_against_naive_plant_time(self):
        """Test a naive order time is read in the plant zone, not the batch's."""
        engine, _ = build_engine([make_order(scheduled_time=datetime(2026, 2, 14, 14, 0))])
        batch = make_batch(timestamp=datetime(2026, 2, 14, 13, 0, tzinfo=UTC))

        decision = await engine.evaluate(batch)

        assert decision.candidates[0].scores.time == 25
        assert decision.confidence == 100

    @pytest.mark.asyncio
    async def test_similarity_is_configurable(self):
        order = make_order(client_name="Corp Acme Holdings")
        containment, _ = build_engine([order])
        token_set, _ = build_engine([order], similarity=token_set_similarity)

        default = await containment.evaluate(make_batch())
        tokens = await token_set.evaluate(make_batch())

        assert default.candidates[0].scores.client == 0
        assert tokens.candidates[0].scores.client == 25


class TestReconcileMany:
    """Tests for reconcile_many."""

    @pytest.mark.asyncio
    async def test_summary_counts(self):
        engine, _ = build_engine(
            [
                make_order(id="ORD-A"),
                make_order(
                    id="ORD-B",
                    client_name="Beta Ltd",
                    scheduled_time=at(9, 0),
                    formula_code="C30",
                ),
            ]
        )
        batches = [
            make_batch(id="B-AUTO"),
            make_batch(id="B-REVIEW", timestamp=at(15, 10), formula_code="C30"),
            make_batch(id="B-NONE", client_name="Nobody", formula_code="X1", timestamp=at(20)),
        ]

        summary = await engine.reconcile_many(batches, concurrency=2)

        assert summary.batches_processed == 3
        assert summary.auto_linked == 1
        assert summary.pending_review == 1
        assert summary.no_match == 1
        assert summary.errors == []
        assert summary.duration_seconds >= 0

    @pytest.mark.asyncio
    async def test_failures_are_collected(self):
        applier = MagicMock()

        async def apply(decision):
            if decision.batch_id == "B-BAD":
                raise PersistError("write failed", decision.batch_id)

        applier.apply_decision = AsyncMock(side_effect=apply)
        engine, _ = build_engine([make_order()], applier)

        summary = await engine.reconcile_many([make_batch(id="B-OK"), make_batch(id="B-BAD")])

        assert summary.batches_processed == 2
        assert summary.auto_linked == 1
        assert summary.errors == ["B-BAD: write failed"]

    @pytest.mark.asyncio
    async def test_empty(self):
        engine, _ = build_engine()

        summary = await engine.reconcile_many([])

        assert summary.to_dict()["batches_processed"] == 0


class TestLinkRunSummary:
    """Tests for LinkRunSummary."""

    def test_to_dict(self):
        summary = LinkRunSummary(batches_processed=2, auto_linked=1, no_match=1)

        assert summary.to_dict() == {
            "batches_processed": 2,
            "auto_linked": 1,
            "pending_review": 0,
            "no_match": 1,
            "errors": [],
            "duration_seconds": 0.0,
        }


class TestSweep:
    """Tests for sweep_open_batches."""

    @pytest.mark.asyncio
    async def test_sweeps_open_batches(self):
        engine, _ = build_engine([make_order()])
        repository = MagicMock()
        repository.open_batches = AsyncMock(return_value=[make_batch()])

        summary = await sweep_open_batches(engine, repository, lookback_days=3)

        assert summary.auto_linked == 1
        since = repository.open_batches.await_args.args[0]
        assert since.tzinfo is not None
        assert datetime.now(since.tzinfo) - since >= timedelta(days=3)

    @pytest.mark.asyncio
    async def test_end_to_end_over_database(self, session_factory):
        """Test a sweep links a stored batch to a stored order."""
        now = datetime.now(PLANT_TZ).replace(second=0, microsecond=0) - timedelta(hours=1)
        async with session_factory() as session:
            session.add(make_batch_row(id="B-DB", batch_datetime=now.replace(tzinfo=None)))
            session.add(
                DeliveryOrder(
                    id="ORD-DB",
                    client_name="acme corp",
                    formula_code="b25",
                    volume_m3=make_order().volume_m3,
                    delivery_date=now.date(),
                    departure_time=now.time(),
                )
            )
            await session.commit()

        engine = BatchLinkEngine(
            CandidateRetriever(SqlOrderStore(session_factory, PLANT_TZ), PLANT_TZ),
            SqlLinkApplier(session_factory),
        )
        repository = BatchRepository(session_factory, PLANT_TZ)

        summary = await sweep_open_batches(engine, repository)
        status = await repository.link_status("B-DB")

        assert summary.auto_linked == 1
        assert status["state"] == "auto_linked"
        assert status["linked_order_id"] == "ORD-DB"
        assert await repository.open_batches(now - timedelta(days=1)) == []
