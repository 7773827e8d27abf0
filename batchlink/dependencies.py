"""Wiring of the link engine from settings."""

from batchlink.config import settings
from batchlink.database import async_session_factory
from batchlink.services.batches import BatchRepository
from batchlink.services.linker import SqlLinkApplier
from batchlink.services.matching.factors import get_similarity
from batchlink.services.orders import CandidateRetriever, SqlOrderStore
from batchlink.services.reconcile import BatchLinkEngine


def get_link_engine() -> BatchLinkEngine:
    store = SqlOrderStore(
        async_session_factory,
        plant_tz=settings.plant_tz,
        limit=settings.candidate_limit,
    )
    retriever = CandidateRetriever(
        store,
        plant_tz=settings.plant_tz,
        timeout_seconds=settings.retrieval_timeout_seconds,
    )
    return BatchLinkEngine(
        retriever=retriever,
        applier=SqlLinkApplier(async_session_factory),
        policy=settings.link_policy(),
        similarity=get_similarity(settings.client_similarity),
    )


def get_batch_repository() -> BatchRepository:
    return BatchRepository(async_session_factory, plant_tz=settings.plant_tz)
