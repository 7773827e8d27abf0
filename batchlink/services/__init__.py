"""Services for batch linking."""

from .batches import BatchRepository
from .errors import BatchNotFoundError, LinkEngineError, PersistError, RetrievalError
from .linker import InMemoryLinkApplier, LinkApplier, SqlLinkApplier
from .orders import CandidateRetriever, InMemoryOrderStore, OrderStore, SqlOrderStore
from .reconcile import BatchLinkEngine, LinkRunSummary, sweep_open_batches
from .scheduler import LinkScheduler

__all__ = [
    "BatchRepository",
    "CandidateRetriever",
    "OrderStore",
    "SqlOrderStore",
    "InMemoryOrderStore",
    "LinkApplier",
    "SqlLinkApplier",
    "InMemoryLinkApplier",
    "BatchLinkEngine",
    "LinkRunSummary",
    "sweep_open_batches",
    "LinkScheduler",
    "LinkEngineError",
    "RetrievalError",
    "PersistError",
    "BatchNotFoundError",
]
