"""Batch link API endpoints."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from batchlink.config import settings
from batchlink.dependencies import get_batch_repository, get_link_engine
from batchlink.services.batches import BatchRepository
from batchlink.services.errors import BatchNotFoundError, PersistError, RetrievalError
from batchlink.services.matching.decision import LinkDecision
from batchlink.services.reconcile import BatchLinkEngine, sweep_open_batches

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/links", tags=["links"])


class CandidateScores(BaseModel):
    """Points per factor."""

    time: int
    client: int
    volume: int
    formula: int


class CandidateResponse(BaseModel):
    """A ranked candidate order."""

    order_id: str
    confidence: int
    scores: CandidateScores


class LinkDecisionResponse(BaseModel):
    """Decision for one batch."""

    batch_id: str
    state: str
    confidence: int
    linked_order_id: str | None
    candidates: list[CandidateResponse]


class LinkStatusResponse(LinkDecisionResponse):
    """Persisted link of a batch."""

    linked_at: datetime | None


class SweepResponse(BaseModel):
    """Outcome of a sweep over open batches."""

    batches_processed: int
    auto_linked: int
    pending_review: int
    no_match: int
    errors: list[str]
    duration_seconds: float


def _decision_response(decision: LinkDecision) -> LinkDecisionResponse:
    return LinkDecisionResponse.model_validate(decision.to_dict())


async def _load(repository: BatchRepository, batch_id: str):
    try:
        return await repository.get(batch_id)
    except BatchNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except RetrievalError as e:
        raise HTTPException(status_code=503, detail=f"Batch store unavailable: {e}") from e


@router.post("/batches/{batch_id}", response_model=LinkDecisionResponse)
async def link_batch(
    batch_id: str,
    engine: Annotated[BatchLinkEngine, Depends(get_link_engine)],
    repository: Annotated[BatchRepository, Depends(get_batch_repository)],
):
    """Run linking for one batch and persist the decision."""
    batch = await _load(repository, batch_id)
    try:
        decision = await engine.reconcile(batch)
    except RetrievalError as e:
        logger.error(f"Retrieval failed for batch {batch_id}: {e}")
        raise HTTPException(status_code=503, detail=f"Order store unavailable: {e}") from e
    except PersistError as e:
        logger.error(f"Persist failed for batch {batch_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Could not save link: {e}") from e
    return _decision_response(decision)


@router.get("/batches/{batch_id}/preview", response_model=LinkDecisionResponse)
async def preview_batch(
    batch_id: str,
    engine: Annotated[BatchLinkEngine, Depends(get_link_engine)],
    repository: Annotated[BatchRepository, Depends(get_batch_repository)],
):
    """Compute the decision for a batch without saving it."""
    batch = await _load(repository, batch_id)
    try:
        decision = await engine.evaluate(batch)
    except RetrievalError as e:
        raise HTTPException(status_code=503, detail=f"Order store unavailable: {e}") from e
    return _decision_response(decision)


@router.get("/batches/{batch_id}", response_model=LinkStatusResponse)
async def get_link_status(
    batch_id: str,
    repository: Annotated[BatchRepository, Depends(get_batch_repository)],
):
    """Get the persisted link of a batch."""
    try:
        status = await repository.link_status(batch_id)
    except BatchNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return LinkStatusResponse.model_validate(status)


@router.post("/sweep", response_model=SweepResponse)
async def sweep(
    engine: Annotated[BatchLinkEngine, Depends(get_link_engine)],
    repository: Annotated[BatchRepository, Depends(get_batch_repository)],
):
    """Re-run linking for all recent batches that are not auto-linked."""
    try:
        summary = await sweep_open_batches(
            engine,
            repository,
            lookback_days=settings.sweep_lookback_days,
            concurrency=settings.sweep_concurrency,
        )
    except RetrievalError as e:
        logger.error(f"Sweep could not load open batches: {e}")
        raise HTTPException(status_code=503, detail=f"Batch store unavailable: {e}") from e
    return SweepResponse(**summary.to_dict())
