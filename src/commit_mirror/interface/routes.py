"""API routes — thin controllers that delegate to the use case."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from commit_mirror.interface.dependencies import get_use_case
from commit_mirror.interface.queue_handler import handle_batch
from commit_mirror.interface.schemas import BatchResponse, JobMessage, JobOutcomeResponse
from commit_mirror.services.process_commit import ProcessCommitUseCase

router = APIRouter()


@router.post("/jobs", response_model=JobOutcomeResponse)
async def process_job(
    body: JobMessage,
    use_case: ProcessCommitUseCase = Depends(get_use_case),
) -> JobOutcomeResponse:
    """Mirror one commit and return its outcome (also published as an event)."""
    outcome = await use_case.execute(body.to_commit_job())
    return JobOutcomeResponse.from_outcome(outcome)


@router.post("/jobs/batch", response_model=BatchResponse)
async def process_batch(
    event: dict[str, Any] = Body(...),
    use_case: ProcessCommitUseCase = Depends(get_use_case),
) -> BatchResponse:
    """Process a queue-shaped batch (``{"Records": [{"messageId", "body"}]}``)."""
    return await handle_batch(event, use_case)
