"""Queue batch handler — SQS-shaped events in, one outcome per job out.

Records of a batch are processed concurrently.  A record whose body cannot be
parsed is reported in ``batchItemFailures`` and does not affect the others.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from commit_mirror.domain.entities import CommitJob
from commit_mirror.domain.exceptions import InvalidJobMessageError
from commit_mirror.interface.schemas import (
    BatchItemFailure,
    BatchResponse,
    JobOutcomeResponse,
    parse_job_message,
)
from commit_mirror.services.process_commit import ProcessCommitUseCase

logger = logging.getLogger(__name__)


async def handle_batch(
    event: Mapping[str, Any], use_case: ProcessCommitUseCase
) -> BatchResponse:
    """Process every record of a queue event."""
    records = event.get("Records") or []
    logger.info("Received batch of %d records", len(records))

    jobs: list[CommitJob] = []
    failures: list[BatchItemFailure] = []
    for index, record in enumerate(records):
        message_id = str(record.get("messageId", index))
        try:
            jobs.append(parse_job_message(record.get("body") or ""))
        except InvalidJobMessageError as exc:
            logger.error("Discarding record %s: %s", message_id, exc)
            failures.append(BatchItemFailure(itemIdentifier=message_id))

    outcomes = await asyncio.gather(*(use_case.execute(job) for job in jobs))
    logger.info("Batch finished: %d jobs, %d rejected records", len(jobs), len(failures))
    return BatchResponse(
        outcomes=[JobOutcomeResponse.from_outcome(o) for o in outcomes],
        batchItemFailures=failures,
    )
