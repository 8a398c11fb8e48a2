"""Process-commit use case — the end-to-end job driver.

Resolves the provider client, lists the commit's files, mirrors them with the
bounded uploader and always hands exactly one :class:`JobOutcome` to the
event sink, whichever stage failed.
"""

from __future__ import annotations

import logging

from commit_mirror.domain.entities import CommitJob, JobOutcome, JobStage, JobStatus
from commit_mirror.domain.exceptions import EventEmissionError
from commit_mirror.domain.ports.sinks import EventSink
from commit_mirror.services.bounded_uploader import BoundedUploader
from commit_mirror.services.repo_resolver import RepoResolver

logger = logging.getLogger(__name__)


class ProcessCommitUseCase:
    """Drives one :class:`CommitJob` from ``RECEIVED`` to ``COMPLETED``.

    Parameters
    ----------
    resolver:
        Maps the repository URL to a provider client.
    uploader:
        Transfers files into object storage.
    event_sink:
        Receives the terminal outcome.
    skip_unsuccessful_jobs:
        When true, jobs whose upstream status is not ``success`` are not
        processed; a failure outcome is still emitted.
    """

    def __init__(
        self,
        resolver: RepoResolver,
        uploader: BoundedUploader,
        event_sink: EventSink,
        skip_unsuccessful_jobs: bool = True,
    ) -> None:
        self._resolver = resolver
        self._uploader = uploader
        self._events = event_sink
        self._skip_unsuccessful = skip_unsuccessful_jobs

    async def execute(self, job: CommitJob) -> JobOutcome:
        """Run the job and return the outcome that was emitted."""
        tag = f"[Job: {job.job_id}]"
        logger.info(
            "%s Processing commit %s of %s", tag, job.commit_id, job.repository
        )

        # Replaced on every path that finishes; left as-is on cancellation.
        outcome = JobOutcome(
            job_id=job.job_id,
            success=False,
            message=f"Processing of commit {job.commit_id} was cancelled.",
            commit_id=job.commit_id,
        )
        try:
            if self._skip_unsuccessful and job.status is not JobStatus.SUCCESS:
                logger.info("%s Upstream status is not success, skipping", tag)
                outcome = JobOutcome(
                    job_id=job.job_id,
                    success=False,
                    message=f"Commit {job.commit_id} skipped: upstream status was not success.",
                    commit_id=job.commit_id,
                )
            else:
                outcome = await self._run(job, tag)
        finally:
            await self._emit(outcome, tag)
        return outcome

    async def _run(self, job: CommitJob, tag: str) -> JobOutcome:
        stage = JobStage.RECEIVED
        try:
            client = self._resolver.resolve(job.repository)
            stage = JobStage.RESOLVED

            files = await client.list_commit_files(job.commit_id, job.branch)
            stage = JobStage.LISTED
            logger.info("%s Found %d modified files", tag, len(files))

            keys = await self._uploader.run(files, job.commit_id, client, job.branch)
            stage = JobStage.UPLOADED
        except Exception as exc:
            logger.exception(
                "%s Error processing commit %s after stage %s (%s)",
                tag,
                job.commit_id,
                stage.value,
                JobStage.FAILED.value,
            )
            return JobOutcome(
                job_id=job.job_id,
                success=False,
                message=f"Error processing commit: {exc}",
                commit_id=job.commit_id,
            )

        logger.info("%s Commit processed, %d of %d files stored", tag, len(keys), len(files))
        return JobOutcome(
            job_id=job.job_id,
            success=True,
            message=f"Commit {job.commit_id} processed successfully.",
            commit_id=job.commit_id,
            uploaded_keys=keys,
        )

    async def _emit(self, outcome: JobOutcome, tag: str) -> None:
        try:
            await self._events.emit(outcome)
        except EventEmissionError as exc:
            logger.error("%s Outcome event not delivered: %s", tag, exc)
        except Exception:
            logger.exception("%s Unexpected error delivering outcome event", tag)
        else:
            logger.info("%s Outcome event sent (%s)", tag, JobStage.COMPLETED.value)
