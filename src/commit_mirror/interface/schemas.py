"""Pydantic DTOs for the inbound job message and the outcome response.

Canonical inbound shape::

    {"jobId": "...", "data": {"repository": "...", "commitId": "...",
                              "branch": "...", "status": "..."}}

``taskId`` is accepted for ``jobId`` and ``repoUrl`` for ``repository``.  A flat
body without ``data`` is accepted too.  Outbound names are ``job_id`` and
``uploaded_files``.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from commit_mirror.domain.entities import CommitJob, JobOutcome, JobStatus
from commit_mirror.domain.exceptions import InvalidJobMessageError


class JobData(BaseModel):
    """The ``data`` section of an inbound job message."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    repository: str = Field(
        min_length=1, validation_alias=AliasChoices("repository", "repoUrl")
    )
    commit_id: str = Field(
        min_length=1, validation_alias=AliasChoices("commitId", "commit_id")
    )
    branch: str | None = None
    status: str | None = None


class JobMessage(BaseModel):
    """Inbound job message."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str | None = Field(
        default=None, validation_alias=AliasChoices("jobId", "taskId", "job_id")
    )
    data: JobData

    @model_validator(mode="before")
    @classmethod
    def _wrap_flat_body(cls, value: Any) -> Any:
        if isinstance(value, Mapping) and "data" not in value:
            id_keys = {"jobId", "taskId", "job_id"}
            wrapped: dict[str, Any] = {k: v for k, v in value.items() if k in id_keys}
            wrapped["data"] = {k: v for k, v in value.items() if k not in id_keys}
            return wrapped
        return value

    def to_commit_job(self) -> CommitJob:
        return CommitJob(
            job_id=self.job_id or uuid.uuid4().hex,
            repository=self.data.repository,
            commit_id=self.data.commit_id,
            branch=self.data.branch,
            status=JobStatus.from_raw(self.data.status),
        )


def parse_job_message(payload: str | bytes | Mapping[str, Any]) -> CommitJob:
    """Validate a raw message (JSON text or mapping) into a :class:`CommitJob`."""
    try:
        if isinstance(payload, (str, bytes)):
            payload = json.loads(payload)
        return JobMessage.model_validate(payload).to_commit_job()
    except (ValueError, ValidationError) as exc:
        raise InvalidJobMessageError(f"Invalid job message: {exc}") from exc


class OutcomeData(BaseModel):
    commit_id: str
    uploaded_files: list[str]


class JobOutcomeResponse(BaseModel):
    """Terminal job outcome, same shape as the published event detail."""

    job_id: str
    success: bool
    message: str
    data: OutcomeData

    @classmethod
    def from_outcome(cls, outcome: JobOutcome) -> JobOutcomeResponse:
        return cls(
            job_id=outcome.job_id,
            success=outcome.success,
            message=outcome.message,
            data=OutcomeData(
                commit_id=outcome.commit_id,
                uploaded_files=list(outcome.uploaded_keys),
            ),
        )


class BatchItemFailure(BaseModel):
    itemIdentifier: str


class BatchResponse(BaseModel):
    """Result of processing one queue batch."""

    outcomes: list[JobOutcomeResponse]
    batchItemFailures: list[BatchItemFailure] = Field(default_factory=list)
