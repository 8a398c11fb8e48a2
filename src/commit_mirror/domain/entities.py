"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class JobStatus(str, Enum):
    """Status reported by the upstream pipeline that produced the job."""

    SUCCESS = "success"
    OTHER = "other"

    @classmethod
    def from_raw(cls, raw: str | None) -> JobStatus:
        """A missing status counts as success; any other value is OTHER."""
        if raw is None or raw.strip().lower() == cls.SUCCESS.value:
            return cls.SUCCESS
        return cls.OTHER


class JobStage(str, Enum):
    """Progress of a job through the processing pipeline."""

    RECEIVED = "received"
    RESOLVED = "resolved"
    LISTED = "listed"
    UPLOADED = "uploaded"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CommitJob:
    """A request to mirror the files of one commit."""

    job_id: str
    repository: str
    commit_id: str
    branch: str | None = None
    status: JobStatus = JobStatus.SUCCESS


@dataclass(frozen=True, slots=True)
class FileRef:
    """A file changed in a commit, as reported by the provider."""

    path: str


@dataclass(slots=True)
class AccessToken:
    """A bearer token and the epoch second at which it expires."""

    value: str
    expires_at: float

    def is_fresh(self, now: float, safety_margin: float) -> bool:
        return now + safety_margin < self.expires_at


@dataclass(frozen=True, slots=True)
class JobOutcome:
    """The single terminal record produced for every job."""

    job_id: str
    success: bool
    message: str
    commit_id: str
    uploaded_keys: list[str] = field(default_factory=list)
