"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from commit_mirror.domain.exceptions import InvalidRepositoryUrlError

_GIT_PREFIX_RE = re.compile(r"^git\+")
_GIT_SUFFIX_RE = re.compile(r"\.git$")


@dataclass(frozen=True, slots=True)
class RepoLocation:
    """Owner (or workspace) and repository name parsed from a repository URL.

    Parsing is purely syntactic: a leading ``git+`` and a trailing ``.git``
    are stripped, then the last two ``/``-separated segments are taken.
    Nothing is checked against the remote host.
    """

    owner: str
    repo: str
    raw: str

    @classmethod
    def from_url(cls, url: str) -> RepoLocation:
        """Parse a raw repository URL string."""
        cleaned = _GIT_SUFFIX_RE.sub("", _GIT_PREFIX_RE.sub("", url.strip()))
        parts = cleaned.rstrip("/").split("/")
        if len(parts) < 2 or not parts[-2] or not parts[-1]:
            raise InvalidRepositoryUrlError(
                f"Cannot extract owner and repository from '{url}'."
            )
        return cls(owner=parts[-2], repo=parts[-1], raw=url)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"
