"""Port: repository client — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from commit_mirror.domain.entities import FileRef


class RepoClient(Protocol):
    """Narrow capability set shared by every repository host.

    Pagination shape, fallback listing and auth scheme stay inside the
    implementation; callers never branch on the provider.
    """

    async def list_commit_files(
        self, commit_id: str, branch: str | None = None
    ) -> list[FileRef]:
        """Return the files changed in *commit_id*."""
        ...

    async def fetch_file_bytes(
        self, path: str, commit_id: str, branch: str | None = None
    ) -> bytes:
        """Return the raw content of *path* as of *commit_id*."""
        ...
