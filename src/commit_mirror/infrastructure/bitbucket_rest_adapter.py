"""Bitbucket Cloud REST API adapter — implements the RepoClient port."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from commit_mirror.domain.entities import FileRef
from commit_mirror.domain.exceptions import ProviderRequestError
from commit_mirror.domain.value_objects import RepoLocation
from commit_mirror.services.credential_vault import CredentialVault

logger = logging.getLogger(__name__)

BITBUCKET_API = "https://api.bitbucket.org/2.0"
_FILE_ENTRY_TYPE = "commit_file"


class BitbucketRestClient:
    """Concrete RepoClient backed by the Bitbucket 2.0 REST API.

    Every request carries a bearer token obtained through the vault's
    client-credentials exchange.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        location: RepoLocation,
        vault: CredentialVault,
        api_base: str = BITBUCKET_API,
    ) -> None:
        self._client = client
        self._location = location
        self._vault = vault
        self._api_base = api_base.rstrip("/")
        logger.info("Bitbucket client initialised for %s", location.full_name)

    @property
    def _repo_url(self) -> str:
        return (
            f"{self._api_base}/repositories/{self._location.owner}/{self._location.repo}"
        )

    async def list_commit_files(
        self, commit_id: str, branch: str | None = None
    ) -> list[FileRef]:
        """List files via the commit endpoint, falling back to the source tree."""
        logger.info(
            "Fetching commit %s files for %s", commit_id, self._location.full_name
        )
        files = await self._files_from_commit(commit_id)
        if files is not None:
            return files

        logger.info("Commit endpoint had no files for %s, listing source tree", commit_id)
        return await self._files_from_tree(commit_id)

    async def fetch_file_bytes(
        self, path: str, commit_id: str, branch: str | None = None
    ) -> bytes:
        """GET /src/{commit}/{path} → raw bytes."""
        logger.debug("Downloading %s @ %s", path, commit_id)
        resp = await self._api_get(
            f"{self._repo_url}/src/{commit_id}/{quote(path, safe='/')}"
        )
        return resp.content

    # ── Listing strategies ──────────────────────────────────────────────

    async def _files_from_commit(self, commit_id: str) -> list[FileRef] | None:
        """Return the commit's ``files`` array, or ``None`` when it has none."""
        try:
            resp = await self._api_get(f"{self._repo_url}/commit/{commit_id}/")
        except ProviderRequestError as exc:
            logger.warning("Commit endpoint failed for %s: %s", commit_id, exc)
            return None

        try:
            data: Any = resp.json()
        except ValueError:
            logger.warning("Commit endpoint returned a non-JSON body for %s", commit_id)
            return None
        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, list):
            return None
        return [FileRef(path=f["path"]) for f in files if f.get("path")]

    async def _files_from_tree(self, commit_id: str) -> list[FileRef]:
        """List the tree at *commit_id* and keep entries of file type."""
        # Trailing slash required, the API answers 404 without it.
        url: str | None = f"{self._repo_url}/src/{commit_id}/"
        files: list[FileRef] = []
        while url:
            data: Any = (await self._api_get(url)).json()
            files.extend(
                FileRef(path=v["path"])
                for v in data.get("values") or []
                if v.get("type") == _FILE_ENTRY_TYPE
            )
            url = data.get("next")
        return files

    # ── HTTP ────────────────────────────────────────────────────────────

    async def _api_get(self, url: str) -> httpx.Response:
        """Perform a bearer-authenticated GET with error translation."""
        token = await self._vault.get_access_token()
        try:
            resp = await self._client.get(
                url, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 200:
            return resp

        raise ProviderRequestError(
            f"Bitbucket API returned HTTP {resp.status_code} for {url}",
            status=resp.status_code,
        )
