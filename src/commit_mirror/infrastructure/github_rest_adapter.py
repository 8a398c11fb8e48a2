"""GitHub REST API adapter — implements the RepoClient port."""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from commit_mirror.domain.entities import FileRef
from commit_mirror.domain.exceptions import NotAFileError, ProviderRequestError
from commit_mirror.domain.value_objects import RepoLocation
from commit_mirror.services.credential_vault import CredentialVault

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
_USER_AGENT = "commit-mirror/1.0"


class GitHubRestClient:
    """Concrete RepoClient backed by the GitHub v3 REST API.

    The access token comes from the vault, which reads it from the
    parameter store once and keeps it for the process lifetime.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        location: RepoLocation,
        vault: CredentialVault,
        api_base: str = GITHUB_API,
    ) -> None:
        self._client = client
        self._location = location
        self._vault = vault
        self._api_base = api_base.rstrip("/")
        logger.info("GitHub client initialised for %s", location.full_name)

    async def list_commit_files(
        self, commit_id: str, branch: str | None = None
    ) -> list[FileRef]:
        """GET /repos/{owner}/{repo}/commits/{ref}, following ``Link: next``."""
        logger.info("Fetching commit %s files for %s", commit_id, self._location.full_name)
        url: str | None = (
            f"{self._api_base}/repos/{self._location.owner}/{self._location.repo}"
            f"/commits/{commit_id}"
        )
        files: list[FileRef] = []
        while url:
            resp = await self._api_get(url)
            data = resp.json()
            files.extend(FileRef(path=f["filename"]) for f in data.get("files") or [])
            url = resp.links.get("next", {}).get("url")
        return files

    async def fetch_file_bytes(
        self, path: str, commit_id: str, branch: str | None = None
    ) -> bytes:
        """GET /repos/{owner}/{repo}/contents/{path}?ref={commit} → decoded bytes."""
        logger.debug("Downloading %s @ %s", path, commit_id)
        resp = await self._api_get(
            f"{self._api_base}/repos/{self._location.owner}/{self._location.repo}"
            f"/contents/{quote(path, safe='/')}",
            params={"ref": commit_id},
        )
        data: Any = resp.json()

        if isinstance(data, list):
            raise NotAFileError(f"Expected a single file at '{path}', got a directory listing.")
        if data.get("type", "file") != "file":
            raise NotAFileError(f"'{path}' is a {data.get('type')}, not a file.")

        encoding = data.get("encoding")
        content = data.get("content")

        # Files over 1 MB come back with encoding "none" and an empty body.
        if encoding == "none" and data.get("download_url"):
            raw = await self._api_get(data["download_url"])
            return raw.content

        if content is None:
            raise ProviderRequestError(f"No content in GitHub response for '{path}'.")
        if encoding != "base64":
            return str(content).encode("utf-8")
        try:
            return base64.b64decode(content)
        except (binascii.Error, ValueError) as exc:
            raise ProviderRequestError(f"Undecodable content for '{path}': {exc}") from exc

    async def _api_get(
        self,
        url: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform an authenticated GitHub GET request with error translation."""
        token = await self._vault.get_access_token()
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
            "Authorization": f"Bearer {token}",
        }
        try:
            resp = await self._client.get(url, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise ProviderRequestError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 200:
            return resp

        if resp.status_code == 404:
            raise ProviderRequestError(f"Not found on GitHub: {url}", status=404)

        if resp.status_code == 403 and resp.headers.get("x-ratelimit-remaining") == "0":
            reset_raw = resp.headers.get("x-ratelimit-reset", "")
            try:
                reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                    "%Y-%m-%d %H:%M:%S UTC"
                )
            except (ValueError, OSError):
                reset_str = reset_raw or "unknown"
            raise ProviderRequestError(
                f"GitHub API rate limit exceeded. Resets at {reset_str}.", status=403
            )

        raise ProviderRequestError(
            f"GitHub API returned HTTP {resp.status_code} for {url}",
            status=resp.status_code,
        )
