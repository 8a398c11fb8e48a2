"""Bounded uploader — mirrors commit files into object storage.

All files are scheduled at once behind a semaphore that admits at most
``max_concurrency`` active transfers.  A failed file is logged and dropped;
the remaining files carry on.  Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from commit_mirror.domain.entities import FileRef
from commit_mirror.domain.ports.repo_client import RepoClient
from commit_mirror.domain.ports.sinks import ObjectSink

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


def object_key(commit_id: str, path: str) -> str:
    return f"{commit_id}/{path}"


class BoundedUploader:
    """Download-then-upload pipeline with a fixed worker ceiling."""

    def __init__(self, sink: ObjectSink, max_concurrency: int = DEFAULT_MAX_CONCURRENCY) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._sink = sink
        self._max_concurrency = max_concurrency

    async def run(
        self,
        files: Sequence[FileRef],
        commit_id: str,
        client: RepoClient,
        branch: str | None = None,
    ) -> list[str]:
        """Transfer every file and return the keys that succeeded, in input order."""
        logger.info(
            "Starting upload of %d files (max %d concurrent)",
            len(files),
            self._max_concurrency,
        )
        sem = asyncio.Semaphore(self._max_concurrency)

        async def _transfer_one(ref: FileRef) -> str | None:
            async with sem:
                try:
                    data = await client.fetch_file_bytes(ref.path, commit_id, branch)
                    key = object_key(commit_id, ref.path)
                    await self._sink.write(key, data)
                except Exception as exc:
                    logger.error("Failed to transfer %s: %s", ref.path, exc)
                    return None
                logger.debug("Uploaded %s", key)
                return key

        results = await asyncio.gather(*(_transfer_one(ref) for ref in files))
        uploaded = [key for key in results if key is not None]

        logger.info("Upload finished: %d of %d files stored", len(uploaded), len(files))
        if len(uploaded) != len(files):
            logger.warning("%d file transfers failed", len(files) - len(uploaded))
        return uploaded
