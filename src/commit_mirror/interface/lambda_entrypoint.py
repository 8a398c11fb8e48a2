"""AWS Lambda entrypoint for SQS-triggered batches.

One event loop is kept per container so the HTTP client, the AES key and
cached tokens survive across warm invocations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from commit_mirror.infrastructure.config import get_settings
from commit_mirror.interface.dependencies import get_use_case, startup
from commit_mirror.interface.queue_handler import handle_batch

_loop: asyncio.AbstractEventLoop | None = None


def _get_loop() -> asyncio.AbstractEventLoop:
    global _loop  # noqa: PLW0603
    if _loop is None:
        logging.getLogger().setLevel(get_settings().log_level.upper())
        _loop = asyncio.new_event_loop()
        _loop.run_until_complete(startup())
    return _loop


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda handler: returns the partial batch response."""
    loop = _get_loop()
    result = loop.run_until_complete(handle_batch(event, get_use_case()))
    return {
        "batchItemFailures": [f.model_dump() for f in result.batchItemFailures]
    }
