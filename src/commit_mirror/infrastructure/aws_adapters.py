"""AWS adapters — S3 object sink, EventBridge event sink, DynamoDB parameter
store and Secrets Manager.

boto3 is blocking, so every call runs in a worker thread via
:func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from commit_mirror.domain.entities import JobOutcome
from commit_mirror.domain.exceptions import (
    ConfigurationError,
    EventEmissionError,
    PerFileTransferError,
    SecretNotFoundError,
)
from commit_mirror.infrastructure.config import Settings

logger = logging.getLogger(__name__)

EVENT_SOURCE = "mcp.tool.git.commit-files"
EVENT_DETAIL_TYPE = "output"
_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def make_client(service: str, settings: Settings) -> Any:
    """Build a boto3 client, pointed at ``aws_endpoint`` on the local stage."""
    config = Config(
        connect_timeout=settings.http_timeout_seconds,
        read_timeout=settings.http_timeout_seconds,
        retries={"max_attempts": 3, "mode": "standard"},
    )
    if settings.is_local:
        return boto3.client(
            service,
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint,
            config=config,
        )
    return boto3.client(service, region_name=settings.aws_region, config=config)


# ── Object storage ──────────────────────────────────────────────────────────


class S3ObjectSink:
    """Concrete ``ObjectSink`` writing into one S3 bucket."""

    def __init__(self, client: Any, bucket: str | None) -> None:
        if not bucket:
            raise ConfigurationError(
                "S3_GIT_FILES_BUCKET_NAME is not set; cannot store commit files."
            )
        self._client = client
        self._bucket = bucket

    async def write(self, key: str, data: bytes) -> None:
        content_type = mimetypes.guess_type(key)[0] or _DEFAULT_CONTENT_TYPE
        logger.debug("Uploading %s to bucket %s", key, self._bucket)
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise PerFileTransferError(f"Upload of {key} failed: {exc}") from exc


# ── Outcome events ──────────────────────────────────────────────────────────


def outcome_detail(outcome: JobOutcome) -> dict[str, Any]:
    """Serialise an outcome into the event ``Detail`` payload."""
    return {
        "job_id": outcome.job_id,
        "success": outcome.success,
        "message": outcome.message,
        "data": {
            "commit_id": outcome.commit_id,
            "uploaded_files": list(outcome.uploaded_keys),
        },
    }


class EventBridgeSink:
    """Concrete ``EventSink`` publishing to an EventBridge bus.

    With no bus configured the event is skipped with a warning.
    """

    def __init__(self, client: Any, bus_name: str | None) -> None:
        self._client = client
        self._bus_name = bus_name

    async def emit(self, outcome: JobOutcome) -> None:
        if not self._bus_name:
            logger.warning(
                "TITVO_EVENT_BUS_NAME not configured; event skipped for job %s",
                outcome.job_id,
            )
            return

        entry = {
            "Source": EVENT_SOURCE,
            "DetailType": EVENT_DETAIL_TYPE,
            "Detail": json.dumps(outcome_detail(outcome)),
            "EventBusName": self._bus_name,
        }
        try:
            resp = await asyncio.to_thread(self._client.put_events, Entries=[entry])
        except (BotoCoreError, ClientError) as exc:
            raise EventEmissionError(f"put_events failed: {exc}") from exc

        if resp.get("FailedEntryCount"):
            failed = resp.get("Entries", [{}])[0]
            raise EventEmissionError(
                f"EventBridge rejected the event: {failed.get('ErrorCode')} "
                f"{failed.get('ErrorMessage')}"
            )


# ── Secrets ─────────────────────────────────────────────────────────────────


class DynamoParameterStore:
    """Concrete ``ParameterStore`` over a DynamoDB table keyed by ``parameter_id``."""

    def __init__(self, client: Any, table_name: str) -> None:
        self._client = client
        self._table = table_name

    async def get_parameter_value(self, parameter_id: str) -> str | None:
        logger.debug("Getting parameter %s from table %s", parameter_id, self._table)
        try:
            resp = await asyncio.to_thread(
                self._client.get_item,
                TableName=self._table,
                Key={"parameter_id": {"S": parameter_id}},
            )
        except (BotoCoreError, ClientError) as exc:
            raise SecretNotFoundError(
                f"Could not read parameter '{parameter_id}': {exc}"
            ) from exc
        item = resp.get("Item")
        if not item or "value" not in item:
            return None
        return item["value"].get("S")


class SecretsManagerStore:
    """Concrete ``SecretManager`` over AWS Secrets Manager."""

    def __init__(self, client: Any) -> None:
        self._client = client

    async def get_secret_value(self, name: str) -> str | None:
        try:
            resp = await asyncio.to_thread(self._client.get_secret_value, SecretId=name)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                return None
            raise SecretNotFoundError(f"Could not read secret '{name}': {exc}") from exc
        except BotoCoreError as exc:
            raise SecretNotFoundError(f"Could not read secret '{name}': {exc}") from exc
        return resp.get("SecretString")
