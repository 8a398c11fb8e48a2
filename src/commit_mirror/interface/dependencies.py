"""Dependency wiring shared by the HTTP app and the queue entrypoint."""

from __future__ import annotations

from typing import Any

import httpx

from commit_mirror.domain.exceptions import ConfigurationError
from commit_mirror.domain.value_objects import RepoLocation
from commit_mirror.infrastructure.aws_adapters import (
    DynamoParameterStore,
    EventBridgeSink,
    S3ObjectSink,
    SecretsManagerStore,
    make_client,
)
from commit_mirror.infrastructure.bitbucket_rest_adapter import BitbucketRestClient
from commit_mirror.infrastructure.config import Settings, get_settings
from commit_mirror.infrastructure.github_rest_adapter import GitHubRestClient
from commit_mirror.services.bounded_uploader import BoundedUploader
from commit_mirror.services.credential_vault import CredentialVault
from commit_mirror.services.process_commit import ProcessCommitUseCase
from commit_mirror.services.repo_resolver import BITBUCKET_HOST, GITHUB_HOST, RepoResolver
from commit_mirror.services.secret_cipher import SecretCipher

_http_client: httpx.AsyncClient | None = None
_use_case: ProcessCommitUseCase | None = None


def build_use_case(
    settings: Settings,
    http_client: httpx.AsyncClient,
    aws_clients: dict[str, Any] | None = None,
) -> ProcessCommitUseCase:
    """Assemble the use case and its adapters.

    *aws_clients* maps service name (``s3``, ``events``, ``dynamodb``,
    ``secretsmanager``) to a pre-built boto3 client; missing ones are created.
    """
    clients = dict(aws_clients or {})
    for service in ("s3", "events", "dynamodb", "secretsmanager"):
        if service not in clients:
            clients[service] = make_client(service, settings)

    parameters = DynamoParameterStore(clients["dynamodb"], settings.parameter_table_name)
    cipher = SecretCipher(SecretsManagerStore(clients["secretsmanager"]), settings.aes_key_path)

    github_vault = CredentialVault(
        parameters, cipher, token_parameter=settings.github_token_param_name
    )
    bitbucket_vault = CredentialVault(
        parameters,
        cipher,
        http_client=http_client,
        token_url=settings.bitbucket_token_url,
        credentials_parameter=settings.bitbucket_credentials_param_name,
    )

    def _github(location: RepoLocation) -> GitHubRestClient:
        return GitHubRestClient(
            http_client, location, github_vault, api_base=settings.github_api_url
        )

    def _bitbucket(location: RepoLocation) -> BitbucketRestClient:
        return BitbucketRestClient(
            http_client, location, bitbucket_vault, api_base=settings.bitbucket_api_url
        )

    resolver = RepoResolver({GITHUB_HOST: _github, BITBUCKET_HOST: _bitbucket})
    uploader = BoundedUploader(
        S3ObjectSink(clients["s3"], settings.s3_git_files_bucket_name),
        max_concurrency=settings.max_concurrent_uploads,
    )
    return ProcessCommitUseCase(
        resolver=resolver,
        uploader=uploader,
        event_sink=EventBridgeSink(clients["events"], settings.titvo_event_bus_name),
        skip_unsuccessful_jobs=settings.skip_unsuccessful_jobs,
    )


async def startup() -> None:
    """Initialise shared resources — called once per process."""
    global _http_client, _use_case  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))
    _use_case = build_use_case(settings, _http_client)


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _use_case  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    _use_case = None


def get_use_case() -> ProcessCommitUseCase:
    """Return the use case built at startup."""
    if _use_case is None:
        raise ConfigurationError("Service is not initialised; startup() was not called.")
    return _use_case
