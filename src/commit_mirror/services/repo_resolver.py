"""Repository resolver — picks the RepoClient variant for a repository URL."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from commit_mirror.domain.exceptions import UnsupportedProviderError
from commit_mirror.domain.ports.repo_client import RepoClient
from commit_mirror.domain.value_objects import RepoLocation

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"
BITBUCKET_HOST = "bitbucket.org"

ClientFactory = Callable[[RepoLocation], RepoClient]


class RepoResolver:
    """Maps a host fragment to a client factory.

    The first entry whose host fragment occurs in the URL wins.  A fresh
    client is built for every resolution.
    """

    def __init__(self, providers: Mapping[str, ClientFactory]) -> None:
        self._providers = dict(providers)

    def resolve(self, repository_url: str) -> RepoClient:
        """Return a client initialised with the owner/repo parsed from the URL."""
        for host, factory in self._providers.items():
            if host in repository_url:
                location = RepoLocation.from_url(repository_url)
                logger.debug("Resolved %s to provider %s", repository_url, host)
                return factory(location)
        raise UnsupportedProviderError(
            f"Unsupported repository provider for '{repository_url}'. "
            f"Supported hosts: {', '.join(self._providers)}."
        )
