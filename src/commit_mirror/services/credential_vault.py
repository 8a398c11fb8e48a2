"""Credential vault — decrypted parameters and cached OAuth2 bearer tokens.

One vault is scoped to one repository client variant.  The AES key lives in
the shared :class:`SecretCipher`; the bearer token lives in the vault.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from typing import Callable

import httpx

from commit_mirror.domain.entities import AccessToken
from commit_mirror.domain.exceptions import (
    ConfigurationError,
    SecretNotFoundError,
    TokenAcquisitionError,
)
from commit_mirror.domain.ports.secret_store import ParameterStore
from commit_mirror.services.secret_cipher import SecretCipher

logger = logging.getLogger(__name__)

TOKEN_SAFETY_MARGIN_SECONDS = 60.0


class CredentialVault:
    """Resolves decrypted parameters and client-credentials access tokens.

    Parameters
    ----------
    parameter_store:
        Store of encrypted parameter values.
    cipher:
        Decrypts parameter values.
    http_client:
        Used for the token exchange.  Only needed by :meth:`get_access_token`.
    token_url:
        OAuth2 token endpoint of the provider.
    credentials_parameter:
        Parameter holding ``{"key": ..., "secret": ...}`` once decrypted.
    token_parameter:
        Parameter holding a long-lived token.  Used when no ``token_url`` is
        set; the decrypted value is cached without expiry.
    clock:
        Returns the current epoch time in seconds.
    """

    def __init__(
        self,
        parameter_store: ParameterStore,
        cipher: SecretCipher,
        *,
        http_client: httpx.AsyncClient | None = None,
        token_url: str | None = None,
        credentials_parameter: str | None = None,
        token_parameter: str | None = None,
        clock: Callable[[], float] = time.time,
        safety_margin: float = TOKEN_SAFETY_MARGIN_SECONDS,
    ) -> None:
        self._parameters = parameter_store
        self._cipher = cipher
        self._http = http_client
        self._token_url = token_url
        self._credentials_parameter = credentials_parameter
        self._token_parameter = token_parameter
        self._clock = clock
        self._safety_margin = safety_margin
        self._token: AccessToken | None = None
        self._token_lock = asyncio.Lock()

    # ── Secret decryption ───────────────────────────────────────────────

    async def decrypt(self, ciphertext_b64: str) -> str:
        """Decrypt a base64 AES-256-ECB value."""
        return await self._cipher.decrypt(ciphertext_b64)

    async def get_decrypted_parameter(self, parameter_id: str) -> str:
        """Read *parameter_id* from the store and decrypt it."""
        logger.debug("Reading parameter %s", parameter_id)
        encrypted = await self._parameters.get_parameter_value(parameter_id)
        if not encrypted:
            raise SecretNotFoundError(f"Parameter '{parameter_id}' is missing or empty.")
        return await self.decrypt(encrypted)

    # ── Token lifecycle ─────────────────────────────────────────────────

    async def get_access_token(self) -> str:
        """Return a bearer token, refreshing it when needed.

        A cached token is reused while ``now + safety_margin < expires_at``.
        Concurrent callers share a single in-flight refresh.
        """
        token = self._token
        if token is not None and token.is_fresh(self._clock(), self._safety_margin):
            return token.value

        async with self._token_lock:
            token = self._token
            if token is not None and token.is_fresh(self._clock(), self._safety_margin):
                return token.value
            if self._token_url:
                self._token = await self._exchange_client_credentials()
            elif self._token_parameter:
                self._token = await self._load_static_token(self._token_parameter)
            else:
                raise ConfigurationError(
                    "No token endpoint or token parameter configured for this vault."
                )
            return self._token.value

    async def _load_static_token(self, parameter_id: str) -> AccessToken:
        try:
            value = (await self.get_decrypted_parameter(parameter_id)).strip()
        except SecretNotFoundError as exc:
            raise TokenAcquisitionError(
                f"Token parameter '{parameter_id}' not found or empty."
            ) from exc
        if not value:
            raise TokenAcquisitionError(f"Token parameter '{parameter_id}' is empty.")
        return AccessToken(value=value, expires_at=math.inf)

    async def _exchange_client_credentials(self) -> AccessToken:
        if self._http is None or not self._credentials_parameter:
            raise ConfigurationError(
                "Token exchange requires an HTTP client and a credentials parameter."
            )

        client_id, client_secret = await self._load_client_credentials(
            self._credentials_parameter
        )

        try:
            resp = await self._http.post(
                self._token_url,
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except httpx.HTTPError as exc:
            raise TokenAcquisitionError(f"Network error requesting token: {exc}") from exc

        if not resp.is_success:
            raise TokenAcquisitionError(
                f"Token endpoint returned HTTP {resp.status_code}.",
                status=resp.status_code,
            )

        try:
            payload = resp.json()
            value = str(payload["access_token"])
            expires_in = float(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as exc:
            raise TokenAcquisitionError(
                f"Malformed token response: {exc}", status=resp.status_code
            ) from exc

        logger.info("Obtained access token valid for %.0fs", expires_in)
        return AccessToken(value=value, expires_at=self._clock() + expires_in)

    async def _load_client_credentials(self, parameter_id: str) -> tuple[str, str]:
        raw = await self.get_decrypted_parameter(parameter_id)
        try:
            data = json.loads(raw)
            return str(data["key"]), str(data["secret"])
        except (ValueError, KeyError, TypeError) as exc:
            raise SecretNotFoundError(
                f"Parameter '{parameter_id}' does not hold "
                '{"key": ..., "secret": ...} credentials.'
            ) from exc
