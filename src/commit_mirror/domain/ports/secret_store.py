"""Ports: encrypted parameter store and secret manager."""

from __future__ import annotations

from typing import Protocol


class ParameterStore(Protocol):
    """Key/value store of base64 AES ciphertexts keyed by ``parameter_id``."""

    async def get_parameter_value(self, parameter_id: str) -> str | None:
        ...


class SecretManager(Protocol):
    """Secret manager holding the AES key material."""

    async def get_secret_value(self, name: str) -> str | None:
        ...
