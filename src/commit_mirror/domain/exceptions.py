"""Domain exception hierarchy.

Setup-stage errors (resolution, listing, credentials) fail the whole job.
Per-file transfer errors and event emission errors are recovered and logged.
The HTTP interface maps each class to a status code.
"""

from __future__ import annotations


class CommitMirrorError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidJobMessageError(CommitMirrorError):
    """The inbound job message is missing required fields or malformed."""


class InvalidRepositoryUrlError(CommitMirrorError):
    """The repository URL does not contain an owner and a repository name."""


class UnsupportedProviderError(CommitMirrorError):
    """No known repository host matches the repository URL."""


# ── Provider errors ─────────────────────────────────────────────────────────


class ProviderRequestError(CommitMirrorError):
    """A call to a repository host failed (network error or non-2xx status)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NotAFileError(ProviderRequestError):
    """The requested path resolved to a directory listing, not a single file."""


# ── Credential errors ───────────────────────────────────────────────────────


class TokenAcquisitionError(CommitMirrorError):
    """An access token could not be obtained."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class SecretNotFoundError(CommitMirrorError):
    """A parameter or secret is missing or empty in its store."""


class InvalidKeyLengthError(CommitMirrorError):
    """The AES key material is not exactly 32 bytes."""


class DecryptionError(CommitMirrorError):
    """The ciphertext could not be decoded, decrypted or unpadded."""


# ── Transfer / delivery errors ──────────────────────────────────────────────


class PerFileTransferError(CommitMirrorError):
    """Downloading or uploading a single file failed."""


class EventEmissionError(CommitMirrorError):
    """The job outcome event could not be delivered."""


class ConfigurationError(CommitMirrorError):
    """A required setting is missing or invalid."""
