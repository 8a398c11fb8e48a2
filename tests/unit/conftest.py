"""Shared fixtures and fakes for unit tests."""

import base64

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from commit_mirror.services.secret_cipher import SecretCipher

AES_KEY = "0123456789abcdef0123456789abcdef"


def encrypt(plaintext: str, key: str = AES_KEY) -> str:
    """Produce a stored value the way the parameter writer does."""
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key.encode("utf-8")), modes.ECB()).encryptor()
    return base64.b64encode(encryptor.update(padded) + encryptor.finalize()).decode()


class FakeSecretManager:
    def __init__(self, secrets):
        self.secrets = dict(secrets)
        self.calls = []

    async def get_secret_value(self, name):
        self.calls.append(name)
        return self.secrets.get(name)


class FakeParameterStore:
    def __init__(self, values):
        self.values = dict(values)
        self.calls = []

    async def get_parameter_value(self, parameter_id):
        self.calls.append(parameter_id)
        return self.values.get(parameter_id)


@pytest.fixture
def secret_manager():
    return FakeSecretManager({"aes_secret": AES_KEY})


@pytest.fixture
def cipher(secret_manager):
    return SecretCipher(secret_manager, "aes_secret")


@pytest.fixture
def encrypt_value():
    """Encrypt a plaintext with the test AES key (or another key)."""
    return encrypt


@pytest.fixture
def make_secret_manager():
    return FakeSecretManager


@pytest.fixture
def make_parameter_store():
    return FakeParameterStore
