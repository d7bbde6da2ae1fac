"""Test configuration and fixtures."""

import os

import pytest

# Keep tests independent of any developer .env
os.environ.setdefault("ENC_ENGINE_BACKEND", "local")

from enc_core.algorithms import KeyRole, Usage
from enc_core.config import get_settings
from enc_core.engine.base import CryptoEngine, CryptoKey, CryptoKeyPair
from enc_core.engine.factory import reset_engine
from enc_core.engine.local import LocalEngine


class RecordingEngine(CryptoEngine):
    """Engine fake that records every call and returns canned results.

    Set `fail_with` to an exception instance to make every call raise it.
    """

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []
        self.fail_with: Exception | None = None

    def _record(self, name: str, *args):
        self.calls.append((name, args))
        if self.fail_with is not None:
            raise self.fail_with

    async def generate_key(self, algorithm, extractable, usages):
        usages = frozenset(usages)
        self._record("generate_key", algorithm, extractable, usages)
        if algorithm.family.value in ("RSA", "EC", "OKP"):
            return CryptoKeyPair(
                public_key=CryptoKey(KeyRole.PUBLIC, True, algorithm, usages, None),
                private_key=CryptoKey(KeyRole.PRIVATE, extractable, algorithm, usages, None),
            )
        return CryptoKey(KeyRole.SECRET, extractable, algorithm, usages, None)

    async def import_key(self, format, key_data, algorithm, extractable, usages):
        usages = frozenset(usages)
        self._record("import_key", format, key_data, algorithm, extractable, usages)
        return CryptoKey(KeyRole.SECRET, extractable, algorithm, usages, None)

    async def export_key(self, format, key):
        self._record("export_key", format, key)
        return {"kty": "oct"} if format == "jwk" else b"exported"

    async def encrypt(self, params, key, data):
        self._record("encrypt", params, key, data)
        return b"ciphertext"

    async def decrypt(self, params, key, data):
        self._record("decrypt", params, key, data)
        return b"plaintext"

    async def sign(self, params, key, data):
        self._record("sign", params, key, data)
        return b"signature"

    async def verify(self, params, key, signature, data):
        self._record("verify", params, key, signature, data)
        return True


@pytest.fixture(autouse=True)
def reset_cached_state():
    """Reset cached settings and engine between tests."""
    get_settings.cache_clear()
    reset_engine()
    yield
    get_settings.cache_clear()
    reset_engine()


@pytest.fixture
def engine():
    """A fresh local engine."""
    return LocalEngine()


@pytest.fixture
def recording_engine():
    """An engine fake that records calls."""
    return RecordingEngine()


@pytest.fixture
def make_key():
    """Build a CryptoKey directly, bypassing any engine."""
    def _make(algorithm, usages, role=KeyRole.SECRET, extractable=True):
        return CryptoKey(
            type=role,
            extractable=extractable,
            algorithm=algorithm,
            usages=frozenset(Usage(u) for u in usages),
            handle=None,
        )
    return _make
