"""Cryptographic engine backends."""

from enc_core.engine.base import (
    CryptoEngine,
    CryptoKey,
    CryptoKeyPair,
    DataError,
    InvalidAccessError,
    InvalidParametersError,
    InvalidUsagesError,
    NotSupportedError,
    OperationError,
)
from enc_core.engine.factory import (
    EngineBackend,
    get_engine,
    register_engine,
    reset_engine,
)
from enc_core.engine.local import LocalEngine

__all__ = [
    "CryptoEngine",
    "CryptoKey",
    "CryptoKeyPair",
    "LocalEngine",
    "EngineBackend",
    "get_engine",
    "register_engine",
    "reset_engine",
    # Engine errors
    "DataError",
    "InvalidAccessError",
    "InvalidParametersError",
    "InvalidUsagesError",
    "NotSupportedError",
    "OperationError",
]
