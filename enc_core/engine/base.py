"""Base cryptographic engine interface.

The engine is the trusted collaborator that performs the actual
cryptography. The façade (profiles, keys, operations, export) only decides
*whether* a call is allowed; every engine implementation must provide the
primitives below with the same semantics so backends stay interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from enc_core.algorithms import AlgorithmParams, KeyFormat, KeyRole, Usage
from enc_core.errors import EngineError


@dataclass(frozen=True)
class CryptoKey:
    """Opaque key handle owned by an engine.

    Attributes:
        type: public, private or secret
        extractable: Whether export_key may serialize the key
        algorithm: Realized algorithm descriptor
        usages: Realized usage set, authoritative for every later operation
        handle: Backend key object (cryptography key or raw secret bytes)
    """
    type: KeyRole
    extractable: bool
    algorithm: AlgorithmParams
    usages: frozenset[Usage]
    handle: Any = field(repr=False, compare=False)


@dataclass(frozen=True)
class CryptoKeyPair:
    """Public and private halves generated together."""
    public_key: CryptoKey
    private_key: CryptoKey


class CryptoEngine(ABC):
    """Abstract base class for engine backends.

    Parameter mappings passed to encrypt/decrypt/sign/verify are the key's
    descriptor with operation options merged on top (see
    enc_core.algorithms.merge_options).
    """

    @abstractmethod
    async def generate_key(
        self,
        algorithm: AlgorithmParams,
        extractable: bool,
        usages: Iterable[Usage],
    ) -> CryptoKey | CryptoKeyPair:
        """Generate a secret key or a key pair.

        Raises:
            EngineError: If the descriptor or usages are not acceptable
        """
        pass

    @abstractmethod
    async def import_key(
        self,
        format: KeyFormat,
        key_data: bytes | Mapping[str, Any],
        algorithm: AlgorithmParams,
        extractable: bool,
        usages: Iterable[Usage],
    ) -> CryptoKey:
        """Import key material.

        Raises:
            EngineError: If the material is malformed for the format
        """
        pass

    @abstractmethod
    async def export_key(self, format: KeyFormat, key: CryptoKey) -> bytes | dict[str, Any]:
        """Serialize a key; a dict for JWK, bytes otherwise.

        Raises:
            EngineError: If the key is not extractable or the format does not apply
        """
        pass

    @abstractmethod
    async def encrypt(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        pass

    @abstractmethod
    async def decrypt(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        pass

    @abstractmethod
    async def sign(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        pass

    @abstractmethod
    async def verify(
        self,
        params: Mapping[str, Any],
        key: CryptoKey,
        signature: bytes,
        data: bytes,
    ) -> bool:
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class NotSupportedError(EngineError):
    """Algorithm, format or operation not supported for this key."""
    pass


class InvalidAccessError(EngineError):
    """Key type, usage or extractability forbids the operation."""
    pass


class DataError(EngineError):
    """Key material is malformed or does not match the algorithm."""
    pass


class OperationError(EngineError):
    """The primitive itself failed (bad ciphertext, wrong tag, ...)."""
    pass


class InvalidUsagesError(EngineError):
    """Requested usages are invalid for the algorithm or key type."""
    pass


class InvalidParametersError(EngineError):
    """Required operation parameters are missing or malformed."""
    pass
