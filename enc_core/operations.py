"""Usage-validated encrypt / decrypt / sign / verify.

Each operation runs the same checks before touching the engine:

1. Merge options onto a copy of the key's descriptor (name never changes)
2. The key's algorithm must be in the operation's allow-list
   -> UnsupportedAlgorithmError
3. The key's realized usages must include the operation's usage
   -> UsageDeniedError
4. Text payloads are UTF-8 encoded; bytes pass through

Only then is the engine called. Engine errors propagate unchanged.
"""

from typing import Any, Mapping

from enc_core.algorithms import AlgorithmName, OperationOptions, Usage, merge_options
from enc_core.encoding import as_bytes
from enc_core.engine.base import CryptoEngine, CryptoKey
from enc_core.engine.factory import get_engine
from enc_core.errors import UnsupportedAlgorithmError, UsageDeniedError
from enc_core.logging import get_logger, log_operation

logger = get_logger(__name__)

ENCRYPTION_ALGORITHMS = frozenset({
    AlgorithmName.RSA_OAEP,
    AlgorithmName.AES_CTR,
    AlgorithmName.AES_CBC,
    AlgorithmName.AES_GCM,
})

SIGNATURE_ALGORITHMS = frozenset({
    AlgorithmName.RSA_PSS,
    AlgorithmName.ECDSA,
    AlgorithmName.HMAC,
    AlgorithmName.ED25519,
})

Options = OperationOptions | Mapping[str, Any] | None
Payload = str | bytes | bytearray | memoryview


def _prepare(
    operation: str,
    key: CryptoKey,
    options: Options,
    allowed: frozenset[AlgorithmName],
    usage: Usage,
) -> dict[str, Any]:
    """Validate key against an operation and return the merged parameters."""
    params = merge_options(key.algorithm, options)

    label = getattr(key.algorithm.name, "value", key.algorithm.name)
    try:
        name = AlgorithmName(key.algorithm.name)
    except ValueError:
        name = None
    if name not in allowed:
        logger.warning(
            "Operation rejected",
            operation=operation,
            algorithm=label,
            reason="unsupported_algorithm",
        )
        raise UnsupportedAlgorithmError(f"{label} is not supported for {operation}")

    if usage not in key.usages:
        logger.warning(
            "Operation rejected",
            operation=operation,
            algorithm=name.value,
            reason="usage_denied",
        )
        raise UsageDeniedError(f"Key does not support {usage.value}")

    return params


@log_operation("encrypt")
async def encrypt(
    data: Payload,
    key: CryptoKey,
    options: Options = None,
    *,
    engine: CryptoEngine | None = None,
) -> bytes:
    """Encrypt data with an RSA-OAEP public key or an AES-CTR/CBC/GCM key.

    Args:
        data: Text (UTF-8 encoded) or bytes
        key: Key holding the 'encrypt' usage
        options: RsaOaepOptions, AesCtrOptions, AesCbcOptions, AesGcmOptions
            or an equivalent mapping
        engine: Engine to use (defaults to get_engine())

    Returns:
        Ciphertext bytes

    Raises:
        UnsupportedAlgorithmError: If the key's algorithm cannot encrypt
        UsageDeniedError: If the key lacks the 'encrypt' usage
        EngineError: If the engine fails
    """
    params = _prepare("encrypt", key, options, ENCRYPTION_ALGORITHMS, Usage.ENCRYPT)
    engine = engine or get_engine()
    return await engine.encrypt(params, key, as_bytes(data))


@log_operation("decrypt")
async def decrypt(
    data: Payload,
    key: CryptoKey,
    options: Options = None,
    *,
    engine: CryptoEngine | None = None,
) -> bytes:
    """Decrypt data with an RSA-OAEP private key or an AES-CTR/CBC/GCM key.

    Raises:
        UnsupportedAlgorithmError: If the key's algorithm cannot decrypt
        UsageDeniedError: If the key lacks the 'decrypt' usage
        EngineError: If the engine fails (e.g. wrong key or tampered data)
    """
    params = _prepare("decrypt", key, options, ENCRYPTION_ALGORITHMS, Usage.DECRYPT)
    engine = engine or get_engine()
    return await engine.decrypt(params, key, as_bytes(data))


@log_operation("sign")
async def sign(
    data: Payload,
    key: CryptoKey,
    options: Options = None,
    *,
    engine: CryptoEngine | None = None,
) -> bytes:
    """Sign data with an RSA-PSS, ECDSA or Ed25519 private key, or an HMAC key.

    RSA-PSS needs RsaPssOptions(salt_length=...), ECDSA needs
    EcdsaOptions(hash=...).

    Raises:
        UnsupportedAlgorithmError: If the key's algorithm cannot sign
        UsageDeniedError: If the key lacks the 'sign' usage
        EngineError: If the engine fails
    """
    params = _prepare("sign", key, options, SIGNATURE_ALGORITHMS, Usage.SIGN)
    engine = engine or get_engine()
    return await engine.sign(params, key, as_bytes(data))


@log_operation("verify")
async def verify(
    data: Payload,
    key: CryptoKey,
    signature: bytes,
    options: Options = None,
    *,
    engine: CryptoEngine | None = None,
) -> bool:
    """Verify a signature over data.

    Returns:
        True if the signature is valid, False otherwise

    Raises:
        UnsupportedAlgorithmError: If the key's algorithm cannot verify
        UsageDeniedError: If the key lacks the 'verify' usage
        EngineError: If the engine fails
    """
    params = _prepare("verify", key, options, SIGNATURE_ALGORITHMS, Usage.VERIFY)
    engine = engine or get_engine()
    return await engine.verify(params, key, as_bytes(signature), as_bytes(data))
