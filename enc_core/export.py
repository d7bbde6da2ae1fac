"""Key export."""

from typing import Any

from enc_core.algorithms import AlgorithmName, KeyFormat
from enc_core.engine.base import CryptoEngine, CryptoKey
from enc_core.engine.factory import get_engine
from enc_core.errors import NotExtractableError
from enc_core.logging import get_logger, log_operation

logger = get_logger(__name__)


@log_operation("export_key")
async def export_key(
    format: KeyFormat | str,
    key: CryptoKey,
    *,
    engine: CryptoEngine | None = None,
) -> bytes | dict[str, Any]:
    """Serialize an extractable key.

    Args:
        format: raw, spki, pkcs8 or jwk
        key: Key to export
        engine: Engine to use (defaults to get_engine())

    Returns:
        A JWK dict for the jwk format, bytes otherwise

    Raises:
        NotExtractableError: If the key was created non-extractable
        EngineError: If the format does not apply to the key
    """
    if not key.extractable:
        logger.warning(
            "Export rejected",
            algorithm=AlgorithmName(key.algorithm.name).value,
            role=key.type.value,
        )
        raise NotExtractableError("Key is not extractable")

    engine = engine or get_engine()
    return await engine.export_key(KeyFormat(format), key)
