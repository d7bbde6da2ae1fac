"""Engine factory.

Creates the engine backend selected by configuration.
"""

import logging
from enum import Enum
from functools import lru_cache

from enc_core.config import get_settings
from enc_core.engine.base import CryptoEngine, NotSupportedError
from enc_core.engine.local import LocalEngine

logger = logging.getLogger(__name__)


class EngineBackend(str, Enum):
    """Known engine backends."""
    LOCAL = "local"  # In-process, cryptography package


# Registry of engine backends
_engines: dict[EngineBackend, type[CryptoEngine]] = {
    EngineBackend.LOCAL: LocalEngine,
}


def register_engine(backend: EngineBackend, engine_class: type[CryptoEngine]) -> None:
    """Register an engine class.

    Args:
        backend: Backend identifier
        engine_class: Class implementing CryptoEngine
    """
    _engines[backend] = engine_class
    logger.info(f"Registered engine backend: {backend.value}")


@lru_cache(maxsize=1)
def get_engine() -> CryptoEngine:
    """Get the configured engine.

    Returns a cached instance. Engines hold no keys, so sharing one
    instance between callers shares no state.

    Raises:
        NotSupportedError: If the configured backend is unknown
    """
    backend_str = get_settings().engine_backend.lower()
    try:
        backend = EngineBackend(backend_str)
    except ValueError:
        raise NotSupportedError(
            f"Unknown engine backend: {backend_str}. "
            f"Supported: {', '.join(b.value for b in EngineBackend)}"
        )

    engine_class = _engines.get(backend)
    if engine_class is None:
        raise NotSupportedError(f"Engine backend '{backend.value}' is not registered")

    logger.debug(f"Created engine backend: {backend.value}")
    return engine_class()


def reset_engine() -> None:
    """Reset the cached engine.

    Useful for testing or reconfiguration.
    """
    get_engine.cache_clear()
