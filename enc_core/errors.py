"""Exceptions raised by enc_core.

The façade raises three precondition failures of its own. Everything the
engine raises derives from EngineError and reaches the caller unchanged.
"""


class CryptoError(Exception):
    """Base exception for enc_core."""
    pass


class UnsupportedAlgorithmError(CryptoError):
    """Key algorithm is not allowed for the requested operation."""
    pass


class UsageDeniedError(CryptoError):
    """Key was not created with the usage the operation requires."""
    pass


class NotExtractableError(CryptoError):
    """Export requested on a non-extractable key."""
    pass


class EngineError(CryptoError):
    """The cryptographic engine rejected the call."""
    pass
