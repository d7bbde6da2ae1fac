"""
enc-core - Profile-driven key provisioning and usage-checked crypto operations.

Build a profile for what a key is for, generate or import the key, then
encrypt, decrypt, sign, verify or export it. Every operation checks the
key's algorithm and usages before the engine is called.

    from enc_core import AesPurpose, aes_key, generate_key, encrypt, AesGcmOptions

    key = await generate_key(aes_key(AesPurpose.INTEGRITY_PROTECTION))
    ciphertext = await encrypt("hello", key, AesGcmOptions(iv=os.urandom(12)))
"""

from enc_core.algorithms import (
    AesCbcOptions,
    AesCtrOptions,
    AesGcmOptions,
    AesParams,
    AlgorithmFamily,
    AlgorithmName,
    EcdsaOptions,
    EcParams,
    HashName,
    HmacParams,
    KeyFormat,
    KeyRole,
    KeyShape,
    NamedCurve,
    NamedParams,
    OperationOptions,
    RsaHashedParams,
    RsaOaepOptions,
    RsaPssOptions,
    Usage,
    usages_for_role,
)
from enc_core.engine import (
    CryptoEngine,
    CryptoKey,
    CryptoKeyPair,
    LocalEngine,
    get_engine,
    reset_engine,
)
from enc_core.errors import (
    CryptoError,
    EngineError,
    NotExtractableError,
    UnsupportedAlgorithmError,
    UsageDeniedError,
)
from enc_core.export import export_key
from enc_core.keys import (
    generate_key,
    generate_key_pair,
    generate_secret_key,
    import_key,
)
from enc_core.logging import setup_logging
from enc_core.operations import decrypt, encrypt, sign, verify
from enc_core.profiles import (
    AesPurpose,
    AlgorithmProfile,
    AsymmetricPurpose,
    aes_key,
    ec_key,
    ed25519_key,
    hmac_key,
    profile_of,
    rsa_key,
    x25519_key,
)

__version__ = "0.1.0"

__all__ = [
    # Profiles
    "AlgorithmProfile",
    "AsymmetricPurpose",
    "AesPurpose",
    "ec_key",
    "rsa_key",
    "aes_key",
    "hmac_key",
    "ed25519_key",
    "x25519_key",
    "profile_of",
    # Keys
    "CryptoKey",
    "CryptoKeyPair",
    "generate_key",
    "generate_key_pair",
    "generate_secret_key",
    "import_key",
    "export_key",
    # Operations
    "encrypt",
    "decrypt",
    "sign",
    "verify",
    # Vocabulary
    "Usage",
    "KeyRole",
    "KeyFormat",
    "KeyShape",
    "AlgorithmFamily",
    "AlgorithmName",
    "HashName",
    "NamedCurve",
    "RsaHashedParams",
    "EcParams",
    "AesParams",
    "HmacParams",
    "NamedParams",
    "usages_for_role",
    # Operation options
    "OperationOptions",
    "RsaOaepOptions",
    "RsaPssOptions",
    "EcdsaOptions",
    "AesCtrOptions",
    "AesCbcOptions",
    "AesGcmOptions",
    # Engine
    "CryptoEngine",
    "LocalEngine",
    "get_engine",
    "reset_engine",
    # Errors
    "CryptoError",
    "UnsupportedAlgorithmError",
    "UsageDeniedError",
    "NotExtractableError",
    "EngineError",
    # Logging
    "setup_logging",
]
