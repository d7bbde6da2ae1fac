"""Algorithm profiles.

A profile bundles an algorithm descriptor, an extractability flag and the
usages a key made for a given purpose should carry. Builders pick the
algorithm from a fixed purpose table:

    EC   Signing / Encrypting           -> ECDSA / ECDH
    RSA  Signing / Encrypting           -> RSA-PSS / RSA-OAEP
    AES  Wrapping                       -> AES-KW
         Integrity protection           -> AES-GCM
         Fixed length encryption        -> AES-CBC
         Variable length encryption     -> AES-CTR
    HMAC, Ed25519, X25519               -> fixed

Example:
    profile = rsa_key(AsymmetricPurpose.ENCRYPTING)
    keys = await generate_key(profile)
"""

from dataclasses import dataclass
from enum import Enum

from enc_core.algorithms import (
    AesParams,
    AlgorithmFamily,
    AlgorithmName,
    AlgorithmParams,
    EcParams,
    HashName,
    HmacParams,
    KeyShape,
    NamedCurve,
    NamedParams,
    RsaHashedParams,
    Usage,
    key_shape,
)
from enc_core.engine.base import CryptoKey


class AsymmetricPurpose(str, Enum):
    """Purpose of an RSA or EC key pair."""
    SIGNING = "Signing"
    ENCRYPTING = "Encrypting"


class AesPurpose(str, Enum):
    """Purpose of an AES key."""
    WRAPPING = "Wrapping"
    INTEGRITY_PROTECTION = "Integrity protection"
    FIXED_LENGTH_ENCRYPTION = "Fixed length encryption"
    VARIABLE_LENGTH_ENCRYPTION = "Variable length encryption"


@dataclass(frozen=True)
class AlgorithmProfile:
    """Descriptor, extractability and usages for generating or importing a key."""
    algorithm: AlgorithmParams
    extractable: bool
    allowed_usages: frozenset[Usage]

    @property
    def name(self) -> AlgorithmName:
        return AlgorithmName(self.algorithm.name)

    @property
    def family(self) -> AlgorithmFamily:
        return self.algorithm.family

    @property
    def key_shape(self) -> KeyShape:
        """Whether generation yields a single key or a pair."""
        return key_shape(self.algorithm)


_SIGN_VERIFY = frozenset({Usage.SIGN, Usage.VERIFY})
_DERIVE = frozenset({Usage.DERIVE_KEY, Usage.DERIVE_BITS})
_ENCRYPT_DECRYPT = frozenset({Usage.ENCRYPT, Usage.DECRYPT})
_WRAP_UNWRAP = frozenset({Usage.WRAP_KEY, Usage.UNWRAP_KEY})

EC_PURPOSES: dict[AsymmetricPurpose, tuple[AlgorithmName, frozenset[Usage]]] = {
    AsymmetricPurpose.SIGNING: (AlgorithmName.ECDSA, _SIGN_VERIFY),
    AsymmetricPurpose.ENCRYPTING: (AlgorithmName.ECDH, _DERIVE),
}

RSA_PURPOSES: dict[AsymmetricPurpose, tuple[AlgorithmName, frozenset[Usage]]] = {
    AsymmetricPurpose.SIGNING: (AlgorithmName.RSA_PSS, _SIGN_VERIFY),
    AsymmetricPurpose.ENCRYPTING: (AlgorithmName.RSA_OAEP, _ENCRYPT_DECRYPT | _WRAP_UNWRAP),
}

AES_PURPOSES: dict[AesPurpose, tuple[AlgorithmName, frozenset[Usage]]] = {
    AesPurpose.WRAPPING: (AlgorithmName.AES_KW, _WRAP_UNWRAP),
    AesPurpose.INTEGRITY_PROTECTION: (AlgorithmName.AES_GCM, _ENCRYPT_DECRYPT),
    AesPurpose.FIXED_LENGTH_ENCRYPTION: (AlgorithmName.AES_CBC, _ENCRYPT_DECRYPT),
    AesPurpose.VARIABLE_LENGTH_ENCRYPTION: (AlgorithmName.AES_CTR, _ENCRYPT_DECRYPT),
}


def ec_key(
    purpose: AsymmetricPurpose | str,
    curve: NamedCurve | str = NamedCurve.P256,
) -> AlgorithmProfile:
    """Profile for an EC key pair.

    Args:
        purpose: Signing (ECDSA) or Encrypting (ECDH)
        curve: P-256, P-384 or P-521

    Raises:
        ValueError: If purpose or curve is unknown
    """
    name, usages = EC_PURPOSES[AsymmetricPurpose(purpose)]
    return AlgorithmProfile(
        algorithm=EcParams(name=name, named_curve=NamedCurve(curve)),
        extractable=True,
        allowed_usages=usages,
    )


def rsa_key(
    purpose: AsymmetricPurpose | str,
    modulus_length: int = 2048,
    hash: HashName | str = HashName.SHA256,
) -> AlgorithmProfile:
    """Profile for an RSA key pair with public exponent 65537.

    Args:
        purpose: Signing (RSA-PSS) or Encrypting (RSA-OAEP)
        modulus_length: Modulus length in bits
        hash: SHA-256, SHA-384 or SHA-512

    Raises:
        ValueError: If purpose or hash is unknown
    """
    name, usages = RSA_PURPOSES[AsymmetricPurpose(purpose)]
    return AlgorithmProfile(
        algorithm=RsaHashedParams(
            name=name,
            hash=HashName(hash),
            modulus_length=modulus_length,
            public_exponent=65537,
        ),
        extractable=True,
        allowed_usages=usages,
    )


def aes_key(purpose: AesPurpose | str, length: int = 256) -> AlgorithmProfile:
    """Profile for an AES key.

    Args:
        purpose: Wrapping, Integrity protection, Fixed length encryption
            or Variable length encryption
        length: Key length in bits (128, 192 or 256)

    Raises:
        ValueError: If purpose is unknown
    """
    name, usages = AES_PURPOSES[AesPurpose(purpose)]
    return AlgorithmProfile(
        algorithm=AesParams(name=name, length=length),
        extractable=True,
        allowed_usages=usages,
    )


def hmac_key(hash: HashName | str = HashName.SHA256, length: int | None = None) -> AlgorithmProfile:
    """Profile for an HMAC key.

    Args:
        hash: SHA-256, SHA-384 or SHA-512
        length: Key length in bits; None uses the hash block size
    """
    return AlgorithmProfile(
        algorithm=HmacParams(hash=HashName(hash), length=length),
        extractable=True,
        allowed_usages=_SIGN_VERIFY,
    )


def ed25519_key() -> AlgorithmProfile:
    """Profile for an Ed25519 signing key pair."""
    return AlgorithmProfile(
        algorithm=NamedParams(name=AlgorithmName.ED25519),
        extractable=True,
        allowed_usages=_SIGN_VERIFY,
    )


def x25519_key() -> AlgorithmProfile:
    """Profile for an X25519 key agreement pair."""
    return AlgorithmProfile(
        algorithm=NamedParams(name=AlgorithmName.X25519),
        extractable=True,
        allowed_usages=_DERIVE,
    )


def profile_of(key: CryptoKey) -> AlgorithmProfile:
    """Rebuild a profile from a key's own descriptor, extractability and usages.

    The usage set may be empty (e.g. an ECDH public key).
    """
    return AlgorithmProfile(
        algorithm=key.algorithm,
        extractable=key.extractable,
        allowed_usages=key.usages,
    )
