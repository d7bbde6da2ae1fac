"""Algorithm vocabulary shared by profiles, keys and the engine.

Defines:
- Usage tags and the public/private role partition
- Algorithm names, families, hashes and curves
- Algorithm descriptors (one frozen dataclass per family)
- Operation options that overlay tunables onto a key's descriptor
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field


class Usage(str, Enum):
    """Capability tags bound to a key at creation."""
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    SIGN = "sign"
    VERIFY = "verify"
    DERIVE_KEY = "deriveKey"
    DERIVE_BITS = "deriveBits"
    WRAP_KEY = "wrapKey"
    UNWRAP_KEY = "unwrapKey"


class KeyRole(str, Enum):
    """Which half of a pair a key is, or secret for symmetric keys."""
    PUBLIC = "public"
    PRIVATE = "private"
    SECRET = "secret"


class KeyFormat(str, Enum):
    """Key serialization formats."""
    RAW = "raw"
    SPKI = "spki"  # SubjectPublicKeyInfo, DER
    PKCS8 = "pkcs8"  # PrivateKeyInfo, DER
    JWK = "jwk"  # JSON Web Key (dict)


class KeyShape(str, Enum):
    """What key generation returns for a family."""
    SECRET = "secret"  # a single CryptoKey
    PAIR = "pair"  # a CryptoKeyPair


class AlgorithmFamily(str, Enum):
    """Descriptor families."""
    RSA = "RSA"
    EC = "EC"
    AES = "AES"
    HMAC = "HMAC"
    OKP = "OKP"  # fixed-name Ed25519 / X25519


class AlgorithmName(str, Enum):
    """Supported algorithm names."""
    RSA_OAEP = "RSA-OAEP"
    RSA_PSS = "RSA-PSS"
    ECDSA = "ECDSA"
    ECDH = "ECDH"
    AES_CTR = "AES-CTR"
    AES_CBC = "AES-CBC"
    AES_GCM = "AES-GCM"
    AES_KW = "AES-KW"
    HMAC = "HMAC"
    ED25519 = "Ed25519"
    X25519 = "X25519"


class HashName(str, Enum):
    """Digest algorithms usable with RSA, ECDSA and HMAC."""
    SHA256 = "SHA-256"
    SHA384 = "SHA-384"
    SHA512 = "SHA-512"


class NamedCurve(str, Enum):
    """NIST curves for ECDSA / ECDH."""
    P256 = "P-256"
    P384 = "P-384"
    P521 = "P-521"


# Role partition
PRIVATE_ONLY_USAGES = frozenset({Usage.SIGN, Usage.UNWRAP_KEY, Usage.DECRYPT})
PUBLIC_ONLY_USAGES = frozenset({Usage.VERIFY, Usage.WRAP_KEY, Usage.ENCRYPT})

ROLE_PERMITTED_USAGES: dict[KeyRole, frozenset[Usage]] = {
    KeyRole.PUBLIC: frozenset(Usage) - PRIVATE_ONLY_USAGES,
    KeyRole.PRIVATE: frozenset(Usage) - PUBLIC_ONLY_USAGES,
    KeyRole.SECRET: frozenset(Usage),
}


def usages_for_role(usages, role: KeyRole | str) -> frozenset[Usage]:
    """Keep only the usages meaningful for a key role.

    Usages that contradict the role are dropped, never reported.
    """
    return frozenset(Usage(u) for u in usages) & ROLE_PERMITTED_USAGES[KeyRole(role)]


def ordered_usages(usages) -> list[Usage]:
    """Usages in declaration order (stable output for JWK key_ops and logs)."""
    present = {Usage(u) for u in usages}
    return [u for u in Usage if u in present]


# ==================== Descriptors ====================

@dataclass(frozen=True)
class RsaHashedParams:
    """RSA-OAEP / RSA-PSS descriptor."""
    family: ClassVar[AlgorithmFamily] = AlgorithmFamily.RSA
    name: AlgorithmName
    hash: HashName = HashName.SHA256
    modulus_length: int = 2048
    public_exponent: int = 65537


@dataclass(frozen=True)
class EcParams:
    """ECDSA / ECDH descriptor."""
    family: ClassVar[AlgorithmFamily] = AlgorithmFamily.EC
    name: AlgorithmName
    named_curve: NamedCurve = NamedCurve.P256


@dataclass(frozen=True)
class AesParams:
    """AES-CTR / AES-CBC / AES-GCM / AES-KW descriptor."""
    family: ClassVar[AlgorithmFamily] = AlgorithmFamily.AES
    name: AlgorithmName
    length: int = 256


@dataclass(frozen=True)
class HmacParams:
    """HMAC descriptor. length=None means the hash block size."""
    family: ClassVar[AlgorithmFamily] = AlgorithmFamily.HMAC
    name: AlgorithmName = AlgorithmName.HMAC
    hash: HashName = HashName.SHA256
    length: int | None = None


@dataclass(frozen=True)
class NamedParams:
    """Ed25519 / X25519 descriptor (name only)."""
    family: ClassVar[AlgorithmFamily] = AlgorithmFamily.OKP
    name: AlgorithmName


AlgorithmParams = Union[RsaHashedParams, EcParams, AesParams, HmacParams, NamedParams]

ASYMMETRIC_FAMILIES = frozenset({AlgorithmFamily.RSA, AlgorithmFamily.EC, AlgorithmFamily.OKP})


def key_shape(algorithm: AlgorithmParams) -> KeyShape:
    """Shape of generateKey output for a descriptor."""
    if algorithm.family in ASYMMETRIC_FAMILIES:
        return KeyShape.PAIR
    return KeyShape.SECRET


# ==================== Operation options ====================

class OperationOptions(BaseModel):
    """Tunables merged onto a key's descriptor at call time.

    Subclasses never declare a name field: options cannot change which
    algorithm runs, only how it is parameterised.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")


class RsaOaepOptions(OperationOptions):
    label: bytes | None = None


class RsaPssOptions(OperationOptions):
    salt_length: int = Field(ge=0, description="Salt length in bytes")


class EcdsaOptions(OperationOptions):
    hash: HashName


class AesCtrOptions(OperationOptions):
    counter: bytes = Field(description="Initial 16-byte counter block")
    length: int = Field(ge=1, le=128, description="Bits of the block used as counter")


class AesCbcOptions(OperationOptions):
    iv: bytes


class AesGcmOptions(OperationOptions):
    iv: bytes
    additional_data: bytes | None = None
    tag_length: int = 128


def merge_options(
    algorithm: AlgorithmParams,
    options: OperationOptions | Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Overlay operation options onto a copy of a key descriptor.

    Returns the effective parameter mapping handed to the engine. The
    algorithm name always comes from the key.

    Raises:
        ValueError: If a mapping tries to select a different algorithm
    """
    params = asdict(algorithm)
    if options is None:
        return params

    if isinstance(options, OperationOptions):
        overlay = options.model_dump(exclude_none=True)
    else:
        overlay = dict(options)
        requested = overlay.pop("name", None)
        if requested is not None and requested != algorithm.name:
            raise ValueError(
                f"Operation options cannot change the algorithm "
                f"({algorithm.name.value} -> {requested})"
            )

    params.update(overlay)
    params["name"] = algorithm.name
    return params
