"""Key generation and import.

Profiles are handed to the engine unchanged; the only local logic is
extractability overrides and role-based usage filtering on import.
"""

from typing import Any, Mapping

from enc_core.algorithms import KeyFormat, KeyRole, KeyShape, ordered_usages, usages_for_role
from enc_core.engine.base import CryptoEngine, CryptoKey, CryptoKeyPair
from enc_core.engine.factory import get_engine
from enc_core.errors import UnsupportedAlgorithmError
from enc_core.logging import get_logger, log_operation
from enc_core.profiles import AlgorithmProfile

logger = get_logger(__name__)


@log_operation("generate_key")
async def generate_key(
    profile: AlgorithmProfile,
    extractable: bool | None = None,
    *,
    engine: CryptoEngine | None = None,
) -> CryptoKey | CryptoKeyPair:
    """Generate a key or key pair for a profile.

    Asymmetric families (RSA, EC, Ed25519, X25519) yield a CryptoKeyPair,
    AES and HMAC a single CryptoKey; see profile.key_shape.

    Args:
        profile: Profile from one of the enc_core.profiles builders
        extractable: Overrides profile.extractable when given
        engine: Engine to use (defaults to get_engine())

    Raises:
        EngineError: If the engine rejects the profile
    """
    engine = engine or get_engine()
    if extractable is None:
        extractable = profile.extractable

    logger.debug(
        "Generating key",
        algorithm=profile.name.value,
        shape=profile.key_shape.value,
        extractable=extractable,
    )
    return await engine.generate_key(profile.algorithm, extractable, profile.allowed_usages)


async def generate_key_pair(
    profile: AlgorithmProfile,
    extractable: bool | None = None,
    *,
    engine: CryptoEngine | None = None,
) -> CryptoKeyPair:
    """Generate a key pair; the profile must be asymmetric.

    Raises:
        UnsupportedAlgorithmError: If the profile describes a secret key
    """
    if profile.key_shape != KeyShape.PAIR:
        raise UnsupportedAlgorithmError(f"{profile.name.value} does not produce a key pair")
    return await generate_key(profile, extractable, engine=engine)


async def generate_secret_key(
    profile: AlgorithmProfile,
    extractable: bool | None = None,
    *,
    engine: CryptoEngine | None = None,
) -> CryptoKey:
    """Generate a single secret key; the profile must be AES or HMAC.

    Raises:
        UnsupportedAlgorithmError: If the profile describes a key pair
    """
    if profile.key_shape != KeyShape.SECRET:
        raise UnsupportedAlgorithmError(f"{profile.name.value} produces a key pair, not a secret key")
    return await generate_key(profile, extractable, engine=engine)


@log_operation("import_key")
async def import_key(
    format: KeyFormat | str,
    role: KeyRole | str,
    key_data: bytes | Mapping[str, Any],
    profile: AlgorithmProfile,
    extractable: bool | None = None,
    *,
    engine: CryptoEngine | None = None,
) -> CryptoKey:
    """Import key material for a profile.

    Usages that make no sense for the role are dropped before the engine
    sees them: a public key never keeps sign/decrypt/unwrapKey, a private
    key never keeps verify/encrypt/wrapKey. Secret keys keep everything.

    Args:
        format: raw, spki, pkcs8 or jwk
        role: public, private or secret
        key_data: bytes, or a JWK dict for the jwk format
        profile: Profile the key should follow
        extractable: Overrides profile.extractable when given
        engine: Engine to use (defaults to get_engine())

    Raises:
        EngineError: If the material is malformed for the format
    """
    engine = engine or get_engine()
    format = KeyFormat(format)
    role = KeyRole(role)
    if extractable is None:
        extractable = profile.extractable

    usages = usages_for_role(profile.allowed_usages, role)
    dropped = profile.allowed_usages - usages
    if dropped:
        logger.debug(
            "Dropped usages inconsistent with role",
            role=role.value,
            dropped=[u.value for u in ordered_usages(dropped)],
        )

    return await engine.import_key(format, key_data, profile.algorithm, extractable, usages)
