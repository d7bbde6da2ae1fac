"""Local engine backed by the `cryptography` package.

Implements the engine contract in-process:
- RSA-OAEP / RSA-PSS with MGF1 over the key's hash
- ECDSA (raw r||s signatures) / ECDH key material on P-256, P-384, P-521
- AES-CTR, AES-CBC (PKCS#7), AES-GCM, AES-KW key material
- HMAC over SHA-256/384/512
- Ed25519 / X25519

Every failure surfaces as an EngineError subclass with the underlying
`cryptography` exception chained as __cause__.
"""

import logging
import os
from typing import Any, Iterable, Mapping

from cryptography.exceptions import InvalidSignature, InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives import padding as block_padding
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa, x25519
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from enc_core.algorithms import (
    AesParams,
    AlgorithmFamily,
    AlgorithmName,
    AlgorithmParams,
    EcParams,
    HashName,
    HmacParams,
    KeyFormat,
    KeyRole,
    KeyShape,
    NamedCurve,
    NamedParams,
    RsaHashedParams,
    Usage,
    key_shape,
    ordered_usages,
)
from enc_core.engine import jwk as jwk_codec
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

logger = logging.getLogger(__name__)

_HASHES = {
    HashName.SHA256: hashes.SHA256,
    HashName.SHA384: hashes.SHA384,
    HashName.SHA512: hashes.SHA512,
}

# HMAC default key length is the hash block size
_HASH_BLOCK_BITS = {
    HashName.SHA256: 512,
    HashName.SHA384: 1024,
    HashName.SHA512: 1024,
}

_CURVES = {
    NamedCurve.P256: ec.SECP256R1,
    NamedCurve.P384: ec.SECP384R1,
    NamedCurve.P521: ec.SECP521R1,
}

_OKP_PRIVATE = {
    AlgorithmName.ED25519: ed25519.Ed25519PrivateKey,
    AlgorithmName.X25519: x25519.X25519PrivateKey,
}

_OKP_PUBLIC = {
    AlgorithmName.ED25519: ed25519.Ed25519PublicKey,
    AlgorithmName.X25519: x25519.X25519PublicKey,
}

_DESCRIPTOR_TYPES = {
    AlgorithmName.RSA_OAEP: RsaHashedParams,
    AlgorithmName.RSA_PSS: RsaHashedParams,
    AlgorithmName.ECDSA: EcParams,
    AlgorithmName.ECDH: EcParams,
    AlgorithmName.AES_CTR: AesParams,
    AlgorithmName.AES_CBC: AesParams,
    AlgorithmName.AES_GCM: AesParams,
    AlgorithmName.AES_KW: AesParams,
    AlgorithmName.HMAC: HmacParams,
    AlgorithmName.ED25519: NamedParams,
    AlgorithmName.X25519: NamedParams,
}

_ENCRYPT_PAIR = frozenset({Usage.ENCRYPT, Usage.DECRYPT, Usage.WRAP_KEY, Usage.UNWRAP_KEY})
_SIGN_PAIR = frozenset({Usage.SIGN, Usage.VERIFY})
_DERIVE = frozenset({Usage.DERIVE_KEY, Usage.DERIVE_BITS})

# Usages an algorithm can ever carry
SUPPORTED_USAGES: dict[AlgorithmName, frozenset[Usage]] = {
    AlgorithmName.RSA_OAEP: _ENCRYPT_PAIR,
    AlgorithmName.RSA_PSS: _SIGN_PAIR,
    AlgorithmName.ECDSA: _SIGN_PAIR,
    AlgorithmName.ECDH: _DERIVE,
    AlgorithmName.AES_CTR: _ENCRYPT_PAIR,
    AlgorithmName.AES_CBC: _ENCRYPT_PAIR,
    AlgorithmName.AES_GCM: _ENCRYPT_PAIR,
    AlgorithmName.AES_KW: frozenset({Usage.WRAP_KEY, Usage.UNWRAP_KEY}),
    AlgorithmName.HMAC: _SIGN_PAIR,
    AlgorithmName.ED25519: _SIGN_PAIR,
    AlgorithmName.X25519: _DERIVE,
}

# Per key type for asymmetric algorithms
PUBLIC_KEY_USAGES: dict[AlgorithmName, frozenset[Usage]] = {
    AlgorithmName.RSA_OAEP: frozenset({Usage.ENCRYPT, Usage.WRAP_KEY}),
    AlgorithmName.RSA_PSS: frozenset({Usage.VERIFY}),
    AlgorithmName.ECDSA: frozenset({Usage.VERIFY}),
    AlgorithmName.ECDH: frozenset(),
    AlgorithmName.ED25519: frozenset({Usage.VERIFY}),
    AlgorithmName.X25519: frozenset(),
}

PRIVATE_KEY_USAGES: dict[AlgorithmName, frozenset[Usage]] = {
    AlgorithmName.RSA_OAEP: frozenset({Usage.DECRYPT, Usage.UNWRAP_KEY}),
    AlgorithmName.RSA_PSS: frozenset({Usage.SIGN}),
    AlgorithmName.ECDSA: frozenset({Usage.SIGN}),
    AlgorithmName.ECDH: _DERIVE,
    AlgorithmName.ED25519: frozenset({Usage.SIGN}),
    AlgorithmName.X25519: _DERIVE,
}

# Expected JWK "use" per algorithm
_JWK_USE = {
    AlgorithmName.RSA_OAEP: "enc",
    AlgorithmName.RSA_PSS: "sig",
    AlgorithmName.ECDSA: "sig",
    AlgorithmName.ECDH: "enc",
    AlgorithmName.ED25519: "sig",
    AlgorithmName.X25519: "enc",
}

_GCM_TAG_LENGTHS = (32, 64, 96, 104, 112, 120, 128)
_AES_LENGTHS = (128, 192, 256)
_BLOCK_BYTES = 16


def _algorithm_name(value: Any) -> AlgorithmName:
    try:
        return AlgorithmName(value)
    except ValueError as e:
        raise NotSupportedError(f"Unknown algorithm: {value}") from e


def _hash(value: Any) -> hashes.HashAlgorithm:
    try:
        return _HASHES[HashName(value)]()
    except ValueError as e:
        raise NotSupportedError(f"Unsupported hash: {value}") from e


def _as_bytes(value: Any, what: str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise InvalidParametersError(f"{what} must be bytes")


class LocalEngine(CryptoEngine):
    """In-process engine built on `cryptography`.

    Holds no state: keys live only in the CryptoKey handles it returns.
    """

    # ==================== Generation ====================

    async def generate_key(
        self,
        algorithm: AlgorithmParams,
        extractable: bool,
        usages: Iterable[Usage],
    ) -> CryptoKey | CryptoKeyPair:
        """Generate a secret key or a key pair.

        Pairs always get an extractable public half holding the public-side
        usages; the private half holds the private-side usages.
        """
        name = self._check_descriptor(algorithm)
        requested = self._check_usages(name, usages)

        if key_shape(algorithm) == KeyShape.PAIR:
            private_handle = self._generate_private(name, algorithm)
            realized = self._realize(name, algorithm, private_handle)

            private_usages = requested & PRIVATE_KEY_USAGES[name]
            if not private_usages:
                raise InvalidUsagesError(f"{name.value} private key requires at least one usage")

            logger.debug(f"Generated {name.value} key pair")
            return CryptoKeyPair(
                public_key=CryptoKey(
                    type=KeyRole.PUBLIC,
                    extractable=True,
                    algorithm=realized,
                    usages=requested & PUBLIC_KEY_USAGES[name],
                    handle=private_handle.public_key(),
                ),
                private_key=CryptoKey(
                    type=KeyRole.PRIVATE,
                    extractable=extractable,
                    algorithm=realized,
                    usages=private_usages,
                    handle=private_handle,
                ),
            )

        if not requested:
            raise InvalidUsagesError(f"{name.value} secret key requires at least one usage")

        secret, realized = self._generate_secret(name, algorithm)
        logger.debug(f"Generated {name.value} secret key ({len(secret) * 8} bits)")
        return CryptoKey(
            type=KeyRole.SECRET,
            extractable=extractable,
            algorithm=realized,
            usages=requested,
            handle=secret,
        )

    def _generate_private(self, name: AlgorithmName, algorithm: AlgorithmParams):
        if algorithm.family == AlgorithmFamily.RSA:
            try:
                return rsa.generate_private_key(
                    public_exponent=algorithm.public_exponent,
                    key_size=algorithm.modulus_length,
                )
            except (ValueError, TypeError) as e:
                raise OperationError(f"RSA key generation failed: {e}") from e

        if algorithm.family == AlgorithmFamily.EC:
            return ec.generate_private_key(self._curve(algorithm.named_curve))

        return _OKP_PRIVATE[name].generate()

    def _generate_secret(
        self,
        name: AlgorithmName,
        algorithm: AlgorithmParams,
    ) -> tuple[bytes, AlgorithmParams]:
        if algorithm.family == AlgorithmFamily.AES:
            if algorithm.length not in _AES_LENGTHS:
                raise OperationError(f"AES key length must be 128, 192 or 256 bits, got {algorithm.length}")
            return os.urandom(algorithm.length // 8), AesParams(name=name, length=algorithm.length)

        hash_name = self._hash_name(algorithm.hash)
        length = algorithm.length if algorithm.length is not None else _HASH_BLOCK_BITS[hash_name]
        if length <= 0:
            raise OperationError("HMAC key length must be positive")
        return os.urandom((length + 7) // 8), HmacParams(hash=hash_name, length=length)

    # ==================== Import ====================

    async def import_key(
        self,
        format: KeyFormat,
        key_data: bytes | Mapping[str, Any],
        algorithm: AlgorithmParams,
        extractable: bool,
        usages: Iterable[Usage],
    ) -> CryptoKey:
        """Import key material in raw, spki, pkcs8 or jwk form."""
        name = self._check_descriptor(algorithm)
        requested = self._check_usages(name, usages)
        try:
            format = KeyFormat(format)
        except ValueError as e:
            raise NotSupportedError(f"Unknown key format: {format}") from e

        if format == KeyFormat.JWK:
            if not isinstance(key_data, Mapping):
                raise DataError("JWK import requires a mapping")
            material: Any = key_data
        else:
            if not isinstance(key_data, (bytes, bytearray, memoryview)):
                raise DataError(f"{format.value} import requires bytes")
            material = bytes(key_data)

        family = algorithm.family
        if family == AlgorithmFamily.RSA:
            handle, role = self._import_rsa(format, material)
        elif family == AlgorithmFamily.EC:
            handle, role = self._import_ec(format, material, algorithm.named_curve)
        elif family == AlgorithmFamily.OKP:
            handle, role = self._import_okp(format, material, name)
        else:
            handle, role = self._import_secret(format, material)

        if role == KeyRole.SECRET:
            realized = self._realize_secret(name, algorithm, handle)
            if not requested:
                raise InvalidUsagesError(f"{name.value} secret key requires at least one usage")
        else:
            realized = self._realize(name, algorithm, handle)
            allowed = PUBLIC_KEY_USAGES[name] if role == KeyRole.PUBLIC else PRIVATE_KEY_USAGES[name]
            if requested - allowed:
                bad = ", ".join(u.value for u in ordered_usages(requested - allowed))
                raise InvalidUsagesError(f"Usages not valid for a {name.value} {role.value} key: {bad}")
            if role == KeyRole.PRIVATE and not requested:
                raise InvalidUsagesError(f"{name.value} private key requires at least one usage")

        if format == KeyFormat.JWK:
            self._check_jwk_metadata(material, realized, extractable, requested)

        logger.debug(f"Imported {name.value} {role.value} key from {format.value}")
        return CryptoKey(
            type=role,
            extractable=extractable,
            algorithm=realized,
            usages=requested,
            handle=handle,
        )

    def _import_rsa(self, format: KeyFormat, material: Any) -> tuple[Any, KeyRole]:
        if format == KeyFormat.JWK:
            handle = jwk_codec.jwk_to_rsa(material)
        elif format == KeyFormat.SPKI:
            handle = self._load_der_public(material)
        elif format == KeyFormat.PKCS8:
            handle = self._load_der_private(material)
        else:
            raise NotSupportedError("RSA keys cannot be imported in raw format")

        if isinstance(handle, rsa.RSAPrivateKey):
            return handle, KeyRole.PRIVATE
        if isinstance(handle, rsa.RSAPublicKey):
            return handle, KeyRole.PUBLIC
        raise DataError("Key material is not an RSA key")

    def _import_ec(self, format: KeyFormat, material: Any, curve: NamedCurve) -> tuple[Any, KeyRole]:
        curve = self._curve_name(curve)
        curve_impl = self._curve(curve)

        if format == KeyFormat.RAW:
            try:
                handle = ec.EllipticCurvePublicKey.from_encoded_point(curve_impl, material)
            except ValueError as e:
                raise DataError(f"Invalid {curve.value} point: {e}") from e
        elif format == KeyFormat.JWK:
            handle = jwk_codec.jwk_to_ec(material, curve, curve_impl)
        elif format == KeyFormat.SPKI:
            handle = self._load_der_public(material)
        else:
            handle = self._load_der_private(material)

        if not isinstance(handle, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
            raise DataError("Key material is not an EC key")
        if handle.curve.name != curve_impl.name:
            raise DataError(f"Key curve {handle.curve.name} does not match {curve.value}")

        if isinstance(handle, ec.EllipticCurvePrivateKey):
            return handle, KeyRole.PRIVATE
        return handle, KeyRole.PUBLIC

    def _import_okp(self, format: KeyFormat, material: Any, name: AlgorithmName) -> tuple[Any, KeyRole]:
        if format == KeyFormat.RAW:
            try:
                handle = _OKP_PUBLIC[name].from_public_bytes(material)
            except ValueError as e:
                raise DataError(f"Invalid {name.value} public key: {e}") from e
        elif format == KeyFormat.JWK:
            handle = jwk_codec.jwk_to_okp(material, name)
        elif format == KeyFormat.SPKI:
            handle = self._load_der_public(material)
        else:
            handle = self._load_der_private(material)

        if isinstance(handle, _OKP_PRIVATE[name]):
            return handle, KeyRole.PRIVATE
        if isinstance(handle, _OKP_PUBLIC[name]):
            return handle, KeyRole.PUBLIC
        raise DataError(f"Key material is not an {name.value} key")

    def _import_secret(self, format: KeyFormat, material: Any) -> tuple[bytes, KeyRole]:
        if format == KeyFormat.RAW:
            return material, KeyRole.SECRET
        if format == KeyFormat.JWK:
            return jwk_codec.jwk_to_secret(material), KeyRole.SECRET
        raise NotSupportedError(f"Secret keys cannot be imported in {format.value} format")

    def _load_der_public(self, material: bytes):
        try:
            return serialization.load_der_public_key(material)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise DataError(f"Invalid SubjectPublicKeyInfo: {e}") from e

    def _load_der_private(self, material: bytes):
        try:
            return serialization.load_der_private_key(material, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise DataError(f"Invalid PKCS#8 PrivateKeyInfo: {e}") from e

    def _check_jwk_metadata(
        self,
        jwk: Mapping[str, Any],
        algorithm: AlgorithmParams,
        extractable: bool,
        usages: frozenset[Usage],
    ) -> None:
        if extractable and jwk.get("ext") is False:
            raise DataError("JWK is marked non-extractable (ext=false)")

        key_ops = jwk.get("key_ops")
        if key_ops is not None:
            if not isinstance(key_ops, (list, tuple)):
                raise DataError("JWK key_ops must be a list")
            missing = {u.value for u in usages} - set(key_ops)
            if missing:
                raise DataError(f"JWK key_ops does not allow: {', '.join(sorted(missing))}")

        use = jwk.get("use")
        expected_use = _JWK_USE.get(AlgorithmName(algorithm.name))
        if use is not None and usages and expected_use is not None and use != expected_use:
            raise DataError(f"JWK use '{use}' does not match {algorithm.name.value}")

        alg = jwk.get("alg")
        expected_alg = jwk_codec.jwk_alg(algorithm)
        if alg is not None and expected_alg is not None and alg != expected_alg:
            raise DataError(f"JWK alg '{alg}' does not match expected '{expected_alg}'")

    # ==================== Descriptors ====================

    def _check_descriptor(self, algorithm: AlgorithmParams) -> AlgorithmName:
        name = _algorithm_name(algorithm.name)
        expected = _DESCRIPTOR_TYPES[name]
        if not isinstance(algorithm, expected):
            raise NotSupportedError(
                f"{name.value} requires {expected.__name__}, got {type(algorithm).__name__}"
            )
        return name

    def _check_usages(self, name: AlgorithmName, usages: Iterable[Usage]) -> frozenset[Usage]:
        try:
            requested = frozenset(Usage(u) for u in usages)
        except ValueError as e:
            raise InvalidUsagesError(str(e)) from e

        unsupported = requested - SUPPORTED_USAGES[name]
        if unsupported:
            bad = ", ".join(u.value for u in ordered_usages(unsupported))
            raise InvalidUsagesError(f"{name.value} does not support usages: {bad}")
        return requested

    def _realize(self, name: AlgorithmName, algorithm: AlgorithmParams, handle: Any) -> AlgorithmParams:
        """Descriptor reflecting the actual asymmetric key."""
        if algorithm.family == AlgorithmFamily.RSA:
            public = handle.public_key() if isinstance(handle, rsa.RSAPrivateKey) else handle
            numbers = public.public_numbers()
            return RsaHashedParams(
                name=name,
                hash=self._hash_name(algorithm.hash),
                modulus_length=public.key_size,
                public_exponent=numbers.e,
            )
        if algorithm.family == AlgorithmFamily.EC:
            return EcParams(name=name, named_curve=self._curve_name(algorithm.named_curve))
        return NamedParams(name=name)

    def _realize_secret(self, name: AlgorithmName, algorithm: AlgorithmParams, secret: bytes) -> AlgorithmParams:
        bits = len(secret) * 8
        if algorithm.family == AlgorithmFamily.AES:
            if bits not in _AES_LENGTHS:
                raise DataError(f"AES key must be 128, 192 or 256 bits, got {bits}")
            return AesParams(name=name, length=bits)

        if bits == 0:
            raise DataError("HMAC key must not be empty")
        length = algorithm.length
        if length is None:
            length = bits
        elif not (bits - 8 < length <= bits):
            raise DataError(f"HMAC length {length} does not match {bits}-bit key data")
        return HmacParams(hash=self._hash_name(algorithm.hash), length=length)

    def _hash_name(self, value: Any) -> HashName:
        try:
            return HashName(value)
        except ValueError as e:
            raise NotSupportedError(f"Unsupported hash: {value}") from e

    def _curve_name(self, value: Any) -> NamedCurve:
        try:
            return NamedCurve(value)
        except ValueError as e:
            raise NotSupportedError(f"Unsupported curve: {value}") from e

    def _curve(self, value: Any) -> ec.EllipticCurve:
        return _CURVES[self._curve_name(value)]()

    # ==================== Export ====================

    async def export_key(self, format: KeyFormat, key: CryptoKey) -> bytes | dict[str, Any]:
        """Serialize a key. JWK yields a dict, every other format bytes."""
        if not key.extractable:
            raise InvalidAccessError("Key is not extractable")
        try:
            format = KeyFormat(format)
        except ValueError as e:
            raise NotSupportedError(f"Unknown key format: {format}") from e

        name = AlgorithmName(key.algorithm.name)
        family = key.algorithm.family

        if format == KeyFormat.JWK:
            return self._export_jwk(name, key)

        if format == KeyFormat.RAW:
            if key.type == KeyRole.SECRET:
                return bytes(key.handle)
            if key.type != KeyRole.PUBLIC:
                raise InvalidAccessError("Only public or secret keys can be exported raw")
            if family == AlgorithmFamily.EC:
                return key.handle.public_bytes(
                    encoding=serialization.Encoding.X962,
                    format=serialization.PublicFormat.UncompressedPoint,
                )
            if family == AlgorithmFamily.OKP:
                return key.handle.public_bytes(
                    encoding=serialization.Encoding.Raw,
                    format=serialization.PublicFormat.Raw,
                )
            raise NotSupportedError(f"{name.value} keys cannot be exported raw")

        if format == KeyFormat.SPKI:
            if key.type != KeyRole.PUBLIC:
                raise InvalidAccessError("spki export requires a public key")
            return key.handle.public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )

        if key.type != KeyRole.PRIVATE:
            raise InvalidAccessError("pkcs8 export requires a private key")
        return key.handle.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def _export_jwk(self, name: AlgorithmName, key: CryptoKey) -> dict[str, Any]:
        family = key.algorithm.family
        if family == AlgorithmFamily.RSA:
            jwk = jwk_codec.rsa_to_jwk(key.handle)
        elif family == AlgorithmFamily.EC:
            jwk = jwk_codec.ec_to_jwk(key.handle, NamedCurve(key.algorithm.named_curve))
        elif family == AlgorithmFamily.OKP:
            jwk = jwk_codec.okp_to_jwk(key.handle, name)
        else:
            jwk = jwk_codec.secret_to_jwk(bytes(key.handle))

        alg = jwk_codec.jwk_alg(key.algorithm)
        if alg is not None:
            jwk["alg"] = alg
        jwk["key_ops"] = [u.value for u in ordered_usages(key.usages)]
        jwk["ext"] = key.extractable
        return jwk

    # ==================== Encryption ====================

    async def encrypt(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        name = self._check_access(params, key, Usage.ENCRYPT)

        if name == AlgorithmName.RSA_OAEP:
            self._require_type(key, KeyRole.PUBLIC, "RSA-OAEP encryption")
            try:
                return key.handle.encrypt(data, self._oaep(key, params))
            except ValueError as e:
                raise OperationError(f"RSA-OAEP encryption failed: {e}") from e

        if name == AlgorithmName.AES_CTR:
            return self._aes_ctr(params, key, data)

        if name == AlgorithmName.AES_CBC:
            iv = self._aes_cbc_iv(params)
            padder = block_padding.PKCS7(128).padder()
            padded = padder.update(data) + padder.finalize()
            encryptor = Cipher(algorithms.AES(key.handle), modes.CBC(iv)).encryptor()
            return encryptor.update(padded) + encryptor.finalize()

        if name == AlgorithmName.AES_GCM:
            iv, aad, tag_bytes = self._aes_gcm_params(params)
            try:
                encryptor = Cipher(algorithms.AES(key.handle), modes.GCM(iv)).encryptor()
            except ValueError as e:
                raise OperationError(f"Invalid AES-GCM parameters: {e}") from e
            if aad:
                encryptor.authenticate_additional_data(aad)
            ciphertext = encryptor.update(data) + encryptor.finalize()
            return ciphertext + encryptor.tag[:tag_bytes]

        raise NotSupportedError(f"{name.value} does not support encrypt")

    async def decrypt(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        name = self._check_access(params, key, Usage.DECRYPT)

        if name == AlgorithmName.RSA_OAEP:
            self._require_type(key, KeyRole.PRIVATE, "RSA-OAEP decryption")
            try:
                return key.handle.decrypt(data, self._oaep(key, params))
            except ValueError as e:
                raise OperationError("RSA-OAEP decryption failed") from e

        if name == AlgorithmName.AES_CTR:
            return self._aes_ctr(params, key, data)

        if name == AlgorithmName.AES_CBC:
            iv = self._aes_cbc_iv(params)
            if len(data) % _BLOCK_BYTES:
                raise OperationError("AES-CBC ciphertext is not a multiple of the block size")
            decryptor = Cipher(algorithms.AES(key.handle), modes.CBC(iv)).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()
            unpadder = block_padding.PKCS7(128).unpadder()
            try:
                return unpadder.update(padded) + unpadder.finalize()
            except ValueError as e:
                raise OperationError("AES-CBC padding is invalid") from e

        if name == AlgorithmName.AES_GCM:
            iv, aad, tag_bytes = self._aes_gcm_params(params)
            if len(data) < tag_bytes:
                raise OperationError("AES-GCM ciphertext is shorter than the tag")
            ciphertext, tag = data[:-tag_bytes], data[-tag_bytes:]
            try:
                decryptor = Cipher(
                    algorithms.AES(key.handle),
                    modes.GCM(iv, tag, min_tag_length=tag_bytes),
                ).decryptor()
                if aad:
                    decryptor.authenticate_additional_data(aad)
                return decryptor.update(ciphertext) + decryptor.finalize()
            except InvalidTag as e:
                raise OperationError("AES-GCM authentication failed") from e
            except ValueError as e:
                raise OperationError(f"Invalid AES-GCM parameters: {e}") from e

        raise NotSupportedError(f"{name.value} does not support decrypt")

    def _oaep(self, key: CryptoKey, params: Mapping[str, Any]) -> padding.OAEP:
        hash_alg = _hash(key.algorithm.hash)
        label = params.get("label")
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hash_alg),
            algorithm=hash_alg,
            label=_as_bytes(label, "label") if label else None,
        )

    def _aes_ctr(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        """AES-CTR where only the low `length` bits of the block count.

        The counter wraps inside those bits; the remaining bits of the
        block stay fixed. Splitting at the wrap point lets cryptography's
        full-block counter do the rest.
        """
        if params.get("counter") is None:
            raise InvalidParametersError("AES-CTR requires a counter block")
        counter = _as_bytes(params["counter"], "counter")
        length = params.get("length")
        if len(counter) != _BLOCK_BYTES:
            raise OperationError("AES-CTR counter must be 16 bytes")
        if not isinstance(length, int) or not 1 <= length <= 128:
            raise OperationError("AES-CTR counter length must be between 1 and 128 bits")

        modulus = 1 << length
        blocks = -(-len(data) // _BLOCK_BYTES)
        if blocks > modulus:
            raise OperationError("AES-CTR input would reuse counter values")

        initial = int.from_bytes(counter, "big")
        fixed = initial & ~(modulus - 1)
        value = initial & (modulus - 1)

        output = bytearray()
        offset = 0
        while offset < len(data):
            chunk = min(len(data) - offset, (modulus - value) * _BLOCK_BYTES)
            block = (fixed | value).to_bytes(_BLOCK_BYTES, "big")
            encryptor = Cipher(algorithms.AES(key.handle), modes.CTR(block)).encryptor()
            output += encryptor.update(data[offset:offset + chunk]) + encryptor.finalize()
            offset += chunk
            value = 0
        return bytes(output)

    def _aes_cbc_iv(self, params: Mapping[str, Any]) -> bytes:
        if params.get("iv") is None:
            raise InvalidParametersError("AES-CBC requires an iv")
        iv = _as_bytes(params["iv"], "iv")
        if len(iv) != _BLOCK_BYTES:
            raise OperationError("AES-CBC iv must be 16 bytes")
        return iv

    def _aes_gcm_params(self, params: Mapping[str, Any]) -> tuple[bytes, bytes | None, int]:
        if params.get("iv") is None:
            raise InvalidParametersError("AES-GCM requires an iv")
        iv = _as_bytes(params["iv"], "iv")
        aad = params.get("additional_data")
        if aad is not None:
            aad = _as_bytes(aad, "additional_data")
        tag_length = params.get("tag_length", 128)
        if tag_length not in _GCM_TAG_LENGTHS:
            raise OperationError(f"Invalid AES-GCM tag length: {tag_length}")
        return iv, aad, tag_length // 8

    # ==================== Signatures ====================

    async def sign(self, params: Mapping[str, Any], key: CryptoKey, data: bytes) -> bytes:
        name = self._check_access(params, key, Usage.SIGN)

        if name == AlgorithmName.HMAC:
            mac = hmac.HMAC(key.handle, _hash(key.algorithm.hash))
            mac.update(data)
            return mac.finalize()

        self._require_type(key, KeyRole.PRIVATE, f"{name.value} signing")

        if name == AlgorithmName.RSA_PSS:
            try:
                return key.handle.sign(data, self._pss(key, params), _hash(key.algorithm.hash))
            except ValueError as e:
                raise OperationError(f"RSA-PSS signing failed: {e}") from e

        if name == AlgorithmName.ECDSA:
            der = key.handle.sign(data, ec.ECDSA(self._ecdsa_hash(params)))
            r, s = decode_dss_signature(der)
            size = jwk_codec.CURVE_SIZES[NamedCurve(key.algorithm.named_curve)]
            return r.to_bytes(size, "big") + s.to_bytes(size, "big")

        if name == AlgorithmName.ED25519:
            return key.handle.sign(data)

        raise NotSupportedError(f"{name.value} does not support sign")

    async def verify(
        self,
        params: Mapping[str, Any],
        key: CryptoKey,
        signature: bytes,
        data: bytes,
    ) -> bool:
        name = self._check_access(params, key, Usage.VERIFY)

        try:
            if name == AlgorithmName.HMAC:
                mac = hmac.HMAC(key.handle, _hash(key.algorithm.hash))
                mac.update(data)
                mac.verify(signature)
                return True

            self._require_type(key, KeyRole.PUBLIC, f"{name.value} verification")

            if name == AlgorithmName.RSA_PSS:
                key.handle.verify(signature, data, self._pss(key, params), _hash(key.algorithm.hash))
                return True

            if name == AlgorithmName.ECDSA:
                hash_alg = self._ecdsa_hash(params)
                size = jwk_codec.CURVE_SIZES[NamedCurve(key.algorithm.named_curve)]
                if len(signature) != 2 * size:
                    return False
                der = encode_dss_signature(
                    int.from_bytes(signature[:size], "big"),
                    int.from_bytes(signature[size:], "big"),
                )
                key.handle.verify(der, data, ec.ECDSA(hash_alg))
                return True

            if name == AlgorithmName.ED25519:
                key.handle.verify(signature, data)
                return True
        except InvalidSignature:
            return False

        raise NotSupportedError(f"{name.value} does not support verify")

    def _pss(self, key: CryptoKey, params: Mapping[str, Any]) -> padding.PSS:
        salt_length = params.get("salt_length")
        if salt_length is None:
            raise InvalidParametersError("RSA-PSS requires salt_length")
        if not isinstance(salt_length, int) or salt_length < 0:
            raise InvalidParametersError("RSA-PSS salt_length must be a non-negative integer")
        return padding.PSS(
            mgf=padding.MGF1(algorithm=_hash(key.algorithm.hash)),
            salt_length=salt_length,
        )

    def _ecdsa_hash(self, params: Mapping[str, Any]) -> hashes.HashAlgorithm:
        if params.get("hash") is None:
            raise InvalidParametersError("ECDSA requires a hash")
        return _hash(params["hash"])

    # ==================== Access checks ====================

    def _check_access(self, params: Mapping[str, Any], key: CryptoKey, usage: Usage) -> AlgorithmName:
        name = AlgorithmName(key.algorithm.name)
        if _algorithm_name(params.get("name")) != name:
            raise InvalidAccessError(
                f"Requested {params.get('name')} but key is {name.value}"
            )
        if usage not in key.usages:
            raise InvalidAccessError(f"Key usages do not include '{usage.value}'")
        return name

    def _require_type(self, key: CryptoKey, role: KeyRole, what: str) -> None:
        if key.type != role:
            raise InvalidAccessError(f"{what} requires a {role.value} key, got {key.type.value}")
