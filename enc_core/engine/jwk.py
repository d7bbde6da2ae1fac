"""JSON Web Key (RFC 7517/7518/8037) conversion for engine keys.

Converts between cryptography key objects / secret bytes and JWK dicts.
Malformed members raise DataError.
"""

import binascii
from typing import Any, Mapping

from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa, x25519
from cryptography.hazmat.primitives import serialization

from enc_core.algorithms import (
    AesParams,
    AlgorithmName,
    AlgorithmParams,
    HashName,
    HmacParams,
    NamedCurve,
    RsaHashedParams,
)
from enc_core.encoding import b64url_decode, b64url_encode, b64url_to_int, int_to_b64url
from enc_core.engine.base import DataError

# Coordinate sizes in bytes
CURVE_SIZES = {
    NamedCurve.P256: 32,
    NamedCurve.P384: 48,
    NamedCurve.P521: 66,
}

_HASH_SUFFIX = {
    HashName.SHA256: "256",
    HashName.SHA384: "384",
    HashName.SHA512: "512",
}

_AES_ALG_SUFFIX = {
    AlgorithmName.AES_CTR: "CTR",
    AlgorithmName.AES_CBC: "CBC",
    AlgorithmName.AES_GCM: "GCM",
    AlgorithmName.AES_KW: "KW",
}


def jwk_alg(algorithm: AlgorithmParams) -> str | None:
    """The JWK "alg" member for a descriptor, if one is defined."""
    if isinstance(algorithm, RsaHashedParams):
        suffix = _HASH_SUFFIX[algorithm.hash]
        if algorithm.name == AlgorithmName.RSA_OAEP:
            return f"RSA-OAEP-{suffix}"
        return f"PS{suffix}"
    if isinstance(algorithm, AesParams):
        return f"A{algorithm.length}{_AES_ALG_SUFFIX[algorithm.name]}"
    if isinstance(algorithm, HmacParams):
        return f"HS{_HASH_SUFFIX[algorithm.hash]}"
    return None


def _member(jwk: Mapping[str, Any], name: str) -> str:
    value = jwk.get(name)
    if not isinstance(value, str):
        raise DataError(f"JWK member '{name}' is missing or not a string")
    return value


def _decode(jwk: Mapping[str, Any], name: str) -> bytes:
    try:
        return b64url_decode(_member(jwk, name))
    except (binascii.Error, ValueError) as e:
        raise DataError(f"JWK member '{name}' is not valid base64url") from e


def _decode_int(jwk: Mapping[str, Any], name: str) -> int:
    return int.from_bytes(_decode(jwk, name), "big")


# ==================== Secret keys ====================

def secret_to_jwk(secret: bytes) -> dict[str, Any]:
    return {"kty": "oct", "k": b64url_encode(secret)}


def jwk_to_secret(jwk: Mapping[str, Any]) -> bytes:
    if jwk.get("kty") != "oct":
        raise DataError("JWK must have kty=oct for a secret key")
    return _decode(jwk, "k")


# ==================== RSA ====================

def rsa_to_jwk(key: rsa.RSAPublicKey | rsa.RSAPrivateKey) -> dict[str, Any]:
    if isinstance(key, rsa.RSAPrivateKey):
        private = key.private_numbers()
        public = private.public_numbers
    else:
        private = None
        public = key.public_numbers()

    jwk = {
        "kty": "RSA",
        "n": int_to_b64url(public.n),
        "e": int_to_b64url(public.e),
    }
    if private is not None:
        jwk.update({
            "d": int_to_b64url(private.d),
            "p": int_to_b64url(private.p),
            "q": int_to_b64url(private.q),
            "dp": int_to_b64url(private.dmp1),
            "dq": int_to_b64url(private.dmq1),
            "qi": int_to_b64url(private.iqmp),
        })
    return jwk


def jwk_to_rsa(jwk: Mapping[str, Any]) -> rsa.RSAPublicKey | rsa.RSAPrivateKey:
    if jwk.get("kty") != "RSA":
        raise DataError("JWK must have kty=RSA for an RSA key")

    n = _decode_int(jwk, "n")
    e = _decode_int(jwk, "e")
    public = rsa.RSAPublicNumbers(e, n)

    try:
        if "d" not in jwk:
            return public.public_key()

        d = _decode_int(jwk, "d")
        if "p" in jwk and "q" in jwk:
            p = _decode_int(jwk, "p")
            q = _decode_int(jwk, "q")
        else:
            p, q = rsa.rsa_recover_prime_factors(n, e, d)

        dmp1 = _decode_int(jwk, "dp") if "dp" in jwk else rsa.rsa_crt_dmp1(d, p)
        dmq1 = _decode_int(jwk, "dq") if "dq" in jwk else rsa.rsa_crt_dmq1(d, q)
        iqmp = _decode_int(jwk, "qi") if "qi" in jwk else rsa.rsa_crt_iqmp(p, q)

        return rsa.RSAPrivateNumbers(p, q, d, dmp1, dmq1, iqmp, public).private_key()
    except (ValueError, TypeError) as e:
        raise DataError(f"Invalid RSA JWK: {e}") from e


# ==================== EC ====================

def ec_to_jwk(
    key: ec.EllipticCurvePublicKey | ec.EllipticCurvePrivateKey,
    curve: NamedCurve,
) -> dict[str, Any]:
    size = CURVE_SIZES[curve]
    if isinstance(key, ec.EllipticCurvePrivateKey):
        private_value = key.private_numbers().private_value
        public = key.public_key().public_numbers()
    else:
        private_value = None
        public = key.public_numbers()

    jwk = {
        "kty": "EC",
        "crv": curve.value,
        "x": int_to_b64url(public.x, size),
        "y": int_to_b64url(public.y, size),
    }
    if private_value is not None:
        jwk["d"] = int_to_b64url(private_value, size)
    return jwk


def jwk_to_ec(
    jwk: Mapping[str, Any],
    curve: NamedCurve,
    curve_impl: ec.EllipticCurve,
) -> ec.EllipticCurvePublicKey | ec.EllipticCurvePrivateKey:
    if jwk.get("kty") != "EC":
        raise DataError("JWK must have kty=EC for an EC key")
    if jwk.get("crv") != curve.value:
        raise DataError(f"JWK curve {jwk.get('crv')} does not match {curve.value}")

    public = ec.EllipticCurvePublicNumbers(
        _decode_int(jwk, "x"),
        _decode_int(jwk, "y"),
        curve_impl,
    )
    try:
        if "d" in jwk:
            d = _decode_int(jwk, "d")
            return ec.EllipticCurvePrivateNumbers(d, public).private_key()
        return public.public_key()
    except ValueError as e:
        raise DataError(f"Invalid EC JWK: {e}") from e


# ==================== OKP (Ed25519 / X25519) ====================

_OKP_TYPES = {
    AlgorithmName.ED25519: (ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey),
    AlgorithmName.X25519: (x25519.X25519PrivateKey, x25519.X25519PublicKey),
}


def _raw_public(key) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def okp_to_jwk(key, name: AlgorithmName) -> dict[str, Any]:
    private_cls, _ = _OKP_TYPES[name]
    jwk = {"kty": "OKP", "crv": name.value}
    if isinstance(key, private_cls):
        jwk["x"] = b64url_encode(_raw_public(key.public_key()))
        jwk["d"] = b64url_encode(key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        ))
    else:
        jwk["x"] = b64url_encode(_raw_public(key))
    return jwk


def jwk_to_okp(jwk: Mapping[str, Any], name: AlgorithmName):
    if jwk.get("kty") != "OKP":
        raise DataError("JWK must have kty=OKP for an Ed25519/X25519 key")
    if jwk.get("crv") != name.value:
        raise DataError(f"JWK curve {jwk.get('crv')} does not match {name.value}")

    private_cls, public_cls = _OKP_TYPES[name]
    x = _decode(jwk, "x")
    try:
        if "d" in jwk:
            private_key = private_cls.from_private_bytes(_decode(jwk, "d"))
            if _raw_public(private_key.public_key()) != x:
                raise DataError("JWK 'x' does not match the private key")
            return private_key
        return public_cls.from_public_bytes(x)
    except ValueError as e:
        raise DataError(f"Invalid {name.value} JWK: {e}") from e
