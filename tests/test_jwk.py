"""Tests for JWK conversion helpers."""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa, x25519

from enc_core.algorithms import (
    AesParams,
    AlgorithmName,
    EcParams,
    HashName,
    HmacParams,
    NamedCurve,
    NamedParams,
    RsaHashedParams,
)
from enc_core.encoding import b64url_decode
from enc_core.engine.base import DataError
from enc_core.engine.jwk import (
    ec_to_jwk,
    jwk_alg,
    jwk_to_ec,
    jwk_to_okp,
    jwk_to_rsa,
    jwk_to_secret,
    okp_to_jwk,
    rsa_to_jwk,
    secret_to_jwk,
)


@pytest.fixture(scope="module")
def rsa_private():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


class TestJwkAlg:
    """The alg member per descriptor."""

    @pytest.mark.parametrize("algorithm,expected", [
        (RsaHashedParams(name=AlgorithmName.RSA_OAEP), "RSA-OAEP-256"),
        (RsaHashedParams(name=AlgorithmName.RSA_OAEP, hash=HashName.SHA512), "RSA-OAEP-512"),
        (RsaHashedParams(name=AlgorithmName.RSA_PSS, hash=HashName.SHA384), "PS384"),
        (AesParams(name=AlgorithmName.AES_GCM, length=128), "A128GCM"),
        (AesParams(name=AlgorithmName.AES_KW, length=256), "A256KW"),
        (AesParams(name=AlgorithmName.AES_CTR, length=192), "A192CTR"),
        (HmacParams(hash=HashName.SHA512), "HS512"),
        (EcParams(name=AlgorithmName.ECDSA), None),
        (NamedParams(name=AlgorithmName.ED25519), None),
    ])
    def test_alg(self, algorithm, expected):
        assert jwk_alg(algorithm) == expected


class TestSecret:
    """oct keys."""

    def test_roundtrip(self):
        secret = b"\x00\x01" * 16
        jwk = secret_to_jwk(secret)

        assert jwk == {"kty": "oct", "k": jwk["k"]}
        assert "=" not in jwk["k"]
        assert jwk_to_secret(jwk) == secret

    def test_wrong_kty(self):
        with pytest.raises(DataError):
            jwk_to_secret({"kty": "RSA", "k": "AAAA"})

    def test_missing_k(self):
        with pytest.raises(DataError):
            jwk_to_secret({"kty": "oct"})

    def test_non_string_member(self):
        with pytest.raises(DataError):
            jwk_to_secret({"kty": "oct", "k": 123})


class TestRsa:
    """RSA keys."""

    def test_public(self, rsa_private):
        jwk = rsa_to_jwk(rsa_private.public_key())

        assert set(jwk) == {"kty", "n", "e"}
        assert jwk["e"] == "AQAB"
        key = jwk_to_rsa(jwk)
        assert key.public_numbers() == rsa_private.public_key().public_numbers()

    def test_private(self, rsa_private):
        key = jwk_to_rsa(rsa_to_jwk(rsa_private))

        assert isinstance(key, rsa.RSAPrivateKey)
        assert key.private_numbers() == rsa_private.private_numbers()

    def test_private_without_crt_members(self, rsa_private):
        """Primes and CRT values are recovered from n, e, d."""
        jwk = rsa_to_jwk(rsa_private)
        minimal = {"kty": "RSA", "n": jwk["n"], "e": jwk["e"], "d": jwk["d"]}

        key = jwk_to_rsa(minimal)

        assert key.private_numbers().d == rsa_private.private_numbers().d
        assert {key.private_numbers().p, key.private_numbers().q} == {
            rsa_private.private_numbers().p,
            rsa_private.private_numbers().q,
        }

    def test_inconsistent_private_key(self, rsa_private):
        jwk = rsa_to_jwk(rsa_private)
        jwk["p"] = jwk["q"]

        with pytest.raises(DataError):
            jwk_to_rsa(jwk)


class TestEc:
    """EC keys."""

    @pytest.mark.parametrize("curve,impl,size", [
        (NamedCurve.P256, ec.SECP256R1, 32),
        (NamedCurve.P384, ec.SECP384R1, 48),
        (NamedCurve.P521, ec.SECP521R1, 66),
    ])
    def test_coordinates_padded(self, curve, impl, size):
        private = ec.generate_private_key(impl())

        jwk = ec_to_jwk(private, curve)

        assert jwk["crv"] == curve.value
        assert len(b64url_decode(jwk["x"])) == size
        assert len(b64url_decode(jwk["y"])) == size
        assert len(b64url_decode(jwk["d"])) == size

        restored = jwk_to_ec(jwk, curve, impl())
        assert restored.private_numbers() == private.private_numbers()

    def test_public(self):
        public = ec.generate_private_key(ec.SECP256R1()).public_key()

        restored = jwk_to_ec(ec_to_jwk(public, NamedCurve.P256), NamedCurve.P256, ec.SECP256R1())

        assert restored.public_numbers() == public.public_numbers()

    def test_curve_mismatch(self):
        public = ec.generate_private_key(ec.SECP256R1()).public_key()
        jwk = ec_to_jwk(public, NamedCurve.P256)

        with pytest.raises(DataError):
            jwk_to_ec(jwk, NamedCurve.P384, ec.SECP384R1())

    def test_point_not_on_curve(self):
        public = ec.generate_private_key(ec.SECP256R1()).public_key()
        jwk = ec_to_jwk(public, NamedCurve.P256)
        jwk["y"] = jwk["x"]

        with pytest.raises(DataError):
            jwk_to_ec(jwk, NamedCurve.P256, ec.SECP256R1())


class TestOkp:
    """Ed25519 / X25519 keys."""

    @pytest.mark.parametrize("name,private_cls", [
        (AlgorithmName.ED25519, ed25519.Ed25519PrivateKey),
        (AlgorithmName.X25519, x25519.X25519PrivateKey),
    ])
    def test_private_roundtrip(self, name, private_cls):
        private = private_cls.generate()

        jwk = okp_to_jwk(private, name)

        assert jwk["kty"] == "OKP"
        assert jwk["crv"] == name.value
        assert isinstance(jwk_to_okp(jwk, name), private_cls)

    def test_public(self):
        public = ed25519.Ed25519PrivateKey.generate().public_key()

        jwk = okp_to_jwk(public, AlgorithmName.ED25519)

        assert "d" not in jwk
        assert isinstance(jwk_to_okp(jwk, AlgorithmName.ED25519), ed25519.Ed25519PublicKey)

    def test_mismatched_public_part(self):
        jwk = okp_to_jwk(ed25519.Ed25519PrivateKey.generate(), AlgorithmName.ED25519)
        other = okp_to_jwk(ed25519.Ed25519PrivateKey.generate(), AlgorithmName.ED25519)
        jwk["x"] = other["x"]

        with pytest.raises(DataError):
            jwk_to_okp(jwk, AlgorithmName.ED25519)

    def test_wrong_curve(self):
        jwk = okp_to_jwk(x25519.X25519PrivateKey.generate(), AlgorithmName.X25519)

        with pytest.raises(DataError):
            jwk_to_okp(jwk, AlgorithmName.ED25519)
