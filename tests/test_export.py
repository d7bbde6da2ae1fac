"""Tests for key export and export/import round-trips."""

import pytest

from enc_core.algorithms import AesParams, AlgorithmName, KeyFormat, KeyRole
from enc_core.engine.base import InvalidAccessError, NotSupportedError
from enc_core.errors import NotExtractableError
from enc_core.export import export_key
from enc_core.keys import generate_key, import_key
from enc_core.profiles import (
    AesPurpose,
    AsymmetricPurpose,
    aes_key,
    ec_key,
    ed25519_key,
    hmac_key,
    profile_of,
    rsa_key,
    x25519_key,
)


async def roundtrip(engine, format, key):
    """Export a key and import it back with its own profile."""
    exported = await export_key(format, key, engine=engine)
    imported = await import_key(format, key.type, exported, profile_of(key), engine=engine)
    return exported, imported


class TestExtractabilityGate:
    """Non-extractable keys never reach the engine."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", list(KeyFormat))
    async def test_not_extractable(self, recording_engine, make_key, format):
        key = make_key(AesParams(name=AlgorithmName.AES_GCM), ["encrypt"], extractable=False)

        with pytest.raises(NotExtractableError):
            await export_key(format, key, engine=recording_engine)
        assert recording_engine.calls == []

    @pytest.mark.asyncio
    async def test_non_extractable_private_half(self, engine):
        pair = await generate_key(ed25519_key(), extractable=False, engine=engine)

        with pytest.raises(NotExtractableError):
            await export_key(KeyFormat.PKCS8, pair.private_key, engine=engine)

        # The public half is always extractable
        raw = await export_key(KeyFormat.RAW, pair.public_key, engine=engine)
        assert len(raw) == 32

    @pytest.mark.asyncio
    async def test_extractable_delegates(self, recording_engine, make_key):
        key = make_key(AesParams(name=AlgorithmName.AES_GCM), ["encrypt"])

        assert await export_key("jwk", key, engine=recording_engine) == {"kty": "oct"}
        assert recording_engine.calls[0][1] == (KeyFormat.JWK, key)


class TestSecretRoundtrip:
    """AES and HMAC keys export as raw bytes or oct JWKs."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.RAW, KeyFormat.JWK])
    async def test_aes(self, engine, format):
        key = await generate_key(aes_key(AesPurpose.WRAPPING, length=128), engine=engine)

        exported, imported = await roundtrip(engine, format, key)

        assert imported.algorithm == key.algorithm
        assert imported.usages == key.usages
        assert await export_key(format, imported, engine=engine) == exported

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.RAW, KeyFormat.JWK])
    async def test_hmac(self, engine, format):
        key = await generate_key(hmac_key(), engine=engine)

        exported, imported = await roundtrip(engine, format, key)

        assert imported.algorithm == key.algorithm
        assert imported.usages == key.usages

    @pytest.mark.asyncio
    async def test_aes_jwk_members(self, engine):
        key = await generate_key(aes_key(AesPurpose.INTEGRITY_PROTECTION), engine=engine)

        jwk = await export_key(KeyFormat.JWK, key, engine=engine)

        assert jwk["kty"] == "oct"
        assert jwk["alg"] == "A256GCM"
        assert jwk["key_ops"] == ["encrypt", "decrypt"]
        assert jwk["ext"] is True

    @pytest.mark.asyncio
    async def test_secret_spki_not_supported(self, engine):
        key = await generate_key(aes_key(AesPurpose.WRAPPING), engine=engine)

        with pytest.raises(InvalidAccessError):
            await export_key(KeyFormat.SPKI, key, engine=engine)


class TestAsymmetricRoundtrip:
    """Public and private halves through every format they support."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.SPKI, KeyFormat.JWK])
    async def test_rsa_public(self, engine, format):
        pair = await generate_key(rsa_key(AsymmetricPurpose.ENCRYPTING), engine=engine)

        exported, imported = await roundtrip(engine, format, pair.public_key)

        assert imported.type == KeyRole.PUBLIC
        assert imported.algorithm == pair.public_key.algorithm
        assert imported.usages == pair.public_key.usages
        assert await export_key(format, imported, engine=engine) == exported

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.PKCS8, KeyFormat.JWK])
    async def test_rsa_private(self, engine, format):
        pair = await generate_key(rsa_key(AsymmetricPurpose.SIGNING), engine=engine)

        _, imported = await roundtrip(engine, format, pair.private_key)

        assert imported.type == KeyRole.PRIVATE
        assert imported.algorithm == pair.private_key.algorithm
        assert imported.usages == pair.private_key.usages

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.RAW, KeyFormat.SPKI, KeyFormat.JWK])
    @pytest.mark.parametrize("purpose", list(AsymmetricPurpose))
    async def test_ec_public(self, engine, format, purpose):
        pair = await generate_key(ec_key(purpose, curve="P-384"), engine=engine)

        exported, imported = await roundtrip(engine, format, pair.public_key)

        assert imported.algorithm == pair.public_key.algorithm
        assert imported.usages == pair.public_key.usages
        assert await export_key(format, imported, engine=engine) == exported

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.PKCS8, KeyFormat.JWK])
    async def test_ec_private(self, engine, format):
        pair = await generate_key(ec_key(AsymmetricPurpose.ENCRYPTING), engine=engine)

        _, imported = await roundtrip(engine, format, pair.private_key)

        assert imported.type == KeyRole.PRIVATE
        assert imported.usages == pair.private_key.usages

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.RAW, KeyFormat.SPKI, KeyFormat.JWK])
    @pytest.mark.parametrize("profile", [ed25519_key(), x25519_key()])
    async def test_okp_public(self, engine, format, profile):
        pair = await generate_key(profile, engine=engine)

        exported, imported = await roundtrip(engine, format, pair.public_key)

        assert imported.algorithm == pair.public_key.algorithm
        assert await export_key(format, imported, engine=engine) == exported

    @pytest.mark.asyncio
    @pytest.mark.parametrize("format", [KeyFormat.PKCS8, KeyFormat.JWK])
    async def test_ed25519_private(self, engine, format):
        pair = await generate_key(ed25519_key(), engine=engine)

        _, imported = await roundtrip(engine, format, pair.private_key)

        assert imported.type == KeyRole.PRIVATE
        assert imported.usages == pair.private_key.usages


class TestFormatRules:
    """Formats that do not apply to a key fail in the engine."""

    @pytest.mark.asyncio
    async def test_rsa_raw(self, engine):
        pair = await generate_key(rsa_key(AsymmetricPurpose.SIGNING), engine=engine)

        with pytest.raises(NotSupportedError):
            await export_key(KeyFormat.RAW, pair.public_key, engine=engine)

    @pytest.mark.asyncio
    async def test_private_spki(self, engine):
        pair = await generate_key(ec_key(AsymmetricPurpose.SIGNING), engine=engine)

        with pytest.raises(InvalidAccessError):
            await export_key(KeyFormat.SPKI, pair.private_key, engine=engine)

    @pytest.mark.asyncio
    async def test_public_pkcs8(self, engine):
        pair = await generate_key(ec_key(AsymmetricPurpose.SIGNING), engine=engine)

        with pytest.raises(InvalidAccessError):
            await export_key(KeyFormat.PKCS8, pair.public_key, engine=engine)

    @pytest.mark.asyncio
    async def test_rsa_jwk_members(self, engine):
        pair = await generate_key(rsa_key(AsymmetricPurpose.SIGNING), engine=engine)

        public = await export_key(KeyFormat.JWK, pair.public_key, engine=engine)
        private = await export_key(KeyFormat.JWK, pair.private_key, engine=engine)

        assert public["kty"] == "RSA"
        assert public["alg"] == "PS256"
        assert public["key_ops"] == ["verify"]
        assert "d" not in public
        assert private["key_ops"] == ["sign"]
        assert {"d", "p", "q", "dp", "dq", "qi"} <= set(private)
