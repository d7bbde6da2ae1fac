"""End-to-end scenarios through the public API."""

import pytest

import enc_core
from enc_core import (
    AsymmetricPurpose,
    KeyFormat,
    KeyRole,
    RsaPssOptions,
    Usage,
    decrypt,
    encrypt,
    export_key,
    generate_key,
    import_key,
    rsa_key,
    sign,
    verify,
)


@pytest.mark.asyncio
async def test_rsa_oaep_encrypt_decrypt():
    """An Encrypting RSA pair round-trips "Hello World!"."""
    pair = await generate_key(rsa_key(AsymmetricPurpose.ENCRYPTING))

    ciphertext = await encrypt("Hello World!", pair.public_key)
    plaintext = await decrypt(ciphertext, pair.private_key)

    assert ciphertext != b"Hello World!"
    assert plaintext == b"Hello World!"


@pytest.mark.asyncio
async def test_rsa_pss_sign_export_import_verify():
    """A signature verifies with the SPKI-exported, re-imported public key."""
    profile = rsa_key(AsymmetricPurpose.SIGNING)
    pair = await generate_key(profile)
    options = RsaPssOptions(salt_length=32)
    data = "Hello World!".encode("utf-8")

    signature = await sign(data, pair.private_key, options)
    spki = await export_key(KeyFormat.SPKI, pair.public_key)
    public_key = await import_key(KeyFormat.SPKI, KeyRole.PUBLIC, spki, profile)

    assert public_key.usages == {Usage.VERIFY}
    assert await verify(data, public_key, signature, options) is True


@pytest.mark.asyncio
async def test_pkcs8_private_key_keeps_signing():
    """A PKCS#8-exported private key signs after import; verify with the original."""
    profile = rsa_key(AsymmetricPurpose.SIGNING)
    pair = await generate_key(profile)
    options = {"salt_length": 0}

    pkcs8 = await export_key("pkcs8", pair.private_key)
    private_key = await import_key("pkcs8", "private", pkcs8, profile, extractable=False)
    signature = await sign(b"payload", private_key, options)

    assert private_key.usages == {Usage.SIGN}
    assert private_key.extractable is False
    assert await verify(b"payload", pair.public_key, signature, options) is True


def test_public_api():
    for name in enc_core.__all__:
        assert hasattr(enc_core, name), name
    assert enc_core.__version__
