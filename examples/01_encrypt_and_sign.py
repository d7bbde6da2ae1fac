#!/usr/bin/env python3
"""
Encrypt and Sign Example

Generates RSA key pairs from purpose profiles, encrypts and decrypts a
message, then signs it, ships the public key as SPKI and verifies with the
re-imported key.
"""

import asyncio
import os

from enc_core import (
    AesGcmOptions,
    AesPurpose,
    AsymmetricPurpose,
    KeyFormat,
    KeyRole,
    RsaPssOptions,
    UsageDeniedError,
    aes_key,
    decrypt,
    encrypt,
    export_key,
    generate_key_pair,
    generate_secret_key,
    import_key,
    rsa_key,
    setup_logging,
    sign,
    verify,
)


async def main():
    setup_logging()

    print("enc-core Encrypt and Sign Example")
    print("=" * 50)

    message = "Hello World!"

    # Example 1: RSA-OAEP encryption
    print("\n1. Encrypting with an RSA-OAEP key pair...")
    encrypting = await generate_key_pair(rsa_key(AsymmetricPurpose.ENCRYPTING))
    ciphertext = await encrypt(message, encrypting.public_key)
    plaintext = await decrypt(ciphertext, encrypting.private_key)
    print(f"   Ciphertext: {ciphertext.hex()[:40]}... ({len(ciphertext)} bytes)")
    print(f"   Decrypted:  {plaintext.decode()}")
    assert plaintext == message.encode()

    # Example 2: RSA-PSS signature, verified with an imported public key
    print("\n2. Signing with an RSA-PSS key pair...")
    signing_profile = rsa_key(AsymmetricPurpose.SIGNING)
    signing = await generate_key_pair(signing_profile)
    options = RsaPssOptions(salt_length=32)
    signature = await sign(message, signing.private_key, options)

    spki = await export_key(KeyFormat.SPKI, signing.public_key)
    verifier = await import_key(KeyFormat.SPKI, KeyRole.PUBLIC, spki, signing_profile)
    is_valid = await verify(message, verifier, signature, options)
    print(f"   Signature: {signature.hex()[:40]}... ({len(signature)} bytes)")
    print(f"   Imported key usages: {sorted(u.value for u in verifier.usages)}")
    print(f"   Valid: {is_valid}")
    assert is_valid

    # Example 3: usages are enforced before the engine runs
    print("\n3. Signing with the verification key...")
    try:
        await sign(message, verifier, options)
    except UsageDeniedError as e:
        print(f"   Rejected: {e}")

    # Example 4: AES-GCM with additional data
    print("\n4. Encrypting with AES-GCM...")
    key = await generate_secret_key(aes_key(AesPurpose.INTEGRITY_PROTECTION))
    gcm = AesGcmOptions(iv=os.urandom(12), additional_data=b"header")
    sealed = await encrypt(message, key, gcm)
    opened = await decrypt(sealed, key, gcm)
    print(f"   Sealed: {sealed.hex()} ({len(sealed)} bytes)")
    print(f"   Opened: {opened.decode()}")

    print("\n" + "=" * 50)
    print("All examples completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
