"""
Payload and base64url encoding helpers.
"""

import base64


def as_bytes(data: str | bytes | bytearray | memoryview) -> bytes:
    """
    Normalize an operation payload to bytes.

    Text is encoded as UTF-8; binary input passes through unchanged.

    Raises:
        TypeError: If data is neither text nor bytes-like
    """
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Payload must be str or bytes-like, got {type(data).__name__}")


def b64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Base64url decode with padding restoration."""
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)


def int_to_b64url(value: int, length: int | None = None) -> str:
    """Encode a non-negative integer big-endian, as JWK members expect."""
    if length is None:
        length = max(1, (value.bit_length() + 7) // 8)
    return b64url_encode(value.to_bytes(length, "big"))


def b64url_to_int(data: str) -> int:
    return int.from_bytes(b64url_decode(data), "big")
