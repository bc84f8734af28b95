from __future__ import annotations

from typing import Tuple


KEY_SIZES: Tuple[int, ...] = (16, 24, 32)


def validate_key(key: bytes) -> bytes:
    """Return `key` unchanged if it is a valid AES key (16, 24 or 32 bytes)."""
    if not isinstance(key, (bytes, bytearray)):
        raise ValueError("key must be bytes")
    if len(key) not in KEY_SIZES:
        raise ValueError(f"key must be 16, 24 or 32 bytes long, got {len(key)}")
    return bytes(key)


def derive_key(passphrase: str) -> bytes:
    """Stretch a passphrase into an AES key by cycling its UTF-8 bytes.

    - A passphrase that already encodes to 16, 24 or 32 bytes is used as-is.
    - Otherwise the key length is the smallest valid size that fits the
      passphrase (32 for anything longer than 24 bytes) and the bytes are
      repeated, or cut, to fill it.

    WARNING: this is not a real KDF. There is no salt and no work factor,
    and the key is trivially related to the passphrase. It exists so files
    written by the existing save format keep opening. Pass a different
    `key_derivation` to the engine for anything that needs real secrecy.
    """
    raw = passphrase.encode("utf-8")
    if not raw:
        raise ValueError("passphrase must not be empty")
    if len(raw) in KEY_SIZES:
        return raw

    size = next((s for s in KEY_SIZES if s >= len(raw)), KEY_SIZES[-1])
    return bytes(raw[i % len(raw)] for i in range(size))


__all__ = ["KEY_SIZES", "derive_key", "validate_key"]
