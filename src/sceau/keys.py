"""Ed25519 key material.

Private keys use the libsodium layout: 32-byte seed followed by the
32-byte public key (64 bytes total). Keys travel as lowercase hex.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from sceau.errors import ConfigurationError

SEED_BYTES = 32
PUBLIC_KEY_BYTES = 32
PRIVATE_KEY_BYTES = 64
SIGNATURE_BYTES = 64

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


@dataclass(frozen=True)
class KeyPair:
    """Ed25519 key pair in raw byte form."""

    public_key: bytes
    private_key: bytes

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    @property
    def private_key_hex(self) -> str:
        return self.private_key.hex()


def zero_bytes(buffer: bytearray) -> None:
    """Overwrite a buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


class SecretKey:
    """Mutable holder for private key bytes, zeroed when the scope exits.

    A ``bytearray`` is taken over and wiped in place; ``bytes`` are copied.

    Usage:
        with SecretKey(decode_private_key(hex_key)) as secret:
            sign_with(secret.value)
    """

    def __init__(self, private_key: bytes | bytearray) -> None:
        if len(private_key) != PRIVATE_KEY_BYTES:
            raise ConfigurationError(
                f"Private key must be {PRIVATE_KEY_BYTES} bytes, got {len(private_key)}"
            )
        if isinstance(private_key, bytearray):
            self._buffer = private_key
        else:
            self._buffer = bytearray(private_key)

    @property
    def value(self) -> bytes:
        return bytes(self._buffer)

    @property
    def public_key(self) -> bytes:
        return bytes(self._buffer[SEED_BYTES:])

    def wipe(self) -> None:
        zero_bytes(self._buffer)

    @property
    def wiped(self) -> bool:
        return not any(self._buffer)

    def __enter__(self) -> SecretKey:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()


def _decode_key(value, size: int, name: str, into: type[bytes] | type[bytearray]):
    if isinstance(value, (bytes, bytearray)):
        raw = into(value)
    elif isinstance(value, str):
        if not _HEX_RE.match(value) or len(value) % 2:
            raise ConfigurationError(f"Invalid hex encoding for {name}")
        raw = into.fromhex(value)
    else:
        raise ConfigurationError(f"Unsupported type for {name}: {type(value).__name__}")

    if len(raw) != size:
        if isinstance(raw, bytearray):
            zero_bytes(raw)
        raise ConfigurationError(
            f"Expecting {size} bytes for {name} in hexadecimal encoding "
            f"({size * 2} characters), got {len(raw)} bytes"
        )
    return raw


def decode_hex_key(value: str | bytes | bytearray, size: int, name: str = "key") -> bytes:
    """Decode a hex-encoded key (or pass raw bytes through) and check its length.

    Raises:
        ConfigurationError: If the value is not valid hex or has the wrong size
    """
    return _decode_key(value, size, name, bytes)


def decode_private_key(value: str | bytes | bytearray, name: str = "private key") -> bytearray:
    """Decode a 64-byte private key into a fresh ``bytearray`` for SecretKey to own.

    Raises:
        ConfigurationError: If the value is not valid hex or has the wrong size
    """
    return _decode_key(value, PRIVATE_KEY_BYTES, name, bytearray)


def _public_bytes(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def public_key_from_seed(seed: bytes) -> bytes:
    """Derive the Ed25519 public key for a 32-byte seed."""
    return _public_bytes(Ed25519PrivateKey.from_private_bytes(seed))


def public_key_from_private(private_key: bytes | bytearray) -> bytes:
    """Return the public half of a 64-byte private key.

    Raises:
        ConfigurationError: If the key has the wrong size or its public half
            does not belong to its seed
    """
    if len(private_key) != PRIVATE_KEY_BYTES:
        raise ConfigurationError(
            f"Private key must be {PRIVATE_KEY_BYTES} bytes, got {len(private_key)}"
        )
    public_key = bytes(private_key[SEED_BYTES:])
    if public_key_from_seed(bytes(private_key[:SEED_BYTES])) != public_key:
        raise ConfigurationError("Private key seed does not match its embedded public key")
    return public_key


def generate_key_pair(seed: str | bytes | None = None) -> KeyPair:
    """Generate a new Ed25519 key pair.

    Args:
        seed: Optional 32-byte seed (raw or hex) for deterministic generation

    Returns:
        KeyPair with a 64-byte private key and 32-byte public key
    """
    if seed is None:
        signing_key = Ed25519PrivateKey.generate()
        seed_bytes = signing_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
    else:
        seed_bytes = decode_hex_key(seed, SEED_BYTES, "seed")
        signing_key = Ed25519PrivateKey.from_private_bytes(seed_bytes)

    public_key = _public_bytes(signing_key)
    return KeyPair(public_key=public_key, private_key=seed_bytes + public_key)
