"""Multipart detached signatures.

One Ed25519ph signature covers an ordered list of byte items. A manifest of
the item count and each item's length is hashed first, so that moving bytes
across item boundaries (["ab", "c"] vs ["a", "bc"]) changes the signature.
"""

from __future__ import annotations

from nacl import bindings
from nacl.exceptions import BadSignatureError

from sceau.codec import encode_u32_le
from sceau.errors import ConfigurationError
from sceau.keys import PRIVATE_KEY_BYTES, PUBLIC_KEY_BYTES, SIGNATURE_BYTES


def _check_length(value: bytes, size: int, name: str) -> None:
    if len(value) != size:
        raise ConfigurationError(f"{name} must be {size} bytes, got {len(value)}")


def signature_manifest(items: list[bytes]) -> bytearray:
    """Item count followed by each item length, all u32 little-endian."""
    manifest = bytearray(encode_u32_le(len(items)))
    for item in items:
        manifest += encode_u32_le(len(item))
    return manifest


def _assemble_state(items: list[bytes]) -> bindings.crypto_sign_ed25519ph_state:
    state = bindings.crypto_sign_ed25519ph_state()
    manifest = signature_manifest(items)
    try:
        bindings.crypto_sign_ed25519ph_update(state, bytes(manifest))
    finally:
        manifest[:] = bytes(len(manifest))
    for item in items:
        bindings.crypto_sign_ed25519ph_update(state, item)
    return state


def multipart_signature(private_key: bytes, *items: bytes) -> bytes:
    """Sign an ordered list of items.

    Args:
        private_key: 64-byte Ed25519 private key (seed + public key)
        *items: Byte buffers to cover, in order

    Returns:
        64-byte detached signature

    Raises:
        ConfigurationError: If the private key has the wrong size
    """
    _check_length(private_key, PRIVATE_KEY_BYTES, "Private key")
    state = _assemble_state([bytes(item) for item in items])
    return bindings.crypto_sign_ed25519ph_final_create(state, bytes(private_key))


def verify_multipart_signature(public_key: bytes, signature: bytes, *items: bytes) -> bool:
    """Verify a signature produced by ``multipart_signature``.

    Returns False on mismatch; raises only for malformed key or signature sizes.
    """
    _check_length(public_key, PUBLIC_KEY_BYTES, "Public key")
    _check_length(signature, SIGNATURE_BYTES, "Signature")
    state = _assemble_state([bytes(item) for item in items])
    try:
        return bindings.crypto_sign_ed25519ph_final_verify(state, bytes(signature), bytes(public_key))
    except BadSignatureError:
        return False
