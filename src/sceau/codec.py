"""Fixed-width integer encoding for signature length fields."""

from __future__ import annotations

import struct

U32_MAX = 0xFFFFFFFF


def encode_u32_le(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as 4 little-endian bytes."""
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"Value out of u32 range: {value}")
    return struct.pack("<I", value)
