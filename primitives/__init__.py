"""Primitives - byte codec, finite field, curve group and hash building blocks."""

from primitives.gf2_192 import (
    GF2_192_BYTES,
    Gf2_192Poly,
    gf2_192_field,
    gf2_192_from_bytes,
    gf2_192_to_bytes,
)
from primitives.group import (
    GROUP_ELEMENT_SIZE,
    GROUP_ORDER,
    GROUP_SIZE,
    GroupElement,
    random_scalar,
)
from primitives.hashing import blake2b256, sha256
from primitives.vlq import (
    DecodeError,
    SigmaByteReader,
    SigmaByteWriter,
    decode_zigzag,
    encode_zigzag,
)

__all__ = [
    # Byte codec
    "DecodeError",
    "SigmaByteReader",
    "SigmaByteWriter",
    "encode_zigzag",
    "decode_zigzag",
    # GF(2^192)
    "GF2_192_BYTES",
    "Gf2_192Poly",
    "gf2_192_field",
    "gf2_192_from_bytes",
    "gf2_192_to_bytes",
    # Group
    "GroupElement",
    "GROUP_ORDER",
    "GROUP_SIZE",
    "GROUP_ELEMENT_SIZE",
    "random_scalar",
    # Hashing
    "blake2b256",
    "sha256",
]
