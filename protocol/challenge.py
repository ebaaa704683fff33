"""Sigma-protocol challenges.

A challenge is a 192-bit string. It is XOR-split between OR children, shared
through a GF(2^192) polynomial between THRESHOLD children, and read as a
big-endian integer modulo the group order when it enters a Schnorr equation.
"""

import secrets
from dataclasses import dataclass

from primitives.gf2_192 import gf2_192_from_bytes, gf2_192_to_bytes
from primitives.group import GROUP_ORDER

SOUNDNESS_BYTES = 24
"""Challenge length; 8 * SOUNDNESS_BYTES must stay below log2 of the group order."""


@dataclass(frozen=True)
class Challenge:
    data: bytes

    def __post_init__(self):
        if len(self.data) != SOUNDNESS_BYTES:
            raise ValueError(f"Challenge must be {SOUNDNESS_BYTES} bytes, got {len(self.data)}")

    def __repr__(self) -> str:
        return f"Challenge({self.data.hex()})"

    @classmethod
    def random(cls) -> "Challenge":
        return cls(secrets.token_bytes(SOUNDNESS_BYTES))

    def xor(self, other: "Challenge") -> "Challenge":
        return Challenge(bytes(a ^ b for a, b in zip(self.data, other.data)))

    __xor__ = xor

    def to_scalar(self) -> int:
        return int.from_bytes(self.data, "big") % GROUP_ORDER

    # --- GF(2^192) view ---

    def to_gf2_192(self) -> int:
        return gf2_192_from_bytes(self.data)

    @classmethod
    def from_gf2_192(cls, value: int) -> "Challenge":
        return cls(gf2_192_to_bytes(value))
