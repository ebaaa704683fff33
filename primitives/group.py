"""secp256k1 group elements.

The discrete-log group of the Sigma protocols is the secp256k1 curve. Curve
arithmetic comes from the ecdsa library; this module only wraps it in an
immutable value type with the operations the interpreter and the prover need
(add, scalar_mul, negate, generator, identity, encode/decode, is_identity).

Encoding is the 33-byte SEC1 compressed form. The point at infinity, which
SEC1 cannot express in compressed form, is encoded as 33 zero bytes.
"""

import secrets

from ecdsa import SECP256k1
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.errors import MalformedPointError

# --- Constants ---

GROUP_ORDER = SECP256k1.order
"""Order q of the secp256k1 group; exponents and responses live in Z_q."""

GROUP_SIZE = 32
"""Byte length of a scalar (response) on the wire."""

GROUP_ELEMENT_SIZE = 33
"""Byte length of an encoded group element."""

_IDENTITY_BYTES = bytes(GROUP_ELEMENT_SIZE)


class GroupElement:
    """Immutable point on secp256k1."""

    __slots__ = ("_point", "_encoded")

    def __init__(self, point):
        self._point = point
        self._encoded = None

    # --- Construction ---

    @classmethod
    def generator(cls) -> "GroupElement":
        return cls(SECP256k1.generator)

    @classmethod
    def identity(cls) -> "GroupElement":
        return cls(INFINITY)

    @classmethod
    def from_bytes(cls, data: bytes) -> "GroupElement":
        """Decode a 33-byte compressed point.

        Raises:
            ValueError: If the bytes are not a valid compressed secp256k1 point
        """
        if len(data) != GROUP_ELEMENT_SIZE:
            raise ValueError(f"Group element must be {GROUP_ELEMENT_SIZE} bytes, got {len(data)}")
        if data == _IDENTITY_BYTES:
            return cls.identity()
        try:
            point = PointJacobi.from_bytes(
                SECP256k1.curve, bytes(data), valid_encodings=("compressed",)
            )
        except MalformedPointError as e:
            raise ValueError(f"Invalid group element encoding {data.hex()}: {e}") from e
        return cls(point)

    # --- Queries ---

    def is_identity(self) -> bool:
        return self._point == INFINITY

    def to_bytes(self) -> bytes:
        if self._encoded is None:
            if self.is_identity():
                self._encoded = _IDENTITY_BYTES
            else:
                self._encoded = self._point.to_bytes("compressed")
        return self._encoded

    # --- Group operations ---

    def add(self, other: "GroupElement") -> "GroupElement":
        """Group operation (written multiplicatively in ErgoScript)."""
        return GroupElement(self._point + other._point)

    def scalar_mul(self, k: int) -> "GroupElement":
        """Exponentiation g^k; k is reduced modulo the group order."""
        k %= GROUP_ORDER
        if k == 0 or self.is_identity():
            return GroupElement.identity()
        return GroupElement(self._point * k)

    def negate(self) -> "GroupElement":
        if self.is_identity():
            return self
        return GroupElement(-self._point)

    __add__ = add
    __neg__ = negate

    def __mul__(self, k: int) -> "GroupElement":
        return self.scalar_mul(k)

    # --- Value semantics ---

    def __eq__(self, other: object) -> bool:
        return isinstance(other, GroupElement) and self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"GroupElement({self.to_bytes().hex()})"


# --- Scalars ---

def random_scalar() -> int:
    """Uniform nonzero exponent drawn from the OS CSPRNG."""
    return 1 + secrets.randbelow(GROUP_ORDER - 1)


def scalar_to_bytes(k: int) -> bytes:
    return (k % GROUP_ORDER).to_bytes(GROUP_SIZE, "big")


def scalar_from_bytes(data: bytes) -> int:
    return int.from_bytes(data, "big") % GROUP_ORDER
