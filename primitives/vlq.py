"""Variable-length quantity (VLQ) and zig-zag integer encoding.

Every integer on the ErgoTree wire is written as an unsigned VLQ: 7 payload
bits per byte, least significant group first, high bit set on every byte but
the last. Signed integers are first mapped to unsigned ones with zig-zag
encoding so that small negative numbers stay short:

    0 -> 0, -1 -> 1, 1 -> 2, -2 -> 3, ...

SigmaByteWriter and SigmaByteReader wrap a byte buffer with the typed put/get
operations used by the type, data, expression and proof codecs. The reader
also carries the decode-time side tables (constant store, ValDef types) so that
they are passed explicitly through every parse call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ergotree.serialization import ConstantStore
    from ergotree.types import SType

# --- Limits ---

U8_MAX = 0xFF
U16_MAX = 0xFFFF
U32_MAX = 0xFFFFFFFF
U64_MAX = 0xFFFFFFFFFFFFFFFF

# A u64 never takes more than 10 VLQ bytes
MAX_VLQ_BYTES = 10


class DecodeError(ValueError):
    """Malformed, truncated or otherwise undecodable input bytes."""


# --- Zig-zag ---

def encode_zigzag(n: int) -> int:
    """Map a signed integer to an unsigned one (0, -1, 1, -2 -> 0, 1, 2, 3)."""
    return n << 1 if n >= 0 else ((-n) << 1) - 1


def decode_zigzag(n: int) -> int:
    """Inverse of encode_zigzag."""
    return (n >> 1) ^ -(n & 1)


# --- Writer ---

class SigmaByteWriter:
    """Append-only byte sink with VLQ helpers.

    Attributes:
        constant_store: When set, the expression serializer extracts constants
            into this store and writes placeholders in their place.
    """

    def __init__(self, constant_store: Optional[ConstantStore] = None):
        self._buf = bytearray()
        self.constant_store = constant_store

    def __len__(self) -> int:
        return len(self._buf)

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def put_u8(self, v: int) -> None:
        if not 0 <= v <= U8_MAX:
            raise ValueError(f"u8 out of range: {v}")
        self._buf.append(v)

    def put_i8(self, v: int) -> None:
        if not -128 <= v <= 127:
            raise ValueError(f"i8 out of range: {v}")
        self._buf.append(v & 0xFF)

    def put_bytes(self, data: bytes) -> None:
        self._buf.extend(data)

    def put_u64(self, v: int) -> None:
        """Write an unsigned integer as VLQ."""
        if not 0 <= v <= U64_MAX:
            raise ValueError(f"u64 out of range: {v}")
        while True:
            byte = v & 0x7F
            v >>= 7
            if v:
                self._buf.append(byte | 0x80)
            else:
                self._buf.append(byte)
                return

    def put_u16(self, v: int) -> None:
        if not 0 <= v <= U16_MAX:
            raise ValueError(f"u16 out of range: {v}")
        self.put_u64(v)

    def put_u32(self, v: int) -> None:
        if not 0 <= v <= U32_MAX:
            raise ValueError(f"u32 out of range: {v}")
        self.put_u64(v)

    def put_i16(self, v: int) -> None:
        if not -(1 << 15) <= v < (1 << 15):
            raise ValueError(f"i16 out of range: {v}")
        self.put_u64(encode_zigzag(v))

    def put_i32(self, v: int) -> None:
        if not -(1 << 31) <= v < (1 << 31):
            raise ValueError(f"i32 out of range: {v}")
        self.put_u64(encode_zigzag(v))

    def put_i64(self, v: int) -> None:
        if not -(1 << 63) <= v < (1 << 63):
            raise ValueError(f"i64 out of range: {v}")
        self.put_u64(encode_zigzag(v))

    def put_i16_be(self, v: int) -> None:
        """Fixed two-byte big-endian signed short (Fiat-Shamir tree layout)."""
        self._buf.extend(v.to_bytes(2, "big", signed=True))

    def put_bits(self, bits: list[bool]) -> None:
        """Pack booleans into bytes, least significant bit first."""
        packed = bytearray((len(bits) + 7) // 8)
        for i, bit in enumerate(bits):
            if bit:
                packed[i >> 3] |= 1 << (i & 7)
        self._buf.extend(packed)


# --- Reader ---

class SigmaByteReader:
    """Cursor over an immutable byte buffer.

    Attributes:
        constant_store: Constants table used to resolve ConstantPlaceholder
            nodes, or None when the tree was not segregated.
        substitute_placeholders: Replace placeholders by the stored constants
            instead of keeping ConstantPlaceholder nodes in the parsed tree.
        val_def_types: Static types of the ValDef / FuncValue arguments seen so
            far, keyed by id; used to type ValUse nodes.
    """

    def __init__(
        self,
        data: bytes,
        constant_store: Optional[ConstantStore] = None,
        substitute_placeholders: bool = False,
    ):
        self._data = bytes(data)
        self._pos = 0
        self.constant_store = constant_store
        self.substitute_placeholders = substitute_placeholders
        self.val_def_types: dict[int, SType] = {}

    @property
    def position(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def is_empty(self) -> bool:
        return self._pos >= len(self._data)

    def get_u8(self) -> int:
        if self._pos >= len(self._data):
            raise DecodeError(f"Unexpected end of input at position {self._pos}")
        v = self._data[self._pos]
        self._pos += 1
        return v

    def peek_u8(self) -> int:
        if self._pos >= len(self._data):
            raise DecodeError(f"Unexpected end of input at position {self._pos}")
        return self._data[self._pos]

    def get_i8(self) -> int:
        v = self.get_u8()
        return v - 256 if v > 127 else v

    def get_bytes(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._data):
            raise DecodeError(
                f"Unexpected end of input: need {n} bytes at position {self._pos}, "
                f"have {self.remaining()}"
            )
        v = self._data[self._pos:self._pos + n]
        self._pos += n
        return v

    def get_u64(self) -> int:
        result = 0
        shift = 0
        for _ in range(MAX_VLQ_BYTES):
            byte = self.get_u8()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if result > U64_MAX:
                    raise DecodeError(f"VLQ value exceeds u64: {result}")
                return result
            shift += 7
        raise DecodeError(f"VLQ longer than {MAX_VLQ_BYTES} bytes at position {self._pos}")

    def get_u16(self) -> int:
        v = self.get_u64()
        if v > U16_MAX:
            raise DecodeError(f"u16 out of range: {v}")
        return v

    def get_u32(self) -> int:
        v = self.get_u64()
        if v > U32_MAX:
            raise DecodeError(f"u32 out of range: {v}")
        return v

    def _get_signed(self, bits: int) -> int:
        v = decode_zigzag(self.get_u64())
        if not -(1 << (bits - 1)) <= v < (1 << (bits - 1)):
            raise DecodeError(f"i{bits} out of range: {v}")
        return v

    def get_i16(self) -> int:
        return self._get_signed(16)

    def get_i32(self) -> int:
        return self._get_signed(32)

    def get_i64(self) -> int:
        return self._get_signed(64)

    def get_i16_be(self) -> int:
        return int.from_bytes(self.get_bytes(2), "big", signed=True)

    def get_bits(self, n: int) -> list[bool]:
        packed = self.get_bytes((n + 7) // 8)
        return [bool(packed[i >> 3] & (1 << (i & 7))) for i in range(n)]
