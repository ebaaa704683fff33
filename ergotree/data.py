"""Binary encoding of values (constant data).

A constant is written as its type (ergotree.types.serialize_type) followed by
its data. The data layout is driven entirely by the type:

    Boolean              1 byte (0 / 1)
    Byte                 1 byte, two's complement
    Short, Int, Long     zig-zag VLQ
    BigInt               VLQ u16 length + minimal two's complement big-endian bytes (<= 32)
    GroupElement         33-byte compressed point
    SigmaProp            SigmaBoolean bytes
    AvlTree              33-byte digest, flags byte, VLQ key length, optional VLQ value length
    Coll[Byte]           VLQ u16 length + raw bytes
    Coll[Boolean]        VLQ u16 length + bits packed LSB first
    Coll[T]              VLQ u16 length + items
    (T1, .., Tn)         items in order
    Unit                 nothing

Box and Option values have no data encoding.
"""

from typing import Any

from ergotree.errors import DecodeError, SerializationError
from ergotree.sigma_boolean import parse_sigma_boolean, serialize_sigma_boolean
from ergotree.types import (
    SAvlTree,
    SBigInt,
    SBoolean,
    SByte,
    SColl,
    SGroupElement,
    SInt,
    SLong,
    SShort,
    SSigmaProp,
    STuple,
    SType,
    SUnit,
    parse_type,
    serialize_type,
)
from ergotree.values import (
    AVL_DIGEST_SIZE,
    AvlTreeData,
    Value,
    bytes_to_coll,
    coll_to_bytes,
)
from primitives.group import GROUP_ELEMENT_SIZE, GroupElement
from primitives.vlq import SigmaByteReader, SigmaByteWriter

MAX_BIGINT_BYTES = 32


# --- BigInt ---

def bigint_to_bytes(n: int) -> bytes:
    """Minimal two's complement big-endian encoding (same as Java BigInteger.toByteArray)."""
    length = ((n if n >= 0 else ~n).bit_length() + 8) // 8
    return n.to_bytes(length, "big", signed=True)


def bigint_from_bytes(data: bytes) -> int:
    return int.from_bytes(data, "big", signed=True)


# --- Serialization ---

def serialize_data(tpe: SType, v: Any, w: SigmaByteWriter) -> None:
    """Write the data of value v of type tpe.

    Raises:
        SerializationError: For types without a data encoding or oversized BigInts
    """
    if tpe == SBoolean:
        w.put_u8(1 if v else 0)
    elif tpe == SByte:
        w.put_i8(v)
    elif tpe == SShort:
        w.put_i16(v)
    elif tpe == SInt:
        w.put_i32(v)
    elif tpe == SLong:
        w.put_i64(v)
    elif tpe == SBigInt:
        data = bigint_to_bytes(v)
        if len(data) > MAX_BIGINT_BYTES:
            raise SerializationError(f"BigInt {v} needs {len(data)} bytes, max is {MAX_BIGINT_BYTES}")
        w.put_u16(len(data))
        w.put_bytes(data)
    elif tpe == SGroupElement:
        w.put_bytes(v.to_bytes())
    elif tpe == SSigmaProp:
        serialize_sigma_boolean(v, w)
    elif tpe == SAvlTree:
        _serialize_avl_tree(v, w)
    elif tpe == SUnit:
        pass
    elif isinstance(tpe, SColl):
        w.put_u16(len(v))
        if tpe.elem == SByte:
            w.put_bytes(coll_to_bytes(v))
        elif tpe.elem == SBoolean:
            w.put_bits(list(v))
        else:
            for item in v:
                serialize_data(tpe.elem, item, w)
    elif isinstance(tpe, STuple):
        for item_tpe, item in zip(tpe.items, v):
            serialize_data(item_tpe, item, w)
    else:
        raise SerializationError(f"Values of type {tpe!r} cannot be serialized")


def _serialize_avl_tree(tree: AvlTreeData, w: SigmaByteWriter) -> None:
    w.put_bytes(tree.digest)
    w.put_u8(tree.enabled_operations)
    w.put_u32(tree.key_length)
    if tree.value_length_opt is None:
        w.put_u8(0)
    else:
        w.put_u8(1)
        w.put_u32(tree.value_length_opt)


# --- Parsing ---

def parse_data(tpe: SType, r: SigmaByteReader) -> Any:
    """Read the data of a value of type tpe.

    Raises:
        DecodeError: On truncated input, invalid points or unsupported types
    """
    if tpe == SBoolean:
        b = r.get_u8()
        if b > 1:
            raise DecodeError(f"Invalid Boolean byte: {b}")
        return b == 1
    if tpe == SByte:
        return r.get_i8()
    if tpe == SShort:
        return r.get_i16()
    if tpe == SInt:
        return r.get_i32()
    if tpe == SLong:
        return r.get_i64()
    if tpe == SBigInt:
        n = r.get_u16()
        if not 1 <= n <= MAX_BIGINT_BYTES:
            raise DecodeError(f"BigInt length must be 1..{MAX_BIGINT_BYTES}, got {n}")
        return bigint_from_bytes(r.get_bytes(n))
    if tpe == SGroupElement:
        data = r.get_bytes(GROUP_ELEMENT_SIZE)
        try:
            return GroupElement.from_bytes(data)
        except ValueError as e:
            raise DecodeError(str(e)) from e
    if tpe == SSigmaProp:
        return parse_sigma_boolean(r)
    if tpe == SAvlTree:
        return _parse_avl_tree(r)
    if tpe == SUnit:
        return ()
    if isinstance(tpe, SColl):
        n = r.get_u16()
        if tpe.elem == SByte:
            return bytes_to_coll(r.get_bytes(n))
        if tpe.elem == SBoolean:
            return tuple(r.get_bits(n))
        return tuple(parse_data(tpe.elem, r) for _ in range(n))
    if isinstance(tpe, STuple):
        return tuple(parse_data(t, r) for t in tpe.items)
    raise DecodeError(f"Values of type {tpe!r} cannot be deserialized")


def _parse_avl_tree(r: SigmaByteReader) -> AvlTreeData:
    digest = r.get_bytes(AVL_DIGEST_SIZE)
    flags = r.get_u8()
    key_length = r.get_u32()
    has_value_length = r.get_u8()
    if has_value_length > 1:
        raise DecodeError(f"Invalid option tag: {has_value_length}")
    value_length = r.get_u32() if has_value_length else None
    return AvlTreeData(
        digest=digest,
        insert_allowed=bool(flags & 0x01),
        update_allowed=bool(flags & 0x02),
        remove_allowed=bool(flags & 0x04),
        key_length=key_length,
        value_length_opt=value_length,
    )


# --- Constants ---

def serialize_constant(value: Value, w: SigmaByteWriter) -> None:
    serialize_type(value.tpe, w)
    serialize_data(value.tpe, value.v, w)


def parse_constant(r: SigmaByteReader) -> Value:
    tpe = parse_type(r)
    return Value(tpe, parse_data(tpe, r))


def value_to_bytes(value: Value) -> bytes:
    w = SigmaByteWriter()
    serialize_constant(value, w)
    return w.to_bytes()


def value_from_bytes(data: bytes) -> Value:
    return parse_constant(SigmaByteReader(data))
