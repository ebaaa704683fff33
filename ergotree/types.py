"""ErgoTree type descriptors and their binary encoding.

The type system is closed: every expression node and every runtime value is
tagged with one of the descriptors below. Types are frozen dataclasses so they
compare and hash structurally.

Type code layout (one byte, with a few codes followed by more type bytes):

    1..8     embeddable primitives (Boolean .. SigmaProp)
    12 + p   Coll[p]                 24 + p   Coll[Coll[p]]
    36 + p   Option[p]               48 + p   Option[Coll[p]]
    60 + p   (p, T)   60: (T1, T2)   72 + p   (T, p)   72: (T1, T2, T3)
    84 + p   (p, p)   84: (T1, T2, T3, T4)
    96       tuple: u8 length then items
    97..106  SAny, SUnit, SBox, SAvlTree, SContext, SString, STypeVar,
             SHeader, SPreHeader, SGlobal

Where p == 0 the element type follows as a full type.
"""

from __future__ import annotations

from dataclasses import dataclass

from primitives.vlq import DecodeError, SigmaByteReader, SigmaByteWriter

# --- Type Codes ---

LAST_PRIM_TYPECODE = 8
MAX_PRIM_TYPECODE = 11
PRIM_RANGE = MAX_PRIM_TYPECODE + 1

COLLECTION_CODE = PRIM_RANGE * 1
NESTED_COLLECTION_CODE = PRIM_RANGE * 2
OPTION_CODE = PRIM_RANGE * 3
OPTION_COLLECTION_CODE = PRIM_RANGE * 4
TUPLE_PAIR1_CODE = PRIM_RANGE * 5
TUPLE_PAIR2_CODE = PRIM_RANGE * 6
TUPLE_TRIPLE_CODE = TUPLE_PAIR2_CODE
TUPLE_PAIR_SYMMETRIC_CODE = PRIM_RANGE * 7
TUPLE_QUADRUPLE_CODE = TUPLE_PAIR_SYMMETRIC_CODE
TUPLE_CODE = PRIM_RANGE * 8

MAX_TUPLE_LENGTH = 255


class SType:
    """Base class of all type descriptors."""

    def is_numeric(self) -> bool:
        return self in NUMERIC_BITS

    def is_embeddable(self) -> bool:
        return isinstance(self, SPrimitive) and 1 <= self.code <= LAST_PRIM_TYPECODE

    @property
    def type_code(self) -> int:
        """Type code used for method dispatch tables."""
        raise NotImplementedError(f"{self} has no method type code")


@dataclass(frozen=True)
class SPrimitive(SType):
    """Non-parametric type (primitives and predefined object types)."""

    name: str
    code: int

    @property
    def type_code(self) -> int:
        return self.code

    def __repr__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SColl(SType):
    elem: SType

    @property
    def type_code(self) -> int:
        return COLLECTION_CODE

    def __repr__(self) -> str:
        return f"Coll[{self.elem!r}]"


@dataclass(frozen=True)
class SOption(SType):
    elem: SType

    @property
    def type_code(self) -> int:
        return OPTION_CODE

    def __repr__(self) -> str:
        return f"Option[{self.elem!r}]"


@dataclass(frozen=True)
class STuple(SType):
    items: tuple[SType, ...]

    def __post_init__(self):
        if not 2 <= len(self.items) <= MAX_TUPLE_LENGTH:
            raise ValueError(f"Tuple must have 2..{MAX_TUPLE_LENGTH} items, got {len(self.items)}")

    @property
    def type_code(self) -> int:
        return TUPLE_CODE

    def __repr__(self) -> str:
        return "(" + ", ".join(repr(t) for t in self.items) + ")"


@dataclass(frozen=True)
class SFunc(SType):
    domain: tuple[SType, ...]
    range: SType

    def __repr__(self) -> str:
        return "(" + ", ".join(repr(t) for t in self.domain) + f") => {self.range!r}"


@dataclass(frozen=True)
class STypeVar(SType):
    name: str

    def __repr__(self) -> str:
        return self.name


# --- Predefined Types ---

SBoolean = SPrimitive("Boolean", 1)
SByte = SPrimitive("Byte", 2)
SShort = SPrimitive("Short", 3)
SInt = SPrimitive("Int", 4)
SLong = SPrimitive("Long", 5)
SBigInt = SPrimitive("BigInt", 6)
SGroupElement = SPrimitive("GroupElement", 7)
SSigmaProp = SPrimitive("SigmaProp", 8)
SAny = SPrimitive("Any", 97)
SUnit = SPrimitive("Unit", 98)
SBox = SPrimitive("Box", 99)
SAvlTree = SPrimitive("AvlTree", 100)
SContext = SPrimitive("Context", 101)
SString = SPrimitive("String", 102)
STYPE_VAR_CODE = 103
SHeader = SPrimitive("Header", 104)
SPreHeader = SPrimitive("PreHeader", 105)
SGlobal = SPrimitive("Global", 106)

# Bit width of each numeric type (signed two's complement range)
NUMERIC_BITS: dict[SType, int] = {
    SByte: 8,
    SShort: 16,
    SInt: 32,
    SLong: 64,
    SBigInt: 256,
}

_EMBEDDABLE = {t.code: t for t in (SBoolean, SByte, SShort, SInt, SLong, SBigInt, SGroupElement, SSigmaProp)}
_NON_PARAMETRIC = {t.code: t for t in (SAny, SUnit, SBox, SAvlTree, SContext, SString, SHeader, SPreHeader, SGlobal)}

SByteArray = SColl(SByte)


def numeric_range(tpe: SType) -> tuple[int, int]:
    """Inclusive (min, max) of a numeric type."""
    bits = NUMERIC_BITS[tpe]
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


# --- Type Serialization ---

def serialize_type(tpe: SType, w: SigmaByteWriter) -> None:
    """Write a type descriptor.

    Raises:
        ValueError: For function types, which never appear in serialized trees
    """
    if isinstance(tpe, SPrimitive):
        w.put_u8(tpe.code)
    elif isinstance(tpe, SColl):
        if tpe.elem.is_embeddable():
            w.put_u8(COLLECTION_CODE + tpe.elem.code)
        elif isinstance(tpe.elem, SColl) and tpe.elem.elem.is_embeddable():
            w.put_u8(NESTED_COLLECTION_CODE + tpe.elem.elem.code)
        else:
            w.put_u8(COLLECTION_CODE)
            serialize_type(tpe.elem, w)
    elif isinstance(tpe, SOption):
        if tpe.elem.is_embeddable():
            w.put_u8(OPTION_CODE + tpe.elem.code)
        elif isinstance(tpe.elem, SColl) and tpe.elem.elem.is_embeddable():
            w.put_u8(OPTION_COLLECTION_CODE + tpe.elem.elem.code)
        else:
            w.put_u8(OPTION_CODE)
            serialize_type(tpe.elem, w)
    elif isinstance(tpe, STuple):
        _serialize_tuple_type(tpe, w)
    elif isinstance(tpe, STypeVar):
        w.put_u8(STYPE_VAR_CODE)
        name = tpe.name.encode("utf-8")
        w.put_u8(len(name))
        w.put_bytes(name)
    else:
        raise ValueError(f"Type {tpe!r} cannot be serialized")


def _serialize_tuple_type(tpe: STuple, w: SigmaByteWriter) -> None:
    items = tpe.items
    if len(items) == 2:
        t1, t2 = items
        if t1.is_embeddable():
            if t1 == t2:
                w.put_u8(TUPLE_PAIR_SYMMETRIC_CODE + t1.code)
            else:
                w.put_u8(TUPLE_PAIR1_CODE + t1.code)
                serialize_type(t2, w)
        elif t2.is_embeddable():
            w.put_u8(TUPLE_PAIR2_CODE + t2.code)
            serialize_type(t1, w)
        else:
            w.put_u8(TUPLE_PAIR1_CODE)
            serialize_type(t1, w)
            serialize_type(t2, w)
        return
    if len(items) == 3:
        w.put_u8(TUPLE_TRIPLE_CODE)
    elif len(items) == 4:
        w.put_u8(TUPLE_QUADRUPLE_CODE)
    else:
        w.put_u8(TUPLE_CODE)
        w.put_u8(len(items))
    for t in items:
        serialize_type(t, w)


def _embeddable(code: int) -> SType:
    try:
        return _EMBEDDABLE[code]
    except KeyError:
        raise DecodeError(f"Invalid embeddable type code: {code}") from None


def _arg_type(r: SigmaByteReader, prim_id: int) -> SType:
    return parse_type(r) if prim_id == 0 else _embeddable(prim_id)


def parse_type(r: SigmaByteReader) -> SType:
    """Read a type descriptor.

    Raises:
        DecodeError: On a zero or unknown type code, or truncated input
    """
    code = r.get_u8()
    if code == 0:
        raise DecodeError("Invalid type prefix 0")

    if code < TUPLE_CODE:
        constr_id, prim_id = divmod(code, PRIM_RANGE)
        if constr_id == 0:
            return _embeddable(code)
        if constr_id == 1:
            return SColl(_arg_type(r, prim_id))
        if constr_id == 2:
            return SColl(SColl(_arg_type(r, prim_id)))
        if constr_id == 3:
            return SOption(_arg_type(r, prim_id))
        if constr_id == 4:
            return SOption(SColl(_arg_type(r, prim_id)))
        if constr_id == 5:
            if prim_id == 0:
                t1 = parse_type(r)
                t2 = parse_type(r)
            else:
                t1 = _embeddable(prim_id)
                t2 = parse_type(r)
            return STuple((t1, t2))
        if constr_id == 6:
            if prim_id == 0:
                return STuple((parse_type(r), parse_type(r), parse_type(r)))
            t2 = _embeddable(prim_id)
            t1 = parse_type(r)
            return STuple((t1, t2))
        # constr_id == 7
        if prim_id == 0:
            return STuple((parse_type(r), parse_type(r), parse_type(r), parse_type(r)))
        t = _embeddable(prim_id)
        return STuple((t, t))

    if code == TUPLE_CODE:
        n = r.get_u8()
        if n < 2:
            raise DecodeError(f"Tuple must have at least 2 items, got {n}")
        return STuple(tuple(parse_type(r) for _ in range(n)))
    if code == STYPE_VAR_CODE:
        n = r.get_u8()
        try:
            return STypeVar(r.get_bytes(n).decode("utf-8"))
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid type variable name: {e}") from e
    if code in _NON_PARAMETRIC:
        return _NON_PARAMETRIC[code]
    raise DecodeError(f"Unknown type code: {code}")
