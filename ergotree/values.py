"""Runtime values.

A Value pairs a type tag (SType) with a plain Python payload:

    Boolean                      bool
    Byte/Short/Int/Long/BigInt   int (range checked against the tag)
    GroupElement                 primitives.group.GroupElement
    SigmaProp                    ergotree.sigma_boolean.SigmaBoolean
    Box                          box id (32 bytes), resolved through the box arena
    AvlTree                      AvlTreeData
    Coll[T]                      tuple of T payloads (Coll[Byte] items are signed ints)
    (T1, .., Tn)                 tuple of payloads
    Option[T]                    () for None, (x,) for Some(x)
    Unit                         ()
    Header / PreHeader           ergotree.chain.Header / PreHeader
    Context / Global             evaluation context object / None
    function                     Lambda

Collection payloads never carry their own element type: the tag does, so an
empty collection still knows what it is a collection of.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ergotree.types import (
    NUMERIC_BITS,
    SAvlTree,
    SBoolean,
    SBox,
    SByte,
    SColl,
    SFunc,
    SGroupElement,
    SInt,
    SLong,
    SOption,
    SSigmaProp,
    STuple,
    SType,
    SUnit,
    numeric_range,
)
from primitives.group import GroupElement

if TYPE_CHECKING:
    from ergotree.expr import Expr

# --- Type Aliases ---

BoxId = bytes
Digest32 = bytes

BOX_ID_SIZE = 32
AVL_DIGEST_SIZE = 33


@dataclass(frozen=True)
class AvlTreeData:
    """Authenticated dictionary root: digest (root hash + height) and permissions."""

    digest: bytes
    insert_allowed: bool = True
    update_allowed: bool = True
    remove_allowed: bool = True
    key_length: int = 32
    value_length_opt: int | None = None

    @property
    def enabled_operations(self) -> int:
        return int(self.insert_allowed) | int(self.update_allowed) << 1 | int(self.remove_allowed) << 2

    @classmethod
    def with_operations(cls, tree: "AvlTreeData", flags: int) -> "AvlTreeData":
        return cls(
            digest=tree.digest,
            insert_allowed=bool(flags & 0x01),
            update_allowed=bool(flags & 0x02),
            remove_allowed=bool(flags & 0x04),
            key_length=tree.key_length,
            value_length_opt=tree.value_length_opt,
        )


@dataclass(frozen=True)
class Lambda:
    """Function value: argument (id, type) pairs and a body expression."""

    args: tuple[tuple[int, SType], ...]
    body: "Expr"


@dataclass(frozen=True)
class Value:
    """Tagged runtime value."""

    tpe: SType
    v: Any

    def __repr__(self) -> str:
        return f"Value({self.tpe!r}, {self.v!r})"


# --- Constructors ---

def bool_value(b: bool) -> Value:
    return Value(SBoolean, bool(b))


def int_value(n: int) -> Value:
    return Value(SInt, n)


def long_value(n: int) -> Value:
    return Value(SLong, n)


def bytes_to_coll(data: bytes) -> tuple[int, ...]:
    """Coll[Byte] payload (signed bytes) from raw bytes."""
    return tuple(b - 256 if b > 127 else b for b in data)


def coll_to_bytes(items: tuple[int, ...]) -> bytes:
    """Raw bytes from a Coll[Byte] payload."""
    return bytes(b & 0xFF for b in items)


def byte_array(data: bytes) -> Value:
    return Value(SColl(SByte), bytes_to_coll(data))


def coll_value(elem: SType, items) -> Value:
    return Value(SColl(elem), tuple(items))


def sigma_prop_value(sb) -> Value:
    return Value(SSigmaProp, sb)


def some_value(elem: SType, v: Any) -> Value:
    return Value(SOption(elem), (v,))


def none_value(elem: SType) -> Value:
    return Value(SOption(elem), ())


UNIT = Value(SUnit, ())


# --- Shape Checking ---

def check_value(tpe: SType, v: Any) -> bool:
    """True when payload v is a well-formed value of type tpe."""
    from ergotree.sigma_boolean import SigmaBoolean

    if tpe == SBoolean:
        return isinstance(v, bool)
    if tpe in NUMERIC_BITS:
        if isinstance(v, bool) or not isinstance(v, int):
            return False
        lo, hi = numeric_range(tpe)
        return lo <= v <= hi
    if tpe == SGroupElement:
        return isinstance(v, GroupElement)
    if tpe == SSigmaProp:
        return isinstance(v, SigmaBoolean)
    if tpe == SBox:
        return isinstance(v, bytes) and len(v) == BOX_ID_SIZE
    if tpe == SAvlTree:
        return isinstance(v, AvlTreeData)
    if tpe == SUnit:
        return v == ()
    if isinstance(tpe, SColl):
        return isinstance(v, tuple) and all(check_value(tpe.elem, x) for x in v)
    if isinstance(tpe, STuple):
        return (
            isinstance(v, tuple)
            and len(v) == len(tpe.items)
            and all(check_value(t, x) for t, x in zip(tpe.items, v))
        )
    if isinstance(tpe, SOption):
        return isinstance(v, tuple) and (v == () or (len(v) == 1 and check_value(tpe.elem, v[0])))
    if isinstance(tpe, SFunc):
        return isinstance(v, Lambda)
    # Context, Header, PreHeader, Global and type variables are not checked structurally
    return True


def checked_numeric(tpe: SType, n: int) -> int:
    """Return n if it fits tpe.

    Raises:
        OverflowError: If n is outside the type's range
    """
    lo, hi = numeric_range(tpe)
    if not lo <= n <= hi:
        raise OverflowError(f"{n} out of range for {tpe!r}")
    return n


