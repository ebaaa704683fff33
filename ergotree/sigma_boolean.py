"""Sigma propositions.

A SigmaBoolean is the cryptographic statement a script reduces to: a tree
whose leaves assert knowledge of a discrete logarithm (ProveDlog) or of a
Diffie-Hellman tuple exponent (ProveDhTuple), combined by AND, OR and k-of-n
THRESHOLD conjectures. Leaves hold public values only; the matching secrets
live in the prover's private inputs.

TrivialProp(True/False) is the result of reducing a script to a plain boolean.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ergotree.opcodes import OpCode
from primitives.group import GROUP_ELEMENT_SIZE, GroupElement
from primitives.vlq import DecodeError, SigmaByteReader, SigmaByteWriter

MAX_CONJECTURE_ITEMS = 255


class ConjectureType(Enum):
    """Internal node kinds; the value is written into the Fiat-Shamir tree bytes."""

    AND = 0
    OR = 1
    THRESHOLD = 2


class SigmaBoolean:
    """Base class of sigma propositions."""

    def to_bytes(self) -> bytes:
        w = SigmaByteWriter()
        serialize_sigma_boolean(self, w)
        return w.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> SigmaBoolean:
        return parse_sigma_boolean(SigmaByteReader(data))


@dataclass(frozen=True)
class TrivialProp(SigmaBoolean):
    value: bool


# --- Leaves ---

class SigmaLeaf(SigmaBoolean):
    """Proof-of-knowledge leaf."""


@dataclass(frozen=True)
class ProveDlog(SigmaLeaf):
    """Knowledge of w such that h = g^w for the group generator g."""

    h: GroupElement


@dataclass(frozen=True)
class ProveDhTuple(SigmaLeaf):
    """Knowledge of w such that u = g^w and v = h^w."""

    g: GroupElement
    h: GroupElement
    u: GroupElement
    v: GroupElement


# --- Conjectures ---

class SigmaConjecture(SigmaBoolean):
    """Internal node; subclasses expose `children` and `conjecture_type`."""

    children: tuple[SigmaBoolean, ...]
    conjecture_type: ConjectureType


@dataclass(frozen=True)
class Cand(SigmaConjecture):
    children: tuple[SigmaBoolean, ...]

    conjecture_type = ConjectureType.AND

    @staticmethod
    def normalized(items: list[SigmaBoolean]) -> SigmaBoolean:
        """AND with trivial children folded away."""
        res = []
        for it in items:
            if it == TrivialProp(False):
                return it
            if it != TrivialProp(True):
                res.append(it)
        if not res:
            return TrivialProp(True)
        if len(res) == 1:
            return res[0]
        return Cand(tuple(res))


@dataclass(frozen=True)
class Cor(SigmaConjecture):
    children: tuple[SigmaBoolean, ...]

    conjecture_type = ConjectureType.OR

    @staticmethod
    def normalized(items: list[SigmaBoolean]) -> SigmaBoolean:
        """OR with trivial children folded away."""
        res = []
        for it in items:
            if it == TrivialProp(True):
                return it
            if it != TrivialProp(False):
                res.append(it)
        if not res:
            return TrivialProp(False)
        if len(res) == 1:
            return res[0]
        return Cor(tuple(res))


@dataclass(frozen=True)
class Cthreshold(SigmaConjecture):
    k: int
    children: tuple[SigmaBoolean, ...]

    conjecture_type = ConjectureType.THRESHOLD

    @staticmethod
    def reduce(k: int, items: list[SigmaBoolean]) -> SigmaBoolean:
        """k-of-n with trivial children and degenerate bounds simplified.

        True children satisfy one unit of the bound each and are dropped,
        false children are dropped; k <= 0 is true, k > n false, k == 1 an OR
        and k == n an AND.
        """
        res = []
        for it in items:
            if it == TrivialProp(True):
                k -= 1
            elif it != TrivialProp(False):
                res.append(it)
        if k <= 0:
            return TrivialProp(True)
        if k > len(res):
            return TrivialProp(False)
        if k == 1:
            return Cor.normalized(res)
        if k == len(res):
            return Cand.normalized(res)
        return Cthreshold(k, tuple(res))


# --- Serialization ---

def serialize_sigma_boolean(sb: SigmaBoolean, w: SigmaByteWriter) -> None:
    if isinstance(sb, ProveDlog):
        w.put_u8(OpCode.PROVE_DLOG)
        w.put_bytes(sb.h.to_bytes())
    elif isinstance(sb, ProveDhTuple):
        w.put_u8(OpCode.PROVE_DIFFIE_HELLMAN_TUPLE)
        for p in (sb.g, sb.h, sb.u, sb.v):
            w.put_bytes(p.to_bytes())
    elif isinstance(sb, Cand):
        w.put_u8(OpCode.AND)
        _serialize_items(sb.children, w)
    elif isinstance(sb, Cor):
        w.put_u8(OpCode.OR)
        _serialize_items(sb.children, w)
    elif isinstance(sb, Cthreshold):
        w.put_u8(OpCode.ATLEAST)
        w.put_u16(sb.k)
        _serialize_items(sb.children, w)
    elif isinstance(sb, TrivialProp):
        w.put_u8(OpCode.TRIVIAL_PROP_TRUE if sb.value else OpCode.TRIVIAL_PROP_FALSE)
    else:
        raise ValueError(f"Unknown sigma proposition: {sb!r}")


def _serialize_items(items: tuple[SigmaBoolean, ...], w: SigmaByteWriter) -> None:
    w.put_u16(len(items))
    for it in items:
        serialize_sigma_boolean(it, w)


def _parse_point(r: SigmaByteReader) -> GroupElement:
    data = r.get_bytes(GROUP_ELEMENT_SIZE)
    try:
        return GroupElement.from_bytes(data)
    except ValueError as e:
        raise DecodeError(str(e)) from e


def _parse_items(r: SigmaByteReader) -> tuple[SigmaBoolean, ...]:
    n = r.get_u16()
    if not 2 <= n <= MAX_CONJECTURE_ITEMS:
        raise DecodeError(f"Conjecture must have 2..{MAX_CONJECTURE_ITEMS} items, got {n}")
    return tuple(parse_sigma_boolean(r) for _ in range(n))


def parse_sigma_boolean(r: SigmaByteReader) -> SigmaBoolean:
    """Read a sigma proposition.

    Raises:
        DecodeError: On unknown prefix, invalid point or truncated input
    """
    code = r.get_u8()
    if code == OpCode.PROVE_DLOG:
        return ProveDlog(_parse_point(r))
    if code == OpCode.PROVE_DIFFIE_HELLMAN_TUPLE:
        g, h, u, v = (_parse_point(r) for _ in range(4))
        return ProveDhTuple(g, h, u, v)
    if code == OpCode.AND:
        return Cand(_parse_items(r))
    if code == OpCode.OR:
        return Cor(_parse_items(r))
    if code == OpCode.ATLEAST:
        k = r.get_u16()
        children = _parse_items(r)
        if k > len(children):
            raise DecodeError(f"Threshold bound {k} exceeds child count {len(children)}")
        return Cthreshold(k, children)
    if code == OpCode.TRIVIAL_PROP_TRUE:
        return TrivialProp(True)
    if code == OpCode.TRIVIAL_PROP_FALSE:
        return TrivialProp(False)
    raise DecodeError(f"Unknown sigma proposition prefix: {code}")
