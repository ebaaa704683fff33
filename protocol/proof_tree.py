"""Proof trees.

The prover walks an *unproven* tree that mirrors the sigma proposition and
is filled in place: real/simulated flags, challenges, commitments, nonces
and threshold polynomials. The finished proof and the verifier's parsed
proof are *unchecked* trees: immutable, carrying challenges and responses,
with leaf commitments present once they have been computed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ergotree.sigma_boolean import (
    Cand,
    Cor,
    Cthreshold,
    ProveDhTuple,
    ProveDlog,
    SigmaBoolean,
    SigmaConjecture,
    SigmaLeaf,
)
from primitives.gf2_192 import Gf2_192Poly
from protocol.challenge import Challenge
from protocol.dht import FirstDhTupleProverMessage
from protocol.dlog import FirstDlogProverMessage

FirstProverMessage = Union[FirstDlogProverMessage, FirstDhTupleProverMessage]


# --- Unproven ---

@dataclass
class UnprovenLeaf:
    proposition: SigmaLeaf
    simulated: bool = False
    challenge: Optional[Challenge] = None
    commitment: Optional[FirstProverMessage] = None
    randomness: Optional[int] = None  # real: nonce r; simulated: response z


@dataclass
class UnprovenConjecture:
    proposition: SigmaConjecture
    children: list[UnprovenTree]
    simulated: bool = False
    challenge: Optional[Challenge] = None
    polynomial: Optional[Gf2_192Poly] = None  # THRESHOLD only


UnprovenTree = Union[UnprovenLeaf, UnprovenConjecture]


def convert_to_unproven(sb: SigmaBoolean) -> UnprovenTree:
    """Fresh unproven tree shaped like sb; every node starts out real."""
    if isinstance(sb, (ProveDlog, ProveDhTuple)):
        return UnprovenLeaf(sb)
    if isinstance(sb, (Cand, Cor, Cthreshold)):
        return UnprovenConjecture(sb, [convert_to_unproven(c) for c in sb.children])
    raise ValueError(f"No proof tree for {sb!r}")


# --- Unchecked ---

@dataclass(frozen=True)
class UncheckedLeaf:
    proposition: SigmaLeaf
    challenge: Challenge
    response: int
    commitment: Optional[FirstProverMessage] = None


@dataclass(frozen=True)
class UncheckedConjecture:
    proposition: SigmaConjecture
    challenge: Challenge
    children: tuple[UncheckedTree, ...] = field(default_factory=tuple)
    polynomial: Optional[Gf2_192Poly] = None  # THRESHOLD only


UncheckedTree = Union[UncheckedLeaf, UncheckedConjecture]
ProofTree = Union[UnprovenTree, UncheckedTree]
