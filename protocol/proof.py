"""Proof bytes.

The proof is the unchecked tree written depth first:

    root challenge                 SOUNDNESS_BYTES
    leaf                           response z, GROUP_SIZE bytes big-endian
    AND                            children, without challenges
    OR                             children; all but the last are preceded
                                   by their challenge
    THRESHOLD(k, n)                (n - k) polynomial coefficients, degrees
                                   1..n-k, then children without challenges

Challenges that are not written are recomputed while parsing: AND children
inherit the parent's, the last OR child gets the parent XOR its siblings,
and THRESHOLD child i gets the polynomial evaluated at i + 1 (the constant
term being the parent's challenge). Parsing therefore needs the proposition
to know the shape of the tree.
"""

from functools import reduce
from operator import xor
from typing import Optional

from ergotree.sigma_boolean import Cand, Cor, Cthreshold, ProveDhTuple, ProveDlog, SigmaBoolean
from primitives.gf2_192 import GF2_192_BYTES, Gf2_192Poly
from primitives.group import GROUP_SIZE, scalar_from_bytes, scalar_to_bytes
from primitives.vlq import DecodeError, SigmaByteReader, SigmaByteWriter
from protocol.challenge import SOUNDNESS_BYTES, Challenge
from protocol.errors import VerifierError
from protocol.proof_tree import UncheckedConjecture, UncheckedLeaf, UncheckedTree


# --- Writing ---

def serialize_sig(tree: UncheckedTree) -> bytes:
    w = SigmaByteWriter()
    _write_node(tree, w, write_challenge=True)
    return w.to_bytes()


def _write_node(node: UncheckedTree, w: SigmaByteWriter, write_challenge: bool) -> None:
    if write_challenge:
        w.put_bytes(node.challenge.data)
    if isinstance(node, UncheckedLeaf):
        w.put_bytes(scalar_to_bytes(node.response))
        return
    prop = node.proposition
    if isinstance(prop, Cor):
        for child in node.children[:-1]:
            _write_node(child, w, write_challenge=True)
        _write_node(node.children[-1], w, write_challenge=False)
        return
    if isinstance(prop, Cthreshold):
        w.put_bytes(node.polynomial.to_bytes())
    for child in node.children:
        _write_node(child, w, write_challenge=False)


# --- Parsing ---

def parse_sig_compute_challenges(proposition: SigmaBoolean, proof: bytes) -> UncheckedTree:
    """Read proof bytes in lock-step with the proposition.

    Bytes past the end of the tree are ignored.

    Raises:
        VerifierError: If the bytes are truncated or the proposition has no
            proof tree (trivial subtree)
    """
    r = SigmaByteReader(proof)
    try:
        return _read_node(proposition, r, None)
    except DecodeError as e:
        raise VerifierError(f"Malformed proof: {e}") from e


def _read_node(prop: SigmaBoolean, r: SigmaByteReader, challenge: Optional[Challenge]) -> UncheckedTree:
    if challenge is None:
        challenge = Challenge(r.get_bytes(SOUNDNESS_BYTES))

    if isinstance(prop, (ProveDlog, ProveDhTuple)):
        return UncheckedLeaf(prop, challenge, scalar_from_bytes(r.get_bytes(GROUP_SIZE)))

    if isinstance(prop, Cand):
        children = tuple(_read_node(c, r, challenge) for c in prop.children)
        return UncheckedConjecture(prop, challenge, children)

    if isinstance(prop, Cor):
        head = [_read_node(c, r, None) for c in prop.children[:-1]]
        last_challenge = reduce(xor, (c.challenge for c in head), challenge)
        last = _read_node(prop.children[-1], r, last_challenge)
        return UncheckedConjecture(prop, challenge, tuple(head) + (last,))

    if isinstance(prop, Cthreshold):
        n_coeffs = len(prop.children) - prop.k
        poly = Gf2_192Poly.from_bytes(challenge.to_gf2_192(), r.get_bytes(n_coeffs * GF2_192_BYTES))
        children = tuple(
            _read_node(c, r, Challenge.from_gf2_192(poly.evaluate(i + 1)))
            for i, c in enumerate(prop.children)
        )
        return UncheckedConjecture(prop, challenge, children, poly)

    raise VerifierError(f"No proof tree for {prop!r}")
