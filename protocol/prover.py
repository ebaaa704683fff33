"""Sigma-protocol prover.

Builds a non-interactive proof for a sigma proposition from whatever
secrets the prover holds. Nodes the secrets cannot cover are simulated:
their challenges are fixed first and transcripts are made up to match.
The root challenge is the Fiat-Shamir hash of all commitments and the
message, and the real nodes' challenges are then derived from it so that
every conjecture's challenge split still holds.
"""

import logging
from dataclasses import dataclass, field
from functools import reduce
from operator import xor
from typing import Optional

from ergotree.chain import ContextExtension
from ergotree.ergo_tree import ErgoTree
from ergotree.sigma_boolean import Cand, Cor, ProveDlog, SigmaBoolean, TrivialProp
from interpreter.config import EvalConfig
from interpreter.context import Context
from interpreter.errors import EvalError
from interpreter.evaluator import reduce_tree
from primitives.gf2_192 import Gf2_192Poly
from primitives.vlq import SigmaByteReader, SigmaByteWriter
from protocol import dht, dlog
from protocol.challenge import Challenge
from protocol.errors import ProverError, TreeNotSatisfiableError
from protocol.fiat_shamir import fiat_shamir_hash, fiat_shamir_tree_to_bytes
from protocol.private_input import PrivateInput, find_secret
from protocol.proof import serialize_sig
from protocol.proof_tree import (
    UncheckedConjecture,
    UncheckedLeaf,
    UncheckedTree,
    UnprovenLeaf,
    UnprovenTree,
    convert_to_unproven,
)

logger = logging.getLogger(__name__)


def prove(proposition: SigmaBoolean, secrets: list[PrivateInput], message: bytes) -> bytes:
    """Prove a sigma proposition over a message.

    Args:
        proposition: Proposition to prove
        secrets: Secrets held by the prover, matched to leaves by public image
        message: Bytes bound into the Fiat-Shamir challenge

    Returns:
        Proof bytes; empty for TrivialProp(True)

    Raises:
        TreeNotSatisfiableError: If the secrets cannot satisfy the proposition
        ProverError: If the proposition has no proof tree
    """
    if isinstance(proposition, TrivialProp):
        if proposition.value:
            return b""
        raise TreeNotSatisfiableError("Cannot prove TrivialProp(false)")
    try:
        root = convert_to_unproven(proposition)
    except ValueError as e:
        raise ProverError(str(e)) from e

    _mark_real(root, secrets)
    if root.simulated:
        raise TreeNotSatisfiableError(f"Secrets do not satisfy {type(proposition).__name__} proposition")
    _polish_simulated(root)
    leaves = list(_leaves(root))
    logger.debug("Simulating %d of %d leaves", sum(1 for leaf in leaves if leaf.simulated), len(leaves))
    _simulate_and_commit(root)

    root.challenge = fiat_shamir_hash(fiat_shamir_tree_to_bytes(root) + message)
    logger.debug("Root challenge %s", root.challenge.data.hex())
    return serialize_sig(_prove(root, secrets))


def _leaves(node: UnprovenTree):
    if isinstance(node, UnprovenLeaf):
        yield node
    else:
        for child in node.children:
            yield from _leaves(child)


# --- Step 1: mark real nodes (bottom-up) ---

def _mark_real(node: UnprovenTree, secrets: list[PrivateInput]) -> None:
    if isinstance(node, UnprovenLeaf):
        node.simulated = find_secret(secrets, node.proposition) is None
        return
    for child in node.children:
        _mark_real(child, secrets)
    n_real = sum(1 for c in node.children if not c.simulated)
    prop = node.proposition
    if isinstance(prop, Cand):
        real = n_real == len(node.children)
    elif isinstance(prop, Cor):
        real = n_real >= 1
    else:
        real = n_real >= prop.k
    node.simulated = not real


# --- Step 2: polish (top-down) ---

def _polish_simulated(node: UnprovenTree) -> None:
    """Keep exactly as many real children as each real conjecture needs."""
    if isinstance(node, UnprovenLeaf):
        return
    prop = node.proposition
    if node.simulated:
        for child in node.children:
            child.simulated = True
    elif not isinstance(prop, Cand):
        keep = 1 if isinstance(prop, Cor) else prop.k
        for child in node.children:
            if not child.simulated:
                if keep > 0:
                    keep -= 1
                else:
                    child.simulated = True
    for child in node.children:
        _polish_simulated(child)


# --- Step 3: simulated challenges and commitments (top-down) ---

def _simulate_and_commit(node: UnprovenTree) -> None:
    if isinstance(node, UnprovenLeaf):
        prop = node.proposition
        protocol = dlog if isinstance(prop, ProveDlog) else dht
        if node.simulated:
            node.commitment, node.randomness = protocol.simulate(prop, node.challenge)
        elif protocol is dlog:
            node.randomness, node.commitment = dlog.first_message()
        else:
            node.randomness, node.commitment = dht.first_message(prop)
        return

    prop = node.proposition
    children = node.children
    if not node.simulated:
        if not isinstance(prop, Cand):
            for child in children:
                if child.simulated:
                    child.challenge = Challenge.random()
    elif isinstance(prop, Cand):
        for child in children:
            child.challenge = node.challenge
    elif isinstance(prop, Cor):
        rest = [Challenge.random() for _ in children[1:]]
        children[0].challenge = reduce(xor, rest, node.challenge)
        for child, challenge in zip(children[1:], rest):
            child.challenge = challenge
    else:
        node.polynomial = Gf2_192Poly.make_random(len(children) - prop.k, node.challenge.to_gf2_192())
        for i, child in enumerate(children):
            child.challenge = Challenge.from_gf2_192(node.polynomial.evaluate(i + 1))

    for child in children:
        _simulate_and_commit(child)


# --- Step 5: real challenges and responses (top-down) ---

def _prove(node: UnprovenTree, secrets: list[PrivateInput]) -> UncheckedTree:
    if isinstance(node, UnprovenLeaf):
        if node.simulated:
            z = node.randomness
        else:
            secret = find_secret(secrets, node.proposition)
            protocol = dlog if isinstance(node.proposition, ProveDlog) else dht
            z = protocol.second_message(secret, node.randomness, node.challenge)
        return UncheckedLeaf(node.proposition, node.challenge, z, node.commitment)

    prop = node.proposition
    children = node.children
    if not node.simulated:
        if isinstance(prop, Cand):
            for child in children:
                child.challenge = node.challenge
        elif isinstance(prop, Cor):
            known = (c.challenge for c in children if c.challenge is not None)
            real_challenge = reduce(xor, known, node.challenge)
            for child in children:
                if child.challenge is None:
                    child.challenge = real_challenge
        else:
            points, values = [], []
            for i, child in enumerate(children):
                if child.challenge is not None:
                    points.append(i + 1)
                    values.append(child.challenge.to_gf2_192())
            node.polynomial = Gf2_192Poly.interpolate(points, values, node.challenge.to_gf2_192())
            for i, child in enumerate(children):
                if child.challenge is None:
                    child.challenge = Challenge.from_gf2_192(node.polynomial.evaluate(i + 1))

    return UncheckedConjecture(
        prop, node.challenge, tuple(_prove(c, secrets) for c in children), node.polynomial
    )


# --- Tree-level prover ---

@dataclass(frozen=True)
class ProverResult:
    """Spending proof: proof bytes plus the context extension the script may read."""

    proof: bytes
    extension: ContextExtension = field(default_factory=ContextExtension)

    def to_bytes(self) -> bytes:
        w = SigmaByteWriter()
        w.put_u16(len(self.proof))
        w.put_bytes(self.proof)
        w.put_bytes(self.extension.to_bytes())
        return w.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProverResult":
        r = SigmaByteReader(data)
        proof = r.get_bytes(r.get_u16())
        extension = ContextExtension.from_bytes(r.get_bytes(r.remaining()))
        return cls(proof, extension)


class Prover:
    """Proves ErgoTrees: reduces the script in a context, then proves the result."""

    def __init__(self, secrets: list[PrivateInput], config: Optional[EvalConfig] = None):
        self.secrets = list(secrets)
        self.config = config or EvalConfig()

    def prove(self, tree: ErgoTree, ctx: Context, message: bytes) -> ProverResult:
        """Reduce `tree` in `ctx` and prove the resulting proposition over `message`.

        Raises:
            ProverError: If reduction fails or the proposition cannot be proven
        """
        try:
            reduction = reduce_tree(tree, ctx, self.config)
        except EvalError as e:
            raise ProverError(f"Script reduction failed: {e}") from e
        proof = prove(reduction.sigma_prop, self.secrets, message)
        logger.debug("Proved %s with %d proof bytes, cost %d",
                     type(reduction.sigma_prop).__name__, len(proof), reduction.cost)
        return ProverResult(proof, ctx.extension)
