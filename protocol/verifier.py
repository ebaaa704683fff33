"""Sigma-protocol verifier.

Parses the proof against the proposition, recomputes every leaf commitment
from its challenge and response, and accepts iff the Fiat-Shamir hash of
the rebuilt tree and the message equals the root challenge. A proof that
parses but does not check yields False; only undecodable input raises.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional

from ergotree.ergo_tree import ErgoTree
from ergotree.sigma_boolean import ProveDlog, SigmaBoolean, TrivialProp
from interpreter.config import EvalConfig
from interpreter.context import Context
from interpreter.errors import EvalError
from interpreter.evaluator import reduce_tree
from protocol import dht, dlog
from protocol.errors import VerifierError
from protocol.fiat_shamir import fiat_shamir_hash, fiat_shamir_tree_to_bytes
from protocol.proof import parse_sig_compute_challenges
from protocol.proof_tree import UncheckedLeaf, UncheckedTree

logger = logging.getLogger(__name__)


def verify(proposition: SigmaBoolean, proof: bytes, message: bytes) -> bool:
    """Check a proof of `proposition` over `message`.

    Raises:
        VerifierError: If the proof bytes are malformed or truncated
    """
    if isinstance(proposition, TrivialProp):
        return proposition.value
    if not proof:
        return False
    tree = parse_sig_compute_challenges(proposition, proof)
    expected = fiat_shamir_hash(fiat_shamir_tree_to_bytes(compute_commitments(tree)) + message)
    result = expected == tree.challenge
    logger.debug("Proof of %s verified: %s", type(proposition).__name__, result)
    return result


def compute_commitments(tree: UncheckedTree) -> UncheckedTree:
    """Copy of the tree with each leaf's commitment derived from (challenge, response)."""
    if isinstance(tree, UncheckedLeaf):
        if isinstance(tree.proposition, ProveDlog):
            commitment = dlog.FirstDlogProverMessage(
                dlog.compute_commitment(tree.proposition, tree.challenge, tree.response)
            )
        else:
            commitment = dht.compute_commitment(tree.proposition, tree.challenge, tree.response)
        return dataclasses.replace(tree, commitment=commitment)
    return dataclasses.replace(tree, children=tuple(compute_commitments(c) for c in tree.children))


# --- Tree-level verifier ---

@dataclass(frozen=True)
class VerificationResult:
    result: bool
    cost: int  # cost of reducing the script


class Verifier:
    """Verifies spending proofs for ErgoTrees."""

    def __init__(self, config: Optional[EvalConfig] = None):
        self.config = config or EvalConfig()

    def verify(self, tree: ErgoTree, ctx: Context, proof: bytes, message: bytes) -> VerificationResult:
        """Reduce `tree` in `ctx` and check `proof` against the result.

        Raises:
            VerifierError: If reduction fails or the proof is malformed
        """
        try:
            reduction = reduce_tree(tree, ctx, self.config)
        except EvalError as e:
            raise VerifierError(f"Script reduction failed: {e}") from e
        return VerificationResult(verify(reduction.sigma_prop, proof, message), reduction.cost)
