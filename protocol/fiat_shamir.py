"""Fiat-Shamir transform: the root challenge is a hash of the whole proof tree.

Tree bytes, depth first:

    leaf      0x01 | i16be len | proposition bytes | i16be len | commitment
    internal  0x00 | conjecture type | k (THRESHOLD only) | i16be child count | children

Proposition bytes are the leaf wrapped in a constant-segregated v0 ErgoTree.
The hash is blake2b-256 truncated to SOUNDNESS_BYTES.
"""

from ergotree.ergo_tree import sigma_prop_tree
from ergotree.sigma_boolean import Cthreshold
from primitives.hashing import blake2b256
from primitives.vlq import SigmaByteWriter
from protocol.challenge import SOUNDNESS_BYTES, Challenge
from protocol.errors import ProverError
from protocol.proof_tree import ProofTree, UncheckedLeaf, UnprovenLeaf

INTERNAL_NODE_PREFIX = 0
LEAF_PREFIX = 1


def fiat_shamir_hash(data: bytes) -> Challenge:
    return Challenge(blake2b256(data)[:SOUNDNESS_BYTES])


def fiat_shamir_tree_to_bytes(tree: ProofTree) -> bytes:
    """Serialize a proof tree whose leaves all carry commitments.

    Raises:
        ProverError: If a leaf has no commitment
    """
    w = SigmaByteWriter()
    _write_node(tree, w)
    return w.to_bytes()


def _write_node(node: ProofTree, w: SigmaByteWriter) -> None:
    if isinstance(node, (UnprovenLeaf, UncheckedLeaf)):
        if node.commitment is None:
            raise ProverError(f"Leaf {node.proposition!r} has no commitment")
        prop_bytes = sigma_prop_tree(node.proposition, segregate=True).to_bytes()
        commitment_bytes = node.commitment.to_bytes()
        w.put_u8(LEAF_PREFIX)
        w.put_i16_be(len(prop_bytes))
        w.put_bytes(prop_bytes)
        w.put_i16_be(len(commitment_bytes))
        w.put_bytes(commitment_bytes)
    else:
        w.put_u8(INTERNAL_NODE_PREFIX)
        w.put_u8(node.proposition.conjecture_type.value)
        if isinstance(node.proposition, Cthreshold):
            w.put_u8(node.proposition.k)
        w.put_i16_be(len(node.children))
        for child in node.children:
            _write_node(child, w)
