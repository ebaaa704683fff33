"""Protocol - Sigma-protocol proving and verification over sigma propositions."""

from protocol.challenge import SOUNDNESS_BYTES, Challenge
from protocol.errors import ProverError, TreeNotSatisfiableError, VerifierError
from protocol.fiat_shamir import fiat_shamir_hash, fiat_shamir_tree_to_bytes
from protocol.private_input import DhTupleProverInput, DlogProverInput, PrivateInput
from protocol.proof import parse_sig_compute_challenges, serialize_sig
from protocol.prover import Prover, ProverResult, prove
from protocol.verifier import VerificationResult, Verifier, compute_commitments, verify

__all__ = [
    # Proving and verification
    "prove",
    "verify",
    "Prover",
    "ProverResult",
    "Verifier",
    "VerificationResult",
    # Secrets
    "PrivateInput",
    "DlogProverInput",
    "DhTupleProverInput",
    # Challenges and proof bytes
    "Challenge",
    "SOUNDNESS_BYTES",
    "fiat_shamir_hash",
    "fiat_shamir_tree_to_bytes",
    "serialize_sig",
    "parse_sig_compute_challenges",
    "compute_commitments",
    # Errors
    "ProverError",
    "TreeNotSatisfiableError",
    "VerifierError",
]
