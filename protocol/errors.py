"""Prover and verifier errors."""


class ProverError(Exception):
    """Base class of errors raised while building a proof."""


class TreeNotSatisfiableError(ProverError):
    """The held secrets cannot satisfy the proposition."""


class VerifierError(Exception):
    """Proof bytes or script could not be decoded or evaluated.

    A proof that decodes but does not check is not an error; the verifier
    returns False for it.
    """
