"""Schnorr protocol for knowledge of a discrete logarithm (ProveDlog)."""

from dataclasses import dataclass

from ergotree.sigma_boolean import ProveDlog
from primitives.group import GROUP_ORDER, GroupElement, random_scalar
from protocol.challenge import Challenge
from protocol.private_input import DlogProverInput


@dataclass(frozen=True)
class FirstDlogProverMessage:
    """Commitment a = g^r."""

    a: GroupElement

    def to_bytes(self) -> bytes:
        return self.a.to_bytes()


def first_message() -> tuple[int, FirstDlogProverMessage]:
    """Fresh nonce r and its commitment."""
    r = random_scalar()
    return r, FirstDlogProverMessage(GroupElement.generator() * r)


def simulate(proposition: ProveDlog, challenge: Challenge) -> tuple[FirstDlogProverMessage, int]:
    """Transcript for a given challenge without the secret: pick z, solve for a."""
    z = random_scalar()
    return FirstDlogProverMessage(compute_commitment(proposition, challenge, z)), z


def second_message(secret: DlogProverInput, r: int, challenge: Challenge) -> int:
    """Response z = r + e * w mod q."""
    return (r + challenge.to_scalar() * secret.w) % GROUP_ORDER


def compute_commitment(proposition: ProveDlog, challenge: Challenge, z: int) -> GroupElement:
    """Commitment implied by a response: a = g^z * h^-e."""
    e = challenge.to_scalar()
    return GroupElement.generator() * z + (proposition.h * e).negate()
