"""Chaum-Pedersen protocol for a Diffie-Hellman tuple (ProveDhTuple)."""

from dataclasses import dataclass

from ergotree.sigma_boolean import ProveDhTuple
from primitives.group import GROUP_ORDER, GroupElement, random_scalar
from protocol.challenge import Challenge
from protocol.private_input import DhTupleProverInput


@dataclass(frozen=True)
class FirstDhTupleProverMessage:
    """Commitment pair a = g^r, b = h^r."""

    a: GroupElement
    b: GroupElement

    def to_bytes(self) -> bytes:
        return self.a.to_bytes() + self.b.to_bytes()


def first_message(proposition: ProveDhTuple) -> tuple[int, FirstDhTupleProverMessage]:
    r = random_scalar()
    return r, FirstDhTupleProverMessage(proposition.g * r, proposition.h * r)


def simulate(proposition: ProveDhTuple, challenge: Challenge) -> tuple[FirstDhTupleProverMessage, int]:
    z = random_scalar()
    return compute_commitment(proposition, challenge, z), z


def second_message(secret: DhTupleProverInput, r: int, challenge: Challenge) -> int:
    return (r + challenge.to_scalar() * secret.w) % GROUP_ORDER


def compute_commitment(proposition: ProveDhTuple, challenge: Challenge, z: int) -> FirstDhTupleProverMessage:
    """Commitments implied by a response: a = g^z * u^-e, b = h^z * v^-e."""
    e = challenge.to_scalar()
    a = proposition.g * z + (proposition.u * e).negate()
    b = proposition.h * z + (proposition.v * e).negate()
    return FirstDhTupleProverMessage(a, b)
