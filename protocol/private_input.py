"""Secrets held by a prover, each matching one kind of sigma leaf."""

from dataclasses import dataclass
from typing import Optional, Union

from ergotree.sigma_boolean import ProveDhTuple, ProveDlog, SigmaLeaf
from primitives.group import GROUP_ORDER, GroupElement, random_scalar


@dataclass(frozen=True)
class DlogProverInput:
    """Exponent w of a public key h = g^w."""

    w: int

    def __post_init__(self):
        if not 0 < self.w < GROUP_ORDER:
            raise ValueError("Dlog secret must be in [1, group order)")

    def __repr__(self) -> str:
        return f"DlogProverInput(public_image={self.public_image.h!r})"

    @classmethod
    def random(cls) -> "DlogProverInput":
        return cls(random_scalar())

    @property
    def public_image(self) -> ProveDlog:
        return ProveDlog(GroupElement.generator() * self.w)


@dataclass(frozen=True)
class DhTupleProverInput:
    """Exponent w of a Diffie-Hellman tuple (g, h, u = g^w, v = h^w)."""

    w: int
    common_input: ProveDhTuple

    def __repr__(self) -> str:
        return f"DhTupleProverInput(public_image={self.common_input!r})"

    @classmethod
    def random(cls) -> "DhTupleProverInput":
        """Fresh tuple over the standard generator and a random second base."""
        g = GroupElement.generator()
        h = g * random_scalar()
        w = random_scalar()
        return cls(w, ProveDhTuple(g, h, g * w, h * w))

    @property
    def public_image(self) -> ProveDhTuple:
        return self.common_input


PrivateInput = Union[DlogProverInput, DhTupleProverInput]


def find_secret(secrets: list[PrivateInput], leaf: SigmaLeaf) -> Optional[PrivateInput]:
    """The secret whose public image is `leaf`, if held."""
    for s in secrets:
        if s.public_image == leaf:
            return s
    return None
