"""Tests for secp256k1 group elements and scalars."""

import pytest

from primitives.group import (
    GROUP_ELEMENT_SIZE,
    GROUP_ORDER,
    GroupElement,
    random_scalar,
    scalar_from_bytes,
    scalar_to_bytes,
)

GENERATOR_HEX = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


class TestGroupElement:
    """Tests for GroupElement."""

    def test_generator_encoding(self) -> None:
        """Generator encodes to the standard compressed form."""
        assert GroupElement.generator().to_bytes().hex() == GENERATOR_HEX

    def test_decode_roundtrip(self) -> None:
        """Decoding a valid point gives back an equal element."""
        p = GroupElement.generator() * 12345
        assert GroupElement.from_bytes(p.to_bytes()) == p

    def test_identity_encoding(self) -> None:
        """The point at infinity is 33 zero bytes."""
        ident = GroupElement.identity()
        assert ident.to_bytes() == bytes(GROUP_ELEMENT_SIZE)
        assert GroupElement.from_bytes(bytes(GROUP_ELEMENT_SIZE)).is_identity()

    def test_invalid_point(self) -> None:
        """An unknown prefix byte is rejected with ValueError."""
        with pytest.raises(ValueError):
            GroupElement.from_bytes(b"\x05" + bytes.fromhex(GENERATOR_HEX)[1:])

    def test_wrong_length(self) -> None:
        """Only 33-byte encodings are accepted."""
        with pytest.raises(ValueError):
            GroupElement.from_bytes(bytes.fromhex(GENERATOR_HEX)[:32])

    def test_group_law(self) -> None:
        """g^a * g^b == g^(a+b)."""
        g = GroupElement.generator()
        assert g * 5 + g * 7 == g * 12

    def test_negate(self) -> None:
        """p * p^-1 is the identity."""
        p = GroupElement.generator() * 42
        assert (p + p.negate()).is_identity()

    def test_order(self) -> None:
        """Exponents are taken modulo the group order."""
        g = GroupElement.generator()
        assert (g * GROUP_ORDER).is_identity()
        assert g * (GROUP_ORDER + 3) == g * 3

    def test_hashable(self) -> None:
        """Equal points hash equally."""
        g = GroupElement.generator()
        assert len({g * 2, g + g}) == 1


class TestScalars:
    """Tests for scalar helpers."""

    def test_random_scalar_range(self) -> None:
        """Random scalars are nonzero and below the group order."""
        for _ in range(10):
            assert 0 < random_scalar() < GROUP_ORDER

    def test_bytes_roundtrip(self) -> None:
        """Scalars are 32 bytes big-endian."""
        k = GROUP_ORDER - 1
        assert scalar_from_bytes(scalar_to_bytes(k)) == k
        assert scalar_to_bytes(1) == bytes(31) + b"\x01"

    def test_from_bytes_reduces(self) -> None:
        """Values at or above the order are reduced."""
        assert scalar_from_bytes(GROUP_ORDER.to_bytes(32, "big")) == 0
