"""Tests for GF(2^192) arithmetic and threshold polynomials."""

import pytest

from primitives.gf2_192 import (
    GF2_192_BYTES,
    Gf2_192Poly,
    gf2_192_field,
    gf2_192_from_bytes,
    gf2_192_random,
    gf2_192_to_bytes,
)


class TestField:
    """Tests for the field itself."""

    def test_reduction_polynomial(self) -> None:
        """x^191 * x wraps to x^7 + x^2 + x + 1."""
        field = gf2_192_field()
        assert int(field(1 << 191) * field(2)) == 0x87

    def test_addition_is_xor(self) -> None:
        """Field addition is bitwise XOR."""
        field = gf2_192_field()
        a, b = gf2_192_random(), gf2_192_random()
        assert int(field(a) + field(b)) == a ^ b

    def test_bytes_little_endian(self) -> None:
        """Elements are 24 bytes, least significant byte first."""
        data = gf2_192_to_bytes(1)
        assert data == b"\x01" + bytes(GF2_192_BYTES - 1)
        assert gf2_192_from_bytes(data) == 1

    def test_bytes_wrong_length(self) -> None:
        """Only 24-byte encodings are accepted."""
        with pytest.raises(ValueError):
            gf2_192_from_bytes(bytes(23))


class TestPoly:
    """Tests for Gf2_192Poly."""

    def test_constant_term(self) -> None:
        """Evaluation at zero gives the constant term."""
        poly = Gf2_192Poly.make_random(3, 12345)
        assert poly.evaluate(0) == 12345
        assert poly.degree == 3

    def test_interpolate_hits_points(self) -> None:
        """Interpolated polynomial passes through every given point and zero."""
        values = [gf2_192_random() for _ in range(3)]
        at_zero = gf2_192_random()
        poly = Gf2_192Poly.interpolate([1, 3, 4], values, at_zero)
        assert poly.degree == 3
        assert poly.evaluate(0) == at_zero
        for x, v in zip([1, 3, 4], values):
            assert poly.evaluate(x) == v

    def test_interpolate_recovers_random_poly(self) -> None:
        """A degree-d polynomial is recovered from d points and its constant term."""
        original = Gf2_192Poly.make_random(2, gf2_192_random())
        points = [2, 5]
        poly = Gf2_192Poly.interpolate(points, [original.evaluate(x) for x in points], original.evaluate(0))
        assert poly == original

    def test_interpolate_keeps_nominal_degree(self) -> None:
        """Leading zero coefficients are kept so the serialized length is fixed."""
        poly = Gf2_192Poly.interpolate([1, 2], [7, 7], 7)
        assert poly.degree == 2
        assert len(poly.to_bytes()) == 2 * GF2_192_BYTES

    def test_interpolate_rejects_duplicates(self) -> None:
        """Repeated points cannot be interpolated."""
        with pytest.raises(ValueError):
            Gf2_192Poly.interpolate([1, 1], [2, 3], 4)

    def test_bytes_omit_constant_term(self) -> None:
        """to_bytes carries only the coefficients of degree 1 and up."""
        poly = Gf2_192Poly.make_random(2, 99)
        data = poly.to_bytes()
        assert len(data) == 2 * GF2_192_BYTES
        assert Gf2_192Poly.from_bytes(99, data) == poly

    def test_from_bytes_bad_length(self) -> None:
        """Coefficient bytes must come in 24-byte chunks."""
        with pytest.raises(ValueError):
            Gf2_192Poly.from_bytes(1, bytes(25))
