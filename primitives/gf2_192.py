"""Binary extension field GF(2^192) and polynomials over it.

Threshold (k-of-n) Sigma conjectures split the parent challenge between their
children with polynomial secret sharing: the children's challenges are the
evaluations at x = 1..n of a polynomial of degree n-k whose constant term is
the parent challenge. Challenges are 192-bit strings, so the sharing runs in
GF(2^192) with reduction polynomial x^192 + x^7 + x^2 + x + 1.

Uses the galois library for the field arithmetic. Constructing the field type
is slow, so it is built on first use behind gf2_192_field().

Element byte layout is fixed by the proof format: 24 bytes, little-endian.
"""

import secrets
from functools import lru_cache

import galois

# --- Field Construction ---

GF2_192_BYTES = 24
GF2_192_ORDER = 2**192
IRREDUCIBLE_POLY = "x^192 + x^7 + x^2 + x + 1"


@lru_cache(maxsize=None)
def gf2_192_field() -> type[galois.FieldArray]:
    """Return the GF(2^192) field class, building it once."""
    return galois.GF(GF2_192_ORDER, irreducible_poly=IRREDUCIBLE_POLY, verify=False)


# --- Element Conversion ---

def gf2_192_from_bytes(data: bytes) -> int:
    """Field element (as int) from its 24-byte little-endian encoding."""
    if len(data) != GF2_192_BYTES:
        raise ValueError(f"GF(2^192) element must be {GF2_192_BYTES} bytes, got {len(data)}")
    return int.from_bytes(data, "little")


def gf2_192_to_bytes(value: int) -> bytes:
    return value.to_bytes(GF2_192_BYTES, "little")


def gf2_192_random() -> int:
    return secrets.randbits(192)


# --- Polynomials ---

class Gf2_192Poly:
    """Polynomial over GF(2^192) with a fixed nominal degree.

    Coefficients are kept in ascending order [c0, c1, ..., c_degree] as plain
    ints. The nominal degree is preserved even when leading coefficients are
    zero, since the serialized form always carries `degree` coefficients.
    """

    def __init__(self, coefficients: list[int]):
        if not coefficients:
            raise ValueError("Polynomial needs at least the constant coefficient")
        self.coefficients = list(coefficients)

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Gf2_192Poly) and self.coefficients == other.coefficients

    def __repr__(self) -> str:
        return f"Gf2_192Poly(degree={self.degree})"

    @classmethod
    def make_random(cls, degree: int, constant_term: int) -> "Gf2_192Poly":
        """Random polynomial of the given degree with a fixed constant term."""
        return cls([constant_term] + [gf2_192_random() for _ in range(degree)])

    @classmethod
    def from_bytes(cls, constant_term: int, more_coefficients: bytes) -> "Gf2_192Poly":
        """Rebuild a polynomial from its constant term and serialized higher coefficients.

        Args:
            constant_term: Degree-zero coefficient (the parent challenge)
            more_coefficients: Concatenated 24-byte coefficients for degrees 1..d

        Raises:
            ValueError: If the byte length is not a multiple of 24
        """
        if len(more_coefficients) % GF2_192_BYTES:
            raise ValueError(
                f"Coefficient bytes length {len(more_coefficients)} "
                f"is not a multiple of {GF2_192_BYTES}"
            )
        coeffs = [constant_term]
        for off in range(0, len(more_coefficients), GF2_192_BYTES):
            coeffs.append(gf2_192_from_bytes(more_coefficients[off:off + GF2_192_BYTES]))
        return cls(coeffs)

    @classmethod
    def interpolate(cls, points: list[int], values: list[int], value_at_zero: int) -> "Gf2_192Poly":
        """Unique polynomial of degree <= len(points) through (0, value_at_zero) and (points[i], values[i]).

        Args:
            points: Distinct nonzero evaluation points (child indices, 1-based)
            values: Field values at those points
            value_at_zero: Value of the polynomial at x = 0

        Raises:
            ValueError: If points and values differ in length, or points repeat
        """
        if len(points) != len(values):
            raise ValueError(
                f"Interpolation needs as many values as points: {len(points)} != {len(values)}"
            )
        xs = [0] + list(points)
        if len(set(xs)) != len(xs):
            raise ValueError(f"Interpolation points must be distinct and nonzero: {points}")

        field = gf2_192_field()
        poly = galois.lagrange_poly(field(xs), field([value_at_zero] + list(values)))
        ascending = [int(c) for c in poly.coeffs[::-1]]
        degree = len(points)
        ascending += [0] * (degree + 1 - len(ascending))
        return cls(ascending)

    def evaluate(self, x: int) -> int:
        """Evaluate at a small point x (a byte value read as a field element)."""
        field = gf2_192_field()
        poly = galois.Poly(field(self.coefficients), order="asc")
        return int(poly(field(x)))

    def to_bytes(self) -> bytes:
        """Coefficients of degrees 1..degree, 24 bytes each; the constant term is omitted."""
        return b"".join(gf2_192_to_bytes(c) for c in self.coefficients[1:])
