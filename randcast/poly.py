from collections.abc import Sequence
from hashlib import sha512
from typing import TypeVar

from randcast.curve import (
    SCALAR_SIZE,
    G1Point,
    Scalar,
    add,
    curve_order,
    eq,
    g1_from_hex,
    g1_mul_generator,
    g1_to_hex,
    multiply,
)
from randcast.custom_types import HexStr

_POINT_T = TypeVar("_POINT_T")


class PrivatePolynomial:
    """Polynomial over the scalar field, ``coefficients[0]`` is the secret."""

    def __init__(self, coefficients: Sequence[Scalar]):
        if not coefficients:
            raise ValueError("Polynomial needs at least one coefficient")
        self.coefficients = [coefficient % curve_order for coefficient in coefficients]

    @classmethod
    def derive(cls, secret: Scalar, degree: int, seed: bytes) -> "PrivatePolynomial":
        """
        Derive a polynomial of the given degree with ``secret`` as constant term.
        The remaining coefficients are a deterministic function of the secret and the seed.
        """
        secret_bytes = (secret % curve_order).to_bytes(SCALAR_SIZE, "big")
        coefficients = [secret]
        for k in range(1, degree + 1):
            digest = sha512(secret_bytes + seed + k.to_bytes(4, "big")).digest()
            coefficients.append(int.from_bytes(digest, "big") % curve_order)
        return cls(coefficients)

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    @property
    def secret(self) -> Scalar:
        return self.coefficients[0]

    def eval(self, x: int) -> Scalar:
        result = 0
        for coefficient in reversed(self.coefficients):
            result = (result * x + coefficient) % curve_order
        return result

    def commit(self) -> "PublicPolynomial":
        return PublicPolynomial([g1_mul_generator(coefficient) for coefficient in self.coefficients])


class PublicPolynomial:
    """Feldman commitment to a private polynomial, one G1 point per coefficient."""

    def __init__(self, coefficients: Sequence[G1Point]):
        if not coefficients:
            raise ValueError("Polynomial needs at least one coefficient")
        self.coefficients = list(coefficients)

    def __len__(self) -> int:
        return len(self.coefficients)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicPolynomial):
            return False
        return len(self) == len(other) and all(eq(a, b) for a, b in zip(self.coefficients, other.coefficients))

    def __add__(self, other: "PublicPolynomial") -> "PublicPolynomial":
        if len(self) != len(other):
            raise ValueError("Can not add public polynomials of different degrees")
        return PublicPolynomial([add(a, b) for a, b in zip(self.coefficients, other.coefficients)])

    @property
    def public_key(self) -> G1Point:
        return self.coefficients[0]

    def eval(self, x: int) -> G1Point:
        result = self.coefficients[-1]
        for coefficient in reversed(self.coefficients[:-1]):
            result = add(multiply(result, x), coefficient)
        return result

    def to_hex(self) -> list[HexStr]:
        return [g1_to_hex(coefficient) for coefficient in self.coefficients]

    @classmethod
    def from_hex(cls, coefficients: Sequence[HexStr]) -> "PublicPolynomial":
        return cls([g1_from_hex(coefficient) for coefficient in coefficients])


def verify_share(share: Scalar, x: int, commitment: PublicPolynomial) -> bool:
    """Feldman check: ``share * G1 == sum(C_k * x^k)``."""
    return eq(g1_mul_generator(share), commitment.eval(x))


def lagrange_coefficients_at_zero(xs: Sequence[int]) -> list[Scalar]:
    if len(set(xs)) != len(xs):
        raise ValueError("Interpolation points must be distinct")
    coefficients = []
    for i, x_i in enumerate(xs):
        numerator, denominator = 1, 1
        for j, x_j in enumerate(xs):
            if i == j:
                continue
            numerator = numerator * x_j % curve_order
            denominator = denominator * (x_j - x_i) % curve_order
        coefficients.append(numerator * pow(denominator, -1, curve_order) % curve_order)
    return coefficients


def interpolate_at_zero(points: Sequence[tuple[int, _POINT_T]]) -> _POINT_T:
    """Recover ``f(0) * P`` from evaluations ``f(x_i) * P`` given as ``(x_i, point)`` pairs."""
    xs = [x for x, _ in points]
    result = None
    for coefficient, (_, point) in zip(lagrange_coefficients_at_zero(xs), points):
        term = multiply(point, coefficient)
        result = term if result is None else add(result, term)
    if result is None:
        raise ValueError("No points to interpolate")
    return result
