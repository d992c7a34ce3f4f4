"""
Arithmetic over a prime field.

Two fields are used and must never be mixed:
    P_FIELD: the 256 bit prime recommended for the secp256k1 Koblitz curve,
             http://www.secg.org/sec2-v2.pdf
             P = 2^256 - 2^32 - 2^9 - 2^8 - 2^7 - 2^6 - 2^4 - 1
             used for plain MPC arithmetic.
    N_FIELD: the order of the secp256k1 group. Private keys, nonces and
             signature scalars live here.
"""

import secrets
from dataclasses import dataclass
from typing import Tuple, Union

from .errors import FieldInverseOfZero, ModulusMismatch

P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def egcd(a: int, b: int) -> Tuple[int, int, int]:
    """
    Extended euclidean algorithm.
    Returns (g, x, y) such that a*x + b*y = g = gcd(a, b).
    """
    x0, x1, y0, y1 = 1, 0, 0, 1
    while b:
        q, a, b = a // b, b, a % b
        x0, x1 = x1, x0 - q * x1
        y0, y1 = y1, y0 - q * y1
    return a, x0, y0


@dataclass(frozen=True)
class FiniteField:
    modulus: int

    def normalize(self, x: int) -> int:
        # python's % already lands in [0, m) for a positive modulus
        return x % self.modulus

    def add(self, x: int, y: int) -> int:
        return self.normalize(x + y)

    def sub(self, x: int, y: int) -> int:
        return self.normalize(x - y)

    def neg(self, x: int) -> int:
        return self.normalize(-x)

    def mul(self, x: int, y: int) -> int:
        return self.normalize(x * y)

    def inv(self, x: int) -> int:
        """
        Multiplicative inverse of x, computed with the extended euclidean
        algorithm on (m, x mod m).
        """
        x = self.normalize(x)
        if x == 0:
            raise FieldInverseOfZero(f"0 has no inverse modulo {self.modulus:#x}")
        g, _, y = egcd(self.modulus, x)
        if g != 1:
            # only reachable for a composite modulus
            raise FieldInverseOfZero(f"{x:#x} is not invertible modulo {self.modulus:#x}")
        return self.normalize(y)

    def div(self, x: int, y: int) -> int:
        return self.mul(x, self.inv(y))

    def rand(self) -> int:
        """Uniform element of [0, m) from the OS CSPRNG."""
        return secrets.randbelow(self.modulus)

    def element(self, x: int) -> "FieldElement":
        return FieldElement(x, self)

    def __repr__(self):
        return f"FiniteField({self.modulus:#x})"


P_FIELD = FiniteField(P)
N_FIELD = FiniteField(N)


Operand = Union["FieldElement", int]


@dataclass(frozen=True)
class FieldElement:
    """
    An integer tagged with the field it belongs to.

    Plain ints are accepted as operands and reduced into the element's field,
    but two elements of different fields never combine.
    """
    value: int
    field: FiniteField

    def __post_init__(self):
        object.__setattr__(self, "value", self.field.normalize(self.value))

    def _coerce(self, other: Operand) -> int:
        if isinstance(other, FieldElement):
            if other.field != self.field:
                raise ModulusMismatch(
                    f"cannot combine elements of {self.field} and {other.field}")
            return other.value
        if isinstance(other, int):
            return other
        return NotImplemented

    def __add__(self, other: Operand) -> "FieldElement":
        v = self._coerce(other)
        if v is NotImplemented:
            return v
        return FieldElement(self.field.add(self.value, v), self.field)

    __radd__ = __add__

    def __sub__(self, other: Operand) -> "FieldElement":
        v = self._coerce(other)
        if v is NotImplemented:
            return v
        return FieldElement(self.field.sub(self.value, v), self.field)

    def __rsub__(self, other: Operand) -> "FieldElement":
        v = self._coerce(other)
        if v is NotImplemented:
            return v
        return FieldElement(self.field.sub(v, self.value), self.field)

    def __mul__(self, other: Operand) -> "FieldElement":
        v = self._coerce(other)
        if v is NotImplemented:
            return v
        return FieldElement(self.field.mul(self.value, v), self.field)

    __rmul__ = __mul__

    def __neg__(self) -> "FieldElement":
        return FieldElement(self.field.neg(self.value), self.field)

    def inverse(self) -> "FieldElement":
        return FieldElement(self.field.inv(self.value), self.field)

    def __int__(self):
        return self.value

    def __repr__(self):
        return f"{self.value:0>64X}"
