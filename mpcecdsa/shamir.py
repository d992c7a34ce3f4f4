"""
Shamir secret sharing over a prime field.

A secret is the constant term of a random polynomial of degree k-1.
Party i holds the point (i, f(i)). Any k points recover f(0) with
Lagrange interpolation, fewer than k carry no information about it.
"""

from typing import List, Sequence, Tuple

from .errors import InsufficientShares
from .finite_field import FiniteField, P_FIELD

Point = Tuple[int, int]


class Polynomial:
    def __init__(self, secret: int, degree: int, field: FiniteField = P_FIELD):
        self.field = field
        # self.coef = [c, b, a] represents y = ax^2 + bx + c
        self.coef = [field.normalize(secret)] + [field.rand() for _ in range(degree)]

    @property
    def secret(self):
        return self.coef[0]

    def evaluate(self, x: int) -> int:
        # Horner's rule. For y = ax^2 + bx + c:
        #   y = a
        #   y = a*x + b
        #   y = (a*x + b)*x + c
        y = self.coef[-1]
        for c in reversed(self.coef[:-1]):
            y = self.field.add(self.field.mul(y, x), c)
        return y


def split(secret: int, n: int, k: int, field: FiniteField = P_FIELD) -> List[Point]:
    """
    Split secret into n points, any k of which reconstruct it.
    """
    if not 1 <= k <= n:
        raise ValueError(f"threshold must satisfy 1 <= k <= n, got k={k} n={n}")
    poly = Polynomial(secret, k - 1, field)
    return [(i, poly.evaluate(i)) for i in range(1, n + 1)]


def lagrange_coefficient(xs: Sequence[int], i: int, field: FiniteField = P_FIELD) -> int:
    """
    L_i(0) = prod_{j != i} (-x_j) / (x_i - x_j)

    xs: x coordinates of all the points used for interpolation.
    i: position in xs of the point the coefficient is for.
    """
    num = 1
    denom = 1
    xi = xs[i]
    for j, xj in enumerate(xs):
        if j == i:
            continue
        num = field.mul(num, -xj)
        denom = field.mul(denom, xi - xj)
    return field.div(num, denom)


def check_points(xs: Sequence[int], k: int):
    if len(xs) < k:
        raise InsufficientShares(f"{len(xs)} shares given, {k} needed")
    if len(set(xs)) != len(xs):
        raise ValueError(f"x coordinates must be distinct {list(xs)}")
    if 0 in xs:
        raise ValueError("x = 0 is the secret itself and can't be a share")


def reconstruct(points: Sequence[Point], k: int, field: FiniteField = P_FIELD) -> int:
    """
    Recover f(0) from at least k points of a sharing.
    """
    xs = [x for x, _ in points]
    check_points(xs, k)
    secret = 0
    for i, (_, y) in enumerate(points):
        secret = field.add(secret, field.mul(y, lagrange_coefficient(xs, i, field)))
    return secret
