import random

import pytest

from mpcecdsa.errors import FieldInverseOfZero, ModulusMismatch
from mpcecdsa.finite_field import N, N_FIELD, P, P_FIELD, FiniteField, egcd


def test_moduli_differ():
    assert P != N
    assert P_FIELD != N_FIELD
    assert P_FIELD == FiniteField(P)


def test_normalize():
    assert P_FIELD.add(P - 1, 2) == 1
    assert P_FIELD.sub(1, 2) == P - 1
    assert P_FIELD.neg(0) == 0
    assert P_FIELD.mul(P - 1, P - 1) == 1
    assert N_FIELD.add(N, N) == 0


def test_arbitrary_precision():
    x = 2**300 + 7
    assert P_FIELD.mul(x, x) == (x * x) % P
    assert 0 <= P_FIELD.mul(x, x) < P


@pytest.mark.parametrize("field", [P_FIELD, N_FIELD, FiniteField(2**31 - 1)])
def test_inverse(field):
    for x in [1, 2, field.modulus - 1] + [random.randint(1, field.modulus - 1) for _ in range(20)]:
        assert field.mul(field.inv(x), x) == 1
    # negative and unreduced inputs
    assert field.mul(field.inv(-5), -5) == 1
    assert field.mul(field.inv(field.modulus + 3), 3) == 1


def test_inverse_of_zero():
    with pytest.raises(FieldInverseOfZero):
        P_FIELD.inv(0)
    with pytest.raises(FieldInverseOfZero):
        N_FIELD.inv(N)
    # still a ZeroDivisionError for callers that only know the builtin
    with pytest.raises(ZeroDivisionError):
        P_FIELD.div(1, P)


def test_egcd():
    g, x, y = egcd(240, 46)
    assert g == 2
    assert 240 * x + 46 * y == 2


def test_rand_in_range():
    small = FiniteField(7)
    values = {small.rand() for _ in range(500)}
    assert values <= set(range(7))
    # 500 draws miss one of 7 values with negligible probability
    assert values == set(range(7))
    assert 0 <= P_FIELD.rand() < P


def test_field_element():
    a = P_FIELD.element(P - 1)
    b = P_FIELD.element(2)
    assert (a + b).value == 1
    assert (b - a).value == 3
    assert (a * b).value == P - 2
    assert (-b).value == P - 2
    assert (b * b.inverse()).value == 1
    assert (1 + b).value == 3
    assert (10 - b).value == 8
    assert int(b * 3) == 6
    assert P_FIELD.element(P + 5) == P_FIELD.element(5)


def test_field_element_modulus_mismatch():
    with pytest.raises(ModulusMismatch):
        P_FIELD.element(1) + N_FIELD.element(1)
    with pytest.raises(ModulusMismatch):
        N_FIELD.element(1) * P_FIELD.element(1)
    assert P_FIELD.element(1) != N_FIELD.element(1)
