from decimal import Decimal

import pytest

from fractalviz.splitfloat import (
    SPLIT_DIGITS,
    SplitFloat,
    add,
    multiply,
    reconstruct,
    split,
    two_product,
    two_sum,
)


MAGNITUDES = [10.0 ** e for e in range(-14, 15, 2)]


@pytest.mark.parametrize("magnitude", MAGNITUDES)
@pytest.mark.parametrize("sign", [1.0, -1.0])
def test_split_round_trip(magnitude, sign):
    value = sign * 1.2345678901234567 * magnitude
    s = split(value)
    assert abs(reconstruct(s) - value) <= 1e-7 * abs(value)


def test_high_part_is_rounded():
    s = SplitFloat.split(Decimal("-0.74364388703715870475"))
    assert s.high == float(format(s.high, ".%de" % (SPLIT_DIGITS - 1)))
    assert s.low != 0.0
    assert abs(s.low) < 1e-7


def test_split_zero_and_non_finite():
    assert split(0.0) == SplitFloat(0.0, 0.0)
    inf = split(float("inf"))
    assert inf.high == float("inf")
    assert inf.low == 0.0


def test_two_sum_is_exact():
    s, e = two_sum(1.0, 1e-20)
    assert s == 1.0
    assert Decimal(s) + Decimal(e) == Decimal(1.0) + Decimal(1e-20)


def test_two_product_is_exact():
    p, e = two_product(0.1, 0.3)
    assert Decimal(p) + Decimal(e) == Decimal(0.1) * Decimal(0.3)


def test_add_tracks_decimal_sum():
    a = split("0.1234567890123456")
    b = split("0.0000000098765432101")
    exact = a.to_decimal() + b.to_decimal()
    result = add(a, b).to_decimal()
    assert abs(result - exact) <= abs(exact) * Decimal("1e-15")


def test_multiply_tracks_decimal_product():
    a = split("1.000000123456789")
    b = split("-3.141592653589793")
    exact = a.to_decimal() * b.to_decimal()
    result = multiply(a, b).to_decimal()
    assert abs(result - exact) <= abs(exact) * Decimal("1e-15")


def test_operators_accept_plain_numbers():
    s = split(2.5)
    assert (s + 1).reconstruct() == pytest.approx(3.5)
    assert (1 - s).reconstruct() == pytest.approx(-1.5)
    assert (s * 2).reconstruct() == pytest.approx(5.0)
    assert (s - s).reconstruct() == 0.0
    assert float(-s) == -2.5


def test_split_float_is_immutable():
    s = split(1.5)
    with pytest.raises(AttributeError):
        s.high = 2.0
    high, low = s
    assert (high, low) == (s.high, s.low)
