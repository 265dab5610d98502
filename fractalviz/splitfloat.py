"""
Compensated "split float" arithmetic for deep zoom.

A SplitFloat stores a real number as an unevaluated sum high + low, where
high holds the value rounded to 7 significant decimal digits and low holds
the residual. Adding and multiplying two SplitFloats tracks the rounding
error of the native operation and folds it back into the low part, so a
chain of operations loses no more than one native rounding step each.

The scalar helpers are JIT-compiled so the image kernel in compute.py and
the host-side viewport code share the exact same arithmetic.
"""

from decimal import Decimal

from numba import jit


SPLIT_DIGITS = 7          # Significant decimal digits kept in the high part
_DEKKER_SPLITTER = 134217729.0  # 2^27 + 1 for float64


@jit(nopython=True, cache=True)
def two_sum(a, b):
    """Error-free sum: returns (s, e) with s = fl(a + b) and a + b = s + e."""
    s = a + b
    v = s - a
    e = (a - (s - v)) + (b - v)
    return s, e


@jit(nopython=True, cache=True)
def _dekker_split(a):
    t = _DEKKER_SPLITTER * a
    hi = t - (t - a)
    return hi, a - hi


@jit(nopython=True, cache=True)
def two_product(a, b):
    """Error-free product: returns (p, e) with p = fl(a * b) and a * b = p + e."""
    p = a * b
    a_hi, a_lo = _dekker_split(a)
    b_hi, b_lo = _dekker_split(b)
    e = ((a_hi * b_hi - p) + a_hi * b_lo + a_lo * b_hi) + a_lo * b_lo
    return p, e


@jit(nopython=True, cache=True)
def split_add(a_high, a_low, b_high, b_low):
    """Compensated sum of two split values, renormalized to (high, low)."""
    s, e = two_sum(a_high, b_high)
    e += a_low + b_low
    return two_sum(s, e)


@jit(nopython=True, cache=True)
def split_mul(a_high, a_low, b_high, b_low):
    """Compensated product of two split values, renormalized to (high, low)."""
    p, e = two_product(a_high, b_high)
    e += a_high * b_low + a_low * b_high + a_low * b_low
    return two_sum(p, e)


def _to_decimal(value):
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(value)
    return Decimal(str(value))


class SplitFloat:
    """
    Immutable high + low pair representing one extended-precision real.

    Usage:
        pan = SplitFloat.split(Decimal("-0.74364388703715870475"))
        shifted = pan + SplitFloat.split(1e-12)
        shifted.reconstruct()
    """

    __slots__ = ("high", "low")

    def __init__(self, high=0.0, low=0.0):
        object.__setattr__(self, "high", float(high))
        object.__setattr__(self, "low", float(low))

    def __setattr__(self, name, value):
        raise AttributeError("SplitFloat is immutable")

    @classmethod
    def split(cls, value):
        """
        Split a number into a coarse high part and a residual low part.

        Args:
            value: float, int, str or Decimal

        Returns:
            SplitFloat whose high part is value rounded to SPLIT_DIGITS
            significant digits and whose low part is the remainder.
        """
        d = _to_decimal(value)
        if not d.is_finite():
            return cls(float(d), 0.0)
        if d.is_zero():
            return cls(0.0, 0.0)
        high = float(format(d, ".%de" % (SPLIT_DIGITS - 1)))
        low = float(d - Decimal(high))
        return cls(high, low)

    def reconstruct(self):
        """Collapse to a native float (high + low)."""
        return self.high + self.low

    def to_decimal(self):
        """Exact value of the pair as a Decimal."""
        return Decimal(self.high) + Decimal(self.low)

    def __add__(self, other):
        if not isinstance(other, SplitFloat):
            other = SplitFloat.split(other)
        return SplitFloat(*split_add(self.high, self.low, other.high, other.low))

    __radd__ = __add__

    def __neg__(self):
        return SplitFloat(-self.high, -self.low)

    def __sub__(self, other):
        if not isinstance(other, SplitFloat):
            other = SplitFloat.split(other)
        return self + (-other)

    def __rsub__(self, other):
        return SplitFloat.split(other) - self

    def __mul__(self, other):
        if not isinstance(other, SplitFloat):
            other = SplitFloat.split(other)
        return SplitFloat(*split_mul(self.high, self.low, other.high, other.low))

    __rmul__ = __mul__

    def __float__(self):
        return self.reconstruct()

    def __iter__(self):
        yield self.high
        yield self.low

    def __eq__(self, other):
        if not isinstance(other, SplitFloat):
            return NotImplemented
        return self.high == other.high and self.low == other.low

    def __hash__(self):
        return hash((self.high, self.low))

    def __repr__(self):
        return f"SplitFloat(high={self.high!r}, low={self.low!r})"


def split(value):
    """Module-level alias for SplitFloat.split."""
    return SplitFloat.split(value)


def add(a, b):
    return a + b


def multiply(a, b):
    return a * b


def reconstruct(s):
    return s.reconstruct()
