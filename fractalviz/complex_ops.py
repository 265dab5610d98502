"""
Complex arithmetic on (re, im) float pairs.

Numba's nopython mode handles tuples of floats much better than Python
complex objects inside tight loops, so every fractal formula in compute.py
works on separate real and imaginary parts built from these helpers.
"""

import math

from numba import jit


# sinh/cosh/exp overflow float64 past ~709
_EXP_CLAMP = 700.0


@jit(nopython=True, cache=True)
def cadd(ar, ai, br, bi):
    return ar + br, ai + bi


@jit(nopython=True, cache=True)
def csub(ar, ai, br, bi):
    return ar - br, ai - bi


@jit(nopython=True, cache=True)
def cmul(ar, ai, br, bi):
    return ar * br - ai * bi, ar * bi + ai * br


@jit(nopython=True, cache=True)
def csquare(zr, zi):
    """z² = (x² − y², 2xy)."""
    return zr * zr - zi * zi, 2.0 * zr * zi


@jit(nopython=True, cache=True)
def ccube(zr, zi):
    """z³ via the closed-form expansion (x³ − 3xy², 3x²y − y³)."""
    zr2 = zr * zr
    zi2 = zi * zi
    return zr * (zr2 - 3.0 * zi2), zi * (3.0 * zr2 - zi2)


@jit(nopython=True, cache=True)
def cabs2(zr, zi):
    """Squared magnitude |z|²."""
    return zr * zr + zi * zi


@jit(nopython=True, cache=True)
def cdiv_regularized(ar, ai, br, bi, eps):
    """
    a / b with eps added to |b|² so a zero denominator never divides by zero.

    Args:
        ar, ai: Numerator
        br, bi: Denominator
        eps: Added to the squared magnitude of the denominator
    """
    den = br * br + bi * bi + eps
    return (ar * br + ai * bi) / den, (ai * br - ar * bi) / den


@jit(nopython=True, cache=True)
def csin(zr, zi):
    """sin(z) = (sin x·cosh y, cos x·sinh y)."""
    y = min(max(zi, -_EXP_CLAMP), _EXP_CLAMP)
    return math.sin(zr) * math.cosh(y), math.cos(zr) * math.sinh(y)


@jit(nopython=True, cache=True)
def cexp(zr, zi):
    """e^z = (eˣ cos y, eˣ sin y)."""
    ex = math.exp(min(zr, _EXP_CLAMP))
    return ex * math.cos(zi), ex * math.sin(zi)
