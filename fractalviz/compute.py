"""
Fractal evaluation kernel using Numba JIT compilation.

This module contains the performance-critical per-pixel code:
- One step function per fractal family, dispatched by fractal type id
- Escape / convergence classification of a single orbit
- The parallel image kernel that evaluates every pixel of a frame

Supported fractal types (ids match the renderer's uniform values):
- 0: Mandelbrot          z² + c
- 1: Julia               z² + k
- 2: Burning Ship        (|x| + i|y|)² conjugated + c
- 3: Mandelbar           (z̄)² + c
- 4: Newton              z − (z³ − 1) / 3z²
- 5: Phoenix             z² + k + p·z₋₁
- 6: Cubic Mandelbrot    z³ + c
- 7: Sine Julia          sin(z) + k
- 8: Exp Julia           e^z + k
- 9: Burning Ship Julia  Burning Ship step with + k
- 10: Barnsley Fern      not escape-time, see fern.py

The kernel is total: an unknown type id iterates the identity map, a zero
Newton derivative is regularized, and every loop is bounded by max_iter.
"""

import math
from collections import namedtuple

import numpy as np
from numba import jit, prange

from .complex_ops import (
    cabs2,
    cadd,
    ccube,
    cdiv_regularized,
    cexp,
    cmul,
    csin,
    csquare,
    csub,
)
from .viewport import kernel_coordinate


# Fractal type IDs
FRACTAL_MANDELBROT = 0
FRACTAL_JULIA = 1
FRACTAL_BURNING_SHIP = 2
FRACTAL_MANDELBAR = 3
FRACTAL_NEWTON = 4
FRACTAL_PHOENIX = 5
FRACTAL_CUBIC_MANDELBROT = 6
FRACTAL_SINE_JULIA = 7
FRACTAL_EXP_JULIA = 8
FRACTAL_BURNING_SHIP_JULIA = 9
FRACTAL_BARNSLEY_FERN = 10

# Orbit classification
RESULT_ESCAPED = 0
RESULT_INTERIOR = 1
RESULT_CONVERGED = 2
RESULT_NOT_CONVERGED = 3

STABILIZATION_EPSILON = 1e-6   # |z|² change treated as a settled orbit
NEWTON_TOLERANCE = 1e-3        # |zₙ − zₙ₋₁| below this means converged
NEWTON_EPSILON = 1e-10         # Added to |p'(z)|²
NEWTON_SECTOR = 2.0 * math.pi / 3.0

KernelResult = namedtuple("KernelResult", ["status", "iterations", "z"])


# ============================================================================
# Per-family step functions
# ============================================================================

@jit(nopython=True, cache=True)
def step_mandelbrot(zr, zi, cr, ci):
    """z² + c. Also the Julia step when c is the Julia constant."""
    sr, si = csquare(zr, zi)
    return cadd(sr, si, cr, ci)


@jit(nopython=True, cache=True)
def step_julia(zr, zi, jr, ji):
    return step_mandelbrot(zr, zi, jr, ji)


@jit(nopython=True, cache=True)
def step_burning_ship(zr, zi, cr, ci):
    """(|x|² − |y|², −2|x||y|) + c."""
    ax = abs(zr)
    ay = abs(zi)
    return ax * ax - ay * ay + cr, -2.0 * ax * ay + ci


@jit(nopython=True, cache=True)
def step_mandelbar(zr, zi, cr, ci):
    # (z̄)² + c
    return zr * zr - zi * zi + cr, -2.0 * zr * zi + ci


@jit(nopython=True, cache=True)
def step_cubic(zr, zi, cr, ci):
    z3r, z3i = ccube(zr, zi)
    return z3r + cr, z3i + ci


@jit(nopython=True, cache=True)
def step_phoenix(zr, zi, cr, ci, prev_r, prev_i, pr, pi):
    """z² + c + p·zₙ₋₁, carrying the previous iterate."""
    sr, si = csquare(zr, zi)
    qr, qi = cmul(pr, pi, prev_r, prev_i)
    return sr + cr + qr, si + ci + qi


@jit(nopython=True, cache=True)
def step_sine(zr, zi, jr, ji):
    wr, wi = csin(zr, zi)
    return wr + jr, wi + ji


@jit(nopython=True, cache=True)
def step_exp(zr, zi, jr, ji):
    wr, wi = cexp(zr, zi)
    return wr + jr, wi + ji


@jit(nopython=True, cache=True)
def step_newton(zr, zi):
    """One Newton step for p(z) = z³ − 1."""
    z3r, z3i = ccube(zr, zi)
    z2r, z2i = csquare(zr, zi)
    qr, qi = cdiv_regularized(z3r - 1.0, z3i, 3.0 * z2r, 3.0 * z2i, NEWTON_EPSILON)
    return zr - qr, zi - qi


@jit(nopython=True, cache=True)
def step_identity(zr, zi):
    return zr, zi


@jit(nopython=True, cache=True)
def iterate_function(fractal_type, zr, zi, cr, ci, prev_r, prev_i, pr, pi):
    """
    Apply one iteration of the selected family.

    Args:
        fractal_type: One of the FRACTAL_* ids
        zr, zi: Current iterate
        cr, ci: Additive constant (pixel for Mandelbrot types, Julia constant otherwise)
        prev_r, prev_i: Previous iterate (Phoenix only)
        pr, pi: Phoenix constant

    Returns:
        (new_zr, new_zi)
    """
    if fractal_type == FRACTAL_MANDELBROT:
        return step_mandelbrot(zr, zi, cr, ci)
    elif fractal_type == FRACTAL_JULIA:
        return step_julia(zr, zi, cr, ci)
    elif fractal_type == FRACTAL_BURNING_SHIP or fractal_type == FRACTAL_BURNING_SHIP_JULIA:
        return step_burning_ship(zr, zi, cr, ci)
    elif fractal_type == FRACTAL_MANDELBAR:
        return step_mandelbar(zr, zi, cr, ci)
    elif fractal_type == FRACTAL_NEWTON:
        return step_newton(zr, zi)
    elif fractal_type == FRACTAL_PHOENIX:
        return step_phoenix(zr, zi, cr, ci, prev_r, prev_i, pr, pi)
    elif fractal_type == FRACTAL_CUBIC_MANDELBROT:
        return step_cubic(zr, zi, cr, ci)
    elif fractal_type == FRACTAL_SINE_JULIA:
        return step_sine(zr, zi, cr, ci)
    elif fractal_type == FRACTAL_EXP_JULIA:
        return step_exp(zr, zi, cr, ci)
    return step_identity(zr, zi)


@jit(nopython=True, cache=True)
def is_parameter_plane(fractal_type):
    """True for families that iterate from z₀ = 0 with c = pixel."""
    return (fractal_type == FRACTAL_MANDELBROT or
            fractal_type == FRACTAL_BURNING_SHIP or
            fractal_type == FRACTAL_MANDELBAR or
            fractal_type == FRACTAL_CUBIC_MANDELBROT)


@jit(nopython=True, cache=True)
def initial_values(fractal_type, x, y, jr, ji):
    """
    Starting (z₀, c) for a fractal-space point.

    Returns:
        (zr, zi, cr, ci)
    """
    if is_parameter_plane(fractal_type):
        return 0.0, 0.0, x, y
    if (fractal_type == FRACTAL_JULIA or
            fractal_type == FRACTAL_BURNING_SHIP_JULIA or
            fractal_type == FRACTAL_PHOENIX or
            fractal_type == FRACTAL_SINE_JULIA or
            fractal_type == FRACTAL_EXP_JULIA):
        return x, y, jr, ji
    # Newton and unknown types start at the pixel with no constant
    return x, y, 0.0, 0.0


# ============================================================================
# Orbit classification
# ============================================================================

@jit(nopython=True, cache=True)
def newton_root_sector(zr, zi):
    """Index (0, 1, 2) of the cube root of unity whose sector contains arg(z)."""
    angle = math.atan2(zi, zr)
    sector = int(math.floor(angle / NEWTON_SECTOR + 0.5))
    while sector < 0:
        sector += 3
    return sector % 3


@jit(nopython=True, cache=True)
def evaluate_newton(zr, zi, max_iter):
    for n in range(1, max_iter + 1):
        nr, ni = step_newton(zr, zi)
        dr, di = csub(nr, ni, zr, zi)
        zr, zi = nr, ni
        if dr * dr + di * di < NEWTON_TOLERANCE * NEWTON_TOLERANCE:
            return RESULT_CONVERGED, n, zr, zi
    return RESULT_NOT_CONVERGED, max_iter, zr, zi


@jit(nopython=True, cache=True)
def evaluate_point(fractal_type, x, y, jr, ji, pr, pi, max_iter, bailout,
                   use_derbail, derbail_threshold, use_stabilization):
    """
    Iterate one fractal-space point and classify its orbit.

    Standard mode escapes when |z|² > bailout. Derivative mode instead
    tracks dcₙ₊₁ = 2·zₙ·dcₙ + 1, sums the derivatives and escapes when
    |Σdc|² reaches derbail_threshold. With use_stabilization set, a
    standard-mode orbit whose |z|² changes by less than
    STABILIZATION_EPSILON between steps is reported as interior; this is an
    approximation that can misclassify slowly escaping points near the
    boundary.

    Args:
        fractal_type: One of the FRACTAL_* ids
        x, y: Fractal-space coordinate of the pixel
        jr, ji: Julia constant
        pr, pi: Phoenix constant
        max_iter: Iteration cap (values below 1 are treated as 1)
        bailout: Squared-magnitude escape threshold
        use_derbail: Select the derivative bailout instead of |z|²
        derbail_threshold: Escape threshold for |Σdc|²
        use_stabilization: Enable the stabilization early exit

    Returns:
        (status, iterations, zr, zi) where status is a RESULT_* value.
        Interior results report iterations = max_iter.
    """
    if max_iter < 1:
        max_iter = 1

    zr, zi, cr, ci = initial_values(fractal_type, x, y, jr, ji)
    if fractal_type == FRACTAL_NEWTON:
        return evaluate_newton(zr, zi, max_iter)

    prev_r, prev_i = 0.0, 0.0
    dcr, dci = 0.0, 0.0
    sum_r, sum_i = 0.0, 0.0
    last_mag2 = cabs2(zr, zi)

    for n in range(1, max_iter + 1):
        if use_derbail:
            tr, ti = cmul(zr, zi, dcr, dci)
            dcr = 2.0 * tr + 1.0
            dci = 2.0 * ti
            sum_r += dcr
            sum_i += dci

        nr, ni = iterate_function(fractal_type, zr, zi, cr, ci, prev_r, prev_i, pr, pi)
        prev_r, prev_i = zr, zi
        zr, zi = nr, ni
        mag2 = cabs2(zr, zi)

        if use_derbail:
            # Written as "not below" so an overflowed (NaN) sum also escapes
            if not (cabs2(sum_r, sum_i) < derbail_threshold):
                return RESULT_ESCAPED, n, zr, zi
        else:
            if mag2 > bailout:
                return RESULT_ESCAPED, n, zr, zi
            if use_stabilization and abs(mag2 - last_mag2) < STABILIZATION_EPSILON:
                return RESULT_INTERIOR, max_iter, zr, zi
        last_mag2 = mag2

    return RESULT_INTERIOR, max_iter, zr, zi


# ============================================================================
# Image kernel
# ============================================================================

@jit(nopython=True, parallel=True, cache=True)
def compute_fractal(width, height, zoom, pan_x_high, pan_x_low, pan_y_high, pan_y_low,
                    fractal_type, jr, ji, pr, pi, max_iter, bailout,
                    use_derbail, derbail_threshold, use_stabilization):
    """
    Evaluate every pixel of a frame.

    Pixels are sampled at their centres; row 0 is the top of the image.
    The pan offset arrives as split (high, low) pairs and is added to each
    pixel's offset with compensated arithmetic.

    Args:
        width, height: Frame size in pixels
        zoom: Magnification (non-positive values are clamped)
        pan_x_high, pan_x_low, pan_y_high, pan_y_low: Split pan offset
        fractal_type, jr, ji, pr, pi, max_iter, bailout, use_derbail,
        derbail_threshold, use_stabilization: As for evaluate_point

    Returns:
        (status, iterations, zr, zi) arrays of shape (height, width)
    """
    status = np.empty((height, width), dtype=np.int8)
    iterations = np.empty((height, width), dtype=np.int32)
    final_r = np.empty((height, width), dtype=np.float64)
    final_i = np.empty((height, width), dtype=np.float64)

    for py in prange(height):
        for px in range(width):
            x, y = kernel_coordinate(px + 0.5, py + 0.5, width, height, zoom,
                                     pan_x_high, pan_x_low, pan_y_high, pan_y_low)
            s, n, zr, zi = evaluate_point(fractal_type, x, y, jr, ji, pr, pi,
                                          max_iter, bailout, use_derbail,
                                          derbail_threshold, use_stabilization)
            status[py, px] = s
            iterations[py, px] = n
            final_r[py, px] = zr
            final_i[py, px] = zi

    return status, iterations, final_r, final_i


def evaluate(fractal_type, point, julia_constant=0j, phoenix_constant=0j, max_iter=100,
             bailout=4.0, use_derbail=False, derbail_threshold=1e10, use_stabilization=True):
    """
    Python-friendly wrapper around evaluate_point for a single point.

    Args:
        fractal_type: FRACTAL_* id (or FractalType)
        point: Fractal-space coordinate as a complex number
        julia_constant, phoenix_constant: Complex constants

    Returns:
        KernelResult(status, iterations, z)
    """
    point = complex(point)
    julia_constant = complex(julia_constant)
    phoenix_constant = complex(phoenix_constant)
    status, n, zr, zi = evaluate_point(
        int(fractal_type), point.real, point.imag,
        julia_constant.real, julia_constant.imag,
        phoenix_constant.real, phoenix_constant.imag,
        int(max_iter), float(bailout), bool(use_derbail),
        float(derbail_threshold), bool(use_stabilization),
    )
    return KernelResult(int(status), int(n), complex(zr, zi))


def warmup_jit():
    """
    Warm up JIT compilation on a tiny frame.

    Call this once at startup so the first interactive frame does not pay
    the compilation cost.
    """
    from .colormaps import colorize, get_default_palette

    offsets = get_default_palette()
    out = np.zeros((4, 4, 4), dtype=np.float32)
    for derbail in (False, True):
        status, iterations, zr, zi = compute_fractal(
            4, 4, 1.0, 0.0, 0.0, 0.0, 0.0, FRACTAL_MANDELBROT, 0.0, 0.0, 0.0, 0.0,
            10, 4.0, derbail, 1e10, True)
        colorize(status, iterations, zr, zi, 10, 0.0, 1.0, 1.0,
                 offsets[0], offsets[1], offsets[2], out)
