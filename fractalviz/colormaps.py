"""
Color mapping from kernel results to RGB.

Escaped points are colored with a smooth (continuous) iteration count fed
into a 3-phase cosine palette:

    color(i) = 0.5 + 0.5 * cos(i + offset)      per channel

sampled at floor(colorIndex) and floor(colorIndex) + 1 and linearly
interpolated, so the result is continuous across integer boundaries.
Newton points get one of three root tints scaled by convergence speed.
Interior, non-converged and stabilized points are black.

To add a new palette:
1. Pick three phase offsets (red, green, blue) in radians
2. Add them to the PALETTES dictionary at the bottom of this file
"""

import math

import numpy as np
from numba import jit, prange

from .compute import (
    RESULT_CONVERGED,
    RESULT_ESCAPED,
    newton_root_sector,
)


TWO_PI = 2.0 * math.pi
LOG2 = math.log(2.0)
HUE_ANIMATION_RATE = 10.0   # Radians per second per unit of color speed

LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114

# Base tints for the three roots of z³ − 1 (sector 0, 1, 2)
NEWTON_TINTS = np.array([
    [1.0, 0.35, 0.2],
    [0.2, 1.0, 0.45],
    [0.3, 0.45, 1.0],
], dtype=np.float64)


@jit(nopython=True, cache=True)
def smooth_iteration(iterations, abs_z2):
    """
    Continuous iteration count ν = n + 1 − log₂(log₂|z|).

    Falls back to n when |z|² is not above 1 or not finite, where the
    renormalization is undefined.
    """
    if abs_z2 > 1.0 and not math.isinf(abs_z2):
        log_zn = math.log(abs_z2) * 0.5
        return iterations + 1.0 - math.log(log_zn / LOG2) / LOG2
    return float(iterations)


@jit(nopython=True, cache=True)
def palette_channel(i, offset):
    return 0.5 + 0.5 * math.cos(i + offset)


@jit(nopython=True, cache=True)
def color_index_to_rgb(color_index, off_r, off_g, off_b):
    """Interpolate the cosine palette between floor(ci) and floor(ci) + 1."""
    i1 = np.floor(color_index)
    i2 = i1 + 1.0
    t = color_index - i1
    r = palette_channel(i1, off_r) * (1.0 - t) + palette_channel(i2, off_r) * t
    g = palette_channel(i1, off_g) * (1.0 - t) + palette_channel(i2, off_g) * t
    b = palette_channel(i1, off_b) * (1.0 - t) + palette_channel(i2, off_b) * t
    return r, g, b


@jit(nopython=True, cache=True)
def desaturate(r, g, b, saturation):
    """Blend toward luminance gray: saturation 0 is gray, 1 is unchanged."""
    gray = LUMA_R * r + LUMA_G * g + LUMA_B * b
    return (gray + (r - gray) * saturation,
            gray + (g - gray) * saturation,
            gray + (b - gray) * saturation)


@jit(nopython=True, cache=True)
def clamp01(v):
    if v < 0.0:
        return 0.0
    if v > 1.0:
        return 1.0
    return v


@jit(nopython=True, cache=True)
def newton_color(sector, iterations, max_iter):
    brightness = 1.0 - iterations / max_iter
    return (NEWTON_TINTS[sector, 0] * brightness,
            NEWTON_TINTS[sector, 1] * brightness,
            NEWTON_TINTS[sector, 2] * brightness)


@jit(nopython=True, cache=True)
def shade_point(status, iterations, zr, zi, max_iter, hue_phase, color_speed,
                saturation, off_r, off_g, off_b):
    """
    RGB in [0, 1] for one kernel result.

    Args:
        status, iterations, zr, zi: Output of evaluate_point
        max_iter: Iteration cap used for the render
        hue_phase: Palette phase (already animated if needed)
        color_speed: Palette cycles per unit of smooth iteration count
        saturation: 0 (gray) to 1 (full color)
        off_r, off_g, off_b: Palette phase offsets
    """
    if status == RESULT_ESCAPED:
        nu = smooth_iteration(iterations, zr * zr + zi * zi)
        r, g, b = color_index_to_rgb(nu * color_speed + hue_phase, off_r, off_g, off_b)
        r, g, b = desaturate(r, g, b, saturation)
        return clamp01(r), clamp01(g), clamp01(b)
    if status == RESULT_CONVERGED:
        r, g, b = newton_color(newton_root_sector(zr, zi), iterations, max(max_iter, 1))
        return clamp01(r), clamp01(g), clamp01(b)
    return 0.0, 0.0, 0.0


@jit(nopython=True, parallel=True, cache=True)
def colorize(status, iterations, zr, zi, max_iter, hue_phase, color_speed,
             saturation, off_r, off_g, off_b, out):
    """
    Color a whole frame of kernel results.

    Args:
        status, iterations, zr, zi: Arrays from compute_fractal
        max_iter, hue_phase, color_speed, saturation, off_*: As for shade_point
        out: Output RGBA float image (height, width, 4), modified in place.
             Alpha is always 1.
    """
    height, width = status.shape
    for py in prange(height):
        for px in range(width):
            r, g, b = shade_point(status[py, px], iterations[py, px],
                                  zr[py, px], zi[py, px], max_iter, hue_phase,
                                  color_speed, saturation, off_r, off_g, off_b)
            out[py, px, 0] = r
            out[py, px, 1] = g
            out[py, px, 2] = b
            out[py, px, 3] = 1.0


@jit(nopython=True, parallel=True, cache=True)
def downscale_2x(src, dst):
    """
    Downscale a float image by 2x using box filter (4-pixel average).

    Used for supersampled anti-aliasing: render at 2x resolution,
    then downscale for smooth edges.

    Args:
        src: Source image (2*height, 2*width, channels)
        dst: Destination image (height, width, channels), modified in place
    """
    height, width, channels = dst.shape
    for y in prange(height):
        y2 = y * 2
        for x in range(width):
            x2 = x * 2
            for c in range(channels):
                dst[y, x, c] = (src[y2, x2, c] + src[y2, x2 + 1, c] +
                                src[y2 + 1, x2, c] + src[y2 + 1, x2 + 1, c]) * 0.25


def to_rgb8(rgba):
    """Float RGBA frame in [0, 1] to a uint8 RGB frame."""
    return (np.clip(rgba[..., :3], 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


def animated_hue_phase(hue_phase, elapsed, color_speed, animate):
    """
    Effective hue phase for a frame.

    When animate is set the phase advances by HUE_ANIMATION_RATE · color_speed
    radians per second and wraps into [0, 2π).
    """
    if not animate:
        return hue_phase
    return (hue_phase + elapsed * HUE_ANIMATION_RATE * color_speed) % TWO_PI


def color_for_result(result, max_iter, hue_phase=0.0, color_speed=1.0, saturation=1.0,
                     palette=None):
    """
    RGB tuple for a single compute.KernelResult.

    Args:
        result: KernelResult from compute.evaluate
        max_iter: Iteration cap used to produce the result
        palette: Phase offsets (defaults to the Classic palette)
    """
    offsets = palette if palette is not None else get_default_palette()
    return shade_point(result.status, result.iterations, result.z.real, result.z.imag,
                       int(max_iter), float(hue_phase), float(color_speed),
                       float(saturation), float(offsets[0]), float(offsets[1]),
                       float(offsets[2]))


# Registry of palettes: display name -> (red, green, blue) phase offsets.
# Classic is the evenly spaced 3-phase palette.
PALETTES = {
    'Classic': (0.0, TWO_PI / 3.0, 2.0 * TWO_PI / 3.0),
    'Ember': (0.0, 0.6, 1.2),
    'Ocean': (math.pi, math.pi - 0.5, math.pi - 1.2),
    'Twilight': (0.0, math.pi / 2.0, math.pi),
    'Grayscale': (0.0, 0.0, 0.0),
}


def get_palette(name):
    """
    Get palette phase offsets by name.

    Raises:
        KeyError if name not found
    """
    return PALETTES[name]


def get_default_palette():
    """Get the default palette (Classic)."""
    return PALETTES['Classic']


def list_palette_names():
    """Get list of available palette names."""
    return list(PALETTES.keys())
