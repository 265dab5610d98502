"""
Barnsley fern: the one non-escape-time fractal.

Points come from a randomized iterated function system of four affine
maps. The main map's shear is modulated by sin(time) so the fern slowly
"breathes". The cloud is drawn as blended point sprites, not as a
per-pixel color field.
"""

import math

import numpy as np
from numba import jit, prange


FERN_POINT_COUNT = 100000
FERN_WIDTH = 5.0
FERN_HEIGHT = 10.0
FERN_CENTER = (0.0, 5.0)
FERN_PAN_SCALE = 7.0
FERN_COLOR = (0.0, 1.0, 0.0)
FERN_POINT_ALPHA = 0.35

# Cumulative probabilities of the stem, main, left and right maps
_P_STEM = 0.01
_P_MAIN = 0.86
_P_LEFT = 0.93


@jit(nopython=True, cache=True)
def _iterate_fern(draws, bend):
    count = draws.shape[0]
    points = np.empty((count, 2), dtype=np.float32)
    x = 0.0
    y = 0.0
    shear = 0.04 * (1.0 + bend)
    for i in range(count):
        r = draws[i]
        if r < _P_STEM:
            nx = 0.05
            ny = 0.16 * y
        elif r < _P_MAIN:
            nx = 0.85 * x + shear * y
            ny = -shear * x + 0.85 * y + 1.6
        elif r < _P_LEFT:
            nx = 0.20 * x - 0.26 * y
            ny = 0.23 * x + 0.22 * y + 1.6
        else:
            nx = -0.15 * x + 0.28 * y
            ny = 0.26 * x + 0.24 * y + 0.44
        x = nx
        y = ny
        points[i, 0] = x
        points[i, 1] = y
    return points


def generate_fern_points(time, count=FERN_POINT_COUNT, rng=None):
    """
    Generate an animated fern point cloud.

    Args:
        time: Elapsed seconds (drives the bend)
        count: Number of points
        rng: numpy Generator used for the map choices (default: fresh one)

    Returns:
        float32 array of shape (count, 2) with (x, y) fern coordinates
    """
    if rng is None:
        rng = np.random.default_rng()
    draws = rng.random(int(count))
    return _iterate_fern(draws, math.sin(time))


def fern_view_bounds(zoom, pan_x, pan_y, aspect):
    """
    Orthographic view (left, right, bottom, top) of the fern box.

    The 5×10 box centred at (0, 5) is scaled by 1/zoom, shifted by the pan
    offset times FERN_PAN_SCALE, then widened along the short axis so the
    fern keeps its proportions.
    """
    zoom = max(float(zoom), 1e-12)
    cx = FERN_CENTER[0] + float(pan_x) * FERN_PAN_SCALE
    cy = FERN_CENTER[1] + float(pan_y) * FERN_PAN_SCALE
    half_w = FERN_WIDTH / 2.0 / zoom
    half_h = FERN_HEIGHT / 2.0 / zoom
    left, right = cx - half_w, cx + half_w
    bottom, top = cy - half_h, cy + half_h
    if aspect > 1.0:
        extra = ((right - left) * aspect - (right - left)) / 2.0
        return left - extra, right + extra, bottom, top
    extra = ((top - bottom) / aspect - (top - bottom)) / 2.0
    return left, right, bottom - extra, top + extra


@jit(nopython=True, cache=True)
def _splat(points, left, right, bottom, top, coverage):
    height, width = coverage.shape
    sx = width / (right - left)
    sy = height / (top - bottom)
    for i in range(points.shape[0]):
        px = int(math.floor((points[i, 0] - left) * sx))
        py = int(math.floor((top - points[i, 1]) * sy))
        if 0 <= px < width and 0 <= py < height:
            coverage[py, px] += 1


@jit(nopython=True, parallel=True, cache=True)
def _composite(coverage, alpha, r, g, b, out):
    height, width = coverage.shape
    for py in prange(height):
        for px in range(width):
            n = coverage[py, px]
            a = 1.0 - (1.0 - alpha) ** n
            out[py, px, 0] = out[py, px, 0] * (1.0 - a) + r * a
            out[py, px, 1] = out[py, px, 1] * (1.0 - a) + g * a
            out[py, px, 2] = out[py, px, 2] * (1.0 - a) + b * a
            out[py, px, 3] = a + out[py, px, 3] * (1.0 - a)


def rasterize_points(points, bounds, out, color=FERN_COLOR, alpha=FERN_POINT_ALPHA):
    """
    Blend a point cloud into an RGBA float image.

    Each point covering a pixel composites color with the given alpha
    ("over" operator), so dense regions saturate toward the point color.

    Args:
        points: (N, 2) fern coordinates
        bounds: (left, right, bottom, top) from fern_view_bounds
        out: RGBA float image (height, width, 4), modified in place
    """
    left, right, bottom, top = bounds
    coverage = np.zeros(out.shape[:2], dtype=np.int32)
    _splat(points, float(left), float(right), float(bottom), float(top), coverage)
    _composite(coverage, float(alpha), float(color[0]), float(color[1]), float(color[2]), out)
    return out
