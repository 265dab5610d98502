"""
Viewport transform: pixel ↔ fractal-space mapping, pan and zoom.

The host keeps zoom and pan offset as Decimal values so that many small
drag and wheel updates accumulate without precision loss. Once per frame
the state is narrowed for the kernel: zoom to a native float and each pan
component to a SplitFloat (high, low) pair, which the JIT-compiled
kernel_coordinate() adds back with compensated arithmetic.

Screen coordinates follow the window convention (x right, y down). NDC
coordinates are in [-1, 1] with y up and x scaled by the aspect ratio.
"""

import logging
import math
import time
from collections import namedtuple
from decimal import Decimal, getcontext

from numba import jit

from .splitfloat import SplitFloat, split_add


getcontext().prec = 50

logger = logging.getLogger(__name__)

ZOOM_EPSILON = 1e-12            # Kernel-side lower bound for zoom
MIN_ZOOM = Decimal("1e-12")     # Host-side lower bound for zoom
PAN_SENSITIVITY = Decimal("0.0015")
WHEEL_ZOOM_FACTOR = Decimal("1.1")


# ============================================================================
# Kernel side (JIT)
# ============================================================================

@jit(nopython=True, cache=True)
def pixel_to_ndc(px, py, width, height):
    """Pixel position to aspect-corrected NDC (y up)."""
    aspect = width / height
    nx = ((px / width) * 2.0 - 1.0) * aspect
    ny = -((py / height) * 2.0 - 1.0)
    return nx, ny


@jit(nopython=True, cache=True)
def kernel_coordinate(px, py, width, height, zoom,
                      pan_x_high, pan_x_low, pan_y_high, pan_y_low):
    """
    Fractal-space coordinate of a pixel position.

    Computes ndc / zoom + pan, with the pan offset supplied as split pairs.

    Returns:
        (x, y) as native floats
    """
    if not zoom >= ZOOM_EPSILON:
        zoom = ZOOM_EPSILON
    nx, ny = pixel_to_ndc(px, py, width, height)
    xh, xl = split_add(pan_x_high, pan_x_low, nx / zoom, 0.0)
    yh, yl = split_add(pan_y_high, pan_y_low, ny / zoom, 0.0)
    return xh + xl, yh + yl


# ============================================================================
# Host side (Decimal)
# ============================================================================

def _dec(value):
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(value)
    return Decimal(str(value))


def clamp_zoom(zoom):
    """Clamp a zoom value to the positive lower bound (NaN included)."""
    zoom = _dec(zoom)
    if zoom.is_nan() or zoom < MIN_ZOOM:
        return MIN_ZOOM
    return zoom


def wheel_ratio(direction):
    """Zoom ratio for one wheel notch: 1.1 to zoom in, 1/1.1 to zoom out."""
    if direction > 0:
        return WHEEL_ZOOM_FACTOR
    if direction < 0:
        return Decimal(1) / WHEEL_ZOOM_FACTOR
    return Decimal(1)


def pinch_ratio(previous_distance, distance):
    """Zoom ratio between two successive touch-point distances."""
    if previous_distance <= 0 or distance <= 0:
        raise ValueError("Pinch distances must be positive.")
    return _dec(distance) / _dec(previous_distance)


FrameViewport = namedtuple("FrameViewport", ["width", "height", "zoom", "pan_x", "pan_y"])


class ViewportState:
    """
    Extended-precision zoom and pan for one output surface.

    Usage:
        view = ViewportState(800, 600)
        view.zoom_at(400, 300, wheel_ratio(+1))
        view.pan_by(12, -4)
        frame = view.frame_parameters()
    """

    def __init__(self, width, height, zoom=1, pan_x=0, pan_y=0):
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        self.zoom = clamp_zoom(zoom)
        self.pan_x = _dec(pan_x)
        self.pan_y = _dec(pan_y)

    @property
    def aspect(self):
        return Decimal(self.width) / Decimal(self.height)

    def ndc(self, px, py):
        """NDC coordinate of a screen point, in Decimal."""
        nx = (_dec(px) / self.width * 2 - 1) * self.aspect
        ny = -(_dec(py) / self.height * 2 - 1)
        return nx, ny

    def pixel_to_fractal(self, px, py):
        """Fractal-space coordinate under a screen point, in Decimal."""
        nx, ny = self.ndc(px, py)
        return nx / self.zoom + self.pan_x, ny / self.zoom + self.pan_y

    def pan_by(self, dx, dy):
        """
        Apply a drag of (dx, dy) screen pixels.

        Dragging right moves the view left in fractal space; screen y grows
        downward, so dragging down moves the view up.
        """
        self.pan_x -= _dec(dx) * PAN_SENSITIVITY / self.zoom
        self.pan_y += _dec(dy) * PAN_SENSITIVITY / self.zoom

    def zoom_at(self, px, py, ratio):
        """
        Multiply zoom by ratio keeping the point under (px, py) fixed.

        The pan is recomputed from the zoom actually applied (after
        clamping), so the fractal point under the cursor is the same before
        and after the call.

        Args:
            px, py: Screen position of the cursor or pinch centre
            ratio: Zoom ratio (> 1 zooms in)
        """
        ratio = _dec(ratio)
        if not ratio.is_finite():
            logger.debug("Ignoring non-finite zoom ratio %s", ratio)
            return
        nx, ny = self.ndc(px, py)
        fx = nx / self.zoom + self.pan_x
        fy = ny / self.zoom + self.pan_y
        self.zoom = clamp_zoom(self.zoom * ratio)
        self.pan_x = fx - nx / self.zoom
        self.pan_y = fy - ny / self.zoom

    def resize(self, width, height):
        self.width = max(1, int(width))
        self.height = max(1, int(height))

    def reset(self, zoom=1, pan_x=0, pan_y=0):
        self.zoom = clamp_zoom(zoom)
        self.pan_x = _dec(pan_x)
        self.pan_y = _dec(pan_y)

    def copy(self):
        return ViewportState(self.width, self.height, self.zoom, self.pan_x, self.pan_y)

    def frame_parameters(self):
        """Narrow to kernel inputs: float zoom and split pan components."""
        return FrameViewport(
            self.width,
            self.height,
            float(self.zoom),
            SplitFloat.split(self.pan_x),
            SplitFloat.split(self.pan_y),
        )


# ============================================================================
# Zoom-adaptive iteration budget
# ============================================================================

ADAPTIVE_BASE = 100         # Iterations at zoom 1
ADAPTIVE_PER_OCTAVE = 20    # Extra iterations per doubling of zoom
ADAPTIVE_CAP = 1000         # Ceiling for the zoom-driven boost
DEEP_ZOOM_THRESHOLD = Decimal("1e4")
DEEP_ZOOM_BAILOUT = 256.0

BudgetTuning = namedtuple("BudgetTuning", ["max_iterations", "bailout", "use_stabilization"])

_LN2 = Decimal(2).ln()


def adapted_iterations(zoom, base_iterations):
    """
    Iteration count for a zoom level.

    The zoom-driven value floor(100 + 20·log2(zoom)) is capped at
    ADAPTIVE_CAP, but the cap is applied before the base budget, so a base
    above ADAPTIVE_CAP is kept as is and doubling the budget always takes
    effect.
    """
    zoom = clamp_zoom(zoom)
    octaves = float(zoom.ln() / _LN2)
    boost = int(math.floor(ADAPTIVE_BASE + ADAPTIVE_PER_OCTAVE * octaves))
    return max(int(base_iterations), min(boost, ADAPTIVE_CAP))


def tune_for_zoom(zoom, base_iterations, bailout, use_stabilization, adaptive=True):
    """Iteration/bailout tuning for a zoom level (no caching)."""
    zoom = clamp_zoom(zoom)
    base_iterations = max(1, int(base_iterations))
    if not adaptive:
        return BudgetTuning(base_iterations, float(bailout), bool(use_stabilization))
    iterations = adapted_iterations(zoom, base_iterations)
    if zoom >= DEEP_ZOOM_THRESHOLD:
        # Pixel spacing is tiny here, so the |z|² stabilization test would
        # flag too many boundary points; a larger bailout sharpens smooth
        # coloring instead.
        return BudgetTuning(iterations, max(float(bailout), DEEP_ZOOM_BAILOUT), False)
    return BudgetTuning(iterations, float(bailout), bool(use_stabilization))


class IterationBudget:
    """
    Caches tune_for_zoom() between frames.

    The tuning is recomputed when its settings change, or when zoom has
    changed and either moved by more than zoom_ratio_threshold or
    min_interval seconds have passed since the last recomputation.
    """

    def __init__(self, zoom_ratio_threshold=1.25, min_interval=0.25, clock=time.monotonic):
        self.zoom_ratio_threshold = Decimal(str(zoom_ratio_threshold))
        self.min_interval = min_interval
        self.clock = clock
        self._zoom = None
        self._settings = None
        self._tuning = None
        self._stamp = 0.0
        self.recomputations = 0

    def _zoom_moved(self, zoom):
        if zoom == self._zoom:
            return False
        ratio = zoom / self._zoom if zoom > self._zoom else self._zoom / zoom
        if ratio >= self.zoom_ratio_threshold:
            return True
        return self.clock() - self._stamp >= self.min_interval

    def tuning(self, zoom, base_iterations, bailout, use_stabilization, adaptive=True):
        zoom = clamp_zoom(zoom)
        settings = (int(base_iterations), float(bailout), bool(use_stabilization), bool(adaptive))
        if self._tuning is None or settings != self._settings or self._zoom_moved(zoom):
            self._tuning = tune_for_zoom(zoom, *settings)
            self._zoom = zoom
            self._settings = settings
            self._stamp = self.clock()
            self.recomputations += 1
            logger.debug("Iteration budget for zoom %.3e: %s", zoom, self._tuning)
        return self._tuning
