"""
Frame renderer: FrameSnapshot in, RGB image out.

The FractalRenderer class handles:
- Escape-time families: compute_fractal -> colorize -> RGB
- The Barnsley fern: point cloud generation and blended rasterization
- Optional 2x supersampled anti-aliasing
- Background (async) rendering so the event loop stays responsive
"""

import logging
import threading
import time

import numpy as np

from .colormaps import colorize, downscale_2x, to_rgb8
from .compute import FRACTAL_BARNSLEY_FERN, compute_fractal
from .fern import FERN_POINT_COUNT, fern_view_bounds, generate_fern_points, rasterize_points


logger = logging.getLogger(__name__)


class FractalRenderer:
    """
    Renders FrameSnapshots, synchronously or on a worker thread.

    Usage:
        renderer = FractalRenderer(supersample=2)
        renderer.compute_async(state.snapshot(elapsed))

        # In your game loop:
        image = renderer.get_result()
        if image is not None:
            display(image)

    Only the newest submitted snapshot is rendered: snapshots submitted
    while a frame is being computed replace each other, and the worker
    picks up the latest one when it finishes.
    """

    def __init__(self, supersample=1, fern_points=FERN_POINT_COUNT, seed=None):
        """
        Initialize the renderer.

        Args:
            supersample: 1 (off) or 2 (render at 2x, box-filter down)
            fern_points: Points per fern frame
            seed: Seed for the fern's random source (None = nondeterministic)
        """
        if supersample not in (1, 2):
            raise ValueError("supersample must be 1 or 2")
        self.supersample = supersample
        self.fern_points = int(fern_points)
        self.rng = np.random.default_rng(seed)

        self.last_render_ms = 0.0

        # Async computation state
        self.computing = False
        self.result_ready = False
        self.pending_snapshot = None
        self.result = None
        self.lock = threading.Lock()

    # -- synchronous ---------------------------------------------------------

    def render_rgba(self, snapshot):
        """Render a snapshot to a float RGBA image of shape (height, width, 4)."""
        start = time.perf_counter()
        if int(snapshot.fractal_type) == FRACTAL_BARNSLEY_FERN:
            rgba = self._render_fern(snapshot)
        else:
            rgba = self._render_escape_time(snapshot)
        self.last_render_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("Rendered %dx%d type=%d iter=%d in %.1f ms",
                     snapshot.width, snapshot.height, int(snapshot.fractal_type),
                     snapshot.max_iterations, self.last_render_ms)
        return rgba

    def render(self, snapshot):
        """Render a snapshot to a uint8 RGB image of shape (height, width, 3)."""
        return to_rgb8(self.render_rgba(snapshot))

    def _render_escape_time(self, snapshot):
        ss = self.supersample
        width = snapshot.width * ss
        height = snapshot.height * ss
        jc = snapshot.julia_constant
        pc = snapshot.phoenix_constant

        status, iterations, zr, zi = compute_fractal(
            width, height, float(snapshot.zoom),
            snapshot.pan_x.high, snapshot.pan_x.low,
            snapshot.pan_y.high, snapshot.pan_y.low,
            int(snapshot.fractal_type), jc.real, jc.imag, pc.real, pc.imag,
            int(snapshot.max_iterations), float(snapshot.bailout),
            bool(snapshot.use_derivative_bailout),
            float(snapshot.derivative_bailout_threshold),
            bool(snapshot.use_stabilization),
        )

        rgba_hi = np.empty((height, width, 4), dtype=np.float32)
        off_r, off_g, off_b = snapshot.palette
        colorize(status, iterations, zr, zi, int(snapshot.max_iterations),
                 float(snapshot.hue_phase), float(snapshot.color_speed),
                 float(snapshot.saturation), off_r, off_g, off_b, rgba_hi)
        if ss == 1:
            return rgba_hi

        rgba = np.empty((snapshot.height, snapshot.width, 4), dtype=np.float32)
        downscale_2x(rgba_hi, rgba)
        return rgba

    def _render_fern(self, snapshot):
        rgba = np.zeros((snapshot.height, snapshot.width, 4), dtype=np.float32)
        points = generate_fern_points(snapshot.elapsed, self.fern_points, self.rng)
        bounds = fern_view_bounds(snapshot.zoom, snapshot.pan_x.reconstruct(),
                                  snapshot.pan_y.reconstruct(),
                                  snapshot.width / snapshot.height)
        return rasterize_points(points, bounds, rgba)

    # -- asynchronous --------------------------------------------------------

    def compute_async(self, snapshot):
        """
        Queue a snapshot for background rendering.

        Replaces any snapshot that is queued but not yet started.
        """
        with self.lock:
            self.pending_snapshot = snapshot
            if not self.computing:
                self.computing = True
                thread = threading.Thread(target=self._compute_thread, name="fractal-render")
                thread.daemon = True
                thread.start()

    def _compute_thread(self):
        """Background thread: render pending snapshots until none is left."""
        while True:
            with self.lock:
                snapshot = self.pending_snapshot
                self.pending_snapshot = None
                if snapshot is None:
                    self.computing = False
                    break

            try:
                image = self.render(snapshot)
            except Exception:
                logger.exception("Render failed for %s", snapshot.fractal_type)
                with self.lock:
                    self.computing = False
                raise

            with self.lock:
                self.result = image
                self.result_ready = True

    def get_result(self):
        """
        Get the latest render result if ready.

        Returns:
            uint8 RGB image (height, width, 3), or None if nothing new.
        """
        with self.lock:
            if self.result_ready:
                self.result_ready = False
                return self.result
        return None

    def wait(self, timeout=None):
        """Block until the worker is idle. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self.lock:
                if not self.computing:
                    return True
            if deadline is not None and time.monotonic() > deadline:
                return False
            time.sleep(0.001)
