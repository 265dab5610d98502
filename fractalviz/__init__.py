"""
Fractal Explorer Package

An interactive explorer for eleven fractal families (Mandelbrot, Julia,
Burning Ship, Mandelbar, Newton, Phoenix, cubic Mandelbrot, sine and
exponential Julia, Burning Ship Julia, Barnsley fern) using Pygame for
display and Numba for JIT-compiled computation.

Quick Start:
    from fractalviz import run
    run()

Or from command line:
    python -m fractalviz

Package Structure:
    - splitfloat.py: Two-float (high + low) coordinates and arithmetic
    - complex_ops.py: Complex helpers on (re, im) float pairs
    - compute.py: JIT-compiled iteration kernel for every family
    - colormaps.py: Smooth iteration count, cosine palettes, RGBA output
    - viewport.py: Pixel mapping, zoom/pan, adaptive iteration budget
    - animation.py: Orbiting Julia / Phoenix constants
    - fern.py: Barnsley fern point cloud and rasterizer
    - state.py: Explorer state and per-frame snapshots
    - renderer.py: Snapshot -> image, optionally on a worker thread
    - app.py: Main application and event loop

Controls:
    - Scroll: Zoom in/out at mouse position
    - Drag: Pan around, two-finger pinch: Zoom
    - 0-9, F: Select fractal family
    - J / P: Animate Julia / Phoenix constant
    - Arrows: Nudge Julia constant (Shift: Phoenix)
    - D: Derivative bailout, S: Stabilization check
    - H: Animate hue, [ ]: Shift hue
    - , .: Color speed, ; ': Saturation
    - + / -: Double / halve iterations
    - F1-F3: Presets
    - R: Reset view
    - ESC: Quit
"""

from .app import run, FractalApp
from .renderer import FractalRenderer
from .state import ExplorerState, FractalType, FrameSnapshot
from .splitfloat import SplitFloat
from .compute import evaluate, KernelResult
from .colormaps import PALETTES, get_palette, list_palette_names

__version__ = "1.0.0"
__all__ = [
    "run",
    "FractalApp",
    "FractalRenderer",
    "ExplorerState",
    "FractalType",
    "FrameSnapshot",
    "SplitFloat",
    "evaluate",
    "KernelResult",
    "PALETTES",
    "get_palette",
    "list_palette_names",
]
