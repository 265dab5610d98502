"""
Explorer state and the per-frame snapshot handed to the renderer.

ExplorerState is the single writer: input handlers call its operations
between frames. Once per frame the render loop calls snapshot(), which
advances the animated constants and returns an immutable FrameSnapshot;
the renderer only ever reads snapshots, so a frame never observes a
half-applied input event.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum

from . import compute
from .animation import AnimatedConstant
from .colormaps import animated_hue_phase, get_palette
from .config import load_settings
from .splitfloat import SplitFloat
from .viewport import IterationBudget, ViewportState, pinch_ratio, wheel_ratio


logger = logging.getLogger(__name__)


class FractalType(IntEnum):
    MANDELBROT = compute.FRACTAL_MANDELBROT
    JULIA = compute.FRACTAL_JULIA
    BURNING_SHIP = compute.FRACTAL_BURNING_SHIP
    MANDELBAR = compute.FRACTAL_MANDELBAR
    NEWTON = compute.FRACTAL_NEWTON
    PHOENIX = compute.FRACTAL_PHOENIX
    CUBIC_MANDELBROT = compute.FRACTAL_CUBIC_MANDELBROT
    SINE_JULIA = compute.FRACTAL_SINE_JULIA
    EXP_JULIA = compute.FRACTAL_EXP_JULIA
    BURNING_SHIP_JULIA = compute.FRACTAL_BURNING_SHIP_JULIA
    BARNSLEY_FERN = compute.FRACTAL_BARNSLEY_FERN

    @classmethod
    def parse(cls, value):
        """
        Accept a FractalType, its integer id, or a name such as
        "burning_ship_julia" / "Burning Ship Julia".

        Raises:
            ValueError if value names no fractal type
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace(" ", "_").replace("-", "_")
            try:
                return cls[key]
            except KeyError:
                raise ValueError(f"Unknown fractal type: {value!r}") from None
        return cls(int(value))

    @property
    def label(self):
        return self.name.replace("_", " ").title()


# Families whose Julia constant follows the animation
JULIA_ANIMATED_TYPES = frozenset({
    FractalType.JULIA,
    FractalType.BURNING_SHIP_JULIA,
    FractalType.PHOENIX,
    FractalType.EXP_JULIA,
    FractalType.SINE_JULIA,
})


def _complex(value):
    if isinstance(value, (list, tuple)):
        return complex(float(value[0]), float(value[1]))
    return complex(value)


@dataclass
class FractalParameters:
    fractal_type: FractalType = FractalType.MANDELBROT
    julia_constant: complex = complex(-0.8, 0.156)
    phoenix_constant: complex = complex(-0.5, 0.0)
    max_iterations: int = 200
    bailout: float = 4.0
    derivative_bailout_threshold: float = 1e10
    use_derivative_bailout: bool = False
    use_stabilization: bool = True
    adaptive_iterations: bool = True

    def __post_init__(self):
        self.fractal_type = FractalType.parse(self.fractal_type)
        self.julia_constant = _complex(self.julia_constant)
        self.phoenix_constant = _complex(self.phoenix_constant)
        self.max_iterations = max(1, int(self.max_iterations))
        if not self.bailout > 0:
            raise ValueError("bailout must be positive.")
        if not self.derivative_bailout_threshold > 0:
            raise ValueError("derivative_bailout_threshold must be positive.")


@dataclass
class ColorSettings:
    hue_phase: float = 0.0
    color_speed: float = 0.3
    saturation: float = 1.0
    animate_hue: bool = False
    palette: tuple = field(default_factory=lambda: get_palette('Classic'))

    def __post_init__(self):
        if isinstance(self.palette, str):
            self.palette = get_palette(self.palette)
        self.palette = tuple(float(p) for p in self.palette)
        self.color_speed = max(0.0, float(self.color_speed))
        self.saturation = min(1.0, max(0.0, float(self.saturation)))


@dataclass(frozen=True)
class FrameSnapshot:
    """Everything the kernel reads for one frame."""
    width: int
    height: int
    elapsed: float
    fractal_type: FractalType
    julia_constant: complex
    phoenix_constant: complex
    zoom: float
    pan_x: SplitFloat
    pan_y: SplitFloat
    hue_phase: float
    color_speed: float
    saturation: float
    palette: tuple
    max_iterations: int
    bailout: float
    derivative_bailout_threshold: float
    use_derivative_bailout: bool
    use_stabilization: bool


class ExplorerState:
    """
    Long-lived explorer state plus the host-facing operations.

    Usage:
        state = ExplorerState(width=800, height=600)
        state.select_fractal("julia")
        state.zoom_at(400, 300, 1.1)
        snap = state.snapshot(elapsed_seconds)
    """

    def __init__(self, width=None, height=None, settings=None):
        self.settings = settings if settings is not None else load_settings()
        window = self.settings["window"]
        fractal = self.settings["fractal"]
        color = self.settings["color"]
        rendering = self.settings["rendering"]

        self.params = FractalParameters(
            fractal_type=fractal["type"],
            julia_constant=fractal["julia_constant"],
            phoenix_constant=fractal["phoenix_constant"],
            max_iterations=fractal["max_iterations"],
            bailout=fractal["bailout"],
            derivative_bailout_threshold=fractal["derivative_bailout_threshold"],
            use_derivative_bailout=fractal["use_derivative_bailout"],
            use_stabilization=fractal["use_stabilization"],
            adaptive_iterations=fractal["adaptive_iterations"],
        )
        self.color = ColorSettings(
            hue_phase=color["hue_phase"],
            color_speed=color["color_speed"],
            saturation=color["saturation"],
            animate_hue=color["animate_hue"],
            palette=color["palette"],
        )
        self.julia = AnimatedConstant(self.params.julia_constant)
        self.phoenix = AnimatedConstant(self.params.phoenix_constant)
        self.viewport = ViewportState(width or window["width"], height or window["height"])
        self.reset_view()
        self.budget = IterationBudget(
            zoom_ratio_threshold=rendering["budget_zoom_ratio"],
            min_interval=rendering["budget_min_interval"],
        )

    # -- fractal family ------------------------------------------------------

    def select_fractal(self, fractal_type):
        self.params.fractal_type = FractalType.parse(fractal_type)
        logger.info("Fractal type: %s", self.params.fractal_type.label)

    @property
    def fractal_type(self):
        return self.params.fractal_type

    # -- constants -----------------------------------------------------------

    @property
    def julia_constant(self):
        return self.julia.value

    def set_julia_constant(self, value):
        self.julia.set(_complex(value))
        self.params.julia_constant = self.julia.value

    @property
    def phoenix_constant(self):
        return self.phoenix.value

    def set_phoenix_constant(self, value):
        self.phoenix.set(_complex(value))
        self.params.phoenix_constant = self.phoenix.value

    def nudge_julia_constant(self, d_real, d_imag):
        """Move the static Julia constant by (d_real, d_imag). No-op while animating."""
        self.set_julia_constant(self.julia.value + complex(d_real, d_imag))
        return self.julia.value

    def nudge_phoenix_constant(self, d_real, d_imag):
        self.set_phoenix_constant(self.phoenix.value + complex(d_real, d_imag))
        return self.phoenix.value

    def toggle_julia_animation(self):
        animating = self.julia.toggle()
        self.params.julia_constant = self.julia.value
        return animating

    def toggle_phoenix_animation(self):
        animating = self.phoenix.toggle()
        self.params.phoenix_constant = self.phoenix.value
        return animating

    # -- iteration / bailout -------------------------------------------------

    def toggle_derivative_bailout(self):
        self.params.use_derivative_bailout = not self.params.use_derivative_bailout
        return self.params.use_derivative_bailout

    def toggle_stabilization(self):
        self.params.use_stabilization = not self.params.use_stabilization
        return self.params.use_stabilization

    def increase_iterations(self):
        self.params.max_iterations *= 2
        return self.params.max_iterations

    def decrease_iterations(self):
        self.params.max_iterations = max(1, self.params.max_iterations // 2)
        return self.params.max_iterations

    # -- color ---------------------------------------------------------------

    def toggle_hue_animation(self):
        self.color.animate_hue = not self.color.animate_hue
        return self.color.animate_hue

    def shift_hue(self, delta):
        self.color.hue_phase += delta

    def set_color_speed(self, speed):
        self.color.color_speed = max(0.0, float(speed))
        return self.color.color_speed

    def set_saturation(self, saturation):
        self.color.saturation = min(1.0, max(0.0, float(saturation)))
        return self.color.saturation

    # -- viewport ------------------------------------------------------------

    def pan(self, dx, dy):
        self.viewport.pan_by(dx, dy)

    def zoom_at(self, px, py, ratio):
        self.viewport.zoom_at(px, py, ratio)

    def wheel(self, px, py, direction):
        self.viewport.zoom_at(px, py, wheel_ratio(direction))

    def pinch(self, px, py, previous_distance, distance):
        """
        Zoom at the pinch centre by the ratio of two touch-point distances.

        Raises:
            ValueError if either distance is not positive
        """
        self.viewport.zoom_at(px, py, pinch_ratio(previous_distance, distance))

    def resize(self, width, height):
        self.viewport.resize(width, height)

    def reset_view(self):
        view = self.settings["view"]
        self.viewport.reset(view["zoom"], view["pan_x"], view["pan_y"])

    # -- presets -------------------------------------------------------------

    def preset_names(self):
        return list(self.settings.get("presets", {}).keys())

    def apply_preset(self, name):
        """
        Load a named preset from settings.

        Raises:
            KeyError if no preset has that name
        """
        preset = self.settings.get("presets", {})[name]
        self.julia.stop()
        self.phoenix.stop()
        self.select_fractal(preset["type"])
        if "julia_constant" in preset:
            self.set_julia_constant(preset["julia_constant"])
        if "phoenix_constant" in preset:
            self.set_phoenix_constant(preset["phoenix_constant"])
        if preset.get("animate_julia"):
            self.julia.start()
        if preset.get("animate_phoenix"):
            self.phoenix.start()
        self.viewport.reset(preset.get("zoom", 1), preset.get("pan_x", 0), preset.get("pan_y", 0))
        if "color_speed" in preset:
            self.set_color_speed(preset["color_speed"])
        if "hue_phase" in preset:
            self.color.hue_phase = float(preset["hue_phase"])
        logger.info("Applied preset %s", name)

    # -- frame ---------------------------------------------------------------

    def snapshot(self, elapsed):
        """
        Advance animations to `elapsed` seconds and freeze the frame inputs.

        Returns:
            FrameSnapshot
        """
        fractal_type = self.params.fractal_type
        if fractal_type in JULIA_ANIMATED_TYPES:
            self.params.julia_constant = self.julia.update(elapsed)
        if fractal_type == FractalType.PHOENIX:
            self.params.phoenix_constant = self.phoenix.update(elapsed)

        tuning = self.budget.tuning(
            self.viewport.zoom,
            self.params.max_iterations,
            self.params.bailout,
            self.params.use_stabilization,
            self.params.adaptive_iterations,
        )
        frame = self.viewport.frame_parameters()
        return FrameSnapshot(
            width=frame.width,
            height=frame.height,
            elapsed=float(elapsed),
            fractal_type=fractal_type,
            julia_constant=self.params.julia_constant,
            phoenix_constant=self.params.phoenix_constant,
            zoom=frame.zoom,
            pan_x=frame.pan_x,
            pan_y=frame.pan_y,
            hue_phase=animated_hue_phase(self.color.hue_phase, elapsed,
                                         self.color.color_speed, self.color.animate_hue),
            color_speed=self.color.color_speed,
            saturation=self.color.saturation,
            palette=self.color.palette,
            max_iterations=tuning.max_iterations,
            bailout=tuning.bailout,
            derivative_bailout_threshold=self.params.derivative_bailout_threshold,
            use_derivative_bailout=self.params.use_derivative_bailout,
            use_stabilization=tuning.use_stabilization,
        )
