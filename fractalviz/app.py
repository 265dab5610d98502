"""
Main application module for the fractal explorer.

Contains the FractalApp class which handles:
- Window setup and main loop
- User input (zoom, pan, keyboard)
- Handing one state snapshot per frame to the renderer
- Displaying the most recent finished frame
"""

import logging
import math
import time

import pygame

from .compute import warmup_jit
from .config import get_setting, load_settings
from .renderer import FractalRenderer
from .state import ExplorerState, FractalType


logger = logging.getLogger(__name__)

# Number keys select the first ten families, F selects the fern
FRACTAL_KEYS = {
    pygame.K_0: FractalType.MANDELBROT,
    pygame.K_1: FractalType.JULIA,
    pygame.K_2: FractalType.BURNING_SHIP,
    pygame.K_3: FractalType.MANDELBAR,
    pygame.K_4: FractalType.NEWTON,
    pygame.K_5: FractalType.PHOENIX,
    pygame.K_6: FractalType.CUBIC_MANDELBROT,
    pygame.K_7: FractalType.SINE_JULIA,
    pygame.K_8: FractalType.EXP_JULIA,
    pygame.K_9: FractalType.BURNING_SHIP_JULIA,
    pygame.K_f: FractalType.BARNSLEY_FERN,
}

PRESET_KEYS = (pygame.K_F1, pygame.K_F2, pygame.K_F3)

HUE_STEP = 0.1
COLOR_SPEED_STEP = 0.05
SATURATION_STEP = 0.1
CONSTANT_STEP = 0.01       # Arrow keys move the Julia constant (Phoenix with Shift)

CONSTANT_KEYS = {
    pygame.K_LEFT: (-CONSTANT_STEP, 0.0),
    pygame.K_RIGHT: (CONSTANT_STEP, 0.0),
    pygame.K_DOWN: (0.0, -CONSTANT_STEP),
    pygame.K_UP: (0.0, CONSTANT_STEP),
}


class FractalApp:
    """
    Main application class for the fractal explorer.

    Handles the pygame window and event loop. Input events only mutate
    the ExplorerState; rendering reads a snapshot taken at frame start.
    """

    def __init__(self, width=None, height=None, max_iter=None, settings=None):
        """
        Initialize the application.

        Args:
            width: Window width in pixels (default from settings)
            height: Window height in pixels (default from settings)
            max_iter: Base iteration budget (default from settings)
            settings: Settings dict (default: load_settings())
        """
        self.settings = settings if settings is not None else load_settings()
        window = self.settings["window"]
        self.width = width or window["width"]
        self.height = height or window["height"]
        self.fps = get_setting(self.settings, "window", "fps", 60)

        self.state = ExplorerState(self.width, self.height, self.settings)
        if max_iter:
            self.state.params.max_iterations = max(1, int(max_iter))

        rendering = self.settings["rendering"]
        self.renderer = FractalRenderer(
            supersample=rendering["supersample"],
            fern_points=rendering["fern_points"],
        )

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None
        self.current_surface = None

        # Input state
        self.dragging = False
        self.last_mouse = None
        self.fingers = {}   # finger_id -> normalized (x, y)

        self.start_time = 0.0
        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        self._warmup()

        self.start_time = time.perf_counter()
        self.running = True
        while self.running:
            self._handle_events()

            elapsed = time.perf_counter() - self.start_time
            self.renderer.compute_async(self.state.snapshot(elapsed))

            self._check_render_result()
            self._draw()
            self.clock.tick(self.fps)

        pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode(
            (self.width, self.height),
            pygame.DOUBLEBUF | pygame.RESIZABLE
        )
        self._update_caption()
        self.clock = pygame.time.Clock()

    def _warmup(self):
        """Compile the kernels before the first frame."""
        pygame.display.set_caption("Compiling (first run only)...")
        started = time.perf_counter()
        warmup_jit()
        logger.info("JIT warmup finished in %.2f s", time.perf_counter() - started)
        self._update_caption()

    def _update_caption(self):
        p = self.state.params
        mode = "derbail" if p.use_derivative_bailout else "bailout"
        pygame.display.set_caption(
            f"{p.fractal_type.label} - zoom {float(self.state.viewport.zoom):.3g} - "
            f"{p.max_iterations} iter - {mode}"
        )

    def _handle_events(self):
        """Process all pending pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.MOUSEWHEEL:
                self._handle_zoom(event)
            elif event.type == pygame.MOUSEBUTTONDOWN:
                self._handle_mouse_down(event)
            elif event.type == pygame.MOUSEBUTTONUP:
                self._handle_mouse_up(event)
            elif event.type == pygame.MOUSEMOTION:
                self._handle_mouse_motion(event)
            elif event.type == pygame.FINGERDOWN:
                self.fingers[event.finger_id] = (event.x, event.y)
            elif event.type == pygame.FINGERUP:
                self.fingers.pop(event.finger_id, None)
            elif event.type == pygame.FINGERMOTION:
                self._handle_finger_motion(event)
            elif event.type == pygame.VIDEORESIZE:
                self._handle_resize(event)
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event)

    def _handle_zoom(self, event):
        """Handle mouse wheel zoom at the cursor."""
        mx, my = pygame.mouse.get_pos()
        self.state.wheel(mx, my, event.y)
        self._update_caption()

    def _handle_mouse_down(self, event):
        # Touches also arrive as emulated mouse events; fingers are handled separately
        if getattr(event, "touch", False):
            return
        if event.button == 1:
            self.dragging = True
            self.last_mouse = event.pos

    def _handle_mouse_up(self, event):
        if event.button == 1:
            self.dragging = False
            self.last_mouse = None

    def _handle_mouse_motion(self, event):
        """Pan incrementally by the movement since the last event."""
        if self.dragging and self.last_mouse is not None:
            mx, my = event.pos
            self.state.pan(mx - self.last_mouse[0], my - self.last_mouse[1])
            self.last_mouse = event.pos

    def _pinch_distance(self):
        (x1, y1), (x2, y2) = list(self.fingers.values())[:2]
        return math.hypot((x2 - x1) * self.width, (y2 - y1) * self.height)

    def _handle_finger_motion(self, event):
        """Two-finger pinch: zoom by the ratio of successive finger distances."""
        if len(self.fingers) < 2 or event.finger_id not in self.fingers:
            self.fingers[event.finger_id] = (event.x, event.y)
            return
        previous = self._pinch_distance()
        self.fingers[event.finger_id] = (event.x, event.y)
        distance = self._pinch_distance()
        if previous > 0 and distance > 0:
            (x1, y1), (x2, y2) = list(self.fingers.values())[:2]
            cx = (x1 + x2) / 2 * self.width
            cy = (y1 + y2) / 2 * self.height
            self.state.pinch(cx, cy, previous, distance)
            self._update_caption()

    def _handle_resize(self, event):
        self.width, self.height = max(1, event.w), max(1, event.h)
        self.screen = pygame.display.set_mode(
            (self.width, self.height),
            pygame.DOUBLEBUF | pygame.RESIZABLE
        )
        self.state.resize(self.width, self.height)

    def _handle_key(self, event):
        """Handle keyboard input."""
        key = event.key
        if key in FRACTAL_KEYS:
            self.state.select_fractal(FRACTAL_KEYS[key])
        elif key in PRESET_KEYS:
            names = self.state.preset_names()
            index = PRESET_KEYS.index(key)
            if index < len(names):
                self.state.apply_preset(names[index])
        elif key == pygame.K_j:
            self.state.toggle_julia_animation()
        elif key == pygame.K_p:
            self.state.toggle_phoenix_animation()
        elif key == pygame.K_d:
            self.state.toggle_derivative_bailout()
        elif key == pygame.K_s:
            self.state.toggle_stabilization()
        elif key == pygame.K_h:
            self.state.toggle_hue_animation()
        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            self.state.increase_iterations()
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            self.state.decrease_iterations()
        elif key == pygame.K_LEFTBRACKET:
            self.state.shift_hue(-HUE_STEP)
        elif key == pygame.K_RIGHTBRACKET:
            self.state.shift_hue(HUE_STEP)
        elif key in CONSTANT_KEYS:
            d_real, d_imag = CONSTANT_KEYS[key]
            if getattr(event, "mod", 0) & pygame.KMOD_SHIFT:
                self.state.nudge_phoenix_constant(d_real, d_imag)
            else:
                self.state.nudge_julia_constant(d_real, d_imag)
        elif key == pygame.K_COMMA:
            self.state.set_color_speed(self.state.color.color_speed - COLOR_SPEED_STEP)
        elif key == pygame.K_PERIOD:
            self.state.set_color_speed(self.state.color.color_speed + COLOR_SPEED_STEP)
        elif key == pygame.K_SEMICOLON:
            self.state.set_saturation(self.state.color.saturation - SATURATION_STEP)
        elif key == pygame.K_QUOTE:
            self.state.set_saturation(self.state.color.saturation + SATURATION_STEP)
        elif key == pygame.K_r:
            self.state.reset_view()
        elif key == pygame.K_ESCAPE:
            self.running = False
        self._update_caption()

    def _check_render_result(self):
        """Pick up a finished frame from the renderer, if any."""
        image = self.renderer.get_result()
        if image is not None:
            self.current_surface = pygame.surfarray.make_surface(image.swapaxes(0, 1))

    def _draw(self):
        """Draw the current frame."""
        if self.current_surface is None:
            self.screen.fill((0, 0, 0))
        elif self.current_surface.get_size() != (self.width, self.height):
            # Frame from before a resize
            self.screen.blit(
                pygame.transform.smoothscale(self.current_surface, (self.width, self.height)),
                (0, 0)
            )
        else:
            self.screen.blit(self.current_surface, (0, 0))
        pygame.display.flip()


def run(width=None, height=None, max_iter=None):
    """
    Run the fractal explorer.

    Args:
        width: Window width (default from settings)
        height: Window height (default from settings)
        max_iter: Base iteration budget (default from settings)
    """
    app = FractalApp(width, height, max_iter)
    try:
        app.run()
    except KeyboardInterrupt:
        pygame.quit()
