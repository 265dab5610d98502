"""
Time-varying complex constants for the Julia and Phoenix "animate" modes.

While animating, the constant follows a circle:

    constant(t) = (sin(t·speed)·amplitude, cos(t·speed)·amplitude)

with t in seconds. Stopping the animation keeps the last value produced,
which becomes the new static constant.
"""

import math


ANIMATION_SPEED = 0.4
ANIMATION_AMPLITUDE = 0.8


def orbit_constant(t, speed=ANIMATION_SPEED, amplitude=ANIMATION_AMPLITUDE):
    """Point on the animation circle at time t (seconds)."""
    return complex(math.sin(t * speed) * amplitude, math.cos(t * speed) * amplitude)


class AnimatedConstant:
    """
    A complex constant that can be switched between static and animated.

    Usage:
        julia = AnimatedConstant(complex(-0.8, 0.156))
        julia.start()
        julia.update(elapsed)   # once per frame
        julia.stop()            # value stays where the animation left it
    """

    def __init__(self, value=0j, speed=ANIMATION_SPEED, amplitude=ANIMATION_AMPLITUDE):
        self._value = complex(value)
        self.speed = speed
        self.amplitude = amplitude
        self.animating = False

    @property
    def value(self):
        return self._value

    def set(self, value):
        """Set a static value. Ignored while animating, like a slider under animation."""
        if not self.animating:
            self._value = complex(value)

    def start(self):
        self.animating = True

    def stop(self):
        # _value already holds the last computed point
        self.animating = False

    def toggle(self):
        if self.animating:
            self.stop()
        else:
            self.start()
        return self.animating

    def update(self, t):
        """Advance to time t if animating; returns the current value."""
        if self.animating:
            self._value = orbit_constant(t, self.speed, self.amplitude)
        return self._value
