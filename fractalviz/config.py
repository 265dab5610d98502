"""
Settings for the fractal explorer.

Defaults live in settings.json next to this module. Sections missing from
a user file are filled in from the built-in defaults, key by key.
"""

import copy
import json
import logging
import os


logger = logging.getLogger(__name__)

SETTINGS_PATH = os.path.join(os.path.dirname(__file__), 'settings.json')

# Used when settings.json is missing or unreadable
DEFAULT_SETTINGS = {
    "window": {"width": 960, "height": 720, "fps": 60},
    "fractal": {
        "type": "mandelbrot",
        "max_iterations": 200,
        "bailout": 4.0,
        "derivative_bailout_threshold": 1e10,
        "use_derivative_bailout": False,
        "use_stabilization": True,
        "adaptive_iterations": True,
        "julia_constant": [-0.8, 0.156],
        "phoenix_constant": [-0.5, 0.0],
    },
    "color": {
        "hue_phase": 0.0,
        "color_speed": 0.3,
        "saturation": 1.0,
        "animate_hue": False,
        "palette": "Classic",
    },
    "view": {"zoom": "0.7", "pan_x": "-0.5", "pan_y": "0"},
    "rendering": {
        "supersample": 1,
        "budget_zoom_ratio": 1.25,
        "budget_min_interval": 0.25,
        "fern_points": 100000,
    },
    "presets": {},
}


def _merge(defaults, overrides):
    merged = copy.deepcopy(defaults)
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def load_settings(path=None):
    """
    Load settings from a JSON file.

    Args:
        path: Settings file (default: the packaged settings.json)

    Returns:
        Settings dict with every default section present. Falls back to
        DEFAULT_SETTINGS (with a warning) if the file cannot be read.
    """
    settings_path = path or SETTINGS_PATH
    try:
        with open(settings_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", settings_path, e)
        return copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level must be an object", settings_path)
        return copy.deepcopy(DEFAULT_SETTINGS)
    return _merge(DEFAULT_SETTINGS, data)


def get_setting(settings, section, key, default=None):
    """Read settings[section][key], returning default if either is missing."""
    return settings.get(section, {}).get(key, default)
