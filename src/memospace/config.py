"""Configuration constants for Memospace."""

import os
from pathlib import Path

# Trailing debounce for position writes while a node is being dragged (seconds)
POSITION_DEBOUNCE_SECONDS = 0.5

# Graph view defaults
DEFAULT_VIEWPORT_ZOOM = 0.8
CANVAS_MIN = -2000.0
CANVAS_MAX = 4000.0

# Initial grid seed for notes that have never been placed
GRID_SPACING_X = 400
GRID_SPACING_Y = 300
GRID_OFFSET = 150

# Auto-layout circle
AUTO_LAYOUT_CENTER = (600.0, 400.0)
AUTO_LAYOUT_BASE_RADIUS = 100
AUTO_LAYOUT_RADIUS_STEP = 20
AUTO_LAYOUT_MAX_RADIUS = 400

# Categories
DEFAULT_CATEGORY = "General"
CATEGORY_PATH_SEPARATOR = " → "


def get_data_dir() -> Path:
    """Get the data directory from environment, defaulting to ./data."""
    return Path(os.environ.get("MEMOSPACE_DATA_DIR", "data"))


def get_position_debounce() -> float:
    """Get the position debounce delay from environment."""
    value = os.environ.get("MEMOSPACE_POSITION_DEBOUNCE")
    if value is None:
        return POSITION_DEBOUNCE_SECONDS
    return float(value)
