#!/usr/bin/env python3
"""
Shared constants for the N-body simulator (simulation units, not SI).

Keeping defaults in one place helps ensure values are consistent across the
engine, the loop and the display.
"""

# Physics defaults
DEFAULT_G = 1e2
DEFAULT_TIME_STEP = 3.0  # simulated seconds per step
DEFAULT_DAMPING = 0.99  # fraction of velocity kept each step
DEFAULT_MAX_ACCELERATION = 0.1
DEFAULT_SOFTENING = 1.0  # minimum separation used by the force model
DEFAULT_TRAIL_LENGTH = 200
MAX_TRAIL_LENGTH = 10_000  # points kept per body

# Random scene
RANDOM_BODY_COUNT = 3
RANDOM_POSITION_RANGE = 50.0
RANDOM_VELOCITY_RANGE = 0.1
RANDOM_BODY_MASS = 1.0

# Loop scheduling
DEFAULT_STEPS_PER_SECOND = 60.0
MAX_STEPS_PER_TICK = 8  # cap so a stalled tick cannot snowball
EVENT_LOG_SIZE = 100
FPS_SMOOTHING = 0.99

# Viewport (world units)
WORLD_BOUNDS = (-100.0, 100.0, -100.0, 100.0)  # x_min, x_max, y_min, y_max
MIN_ZOOM = 0.05
MAX_ZOOM = 20.0
CENTROID_INLIER_RADIUS = 150.0
FOLLOW_GAIN = 0.1

# Character grid
GRID_COLUMNS = 100
GRID_ROWS = 40
BODY_GLYPH = "\u263c"
TRAIL_GLYPH = "\u00b7"
LOG_LINES_SHOWN = 10

# Display (pygame window)
CELL_WIDTH = 10
CELL_HEIGHT = 18
PANEL_COLUMNS = 56
RENDER_FPS = 30
BACKGROUND_COLOR = (10, 12, 18)
TEXT_COLOR = (200, 200, 200)
SELECTED_TEXT_COLOR = (0, 0, 0)
SELECTED_BG_COLOR = (0, 200, 0)
WARNING_COLOR = (255, 200, 80)
ERROR_COLOR = (255, 120, 120)

# Body colours, picked by id % len(BODY_COLORS)
BODY_COLORS = (
    (220, 50, 47),    # red
    (80, 200, 80),    # green
    (230, 200, 40),   # yellow
    (70, 120, 230),   # blue
    (200, 80, 200),   # magenta
    (60, 200, 200),   # cyan
    (150, 150, 150),  # gray
    (245, 245, 245),  # white
)
