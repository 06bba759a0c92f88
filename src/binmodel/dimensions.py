"""Fixed dimensions of the bin recipe.

All values are millimetres unless noted otherwise. These are process-wide
constants shared by the grid calculation and every solid builder.
"""

from __future__ import annotations

# Grid pitch and the clearance that lets neighbouring bins interlock
GRID_SIZE = 42.0
TOLERANCE = 0.5
HALF_TOLERANCE = TOLERANCE / 2

# Base tile
OUTER_TILE_DIM = GRID_SIZE - TOLERANCE  # 41.5
BIN_CORNER_RADIUS = 7.5 / 2

# Stepped base profile, counted down from the top of the base
BEVEL_TOP_OFFSET = 2.15 / 2
BEVEL_BOTTOM_OFFSET = 0.8 / 2
BEVEL_TOP_HEIGHT = 2.15
BEVEL_VERTICAL_HEIGHT = 1.8
BASE_PROFILE_DEPTH = BEVEL_TOP_HEIGHT + BEVEL_VERTICAL_HEIGHT

BOTTOM_THICKNESS = 1.0

DEFAULT_BASE_HEIGHT = 4.75
DEFAULT_CUTOUT_DEPTH = 20.0

# Preview tessellation (angular tolerance in degrees)
MESH_TOLERANCE = 0.05
MESH_ANGULAR_TOLERANCE = 30.0

# Default bin heights are rounded up to a multiple of this
HEIGHT_UNIT = 7.0
