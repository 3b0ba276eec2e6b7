"""
Configuration & Global Constants
================================
This module serves as the central registry for numeric constants and defaults.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (scale factors, size limits)
   scattered throughout the sampler, renderer and exporter.
2. Defaults: The initial parameter set of a fresh viewer session lives here,
   so the CLI and the data model agree on it.

Exports:
    POSITION_SCALE (float): Scene units per source pixel at particle size 1.
    GLYPH_SCALE (float): Rendered primitive size per unit of particle size.
    MAX_RASTER_WIDTH (int): Width to which loaded images are downsampled.
"""
from typing import Final

# Scene units per source pixel (keeps the cloud inside a conventional view volume)
POSITION_SCALE: Final[float] = 0.02

# Rendered primitive size relative to particle size
GLYPH_SCALE: Final[float] = 0.015

# Loaded images wider than this are downsampled before sampling
MAX_RASTER_WIDTH: Final[int] = 512

# --- Sampling defaults ---
DEFAULT_STEP: Final[float] = 3.0
DEFAULT_PARTICLE_SIZE: Final[float] = 1.5
DEFAULT_Z_EXTRUSION: Final[float] = 400.0
DEFAULT_ALPHA_THRESHOLD: Final[int] = 20
DEFAULT_BRIGHTNESS: Final[float] = 1.0
DEFAULT_TINT_HEX: Final[str] = "#ffffff"

# --- Text rasterization ---
TEXT_CANVAS_WIDTH: Final[int] = 800
TEXT_CANVAS_HEIGHT: Final[int] = 750
TEXT_BASE_FONT_SIZE: Final[int] = 260
TEXT_MIN_FONT_SIZE: Final[int] = 60

# --- Export ---
DEFAULT_EXPORT_FILENAME: Final[str] = "pixelcloud_model.ply"

# --- Viewer ---
# Parameter edits closer together than this collapse into one resample
RESAMPLE_DEBOUNCE_MS: Final[int] = 80
