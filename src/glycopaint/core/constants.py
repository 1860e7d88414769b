"""Physical constants of the acquisition set-up."""

from __future__ import annotations

# Nikon camera: 512 x 512 pixels of 0.1603251 µm
PIXEL_WIDTH = 0.1603251
PIXEL_HEIGHT = 0.1603251
NUMBER_PIXELS_WIDTH = 512
NUMBER_PIXELS_HEIGHT = 512
IMAGE_WIDTH = PIXEL_WIDTH * NUMBER_PIXELS_WIDTH
IMAGE_HEIGHT = PIXEL_HEIGHT * NUMBER_PIXELS_HEIGHT

# 2000 frames at 50 ms
TIME_INTERVAL = 0.05
FRAMES = 2000
RECORDING_DURATION = FRAMES * TIME_INTERVAL

SUPPORTED_GRID_SIZES = frozenset({25, 100, 225, 400, 900})

# Track durations are in seconds, Tau is reported in milliseconds.
TAU_SCALE = 1000.0
