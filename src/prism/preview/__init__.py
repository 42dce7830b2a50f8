"""Preview module for image output.

Components:
    export: Clamped 8-bit conversion, plain PPM and PNG writers

Example:
    >>> from prism.preview import save_png
    >>> save_png(canvas, "output.png")
"""

from prism.preview.export import (
    canvas_to_ppm,
    canvas_to_uint8,
    compute_rmse,
    save_png,
    save_ppm,
)

__all__ = [
    "canvas_to_uint8",
    "canvas_to_ppm",
    "save_ppm",
    "save_png",
    "compute_rmse",
]
