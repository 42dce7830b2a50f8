"""Image export utilities for rendered canvases.

Canvas values are linear floats with no upper bound. Export clamps each
channel to [0, 1], scales to 0-255 and rounds to the nearest integer.

Supported formats:
    - PPM (plain-text P3)
    - PNG (8-bit via Pillow)

Example:
    >>> from prism.core.canvas import Canvas
    >>> from prism.preview.export import save_png, save_ppm
    >>> canvas = Canvas(5, 3)
    >>> canvas.write_pixel(0, 0, (1.5, 0.0, 0.0))
    >>> save_ppm(canvas, "output.ppm")
    >>> save_png(canvas, "output.png")
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from prism.core.canvas import Canvas

# Maximum line length of a plain PPM file
PPM_LINE_LIMIT = 70


def canvas_to_uint8(canvas: Canvas) -> npt.NDArray[np.uint8]:
    """Convert a canvas to an 8-bit (height, width, 3) array.

    Non-finite values are written as 0.
    """
    pixels = np.nan_to_num(canvas.pixels.astype(np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    return np.rint(np.clip(pixels, 0.0, 1.0) * 255.0).astype(np.uint8)


def canvas_to_ppm(canvas: Canvas) -> str:
    """Render a canvas as a plain PPM (P3) document.

    Each canvas row starts a new line; lines longer than 70 characters are
    wrapped between values. The document ends with a newline.
    """
    lines = ["P3", f"{canvas.width} {canvas.height}", "255"]
    for row in canvas_to_uint8(canvas):
        line = ""
        for value in row.reshape(-1):
            token = str(int(value))
            if not line:
                line = token
            elif len(line) + 1 + len(token) > PPM_LINE_LIMIT:
                lines.append(line)
                line = token
            else:
                line = f"{line} {token}"
        lines.append(line)
    return "\n".join(lines) + "\n"


def save_ppm(canvas: Canvas, filepath: str | Path) -> None:
    """Write a canvas to a plain PPM file."""
    Path(filepath).write_text(canvas_to_ppm(canvas), encoding="ascii")


def save_png(canvas: Canvas, filepath: str | Path) -> None:
    """Write a canvas to an 8-bit RGB PNG file."""
    pil_image = PILImage.fromarray(canvas_to_uint8(canvas))
    pil_image.save(filepath)


def compute_rmse(canvas_a: Canvas, canvas_b: Canvas) -> float:
    """Root mean squared error between two canvases.

    Raises:
        ValueError: If the canvas sizes differ.
    """
    if canvas_a.pixels.shape != canvas_b.pixels.shape:
        raise ValueError(
            f"Canvas sizes must match: {canvas_a.width}x{canvas_a.height} "
            f"vs {canvas_b.width}x{canvas_b.height}"
        )
    diff = canvas_a.pixels.astype(np.float64) - canvas_b.pixels.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
