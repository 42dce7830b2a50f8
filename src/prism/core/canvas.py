"""Canvas: the pixel buffer a render pass writes into.

The canvas is a row-major float32 NumPy array of shape (height, width, 3),
row 0 at the top. Channel values are unclamped linear floats; clamping and
byte conversion belong to the image writer (see ``prism.preview.export``).

Render kernels write whole row bands straight into ``pixels`` through a Taichi
ndarray argument, so every pixel has exactly one writer.
"""

import numpy as np
import numpy.typing as npt

from prism.core.errors import SceneConfigError


class Canvas:
    """A width x height grid of RGB colors, initially black.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        pixels: The (height, width, 3) float32 buffer.
    """

    def __init__(self, width: int, height: int) -> None:
        if width < 1 or height < 1:
            raise SceneConfigError(f"Canvas dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.pixels: npt.NDArray[np.float32] = np.zeros((height, width, 3), dtype=np.float32)

    def pixel_at(self, x: int, y: int) -> tuple[float, float, float]:
        """Return the color at column x, row y."""
        r, g, b = self.pixels[y, x]
        return (float(r), float(g), float(b))

    def write_pixel(self, x: int, y: int, color: tuple[float, float, float]) -> None:
        self.pixels[y, x] = color

    def fill(self, color: tuple[float, float, float]) -> None:
        self.pixels[:, :] = color

    def __repr__(self) -> str:
        return f"Canvas(width={self.width}, height={self.height})"
