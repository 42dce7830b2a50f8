"""Perspective camera with a canvas one unit in front of the eye.

The camera looks down -z in its own space; the image plane sits at z = -1
and spans ``half_width`` to the left and right and ``half_height`` up and
down. The camera transform is a world-to-camera (view) transform, usually
built with ``prism.core.transforms.view_transform``; rays are generated by
mapping camera-space points back to the world with its inverse.

Pixel (0, 0) is the top-left of the canvas. An offset of (0.5, 0.5) within a
pixel is its center; supersampling uses other offsets in [0, 1).

Example:
    >>> import math
    >>> from prism.camera import Camera
    >>> from prism.core.transforms import view_transform
    >>> camera = Camera(201, 101, math.pi / 2)
    >>> origin, direction = camera.ray_for_pixel(100, 50)
    >>> # direction ~ (0, 0, -1)
"""

import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.core.errors import SceneConfigError
from prism.core.ray import Ray, make_ray, transform_point, vec3
from prism.core.transforms import as_matrix, identity, invert


class Camera:
    """A pinhole camera.

    Attributes:
        hsize: Horizontal size of the canvas in pixels.
        vsize: Vertical size of the canvas in pixels.
        field_of_view: Horizontal (or vertical, for portrait canvases) angle
            of view in radians.
        transform: World-to-camera transform.
        half_width: Half the width of the image plane.
        half_height: Half the height of the image plane.
        pixel_size: World-space size of one pixel on the image plane.
    """

    def __init__(self, hsize: int, vsize: int, field_of_view: float, transform=None) -> None:
        if hsize < 1 or vsize < 1:
            raise SceneConfigError(f"Camera size must be positive, got {hsize}x{vsize}")
        if not 0.0 < field_of_view < math.pi:
            raise SceneConfigError(f"field_of_view must be in (0, pi), got {field_of_view}")

        self.hsize = hsize
        self.vsize = vsize
        self.field_of_view = field_of_view
        self.transform = identity() if transform is None else as_matrix(transform)
        self.inverse = invert(self.transform)

        half_view = math.tan(field_of_view / 2.0)
        aspect = hsize / vsize
        if aspect >= 1.0:
            self.half_width = half_view
            self.half_height = half_view / aspect
        else:
            self.half_width = half_view * aspect
            self.half_height = half_view
        self.pixel_size = self.half_width * 2.0 / hsize

    def ray_for_pixel(
        self, px: float, py: float, ox: float = 0.5, oy: float = 0.5
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """World-space ray through a point of a pixel.

        Args:
            px: Pixel column.
            py: Pixel row.
            ox: Horizontal offset within the pixel, 0 to 1.
            oy: Vertical offset within the pixel, 0 to 1.

        Returns:
            Tuple (origin, unit direction) as float64 3-vectors.
        """
        world_x = self.half_width - (px + ox) * self.pixel_size
        world_y = self.half_height - (py + oy) * self.pixel_size

        pixel = self.inverse @ np.array([world_x, world_y, -1.0, 1.0])
        origin = self.inverse @ np.array([0.0, 0.0, 0.0, 1.0])
        direction = pixel[:3] - origin[:3]
        return origin[:3], direction / np.linalg.norm(direction)

    def __repr__(self) -> str:
        return (
            f"Camera(hsize={self.hsize}, vsize={self.vsize}, "
            f"field_of_view={self.field_of_view:.4f})"
        )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_inverse = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
_half_width = ti.field(dtype=ti.f32, shape=())
_half_height = ti.field(dtype=ti.f32, shape=())
_pixel_size = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: Camera) -> None:
    """Copy a camera into the fields read by ray_for_subpixel()."""
    _camera_inverse[None] = camera.inverse.astype(np.float32).tolist()
    _half_width[None] = camera.half_width
    _half_height[None] = camera.half_height
    _pixel_size[None] = camera.pixel_size


@ti.func
def ray_for_subpixel(px: ti.i32, py: ti.i32, ox: ti.f32, oy: ti.f32) -> Ray:
    """Kernel-side counterpart of Camera.ray_for_pixel()."""
    size = _pixel_size[None]
    world_x = _half_width[None] - (ti.cast(px, ti.f32) + ox) * size
    world_y = _half_height[None] - (ti.cast(py, ti.f32) + oy) * size

    inv = _camera_inverse[None]
    pixel = transform_point(inv, vec3(world_x, world_y, -1.0))
    origin = transform_point(inv, vec3(0.0, 0.0, 0.0))
    return make_ray(origin, tm.normalize(pixel - origin))
