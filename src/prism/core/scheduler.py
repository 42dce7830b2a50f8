"""Row-band render scheduler.

The canvas is rendered in bands of ``config.band_rows`` rows, one kernel
launch per band. Inside a band every pixel is one iteration of the kernel's
outermost loop, which Taichi spreads over its CPU thread pool (sized by
``config.workers`` at ``init_taichi``). Each pixel therefore has exactly one
writer, and each in-flight pixel owns one lane of the integrator's work
stack.

Per pixel the scheduler averages an n x n grid of sub-pixel rays, n being
``config.supersampling``. A pixel whose color comes out non-finite is written
black and counted instead of aborting the render.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.core.scheduler import RenderScheduler
    >>> from prism.scene.presets import create_showcase_scene
    >>> world, camera = create_showcase_scene(width=160, height=90)
    >>> scheduler = RenderScheduler(world, camera)
    >>> canvas = scheduler.render()
    >>> for rows_done, total in scheduler.render_progressive():
    ...     print(f"{rows_done}/{total} rows")
"""

import logging
import time
from collections.abc import Callable, Generator

import taichi as ti
import taichi.math as tm

from prism.camera.camera import Camera, ray_for_subpixel, setup_camera
from prism.core.canvas import Canvas
from prism.core.config import RenderConfig
from prism.core.errors import RenderError, SceneConfigError
from prism.core.integrator import MAX_LANES, configure_shading, trace
from prism.lights.light import set_area_light_jitter
from prism.scene.world import World

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]

vec3 = tm.vec3

# Number of non-finite pixels replaced by black in the last band
_fault_count = ti.field(dtype=ti.i32, shape=())
_pixel_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.func
def _shade_pixel(lane: ti.i32, x: ti.i32, y: ti.i32, n: ti.i32, remaining: ti.i32) -> vec3:
    """Mean color of the n x n sub-pixel rays through pixel (x, y)."""
    inv_n = 1.0 / ti.cast(n, ti.f32)
    color = vec3(0.0, 0.0, 0.0)
    for sy in range(n):
        for sx in range(n):
            ox = (ti.cast(sx, ti.f32) + 0.5) * inv_n
            oy = (ti.cast(sy, ti.f32) + 0.5) * inv_n
            ray = ray_for_subpixel(x, y, ox, oy)
            color += trace(lane, ray.origin, ray.direction, remaining)
    return color * (inv_n * inv_n)


@ti.func
def _is_finite(c: vec3) -> ti.i32:
    ok = 1
    for k in ti.static(range(3)):
        if tm.isnan(c[k]) or tm.isinf(c[k]):
            ok = 0
    return ok


@ti.kernel
def _render_rows(
    pixels: ti.types.ndarray(dtype=ti.f32, ndim=3),
    y0: ti.i32,
    y1: ti.i32,
    width: ti.i32,
    n: ti.i32,
    remaining: ti.i32,
):
    for y, x in ti.ndrange((y0, y1), width):
        lane = (y - y0) * width + x
        color = _shade_pixel(lane, x, y, n, remaining)
        if _is_finite(color) == 0:
            color = vec3(0.0, 0.0, 0.0)
            ti.atomic_add(_fault_count[None], 1)
        for c in ti.static(range(3)):
            pixels[y, x, c] = color[c]


@ti.kernel
def _render_one(x: ti.i32, y: ti.i32, n: ti.i32, remaining: ti.i32):
    # Single-iteration outer loop keeps the sub-pixel loops serial
    for _ in range(1):
        _pixel_result[None] = _shade_pixel(0, x, y, n, remaining)


class RenderScheduler:
    """Renders a World through a Camera into a Canvas, band by band.

    Attributes:
        world: The scene to render.
        camera: The camera; its size is the canvas size.
        config: Render settings (depth, supersampling, bands, bias).
        canvas: The canvas of the last render.
        fault_count: Pixels replaced by black in the last render.
    """

    def __init__(self, world: World, camera: Camera, config: RenderConfig | None = None) -> None:
        self.world = world
        self.camera = camera
        self.config = config or world.config
        self.canvas = Canvas(camera.hsize, camera.vsize)
        self.fault_count = 0

    @property
    def band_rows(self) -> int:
        """Rows per kernel launch, capped so every pixel has a stack lane."""
        return max(1, min(self.config.band_rows, MAX_LANES // self.camera.hsize))

    def _prepare(self) -> None:
        """Upload scene, camera and shading settings before the first band.

        Raises:
            SceneConfigError: If the scene or camera cannot be rendered.
        """
        if self.camera.hsize > MAX_LANES:
            raise SceneConfigError(
                f"Canvas width {self.camera.hsize} exceeds the {MAX_LANES} pixels one band can hold"
            )
        if not self.world.lights:
            logger.warning("Scene has no lights; every surface will render black")
        self.world.ensure_committed()
        configure_shading(self.config)
        set_area_light_jitter(self.config.jitter_area_lights)
        setup_camera(self.camera)

    def _restore(self) -> None:
        """Hand the shading settings back to the World's own configuration."""
        configure_shading(self.world.config)
        set_area_light_jitter(self.world.config.jitter_area_lights)

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render the canvas, yielding after each band.

        Yields:
            Tuple of (rows_done, total_rows).

        Raises:
            SceneConfigError: On misconfiguration, before any band runs.
            RenderError: If a kernel launch fails.
        """
        self._prepare()
        self.canvas = Canvas(self.camera.hsize, self.camera.vsize)
        self.fault_count = 0

        width = self.camera.hsize
        height = self.camera.vsize
        rows = self.band_rows
        n = self.config.supersampling
        start = time.perf_counter()

        for y0 in range(0, height, rows):
            y1 = min(y0 + rows, height)
            _fault_count[None] = 0
            try:
                _render_rows(self.canvas.pixels, y0, y1, width, n, self.config.max_depth)
            except RuntimeError as exc:
                self._restore()
                raise RenderError(f"Kernel failed while rendering rows {y0}-{y1 - 1}") from exc

            faults = int(_fault_count[None])
            if faults:
                logger.warning("Rows %d-%d: %d non-finite pixels replaced by black", y0, y1 - 1, faults)
                self.fault_count += faults
            logger.debug("Rendered rows %d-%d of %d", y0, y1 - 1, height)
            yield (y1, height)

        # A progressive render abandoned part way leaves its own settings in place
        self._restore()

        logger.info(
            "Rendered %dx%d (%dx%d samples/pixel, depth %d) in %.2fs",
            width,
            height,
            n,
            n,
            self.config.max_depth,
            time.perf_counter() - start,
        )

    def render(self, callback: ProgressCallback | None = None) -> Canvas:
        """Render the whole canvas.

        Args:
            callback: Optional progress callback called after each band with
                (rows_done, total_rows).

        Returns:
            The rendered canvas.
        """
        for rows_done, total in self.render_progressive():
            if callback is not None:
                callback(rows_done, total)
        return self.canvas

    def shade_pixel(self, x: int, y: int) -> tuple[float, float, float]:
        """Color of a single pixel, computed exactly as render() would."""
        if not (0 <= x < self.camera.hsize and 0 <= y < self.camera.vsize):
            raise SceneConfigError(f"Pixel ({x}, {y}) is outside the {self.camera.hsize}x{self.camera.vsize} canvas")
        self._prepare()
        try:
            _render_one(x, y, self.config.supersampling, self.config.max_depth)
        except RuntimeError as exc:
            raise RenderError(f"Kernel failed while shading pixel ({x}, {y})") from exc
        finally:
            self._restore()
        c = _pixel_result[None]
        return (float(c[0]), float(c[1]), float(c[2]))

    def __repr__(self) -> str:
        return (
            f"RenderScheduler(width={self.camera.hsize}, height={self.camera.vsize}, "
            f"band_rows={self.band_rows}, supersampling={self.config.supersampling})"
        )
