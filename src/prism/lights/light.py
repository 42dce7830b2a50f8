"""Point and area lights and the light registry.

A point light is a position and an intensity. An area light is a rectangle
(corner plus two edge vectors) divided into usteps x vsteps cells; each cell
contributes one shadow-ray sample, so the fraction of unblocked samples gives
soft shadows.

Both kinds share one kernel-side representation: a point light is an area
light with a single cell of zero size at its position. Sample positions are
cell centers by default; with jitter enabled each sample is placed uniformly
at random inside its cell.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.lights.light import AreaLight, PointLight, add_light
    >>> add_light(PointLight(position=(-10.0, 10.0, -10.0), intensity=(1.0, 1.0, 1.0)))
    0
    >>> add_light(AreaLight(corner=(-1, 2, 4), full_uvec=(2, 0, 0), usteps=4,
    ...                     full_vvec=(0, 2, 0), vsteps=2, intensity=(1.5, 1.5, 1.5)))
    1
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from prism.core.errors import SceneConfigError

# Type alias for 3D vectors
vec3 = tm.vec3


class LightKind(IntEnum):
    """Enumeration of supported light variants."""

    POINT = 0
    AREA = 1


@dataclass
class PointLight:
    """A light emitting from a single point.

    Attributes:
        position: World-space position.
        intensity: RGB intensity.
    """

    position: tuple[float, float, float]
    intensity: tuple[float, float, float] = (1.0, 1.0, 1.0)

    @property
    def samples(self) -> int:
        return 1


@dataclass
class AreaLight:
    """A rectangular light sampled on a regular grid of cells.

    Attributes:
        corner: World-space position of one corner of the rectangle.
        full_uvec: Edge vector spanning the whole u side.
        usteps: Number of cells along u.
        full_vvec: Edge vector spanning the whole v side.
        vsteps: Number of cells along v.
        intensity: RGB intensity of the whole light.
    """

    corner: tuple[float, float, float]
    full_uvec: tuple[float, float, float]
    usteps: int
    full_vvec: tuple[float, float, float]
    vsteps: int
    intensity: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        if self.usteps < 1 or self.vsteps < 1:
            raise SceneConfigError(
                f"Area light needs at least one cell per side, got {self.usteps}x{self.vsteps}"
            )

    @property
    def uvec(self) -> np.ndarray:
        """Edge vector of a single cell along u."""
        return np.asarray(self.full_uvec, dtype=np.float64) / self.usteps

    @property
    def vvec(self) -> np.ndarray:
        """Edge vector of a single cell along v."""
        return np.asarray(self.full_vvec, dtype=np.float64) / self.vsteps

    @property
    def samples(self) -> int:
        return self.usteps * self.vsteps

    @property
    def position(self) -> np.ndarray:
        """Center of the rectangle."""
        return (
            np.asarray(self.corner, dtype=np.float64)
            + np.asarray(self.full_uvec, dtype=np.float64) / 2.0
            + np.asarray(self.full_vvec, dtype=np.float64) / 2.0
        )

    def point_on_light(self, u: int, v: int, ju: float = 0.5, jv: float = 0.5) -> np.ndarray:
        """Position of the sample in cell (u, v), offset (ju, jv) within the cell."""
        return np.asarray(self.corner, dtype=np.float64) + self.uvec * (u + ju) + self.vvec * (v + jv)


Light = PointLight | AreaLight


# =============================================================================
# Light Field Storage
# =============================================================================

MAX_LIGHTS = 64

light_kinds = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_corner = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_uvec = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_vvec = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_usteps = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_vsteps = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_intensity = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())

# 1 when area-light samples are jittered inside their cells
jitter_area_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    num_lights[None] = 0


def set_area_light_jitter(enabled: bool) -> None:
    """Switch area-light sampling between cell centers and random jitter."""
    jitter_area_lights[None] = 1 if enabled else 0


def add_light(light: Light) -> int:
    """Add a point or area light to the registry.

    Args:
        light: The light to register.

    Returns:
        The light index.

    Raises:
        SceneConfigError: If the intensity is negative.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    if len(light.intensity) != 3 or any(c < 0.0 for c in light.intensity):
        raise SceneConfigError(f"Light intensity must be a non-negative RGB triple, got {light.intensity}")

    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    if isinstance(light, AreaLight):
        light_kinds[idx] = int(LightKind.AREA)
        light_corner[idx] = vec3(*light.corner)
        light_uvec[idx] = vec3(*light.uvec.tolist())
        light_vvec[idx] = vec3(*light.vvec.tolist())
        light_usteps[idx] = light.usteps
        light_vsteps[idx] = light.vsteps
    else:
        light_kinds[idx] = int(LightKind.POINT)
        light_corner[idx] = vec3(*light.position)
        light_uvec[idx] = vec3(0.0, 0.0, 0.0)
        light_vvec[idx] = vec3(0.0, 0.0, 0.0)
        light_usteps[idx] = 1
        light_vsteps[idx] = 1
    light_intensity[idx] = vec3(*light.intensity)
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    return int(num_lights[None])


@ti.func
def light_samples(light_id: ti.i32) -> ti.i32:
    """Number of shadow samples of a light (1 for point lights)."""
    return light_usteps[light_id] * light_vsteps[light_id]


@ti.func
def point_on_light(light_id: ti.i32, u: ti.i32, v: ti.i32) -> vec3:
    """World-space position of the sample in cell (u, v).

    Cell centers unless jitter is enabled, in which case the offset within
    the cell is uniform random.
    """
    ju = 0.5
    jv = 0.5
    if jitter_area_lights[None] != 0 and light_kinds[light_id] == int(LightKind.AREA):
        ju = ti.random(ti.f32)
        jv = ti.random(ti.f32)
    return (
        light_corner[light_id]
        + light_uvec[light_id] * (ti.cast(u, ti.f32) + ju)
        + light_vvec[light_id] * (ti.cast(v, ti.f32) + jv)
    )


@ti.func
def light_sample(light_id: ti.i32, k: ti.i32) -> vec3:
    """Position of the k-th sample, enumerating cells row by row (u fastest)."""
    usteps = light_usteps[light_id]
    return point_on_light(light_id, k % usteps, k // usteps)
