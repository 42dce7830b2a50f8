"""Procedural color patterns evaluated in pattern space.

A pattern maps a point to a color. Each pattern has its own transform; a
world-space hit point is first taken into the shape's object space and then
into the pattern's space before evaluation, so patterns stick to the objects
they decorate.

Supported kinds:
    SOLID            -> a everywhere
    STRIPE           -> alternates a/b with floor(x)
    GRADIENT         -> blends a to b along x, repeating every unit
    RING             -> alternates a/b with floor(sqrt(x^2 + z^2))
    CHECKER          -> alternates a/b with floor(x) + floor(y) + floor(z)
    RADIAL_GRADIENT  -> blends a to b with the distance from the y axis
"""

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.core.errors import SceneConfigError
from prism.core.ray import mat4, transform_point
from prism.core.transforms import identity, invert

# Type alias for 3D vectors
vec3 = tm.vec3


class PatternKind(IntEnum):
    """Enumeration of supported pattern variants."""

    SOLID = 0
    STRIPE = 1
    GRADIENT = 2
    RING = 3
    CHECKER = 4
    RADIAL_GRADIENT = 5


@dataclass
class Pattern:
    """A two-color procedural pattern.

    Attributes:
        kind: Which pattern function to evaluate.
        a: First color.
        b: Second color (ignored by SOLID).
        transform: Object-to-pattern space transform (4x4).
    """

    kind: PatternKind
    a: tuple[float, float, float]
    b: tuple[float, float, float] = (0.0, 0.0, 0.0)
    transform: npt.NDArray[np.float64] = field(default_factory=identity)

    def validate(self) -> None:
        for name in ("a", "b"):
            color = getattr(self, name)
            if len(color) != 3 or any(c < 0.0 for c in color):
                raise SceneConfigError(f"Pattern color {name} must be a non-negative RGB triple, got {color}")


# =============================================================================
# Pattern Field Storage
# =============================================================================

MAX_PATTERNS = 256

pattern_kinds = ti.field(dtype=ti.i32, shape=MAX_PATTERNS)
pattern_color_a = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATTERNS)
pattern_color_b = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATTERNS)
pattern_inverse = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_PATTERNS)
num_patterns = ti.field(dtype=ti.i32, shape=())


def clear_patterns() -> None:
    num_patterns[None] = 0


def add_pattern(pattern: Pattern) -> int:
    """Validate a pattern and add it to the registry.

    Args:
        pattern: The pattern to register.

    Returns:
        The pattern id, to be referenced by ``Material.pattern``.

    Raises:
        SceneConfigError: If a color is negative or the transform is singular.
        RuntimeError: If the maximum number of patterns is exceeded.
    """
    pattern.validate()
    inverse = invert(pattern.transform)

    idx = num_patterns[None]
    if idx >= MAX_PATTERNS:
        raise RuntimeError(f"Maximum number of patterns ({MAX_PATTERNS}) exceeded")

    pattern_kinds[idx] = int(pattern.kind)
    pattern_color_a[idx] = vec3(*pattern.a)
    pattern_color_b[idx] = vec3(*pattern.b)
    pattern_inverse[idx] = inverse.astype(np.float32).tolist()
    num_patterns[None] = idx + 1
    return idx


def get_pattern_count() -> int:
    return int(num_patterns[None])


@ti.func
def _is_even(s: ti.f32) -> ti.i32:
    """Parity of an integral float, correct for negative values."""
    return s - 2.0 * ti.floor(s * 0.5) < 0.5


@ti.func
def pattern_at(pattern_id: ti.i32, p: vec3) -> vec3:
    """Evaluate a pattern at a point given in pattern space.

    Args:
        pattern_id: Id of a registered pattern.
        p: The point in the pattern's own space.

    Returns:
        The pattern color at p.
    """
    kind = pattern_kinds[pattern_id]
    a = pattern_color_a[pattern_id]
    b = pattern_color_b[pattern_id]

    color = a
    if kind == int(PatternKind.STRIPE):
        if not _is_even(ti.floor(p.x)):
            color = b
    elif kind == int(PatternKind.GRADIENT):
        color = a + (b - a) * (p.x - ti.floor(p.x))
    elif kind == int(PatternKind.RING):
        if not _is_even(ti.floor(ti.sqrt(p.x * p.x + p.z * p.z))):
            color = b
    elif kind == int(PatternKind.CHECKER):
        if not _is_even(ti.floor(p.x) + ti.floor(p.y) + ti.floor(p.z)):
            color = b
    elif kind == int(PatternKind.RADIAL_GRADIENT):
        r = ti.sqrt(p.x * p.x + p.z * p.z)
        color = a + (b - a) * (r - ti.floor(r))
    return color


@ti.func
def pattern_at_shape(pattern_id: ti.i32, shape_inverse: mat4, world_point: vec3) -> vec3:
    """Evaluate a pattern at a world-space point on a shape.

    The point is taken into the shape's object space by ``shape_inverse`` and
    then into pattern space by the pattern's own inverse transform.
    """
    object_point = transform_point(shape_inverse, world_point)
    return pattern_at(pattern_id, transform_point(pattern_inverse[pattern_id], object_point))
