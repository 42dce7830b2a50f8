"""Axis-aligned bounding boxes.

Boxes are built on the host with NumPy while the scene is committed, and
tested in kernels with the slab method. The same slab routine serves the cube
primitive (box [-1, 1]^3) and group pruning (the group's box in its own
object space).

Unbounded extents (planes, open cylinders) are stored as +/-T_INF rather than
IEEE infinity so that transforming a box never produces NaN.
"""

import itertools
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import taichi as ti

from prism.core.ray import vec3

# Stand-in for infinity in float32 kernels and uploaded bounds
T_INF = 1e30

# Directions with a component smaller than this are parallel to that slab
PARALLEL_EPSILON = 1e-12


def _vec(values) -> npt.NDArray[np.float64]:
    return np.asarray(values, dtype=np.float64)


@dataclass
class BoundingBox:
    """An axis-aligned box described by its minimum and maximum corners.

    A freshly created box is empty (min = +inf, max = -inf) and grows as
    points and boxes are added.
    """

    minimum: npt.NDArray[np.float64] = field(default_factory=lambda: np.full(3, np.inf))
    maximum: npt.NDArray[np.float64] = field(default_factory=lambda: np.full(3, -np.inf))

    @classmethod
    def from_corners(cls, minimum, maximum) -> "BoundingBox":
        return cls(_vec(minimum).copy(), _vec(maximum).copy())

    @classmethod
    def infinite(cls) -> "BoundingBox":
        return cls(np.full(3, -np.inf), np.full(3, np.inf))

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.minimum > self.maximum))

    def add_point(self, p) -> None:
        p = _vec(p)[:3]
        self.minimum = np.minimum(self.minimum, p)
        self.maximum = np.maximum(self.maximum, p)

    def merge(self, other: "BoundingBox") -> None:
        """Grow this box to enclose ``other``."""
        if other.is_empty:
            return
        self.add_point(other.minimum)
        self.add_point(other.maximum)

    def contains_point(self, p) -> bool:
        p = _vec(p)[:3]
        return bool(np.all(self.minimum <= p) and np.all(p <= self.maximum))

    def contains_box(self, other: "BoundingBox") -> bool:
        return self.contains_point(other.minimum) and self.contains_point(other.maximum)

    def transform(self, matrix) -> "BoundingBox":
        """Return the box enclosing this box after an affine transform.

        All eight corners are transformed and re-boxed. Any non-finite result
        (an unbounded box under rotation) yields an infinite box.
        """
        if self.is_empty:
            return BoundingBox()
        if not (np.all(np.isfinite(self.minimum)) and np.all(np.isfinite(self.maximum))):
            return self._transform_unbounded(_vec(matrix))

        m = _vec(matrix)
        result = BoundingBox()
        for corner in itertools.product(*zip(self.minimum, self.maximum)):
            result.add_point(m @ np.array([*corner, 1.0]))
        return result

    def _transform_unbounded(self, m: npt.NDArray[np.float64]) -> "BoundingBox":
        # Axis-permuting transforms (translation, scaling, axis swaps) keep
        # unbounded axes unbounded and finite axes finite; anything else
        # spreads infinity to every axis.
        linear = m[:3, :3]
        if np.count_nonzero(linear) != 3 or np.any(np.count_nonzero(linear, axis=0) != 1):
            return BoundingBox.infinite()
        lo = np.empty(3)
        hi = np.empty(3)
        for col in range(3):
            row = int(np.flatnonzero(linear[:, col])[0])
            scale = linear[row, col]
            a = self.minimum[col] * scale
            b = self.maximum[col] * scale
            lo[row] = min(a, b) + m[row, 3]
            hi[row] = max(a, b) + m[row, 3]
        return BoundingBox(lo, hi)

    def split(self) -> "tuple[BoundingBox, BoundingBox]":
        """Split the box in half along its largest axis."""
        extent = self.maximum - self.minimum
        axis = int(np.argmax(extent))
        mid = self.minimum[axis] + extent[axis] / 2.0

        left_max = self.maximum.copy()
        left_max[axis] = mid
        right_min = self.minimum.copy()
        right_min[axis] = mid
        return (
            BoundingBox(self.minimum.copy(), left_max),
            BoundingBox(right_min, self.maximum.copy()),
        )

    def clipped(self) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
        """Corners as float32 with infinities replaced by +/-T_INF for upload."""
        lo = np.clip(self.minimum, -T_INF, T_INF).astype(np.float32)
        hi = np.clip(self.maximum, -T_INF, T_INF).astype(np.float32)
        return lo, hi


# =============================================================================
# Slab Test (Taichi-compatible)
# =============================================================================


@ti.func
def intersect_slabs(bmin: vec3, bmax: vec3, origin: vec3, direction: vec3):
    """Intersect a ray with an axis-aligned box using the slab method.

    For each axis the entry and exit distances against the two planes are
    computed and the running [tmin, tmax] interval is narrowed. An axis the
    ray is parallel to either contains the origin (no constraint) or empties
    the interval; no division by zero takes place.

    Args:
        bmin: Minimum corner of the box.
        bmax: Maximum corner of the box.
        origin: Ray origin in the box's space.
        direction: Ray direction in the box's space.

    Returns:
        Tuple (tmin, tmax). The ray misses when tmin > tmax. Both values may
        be negative when the box lies behind the origin.
    """
    tmin = -T_INF
    tmax = T_INF
    for a in ti.static(range(3)):
        if ti.abs(direction[a]) < PARALLEL_EPSILON:
            if origin[a] < bmin[a] or origin[a] > bmax[a]:
                tmin = T_INF
                tmax = -T_INF
        else:
            inv = 1.0 / direction[a]
            t0 = (bmin[a] - origin[a]) * inv
            t1 = (bmax[a] - origin[a]) * inv
            if t0 > t1:
                temp = t0
                t0 = t1
                t1 = temp
            tmin = ti.max(tmin, t0)
            tmax = ti.min(tmax, t1)
    return tmin, tmax
