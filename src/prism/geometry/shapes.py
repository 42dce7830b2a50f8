"""Closed set of shape kinds and their capability dispatch.

Every shape in a scene is one of the ``ShapeKind`` variants. Instead of a class
per shape, the three capabilities a shape needs (local intersection, local
normal, local bounds) are single functions that switch on the kind. Groups
take part in bounds only; they are traversed, never intersected directly.

Per-kind parameters travel in a vec4:
    CYLINDER: (minimum, maximum, closed, 0)
    others:   unused

Triangle vertex data (p1, e1, e2, normals) is passed explicitly by the caller,
which reads it from the scene arena.
"""

from enum import IntEnum

import numpy as np
import taichi as ti

from prism.core.ray import vec3, vec4
from prism.geometry.bounds import T_INF, BoundingBox
from prism.geometry.cube import cube_normal, intersect_cube
from prism.geometry.cylinder import cylinder_normal, intersect_cylinder
from prism.geometry.plane import intersect_plane, plane_normal
from prism.geometry.sphere import intersect_sphere, sphere_normal
from prism.geometry.triangle import intersect_triangle, smooth_normal


class ShapeKind(IntEnum):
    """Enumeration of supported shape variants."""

    GROUP = 0
    SPHERE = 1
    PLANE = 2
    CUBE = 3
    CYLINDER = 4
    TRIANGLE = 5
    SMOOTH_TRIANGLE = 6


LEAF_KINDS = frozenset(k for k in ShapeKind if k != ShapeKind.GROUP)


@ti.func
def local_intersect(
    kind: ti.i32,
    params: vec4,
    p1: vec3,
    e1: vec3,
    e2: vec3,
    origin: vec3,
    direction: vec3,
):
    """Intersect an object-space ray with a leaf shape.

    Args:
        kind: The ShapeKind of the shape.
        params: Per-kind parameters (see module docstring).
        p1: First triangle vertex (triangles only).
        e1: First triangle edge (triangles only).
        e2: Second triangle edge (triangles only).
        origin: Ray origin in the shape's object space.
        direction: Ray direction in the shape's object space.

    Returns:
        Tuple (count, ts, u, v): the number of roots, up to four t values in
        the first ``count`` slots of ts, and the barycentric pair of a
        triangle hit (zero for other kinds).
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)
    u = 0.0
    v = 0.0

    if kind == int(ShapeKind.SPHERE):
        count, ts = intersect_sphere(origin, direction)
    elif kind == int(ShapeKind.PLANE):
        count, ts = intersect_plane(origin, direction)
    elif kind == int(ShapeKind.CUBE):
        count, ts = intersect_cube(origin, direction)
    elif kind == int(ShapeKind.CYLINDER):
        count, ts = intersect_cylinder(origin, direction, params[0], params[1], ti.cast(params[2], ti.i32))
    elif kind == int(ShapeKind.TRIANGLE) or kind == int(ShapeKind.SMOOTH_TRIANGLE):
        count, ts, u, v = intersect_triangle(origin, direction, p1, e1, e2)

    return count, ts, u, v


@ti.func
def local_normal_at(
    kind: ti.i32,
    params: vec4,
    flat_normal: vec3,
    n1: vec3,
    n2: vec3,
    n3: vec3,
    local_point: vec3,
    u: ti.f32,
    v: ti.f32,
) -> vec3:
    """Object-space surface normal of a leaf shape.

    The result is not necessarily unit length; it is renormalized after the
    transform to world space.
    """
    normal = vec3(0.0, 0.0, 0.0)
    if kind == int(ShapeKind.SPHERE):
        normal = sphere_normal(local_point)
    elif kind == int(ShapeKind.PLANE):
        normal = plane_normal(local_point)
    elif kind == int(ShapeKind.CUBE):
        normal = cube_normal(local_point)
    elif kind == int(ShapeKind.CYLINDER):
        normal = cylinder_normal(local_point, params[0], params[1])
    elif kind == int(ShapeKind.TRIANGLE):
        normal = flat_normal
    elif kind == int(ShapeKind.SMOOTH_TRIANGLE):
        normal = smooth_normal(n1, n2, n3, u, v)
    return normal


def local_bounds(kind: ShapeKind, params=None, vertices=None) -> BoundingBox:
    """Object-space bounding box of a leaf shape.

    Args:
        kind: The shape kind (groups compute their bounds from children).
        params: Per-kind parameters; (minimum, maximum, ...) for cylinders.
        vertices: The three vertices of a triangle.

    Returns:
        The untransformed bounds of the shape.
    """
    if kind in (ShapeKind.SPHERE, ShapeKind.CUBE):
        return BoundingBox.from_corners((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
    if kind == ShapeKind.PLANE:
        return BoundingBox.from_corners((-np.inf, 0.0, -np.inf), (np.inf, 0.0, np.inf))
    if kind == ShapeKind.CYLINDER:
        lo = -np.inf if params[0] <= -T_INF else params[0]
        hi = np.inf if params[1] >= T_INF else params[1]
        return BoundingBox.from_corners((-1.0, lo, -1.0), (1.0, hi, 1.0))
    if kind in (ShapeKind.TRIANGLE, ShapeKind.SMOOTH_TRIANGLE):
        box = BoundingBox()
        for p in vertices:
            box.add_point(p)
        return box
    raise ValueError(f"No local bounds for shape kind {kind!r}")
