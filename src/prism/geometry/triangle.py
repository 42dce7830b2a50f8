"""Triangle primitives: flat and smooth (per-vertex normals).

Intersection is Möller–Trumbore on the precomputed edges e1 = p2 - p1 and
e2 = p3 - p1. The barycentric pair (u, v) of the hit is reported alongside t
so a smooth triangle can interpolate its vertex normals later:

    n = n2 * u + n3 * v + n1 * (1 - u - v)

A flat triangle's normal is constant, normalize(cross(e2, e1)), computed on
the host when the triangle is added.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.core.ray import vec3, vec4

# Determinants smaller than this mean the ray is parallel to the triangle
TRIANGLE_EPSILON = 1e-8


def triangle_geometry(p1, p2, p3) -> tuple[npt.NDArray[np.float64], ...]:
    """Precompute edges and the flat normal of a triangle.

    Degenerate (zero-area) triangles are accepted; their normal is zero and
    every ray misses them because the determinant vanishes.

    Returns:
        Tuple (e1, e2, normal) as float64 3-vectors.
    """
    a = np.asarray(p1, dtype=np.float64)[:3]
    e1 = np.asarray(p2, dtype=np.float64)[:3] - a
    e2 = np.asarray(p3, dtype=np.float64)[:3] - a
    n = np.cross(e2, e1)
    length = np.linalg.norm(n)
    if length > 0.0:
        n = n / length
    return e1, e2, n


@ti.func
def intersect_triangle(origin: vec3, direction: vec3, p1: vec3, e1: vec3, e2: vec3):
    """Intersect an object-space ray with a triangle.

    Args:
        origin: Ray origin in object space.
        direction: Ray direction in object space.
        p1: First vertex.
        e1: Edge from p1 to p2.
        e2: Edge from p1 to p3.

    Returns:
        Tuple (count, ts, u, v) with count 0 or 1; u and v are the barycentric
        weights of p2 and p3 at the hit.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)
    u = 0.0
    v = 0.0

    dir_cross_e2 = tm.cross(direction, e2)
    det = tm.dot(e1, dir_cross_e2)
    if ti.abs(det) >= TRIANGLE_EPSILON:
        f = 1.0 / det
        p1_to_origin = origin - p1
        u = f * tm.dot(p1_to_origin, dir_cross_e2)
        if 0.0 <= u and u <= 1.0:
            origin_cross_e1 = tm.cross(p1_to_origin, e1)
            v = f * tm.dot(direction, origin_cross_e1)
            if 0.0 <= v and u + v <= 1.0:
                ts[0] = f * tm.dot(e2, origin_cross_e1)
                count = 1

    return count, ts, u, v


@ti.func
def smooth_normal(n1: vec3, n2: vec3, n3: vec3, u: ti.f32, v: ti.f32) -> vec3:
    """Interpolate vertex normals at barycentric (u, v)."""
    return n2 * u + n3 * v + n1 * (1.0 - u - v)
