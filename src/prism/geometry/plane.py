"""Infinite xz plane primitive.

The plane passes through the object-space origin with normal +y. A ray whose
direction has (almost) no y component is parallel to the plane and misses,
including rays lying in the plane itself.
"""

import taichi as ti

from prism.core.ray import vec3, vec4

# Rays with |direction.y| below this are parallel to the plane
PLANE_EPSILON = 1e-5


@ti.func
def intersect_plane(origin: vec3, direction: vec3):
    """Intersect an object-space ray with the plane y = 0.

    Returns:
        Tuple (count, ts) with count 0 or 1.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)
    if ti.abs(direction.y) >= PLANE_EPSILON:
        ts[0] = -origin.y / direction.y
        count = 1
    return count, ts


@ti.func
def plane_normal(local_point: vec3) -> vec3:
    return vec3(0.0, 1.0, 0.0)
