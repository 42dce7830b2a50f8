"""Axis-aligned cube primitive spanning [-1, 1] on every axis.

Intersection is the slab method shared with bounding boxes. The normal at a
surface point is the axis of its largest absolute component, which also gives
a sensible answer on edges and corners.
"""

import taichi as ti

from prism.core.ray import vec3, vec4
from prism.geometry.bounds import intersect_slabs


@ti.func
def intersect_cube(origin: vec3, direction: vec3):
    """Intersect an object-space ray with the unit cube.

    Returns:
        Tuple (count, ts) with count 0 or 2; the entry distance precedes the
        exit distance.
    """
    tmin, tmax = intersect_slabs(vec3(-1.0, -1.0, -1.0), vec3(1.0, 1.0, 1.0), origin, direction)
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)
    if tmin <= tmax:
        ts[0] = tmin
        ts[1] = tmax
        count = 2
    return count, ts


@ti.func
def cube_normal(p: vec3) -> vec3:
    ax = ti.abs(p.x)
    ay = ti.abs(p.y)
    az = ti.abs(p.z)
    maxc = ti.max(ax, ti.max(ay, az))

    normal = vec3(0.0, 0.0, p.z)
    if maxc == ax:
        normal = vec3(p.x, 0.0, 0.0)
    elif maxc == ay:
        normal = vec3(0.0, p.y, 0.0)
    return normal
