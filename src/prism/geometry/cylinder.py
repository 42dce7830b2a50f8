"""Cylinder primitive of radius 1 around the object-space y axis.

A cylinder may be truncated to minimum < y < maximum (both exclusive) and,
when truncated, optionally closed with flat caps. Without truncation it
extends to +/-T_INF.

A ray yields up to four intersections: two with the side wall and two with the
caps.
"""

import taichi as ti

from prism.core.ray import vec3, vec4

# Directions closer than this to the y axis miss the wall entirely
CYLINDER_EPSILON = 1e-6

# Tolerance for deciding whether a surface point lies on a cap
CAP_EPSILON = 1e-4


@ti.func
def _push_root(ts: vec4, count: ti.i32, t: ti.f32):
    """Store t in the first free slot of ts."""
    out = ts
    for k in ti.static(range(4)):
        if k == count:
            out[k] = t
    return count + 1, out


@ti.func
def _check_cap(origin: vec3, direction: vec3, t: ti.f32) -> ti.i32:
    x = origin.x + t * direction.x
    z = origin.z + t * direction.z
    return x * x + z * z <= 1.0


@ti.func
def intersect_cylinder(origin: vec3, direction: vec3, minimum: ti.f32, maximum: ti.f32, closed: ti.i32):
    """Intersect an object-space ray with a (possibly truncated) cylinder.

    Args:
        origin: Ray origin in object space.
        direction: Ray direction in object space.
        minimum: Lower truncation height (exclusive).
        maximum: Upper truncation height (exclusive).
        closed: 1 when the ends are capped.

    Returns:
        Tuple (count, ts) with the side hits first, then the cap hits.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)

    a = direction.x * direction.x + direction.z * direction.z
    if ti.abs(a) >= CYLINDER_EPSILON:
        b = 2.0 * origin.x * direction.x + 2.0 * origin.z * direction.z
        c = origin.x * origin.x + origin.z * origin.z - 1.0
        disc = b * b - 4.0 * a * c
        if disc >= 0.0:
            sqrt_d = ti.sqrt(disc)
            t0 = (-b - sqrt_d) / (2.0 * a)
            t1 = (-b + sqrt_d) / (2.0 * a)
            if t0 > t1:
                temp = t0
                t0 = t1
                t1 = temp

            y0 = origin.y + t0 * direction.y
            if minimum < y0 and y0 < maximum:
                count, ts = _push_root(ts, count, t0)

            y1 = origin.y + t1 * direction.y
            if minimum < y1 and y1 < maximum:
                count, ts = _push_root(ts, count, t1)

    if closed != 0 and ti.abs(direction.y) >= CYLINDER_EPSILON:
        t_lo = (minimum - origin.y) / direction.y
        if _check_cap(origin, direction, t_lo):
            count, ts = _push_root(ts, count, t_lo)

        t_hi = (maximum - origin.y) / direction.y
        if _check_cap(origin, direction, t_hi):
            count, ts = _push_root(ts, count, t_hi)

    return count, ts


@ti.func
def cylinder_normal(p: vec3, minimum: ti.f32, maximum: ti.f32) -> vec3:
    dist = p.x * p.x + p.z * p.z
    normal = vec3(p.x, 0.0, p.z)
    if dist < 1.0 and p.y >= maximum - CAP_EPSILON:
        normal = vec3(0.0, 1.0, 0.0)
    elif dist < 1.0 and p.y <= minimum + CAP_EPSILON:
        normal = vec3(0.0, -1.0, 0.0)
    return normal
