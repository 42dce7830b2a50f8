"""Unit sphere primitive with robust ray-sphere intersection.

The sphere is centered at the object-space origin with radius 1; position and
size come from the shape transform. Intersection uses the robust quadratic
formula from Ray Tracing Gems to avoid catastrophic cancellation when b^2 is
nearly equal to 4ac.

Both roots are reported, even when they coincide (tangent ray) or lie behind
the ray origin; choosing the hit is left to the caller.
"""

import taichi as ti
import taichi.math as tm

from prism.core.ray import vec3, vec4


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Ray through the center with the origin on it
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def intersect_sphere(origin: vec3, direction: vec3):
    """Intersect an object-space ray with the unit sphere.

    Solves |origin + t * direction|^2 = 1, written as
    a*t^2 + 2*h*t + c = 0 with

        a = dot(direction, direction)
        h = dot(direction, origin)
        c = dot(origin, origin) - 1

    Args:
        origin: Ray origin in object space.
        direction: Ray direction in object space (any length).

    Returns:
        Tuple (count, ts) where count is 0 or 2 and ts holds the roots in
        ascending order in its first two slots.
    """
    a = tm.dot(direction, direction)
    h = tm.dot(direction, origin)
    c = tm.dot(origin, origin) - 1.0

    discriminant = h * h - a * c

    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)

    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)
        ts[0] = t0
        ts[1] = t1
        count = 2

    return count, ts


@ti.func
def sphere_normal(local_point: vec3) -> vec3:
    """Object-space normal of the unit sphere: the point itself."""
    return local_point
