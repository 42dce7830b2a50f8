"""Ray data structure and vector utilities for kernel-side ray tracing.

This module provides the Ray dataclass, ray evaluation, and the affine
transform helpers used to move rays between world and object space. All
operations are Taichi functions for use inside kernels.

Rays are transformed without renormalizing the direction, so a t value found
in object space is the same t value in world space.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type aliases for vectors and transforms using Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4
mat4 = tm.mat4


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; t values are measured in multiples of it.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Affine Transforms
# =============================================================================


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    """Apply a 4x4 affine transform to a point (w=1).

    Args:
        m: The transform matrix.
        p: The point to transform.

    Returns:
        The transformed point.
    """
    r = m @ vec4(p.x, p.y, p.z, 1.0)
    return vec3(r[0], r[1], r[2])


@ti.func
def transform_vector(m: mat4, v: vec3) -> vec3:
    """Apply a 4x4 affine transform to a direction (w=0).

    The translation column is ignored, so directions are never translated.
    """
    r = m @ vec4(v.x, v.y, v.z, 0.0)
    return vec3(r[0], r[1], r[2])


@ti.func
def transform_ray(ray: Ray, m: mat4) -> Ray:
    """Transform a ray by a 4x4 matrix.

    The direction is not renormalized so t values are preserved.
    """
    return Ray(origin=transform_point(m, ray.origin), direction=transform_vector(m, ray.direction))


@ti.func
def normal_to_world(inverse: mat4, local_normal: vec3) -> vec3:
    """Map an object-space normal to world space.

    Multiplies by the transpose of the world-to-object matrix (the inverse
    transpose of the object's transform), drops w, and renormalizes.

    Args:
        inverse: The composed world-to-object transform of the shape.
        local_normal: The normal in object space.

    Returns:
        The unit normal in world space.
    """
    n = transform_vector(inverse.transpose(), local_normal)
    return tm.normalize(n)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def schlick(eyev: vec3, normalv: vec3, n1: ti.f32, n2: ti.f32) -> ti.f32:
    """Approximate the Fresnel reflectance with Schlick's formula.

    When light passes from a denser into a thinner medium past the critical
    angle, all of it is reflected and the result is 1.

    Args:
        eyev: Unit vector from the surface toward the eye.
        normalv: Unit surface normal, facing the eye.
        n1: Refractive index of the medium being exited.
        n2: Refractive index of the medium being entered.

    Returns:
        The fraction of light that is reflected, in [0, 1].
    """
    cos = tm.dot(eyev, normalv)
    result = -1.0
    if n1 > n2:
        n = n1 / n2
        sin2_t = n * n * (1.0 - cos * cos)
        if sin2_t > 1.0:
            result = 1.0
        else:
            cos = ti.sqrt(1.0 - sin2_t)
    if result < 0.0:
        r0 = ((n1 - n2) / (n1 + n2)) ** 2
        result = r0 + (1.0 - r0) * ((1.0 - cos) ** 5)
    return result
