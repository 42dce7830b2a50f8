"""Whitted-style shading integrator.

This module implements the recursive illumination algorithm: Phong lighting
with hard and soft shadows, mirror reflection, and refraction with Snell's
law, Schlick's approximation and total internal reflection.

Taichi functions cannot recurse, so the recursion is driven by an explicit
work stack. Each entry is a ray, its scalar weight (the product of the
reflective/transparency factors along its path) and its remaining depth.
Popping an entry adds weight * surface color and pushes the reflected and
refracted rays with remaining - 1. The sum is the same as that of the
recursive formulation

    color_at(ray, d) = surface + reflective * color_at(reflected, d - 1)
                               + transparency * color_at(refracted, d - 1)

and terminates because every push strictly decreases the depth. With an
initial depth D the stack never holds more than D + 1 entries.

Each parallel lane (one pixel in flight) owns one row of the stack fields;
host-side queries use lane 0.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.core.config import RenderConfig
    >>> from prism.core.integrator import configure_shading
    >>> configure_shading(RenderConfig(shadow_bias=1e-4))
    >>> # inside a kernel: color = trace(0, origin, direction, 5)
"""

import taichi as ti
import taichi.math as tm

from prism.core.config import MAX_RECURSION_DEPTH, RenderConfig
from prism.core.ray import reflect, schlick
from prism.lights.light import (
    light_intensity,
    light_sample,
    light_samples,
    num_lights,
)
from prism.materials.material import (
    material_ambient,
    material_colors,
    material_diffuse,
    material_pattern,
    material_reflective,
    material_shininess,
    material_specular,
    material_transparency,
)
from prism.materials.patterns import pattern_at_shape
from prism.scene.intersection import (
    Hit,
    intersect_closest,
    node_inverse,
    node_material,
    normal_at_node,
    occluded,
    refractive_indices,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Work stack depth per lane; see module docstring for the bound
STACK_SIZE = MAX_RECURSION_DEPTH + 2

# Maximum number of pixels shaded concurrently by one kernel launch
MAX_LANES = 32768

# =============================================================================
# Shading Configuration
# =============================================================================

_shadow_bias = ti.field(dtype=ti.f32, shape=())
_background = ti.Vector.field(3, dtype=ti.f32, shape=())

# Per-lane work stacks
_stack_origin = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, STACK_SIZE))
_stack_direction = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_LANES, STACK_SIZE))
_stack_weight = ti.field(dtype=ti.f32, shape=(MAX_LANES, STACK_SIZE))
_stack_remaining = ti.field(dtype=ti.i32, shape=(MAX_LANES, STACK_SIZE))


def configure_shading(config: RenderConfig) -> None:
    """Copy the shading-related settings of a RenderConfig into the kernels."""
    _shadow_bias[None] = config.shadow_bias
    bg = config.background
    _background[None] = vec3(bg[0], bg[1], bg[2])


@ti.dataclass
class Computations:
    """Precomputed state of a ray-surface intersection.

    Attributes:
        t: Ray parameter of the intersection.
        node: Arena slot of the intersected leaf.
        point: World-space intersection point.
        over_point: Point nudged along the normal (shadows, reflection).
        under_point: Point nudged against the normal (refraction).
        eyev: Unit vector toward the eye.
        normalv: Unit normal, flipped to face the eye.
        reflectv: Incident direction reflected about the normal.
        inside: 1 if the ray hit the surface from inside.
        n1: Refractive index of the medium being exited.
        n2: Refractive index of the medium being entered.
    """

    t: ti.f32
    node: ti.i32
    point: vec3
    over_point: vec3
    under_point: vec3
    eyev: vec3
    normalv: vec3
    reflectv: vec3
    inside: ti.i32
    n1: ti.f32
    n2: ti.f32


# =============================================================================
# Intersection State
# =============================================================================


@ti.func
def prepare_computations(origin: vec3, direction: vec3, hit: Hit, with_indices: ti.i32) -> Computations:
    """Derive the shading state of an intersection.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction.
        hit: The intersection to prepare (need not be the closest one).
        with_indices: 1 to compute n1/n2 (costs a second scene traversal).

    Returns:
        The Computations record.
    """
    unit_dir = tm.normalize(direction)
    point = origin + hit.t * direction
    eyev = -unit_dir
    normalv = normal_at_node(hit.node, point, hit.u, hit.v)
    inside = 0
    if tm.dot(normalv, eyev) < 0.0:
        inside = 1
        normalv = -normalv

    bias = _shadow_bias[None]
    n1 = 1.0
    n2 = 1.0
    if with_indices != 0:
        n1, n2 = refractive_indices(origin, direction, hit.t, hit.node)

    return Computations(
        t=hit.t,
        node=hit.node,
        point=point,
        over_point=point + normalv * bias,
        under_point=point - normalv * bias,
        eyev=eyev,
        normalv=normalv,
        reflectv=reflect(unit_dir, normalv),
        inside=inside,
        n1=n1,
        n2=n2,
    )


# =============================================================================
# Direct Lighting
# =============================================================================


@ti.func
def is_shadowed(light_position: vec3, point: vec3) -> ti.i32:
    """Whether a shadow-casting surface lies strictly between point and light."""
    v = light_position - point
    distance = tm.length(v)
    result = 0
    if distance > 0.0:
        result = occluded(point, v / distance, distance)
    return result


@ti.func
def intensity_at(light_id: ti.i32, point: vec3) -> ti.f32:
    """Fraction of a light's samples visible from point (0 = fully shadowed)."""
    samples = light_samples(light_id)
    total = 0.0
    for k in range(samples):
        if is_shadowed(light_sample(light_id, k), point) == 0:
            total += 1.0
    return total / ti.cast(samples, ti.f32)


@ti.func
def surface_color(material_id: ti.i32, node: ti.i32, point: vec3) -> vec3:
    """Material color at a world-space point, evaluating the pattern if set.

    ``node`` is the arena slot whose object space the pattern is attached to;
    a negative slot means the point is already in object space.
    """
    color = material_colors[material_id]
    pid = material_pattern[material_id]
    if pid >= 0:
        shape_inverse = ti.Matrix.identity(ti.f32, 4)
        if node >= 0:
            shape_inverse = node_inverse[node]
        color = pattern_at_shape(pid, shape_inverse, point)
    return color


@ti.func
def lighting(
    material_id: ti.i32,
    node: ti.i32,
    light_id: ti.i32,
    point: vec3,
    eyev: vec3,
    normalv: vec3,
    intensity: ti.f32,
) -> vec3:
    """Phong illumination of a point by one light.

    Ambient is always applied. Diffuse and specular are averaged over the
    light's samples (one for a point light) and scaled by the visible
    fraction ``intensity``; a sample facing away from the surface contributes
    neither.

    Args:
        material_id: Material of the surface.
        node: Arena slot of the surface (for pattern lookup), or -1.
        light_id: Index of the light.
        point: World-space surface point.
        eyev: Unit vector toward the eye.
        normalv: Unit surface normal facing the eye.
        intensity: Visible fraction of the light in [0, 1].

    Returns:
        The reflected color.
    """
    color = surface_color(material_id, node, point)
    light_color = light_intensity[light_id]
    effective = color * light_color
    ambient = effective * material_ambient[material_id]

    diffuse_k = material_diffuse[material_id]
    specular_k = material_specular[material_id]
    shininess = material_shininess[material_id]

    total = vec3(0.0, 0.0, 0.0)
    samples = light_samples(light_id)
    for k in range(samples):
        lightv = tm.normalize(light_sample(light_id, k) - point)
        light_dot_normal = tm.dot(lightv, normalv)
        if light_dot_normal >= 0.0:
            total += effective * diffuse_k * light_dot_normal
            reflect_dot_eye = tm.dot(reflect(-lightv, normalv), eyev)
            if reflect_dot_eye > 0.0:
                total += light_color * specular_k * ti.pow(reflect_dot_eye, shininess)

    return ambient + total / ti.cast(samples, ti.f32) * intensity


@ti.func
def shade_surface(comps: Computations) -> vec3:
    """Sum of the Phong contributions of every light, with shadows."""
    material_id = node_material[comps.node]
    color = vec3(0.0, 0.0, 0.0)
    for light_id in range(num_lights[None]):
        fraction = intensity_at(light_id, comps.over_point)
        color += lighting(
            material_id, comps.node, light_id, comps.over_point, comps.eyev, comps.normalv, fraction
        )
    return color


# =============================================================================
# Secondary Rays
# =============================================================================

# What shade_hit evaluates: the full color, or one secondary contribution
SHADE_FULL = 0
SHADE_REFLECTED = 1
SHADE_REFRACTED = 2


@ti.func
def secondary_rays(comps: Computations, split: ti.i32):
    """Weights and directions of the reflected and refracted rays.

    With ``split`` set, a material that is both reflective and transparent
    has the two weights divided by the Schlick reflectance. Under total
    internal reflection the refracted weight is 0.

    Returns:
        Tuple (kr, kt, refract_direction).
    """
    material_id = node_material[comps.node]
    reflective = material_reflective[material_id]
    transparency = material_transparency[material_id]

    kr = reflective
    kt = 0.0
    refract_direction = vec3(0.0, 0.0, 0.0)

    if transparency > 0.0:
        n_ratio = comps.n1 / comps.n2
        cos_i = tm.dot(comps.eyev, comps.normalv)
        sin2_t = n_ratio * n_ratio * (1.0 - cos_i * cos_i)
        if sin2_t <= 1.0:
            cos_t = ti.sqrt(1.0 - sin2_t)
            refract_direction = comps.normalv * (n_ratio * cos_i - cos_t) - comps.eyev * n_ratio
            kt = transparency
        if split != 0 and reflective > 0.0:
            reflectance = schlick(comps.eyev, comps.normalv, comps.n1, comps.n2)
            kr = reflective * reflectance
            kt = kt * (1.0 - reflectance)

    return kr, kt, refract_direction


@ti.func
def _push(lane: ti.i32, sp: ti.i32, origin: vec3, direction: vec3, weight: ti.f32, remaining: ti.i32) -> ti.i32:
    _stack_origin[lane, sp] = origin
    _stack_direction[lane, sp] = direction
    _stack_weight[lane, sp] = weight
    _stack_remaining[lane, sp] = remaining
    return sp + 1


@ti.func
def _push_secondary(
    lane: ti.i32, base: ti.i32, comps: Computations, weight: ti.f32, remaining: ti.i32, mode: ti.template()
) -> ti.i32:
    sp = base
    kr, kt, refract_direction = secondary_rays(comps, ti.static(1 if mode == SHADE_FULL else 0))
    if ti.static(mode != SHADE_REFRACTED):
        if kr > 0.0:
            sp = _push(lane, sp, comps.over_point, comps.reflectv, weight * kr, remaining - 1)
    if ti.static(mode != SHADE_REFLECTED):
        if kt > 0.0:
            sp = _push(lane, sp, comps.under_point, refract_direction, weight * kt, remaining - 1)
    return sp


@ti.func
def _drain(lane: ti.i32, top: ti.i32) -> vec3:
    """Pop and shade stack entries until the lane's stack is empty."""
    sp = top
    color = vec3(0.0, 0.0, 0.0)
    while sp > 0:
        sp -= 1
        o = _stack_origin[lane, sp]
        d = _stack_direction[lane, sp]
        w = _stack_weight[lane, sp]
        rem = _stack_remaining[lane, sp]

        hit = intersect_closest(o, d, 1)
        if hit.hit == 0:
            color += w * _background[None]
        else:
            material_id = node_material[hit.node]
            want_indices = 0
            if rem > 0 and material_transparency[material_id] > 0.0:
                want_indices = 1
            comps = prepare_computations(o, d, hit, want_indices)
            color += w * shade_surface(comps)
            if rem > 0:
                sp = _push_secondary(lane, sp, comps, w, rem, SHADE_FULL)
    return color


@ti.func
def trace(lane: ti.i32, origin: vec3, direction: vec3, remaining: ti.i32) -> vec3:
    """Color seen along a ray, with at most ``remaining`` levels of recursion.

    Args:
        lane: Stack row owned by the caller.
        origin: World-space ray origin.
        direction: World-space ray direction.
        remaining: Recursion budget; 0 shades the first hit only.

    Returns:
        The unclamped color.
    """
    sp = _push(lane, 0, origin, direction, 1.0, remaining)
    return _drain(lane, sp)


@ti.func
def shade_hit(lane: ti.i32, comps: Computations, remaining: ti.i32, mode: ti.template()) -> vec3:
    """Color of a prepared intersection.

    ``mode`` selects what is evaluated, at compile time:

        SHADE_FULL       surface plus reflected and refracted contributions,
                         Schlick-weighted when the material is both
                         reflective and transparent
        SHADE_REFLECTED  reflective * color along the reflected ray
        SHADE_REFRACTED  transparency * color along the refracted ray, black
                         under total internal reflection

    The secondary rays are seeded onto the lane's stack and drained once, so
    a caller inlines a single stack loop whatever the mode.
    """
    color = vec3(0.0, 0.0, 0.0)
    if ti.static(mode == SHADE_FULL):
        color = shade_surface(comps)
    sp = 0
    if remaining > 0:
        sp = _push_secondary(lane, sp, comps, 1.0, remaining, mode)
    return color + _drain(lane, sp)
