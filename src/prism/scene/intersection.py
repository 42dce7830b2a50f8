"""Scene arena storage and kernel-side traversal.

The committed scene graph lives in structure-of-arrays Taichi fields, one slot
per shape node, laid out in depth-first pre-order. Every node carries:

    kind       ShapeKind of the node
    skip       first slot after the node's subtree (slot + 1 for leaves)
    material   material id (leaves)
    inverse    composed world-to-object transform
    params     per-kind parameters (cylinder truncation)
    bounds     object-space AABB (groups)
    triangle   index into the triangle arrays, or -1

Because subtrees are contiguous, traversal needs no stack: a group whose box
the ray misses is skipped by jumping to ``skip``, otherwise traversal steps
into its first child. Every leaf is intersected in its own object space, so
t values are comparable across the whole scene.

Example:
    >>> # inside a kernel, after World.commit()
    >>> hit = intersect_closest(origin, direction, 1)
    >>> if hit.hit == 1:
    ...     normal = normal_at_node(hit.node, origin + hit.t * direction, hit.u, hit.v)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti

from prism.core.ray import normal_to_world, transform_point, transform_vector, vec3
from prism.geometry.bounds import T_INF, intersect_slabs
from prism.geometry.shapes import ShapeKind, local_intersect, local_normal_at
from prism.materials.material import casts_shadow, get_refractive_index


@ti.dataclass
class Hit:
    """Closest intersection along a ray.

    Attributes:
        hit: 1 if any non-negative intersection was found.
        t: Ray parameter of the intersection.
        node: Arena slot of the intersected leaf.
        u: Barycentric u (triangles only).
        v: Barycentric v (triangles only).
    """

    hit: ti.i32
    t: ti.f32
    node: ti.i32
    u: ti.f32
    v: ti.f32


# Maximum number of shape nodes (leaves and groups) in the arena
MAX_NODES = 8192
MAX_TRIANGLES = MAX_NODES

# Capacity of the "all intersections" query buffer
MAX_INTERSECTIONS = 512

# Node storage: Structure of Arrays layout
node_kind = ti.field(dtype=ti.i32, shape=MAX_NODES)
node_skip = ti.field(dtype=ti.i32, shape=MAX_NODES)
node_material = ti.field(dtype=ti.i32, shape=MAX_NODES)
node_inverse = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_NODES)
node_params = ti.Vector.field(4, dtype=ti.f32, shape=MAX_NODES)
node_bounds_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_NODES)
node_bounds_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_NODES)
node_triangle = ti.field(dtype=ti.i32, shape=MAX_NODES)
num_nodes = ti.field(dtype=ti.i32, shape=())

# Triangle storage: vertex p1, edges, flat normal and vertex normals
tri_p1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_e1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_e2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_normal = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_n1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_n2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
tri_n3 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)

# Result buffer for collect_intersections()
xs_t = ti.field(dtype=ti.f32, shape=MAX_INTERSECTIONS)
xs_node = ti.field(dtype=ti.i32, shape=MAX_INTERSECTIONS)
xs_u = ti.field(dtype=ti.f32, shape=MAX_INTERSECTIONS)
xs_v = ti.field(dtype=ti.f32, shape=MAX_INTERSECTIONS)
xs_count = ti.field(dtype=ti.i32, shape=())


def clear_arena() -> None:
    """Remove every node from the arena."""
    num_nodes[None] = 0


def _padded(values: npt.ArrayLike, shape: tuple[int, ...], dtype) -> np.ndarray:
    """Copy values into a zeroed array of the full field shape."""
    out = np.zeros(shape, dtype=dtype)
    arr = np.asarray(values, dtype=dtype)
    if arr.size:
        out[: arr.shape[0]] = arr
    return out


def upload_nodes(
    kinds: npt.ArrayLike,
    skips: npt.ArrayLike,
    materials: npt.ArrayLike,
    inverses: npt.ArrayLike,
    params: npt.ArrayLike,
    bounds_min: npt.ArrayLike,
    bounds_max: npt.ArrayLike,
    triangles: npt.ArrayLike,
) -> None:
    """Upload a flattened arena in one bulk copy per field.

    All arguments are indexed by arena slot and must already be in depth-first
    pre-order.

    Raises:
        RuntimeError: If the arena exceeds MAX_NODES.
    """
    count = len(kinds)
    if count > MAX_NODES:
        raise RuntimeError(f"Maximum number of shape nodes ({MAX_NODES}) exceeded")

    node_kind.from_numpy(_padded(kinds, (MAX_NODES,), np.int32))
    node_skip.from_numpy(_padded(skips, (MAX_NODES,), np.int32))
    node_material.from_numpy(_padded(materials, (MAX_NODES,), np.int32))
    node_inverse.from_numpy(_padded(inverses, (MAX_NODES, 4, 4), np.float32))
    node_params.from_numpy(_padded(params, (MAX_NODES, 4), np.float32))
    node_bounds_min.from_numpy(_padded(bounds_min, (MAX_NODES, 3), np.float32))
    node_bounds_max.from_numpy(_padded(bounds_max, (MAX_NODES, 3), np.float32))
    node_triangle.from_numpy(_padded(triangles, (MAX_NODES,), np.int32))
    num_nodes[None] = count


def upload_triangles(
    p1: npt.ArrayLike,
    e1: npt.ArrayLike,
    e2: npt.ArrayLike,
    normal: npt.ArrayLike,
    n1: npt.ArrayLike,
    n2: npt.ArrayLike,
    n3: npt.ArrayLike,
) -> None:
    """Upload per-triangle data, indexed by the nodes' ``triangle`` entries."""
    count = len(p1)
    if count > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    shape = (MAX_TRIANGLES, 3)
    tri_p1.from_numpy(_padded(p1, shape, np.float32))
    tri_e1.from_numpy(_padded(e1, shape, np.float32))
    tri_e2.from_numpy(_padded(e2, shape, np.float32))
    tri_normal.from_numpy(_padded(normal, shape, np.float32))
    tri_n1.from_numpy(_padded(n1, shape, np.float32))
    tri_n2.from_numpy(_padded(n2, shape, np.float32))
    tri_n3.from_numpy(_padded(n3, shape, np.float32))


def get_node_count() -> int:
    return int(num_nodes[None])


# =============================================================================
# Per-node Helpers
# =============================================================================


@ti.func
def leaf_intersect(i: ti.i32, origin: vec3, direction: vec3):
    """Intersect a world-space ray with leaf slot i.

    Returns:
        Tuple (count, ts, u, v) as from local_intersect().
    """
    inv = node_inverse[i]
    tri = ti.max(node_triangle[i], 0)
    return local_intersect(
        node_kind[i],
        node_params[i],
        tri_p1[tri],
        tri_e1[tri],
        tri_e2[tri],
        transform_point(inv, origin),
        transform_vector(inv, direction),
    )


@ti.func
def group_interval(i: ti.i32, origin: vec3, direction: vec3):
    """Slab-test a world-space ray against the bounds of group slot i."""
    inv = node_inverse[i]
    return intersect_slabs(
        node_bounds_min[i],
        node_bounds_max[i],
        transform_point(inv, origin),
        transform_vector(inv, direction),
    )


@ti.func
def normal_at_node(i: ti.i32, world_point: vec3, u: ti.f32, v: ti.f32) -> vec3:
    """World-space unit normal of leaf slot i at a point on its surface."""
    inv = node_inverse[i]
    tri = ti.max(node_triangle[i], 0)
    local_normal = local_normal_at(
        node_kind[i],
        node_params[i],
        tri_normal[tri],
        tri_n1[tri],
        tri_n2[tri],
        tri_n3[tri],
        transform_point(inv, world_point),
        u,
        v,
    )
    return normal_to_world(inv, local_normal)


# =============================================================================
# Scene Queries
# =============================================================================


@ti.func
def intersect_closest(origin: vec3, direction: vec3, use_bounds: ti.i32) -> Hit:
    """Find the hit: the intersection with the smallest t >= 0.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction.
        use_bounds: 1 to skip groups whose box the ray misses, lies behind,
            or enters beyond the closest hit so far. 0 visits every leaf.

    Returns:
        A Hit record; hit == 0 when nothing lies ahead of the origin.
    """
    found = 0
    best_t = T_INF
    best_node = -1
    best_u = 0.0
    best_v = 0.0

    n = num_nodes[None]
    i = 0
    while i < n:
        nxt = i + 1
        if node_kind[i] == int(ShapeKind.GROUP):
            if use_bounds != 0:
                tmin, tmax = group_interval(i, origin, direction)
                if tmin > tmax or tmax < 0.0 or tmin > best_t:
                    nxt = node_skip[i]
        else:
            count, ts, u, v = leaf_intersect(i, origin, direction)
            for k in ti.static(range(4)):
                if k < count:
                    if ts[k] >= 0.0 and ts[k] < best_t:
                        found = 1
                        best_t = ts[k]
                        best_node = i
                        best_u = u
                        best_v = v
        i = nxt

    return Hit(hit=found, t=best_t, node=best_node, u=best_u, v=best_v)


@ti.func
def occluded(origin: vec3, direction: vec3, max_t: ti.f32) -> ti.i32:
    """Shadow-ray query: is there a shadow-casting surface with 0 <= t < max_t?

    Stops at the first blocker. Surfaces whose material does not cast shadows
    are ignored.
    """
    blocked = 0
    n = num_nodes[None]
    i = 0
    while i < n and blocked == 0:
        nxt = i + 1
        if node_kind[i] == int(ShapeKind.GROUP):
            tmin, tmax = group_interval(i, origin, direction)
            if tmin > tmax or tmax < 0.0 or tmin >= max_t:
                nxt = node_skip[i]
        elif casts_shadow(node_material[i]) != 0:
            count, ts, _, _ = leaf_intersect(i, origin, direction)
            for k in ti.static(range(4)):
                if k < count:
                    if ts[k] >= 0.0 and ts[k] < max_t:
                        blocked = 1
        i = nxt
    return blocked


@ti.func
def collect_intersections(origin: vec3, direction: vec3, start: ti.i32, end: ti.i32, use_bounds: ti.i32):
    """Write every intersection with slots [start, end) into the xs_* buffer.

    Intersections behind the origin are kept. Group pruning here only drops
    groups the ray's line misses entirely, so the set found is the same with
    and without bounds. Results beyond MAX_INTERSECTIONS are dropped and the
    returned total tells the caller so.

    Returns:
        The total number of intersections found (may exceed the buffer).
    """
    total = 0
    i = start
    while i < end:
        nxt = i + 1
        if node_kind[i] == int(ShapeKind.GROUP):
            if use_bounds != 0:
                tmin, tmax = group_interval(i, origin, direction)
                if tmin > tmax:
                    nxt = node_skip[i]
        else:
            count, ts, u, v = leaf_intersect(i, origin, direction)
            for k in ti.static(range(4)):
                if k < count:
                    if total < MAX_INTERSECTIONS:
                        xs_t[total] = ts[k]
                        xs_node[total] = i
                        xs_u[total] = u
                        xs_v[total] = v
                    total += 1
        i = nxt
    xs_count[None] = ti.min(total, MAX_INTERSECTIONS)
    return total


@ti.func
def refractive_indices(origin: vec3, direction: vec3, t_hit: ti.f32, hit_node: ti.i32):
    """Refractive indices on either side of an intersection.

    Equivalent to walking the sorted intersections with a list of containing
    shapes: a shape contains the point just before t_hit when an odd number
    of its intersections lie before t_hit, and the innermost container is the
    one entered last. n1 is the index of the innermost container before the
    hit; n2 is the index after the hit shape is entered or exited. Empty
    space has index 1.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction.
        t_hit: t of the intersection being shaded.
        hit_node: Arena slot of the intersected leaf.

    Returns:
        Tuple (n1, n2).
    """
    n1 = 1.0
    n1_t = -T_INF
    other = 1.0
    other_t = -T_INF
    hit_inside = 0

    n = num_nodes[None]
    i = 0
    while i < n:
        nxt = i + 1
        if node_kind[i] == int(ShapeKind.GROUP):
            tmin, tmax = group_interval(i, origin, direction)
            if tmin > tmax or tmin >= t_hit:
                nxt = node_skip[i]
        else:
            count, ts, _, _ = leaf_intersect(i, origin, direction)
            before = 0
            last_t = -T_INF
            for k in ti.static(range(4)):
                if k < count:
                    if ts[k] < t_hit:
                        before += 1
                        last_t = ti.max(last_t, ts[k])
            if before % 2 == 1:
                ri = get_refractive_index(node_material[i])
                if last_t > n1_t:
                    n1_t = last_t
                    n1 = ri
                if i != hit_node and last_t > other_t:
                    other_t = last_t
                    other = ri
            if i == hit_node:
                hit_inside = before % 2
        i = nxt

    n2 = other
    if hit_inside == 0:
        n2 = get_refractive_index(node_material[hit_node])
    return n1, n2
