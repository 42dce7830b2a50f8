"""World: the host-side scene builder and query API.

The World owns every registry a render reads from: materials, patterns,
lights and the shape graph. Shapes are added with integer handles; a group
holds an ordered list of child handles and every shape carries its own
transform relative to its parent.

The shape graph is edited on the host and flattened into the kernel arena by
``commit()``: nodes are laid out in depth-first pre-order, each with its
composed world-to-object inverse and, for groups, a padded local bounding
box. Queries commit automatically when the scene changed since the last
commit.

The registries are module-level Taichi fields, so only one World is live at
a time; creating a World clears them.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.core.transforms import scaling, translation
    >>> from prism.materials import Material
    >>> from prism.scene.world import World
    >>> world = World()
    >>> red = world.add_material(Material(color=(0.8, 0.1, 0.1)))
    >>> world.add_point_light(position=(-10, 10, -10))
    0
    >>> ball = world.add_sphere(transform=translation(0, 1, 0), material=red)
    >>> world.color_at((0, 1, -5), (0, 0, 1))
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti

from prism.core.config import MAX_RECURSION_DEPTH, RenderConfig
from prism.core.errors import SceneConfigError
from prism.core.integrator import (
    SHADE_FULL,
    SHADE_REFLECTED,
    SHADE_REFRACTED,
    configure_shading,
    intensity_at,
    is_shadowed,
    lighting,
    prepare_computations,
    shade_hit,
    trace,
)
from prism.core.ray import schlick
from prism.core.transforms import as_matrix, identity, invert
from prism.geometry.bounds import T_INF, BoundingBox
from prism.geometry.shapes import LEAF_KINDS, ShapeKind, local_bounds
from prism.geometry.triangle import triangle_geometry
from prism.lights.light import (
    AreaLight,
    Light,
    PointLight,
    add_light,
    clear_lights,
    set_area_light_jitter,
)
from prism.materials.material import Material, add_material, clear_materials
from prism.materials.patterns import Pattern, add_pattern, clear_patterns
from prism.scene.intersection import (
    MAX_INTERSECTIONS,
    Hit,
    clear_arena,
    collect_intersections,
    normal_at_node,
    upload_nodes,
    upload_triangles,
    xs_count,
    xs_node,
    xs_t,
    xs_u,
    xs_v,
)

logger = logging.getLogger(__name__)

# Group boxes are grown by this relative margin before upload so float32
# rounding in the slab test never rejects a grazing hit on a child
BOUNDS_PADDING = 1e-4


@dataclass
class ShapeInfo:
    """Host-side record of a shape node.

    Attributes:
        kind: The shape kind.
        transform: Object-to-parent transform (4x4).
        material: Material id (unused by groups).
        parent: Handle of the enclosing group, or None for a top-level shape.
        children: Ordered child handles (groups only).
        params: Per-kind parameters (cylinder minimum, maximum, closed).
        vertices: The three vertices (triangles only).
        normals: The three vertex normals (smooth triangles only).
    """

    kind: ShapeKind
    transform: npt.NDArray[np.float64]
    material: int = 0
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    params: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    vertices: npt.NDArray[np.float64] | None = None
    normals: npt.NDArray[np.float64] | None = None


@dataclass
class Intersection:
    """A ray-shape intersection returned by host queries.

    Attributes:
        t: Ray parameter; negative when the shape lies behind the origin.
        shape: Handle of the intersected leaf.
        u: Barycentric u (triangles only).
        v: Barycentric v (triangles only).
    """

    t: float
    shape: int
    u: float = 0.0
    v: float = 0.0


def hit(xs: Sequence[Intersection]) -> Intersection | None:
    """Return the intersection with the smallest non-negative t, or None."""
    visible = [x for x in xs if x.t >= 0.0]
    if not visible:
        return None
    return min(visible, key=lambda x: x.t)


@dataclass
class Computations:
    """Host copy of the shading state of one intersection."""

    t: float
    shape: int
    point: tuple[float, float, float]
    over_point: tuple[float, float, float]
    under_point: tuple[float, float, float]
    eyev: tuple[float, float, float]
    normalv: tuple[float, float, float]
    reflectv: tuple[float, float, float]
    inside: bool
    n1: float
    n2: float
    reflectance: float


# =============================================================================
# Query Kernels
# =============================================================================

# Inputs and outputs of the host query kernels
_q_in = ti.Vector.field(3, dtype=ti.f32, shape=4)
_q_vec = ti.Vector.field(3, dtype=ti.f32, shape=8)
_q_scalar = ti.field(dtype=ti.f32, shape=4)
_q_int = ti.field(dtype=ti.i32, shape=4)

# Each query kernel wraps its body in a single-iteration loop so that loops
# inside the called functions are not the outermost (parallel) loop.


@ti.kernel
def _k_intersect(start: ti.i32, end: ti.i32, use_bounds: ti.i32):
    for _ in range(1):
        _q_int[0] = collect_intersections(_q_in[0], _q_in[1], start, end, use_bounds)


@ti.kernel
def _k_normal_at(slot: ti.i32, u: ti.f32, v: ti.f32):
    for _ in range(1):
        _q_vec[0] = normal_at_node(slot, _q_in[0], u, v)


@ti.kernel
def _k_is_shadowed():
    for _ in range(1):
        _q_int[0] = is_shadowed(_q_in[0], _q_in[1])


@ti.kernel
def _k_intensity_at(light_id: ti.i32):
    for _ in range(1):
        _q_scalar[0] = intensity_at(light_id, _q_in[0])


@ti.kernel
def _k_lighting(material_id: ti.i32, slot: ti.i32, light_id: ti.i32, intensity: ti.f32):
    for _ in range(1):
        _q_vec[0] = lighting(material_id, slot, light_id, _q_in[0], _q_in[1], _q_in[2], intensity)


@ti.kernel
def _k_prepare(t: ti.f32, slot: ti.i32, u: ti.f32, v: ti.f32):
    for _ in range(1):
        comps = prepare_computations(_q_in[0], _q_in[1], Hit(hit=1, t=t, node=slot, u=u, v=v), 1)
        _q_vec[0] = comps.point
        _q_vec[1] = comps.over_point
        _q_vec[2] = comps.under_point
        _q_vec[3] = comps.eyev
        _q_vec[4] = comps.normalv
        _q_vec[5] = comps.reflectv
        _q_int[0] = comps.inside
        _q_scalar[0] = comps.n1
        _q_scalar[1] = comps.n2
        _q_scalar[2] = schlick(comps.eyev, comps.normalv, comps.n1, comps.n2)


@ti.kernel
def _k_shade(mode: ti.template(), t: ti.f32, slot: ti.i32, u: ti.f32, v: ti.f32, remaining: ti.i32):
    # One compiled instance per mode
    for _ in range(1):
        comps = prepare_computations(_q_in[0], _q_in[1], Hit(hit=1, t=t, node=slot, u=u, v=v), 1)
        _q_vec[0] = shade_hit(0, comps, remaining, mode)


@ti.kernel
def _k_color_at(remaining: ti.i32):
    for _ in range(1):
        _q_vec[0] = trace(0, _q_in[0], _q_in[1], remaining)


def _as_tuple(v) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def _set_inputs(*vectors) -> None:
    for i, vec in enumerate(vectors):
        _q_in[i] = [float(c) for c in vec[:3]]


# =============================================================================
# World
# =============================================================================


class World:
    """A scene: materials, patterns, lights and a graph of shapes.

    Material 0 is a default ``Material()`` registered on construction, so
    shapes added without a material are white plastic.

    Attributes:
        config: Render configuration (shadow bias, background, depth).
        materials: Registered materials, indexed by material id.
        patterns: Registered patterns, indexed by pattern id.
        lights: Registered lights, in shading order.
        shapes: Shape records, indexed by handle.
        roots: Handles of top-level shapes, in insertion order.
    """

    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()
        self.materials: list[Material] = []
        self.patterns: list[Pattern] = []
        self.lights: list[Light] = []
        self.shapes: list[ShapeInfo] = []
        self.roots: list[int] = []

        self._slot_of: dict[int, int] = {}
        self._handle_of: list[int] = []
        self._skip: list[int] = []
        self._dirty = True

        self.clear()

    def clear(self) -> None:
        """Reset every registry and re-register the default material."""
        clear_arena()
        clear_materials()
        clear_patterns()
        clear_lights()
        self.materials.clear()
        self.patterns.clear()
        self.lights.clear()
        self.shapes.clear()
        self.roots.clear()
        self._slot_of = {}
        self._handle_of = []
        self._skip = []
        self._dirty = True

        configure_shading(self.config)
        set_area_light_jitter(self.config.jitter_area_lights)
        self.add_material(Material())

    # =========================================================================
    # Materials, Patterns and Lights
    # =========================================================================

    def add_pattern(self, pattern: Pattern) -> int:
        """Register a pattern and return its id.

        Raises:
            SceneConfigError: If a color is negative or the transform singular.
        """
        pid = add_pattern(pattern)
        self.patterns.append(pattern)
        return pid

    def add_material(self, material: Material) -> int:
        """Register a material and return its id.

        Raises:
            SceneConfigError: If a parameter is out of range or the pattern id
                is not registered.
        """
        if material.pattern is not None and not 0 <= material.pattern < len(self.patterns):
            raise SceneConfigError(f"Material references unknown pattern {material.pattern}")
        mid = add_material(material)
        self.materials.append(material)
        return mid

    def add_light(self, light: Light) -> int:
        """Register a point or area light and return its index."""
        index = add_light(light)
        self.lights.append(light)
        return index

    def add_point_light(
        self,
        position: tuple[float, float, float],
        intensity: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> int:
        return self.add_light(PointLight(position=tuple(position), intensity=tuple(intensity)))

    def add_area_light(
        self,
        corner: tuple[float, float, float],
        full_uvec: tuple[float, float, float],
        usteps: int,
        full_vvec: tuple[float, float, float],
        vsteps: int,
        intensity: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> int:
        return self.add_light(
            AreaLight(
                corner=tuple(corner),
                full_uvec=tuple(full_uvec),
                usteps=usteps,
                full_vvec=tuple(full_vvec),
                vsteps=vsteps,
                intensity=tuple(intensity),
            )
        )

    # =========================================================================
    # Shapes
    # =========================================================================

    def _add_shape(
        self,
        kind: ShapeKind,
        transform,
        material: int,
        parent: int | None,
        **extra: Any,
    ) -> int:
        if not 0 <= material < len(self.materials):
            raise SceneConfigError(f"Unknown material id {material}")
        if parent is not None:
            if not 0 <= parent < len(self.shapes) or self.shapes[parent].kind != ShapeKind.GROUP:
                raise SceneConfigError(f"Parent {parent} is not a group")

        matrix = identity() if transform is None else as_matrix(transform)
        invert(matrix)

        handle = len(self.shapes)
        self.shapes.append(ShapeInfo(kind=kind, transform=matrix, material=material, parent=parent, **extra))
        if parent is None:
            self.roots.append(handle)
        else:
            self.shapes[parent].children.append(handle)
        self._dirty = True
        return handle

    def add_sphere(self, transform=None, material: int = 0, parent: int | None = None) -> int:
        """Add a unit sphere centered at the origin of its object space."""
        return self._add_shape(ShapeKind.SPHERE, transform, material, parent)

    def add_plane(self, transform=None, material: int = 0, parent: int | None = None) -> int:
        """Add the infinite xz plane (y = 0 in object space)."""
        return self._add_shape(ShapeKind.PLANE, transform, material, parent)

    def add_cube(self, transform=None, material: int = 0, parent: int | None = None) -> int:
        """Add the axis-aligned cube spanning [-1, 1] on every axis."""
        return self._add_shape(ShapeKind.CUBE, transform, material, parent)

    def add_cylinder(
        self,
        minimum: float = -np.inf,
        maximum: float = np.inf,
        closed: bool = False,
        transform=None,
        material: int = 0,
        parent: int | None = None,
    ) -> int:
        """Add a radius-1 cylinder around the y axis.

        Args:
            minimum: Lower truncation in y (exclusive).
            maximum: Upper truncation in y (exclusive).
            closed: Whether the truncated ends are capped.

        Raises:
            SceneConfigError: If minimum exceeds maximum.
        """
        if minimum > maximum:
            raise SceneConfigError(f"Cylinder minimum {minimum} exceeds maximum {maximum}")
        params = (
            float(max(minimum, -T_INF)),
            float(min(maximum, T_INF)),
            1.0 if closed else 0.0,
            0.0,
        )
        return self._add_shape(ShapeKind.CYLINDER, transform, material, parent, params=params)

    def add_triangle(
        self,
        p1: tuple[float, float, float],
        p2: tuple[float, float, float],
        p3: tuple[float, float, float],
        transform=None,
        material: int = 0,
        parent: int | None = None,
    ) -> int:
        vertices = np.array([p1, p2, p3], dtype=np.float64)[:, :3]
        return self._add_shape(ShapeKind.TRIANGLE, transform, material, parent, vertices=vertices)

    def add_smooth_triangle(
        self,
        p1: tuple[float, float, float],
        p2: tuple[float, float, float],
        p3: tuple[float, float, float],
        n1: tuple[float, float, float],
        n2: tuple[float, float, float],
        n3: tuple[float, float, float],
        transform=None,
        material: int = 0,
        parent: int | None = None,
    ) -> int:
        """Add a triangle whose normal is interpolated from vertex normals."""
        vertices = np.array([p1, p2, p3], dtype=np.float64)[:, :3]
        normals = np.array([n1, n2, n3], dtype=np.float64)[:, :3]
        return self._add_shape(
            ShapeKind.SMOOTH_TRIANGLE, transform, material, parent, vertices=vertices, normals=normals
        )

    def add_group(self, transform=None, parent: int | None = None) -> int:
        """Add an empty group; children are attached by passing it as parent."""
        return self._add_shape(ShapeKind.GROUP, transform, 0, parent)

    def add_mesh(
        self,
        triangles: Sequence[Sequence[Sequence[float]]],
        normals: Sequence[Sequence[Sequence[float]]] | None = None,
        transform=None,
        material: int = 0,
        parent: int | None = None,
    ) -> int:
        """Add a group of triangles sharing one material.

        Args:
            triangles: Vertex triples, one per face.
            normals: Optional vertex-normal triples, one per face; when given
                the faces are smooth triangles.
            transform: Transform of the enclosing group.
            material: Material id of every face.
            parent: Group to attach the mesh group to.

        Returns:
            Handle of the new group.

        Raises:
            SceneConfigError: If normals do not match the faces one to one.
        """
        if normals is not None and len(normals) != len(triangles):
            raise SceneConfigError(
                f"Mesh has {len(triangles)} faces but {len(normals)} normal triples"
            )
        group = self.add_group(transform=transform, parent=parent)
        for i, (p1, p2, p3) in enumerate(triangles):
            if normals is None:
                self.add_triangle(p1, p2, p3, material=material, parent=group)
            else:
                n1, n2, n3 = normals[i]
                self.add_smooth_triangle(p1, p2, p3, n1, n2, n3, material=material, parent=group)
        return group

    def _check_handle(self, handle: int) -> ShapeInfo:
        if not 0 <= handle < len(self.shapes):
            raise SceneConfigError(f"Unknown shape handle {handle}")
        return self.shapes[handle]

    # =========================================================================
    # Bounds and Subdivision
    # =========================================================================

    def local_bounds_of(self, handle: int) -> BoundingBox:
        """Bounds of a shape in its own object space."""
        shape = self._check_handle(handle)
        if shape.kind == ShapeKind.GROUP:
            box = BoundingBox()
            for child in shape.children:
                box.merge(self.bounds_of(child))
            return box
        return local_bounds(shape.kind, params=shape.params, vertices=shape.vertices)

    def bounds_of(self, handle: int) -> BoundingBox:
        """Bounds of a shape in its parent's space."""
        return self.local_bounds_of(handle).transform(self.shapes[handle].transform)

    def divide(self, threshold: int, group: int | None = None) -> None:
        """Subdivide groups into a bounding-volume hierarchy.

        A group with at least ``threshold`` children splits its box in half
        along the largest axis; children that fit entirely in one half move
        into a new subgroup for that half. The same is then applied to every
        child. Unbounded groups are not split, but their children are.

        Args:
            threshold: Minimum child count for a group to be split.
            group: Shape to subdivide; every top-level shape when None.
        """
        if threshold < 1:
            raise SceneConfigError(f"divide threshold must be positive, got {threshold}")
        targets = list(self.roots) if group is None else [group]
        for handle in targets:
            self._divide(handle, threshold)
        self._dirty = True

    def _divide(self, handle: int, threshold: int) -> None:
        shape = self._check_handle(handle)
        if shape.kind != ShapeKind.GROUP:
            return
        if threshold <= len(shape.children):
            left, right = self._partition_children(handle)
            if left:
                self._make_subgroup(handle, left)
            if right:
                self._make_subgroup(handle, right)
        for child in list(shape.children):
            self._divide(child, threshold)

    def _partition_children(self, handle: int) -> tuple[list[int], list[int]]:
        shape = self.shapes[handle]
        box = self.local_bounds_of(handle)
        if box.is_empty or not (np.all(np.isfinite(box.minimum)) and np.all(np.isfinite(box.maximum))):
            return [], []

        left_box, right_box = box.split()
        left: list[int] = []
        right: list[int] = []
        for child in shape.children:
            child_box = self.bounds_of(child)
            if left_box.contains_box(child_box):
                left.append(child)
            elif right_box.contains_box(child_box):
                right.append(child)
        # Children that all fall in one half (coincident boxes) would be
        # regrouped forever
        if len(left) == len(shape.children) or len(right) == len(shape.children):
            return [], []
        moved = set(left) | set(right)
        shape.children = [c for c in shape.children if c not in moved]
        return left, right

    def _make_subgroup(self, handle: int, children: list[int]) -> int:
        sub = self.add_group(parent=handle)
        for child in children:
            self.shapes[child].parent = sub
        self.shapes[sub].children = list(children)
        return sub

    # =========================================================================
    # Commit
    # =========================================================================

    def commit(self) -> None:
        """Flatten the shape graph into the kernel arena and upload it.

        Raises:
            RuntimeError: If the arena capacity is exceeded.
        """
        nodes: dict[str, list] = {
            "kinds": [],
            "skips": [],
            "materials": [],
            "inverses": [],
            "params": [],
            "bounds_min": [],
            "bounds_max": [],
            "triangles": [],
        }
        tris: dict[str, list] = {k: [] for k in ("p1", "e1", "e2", "normal", "n1", "n2", "n3")}
        slot_of: dict[int, int] = {}
        handle_of: list[int] = []

        def visit(handle: int, parent_to_world: npt.NDArray[np.float64]) -> None:
            shape = self.shapes[handle]
            to_world = parent_to_world @ shape.transform
            slot = len(handle_of)
            slot_of[handle] = slot
            handle_of.append(handle)

            nodes["kinds"].append(int(shape.kind))
            nodes["skips"].append(slot + 1)
            nodes["materials"].append(shape.material)
            # Every factor was checked invertible on insertion
            nodes["inverses"].append(np.linalg.inv(to_world))
            nodes["params"].append(shape.params)
            nodes["bounds_min"].append(np.zeros(3))
            nodes["bounds_max"].append(np.zeros(3))

            if shape.kind in (ShapeKind.TRIANGLE, ShapeKind.SMOOTH_TRIANGLE):
                nodes["triangles"].append(len(tris["p1"]))
                p1, p2, p3 = shape.vertices
                e1, e2, normal = triangle_geometry(p1, p2, p3)
                vertex_normals = shape.normals if shape.normals is not None else (normal, normal, normal)
                for key, value in zip(
                    ("p1", "e1", "e2", "normal", "n1", "n2", "n3"),
                    (p1, e1, e2, normal, *vertex_normals),
                ):
                    tris[key].append(value)
            else:
                nodes["triangles"].append(-1)

            for child in shape.children:
                visit(child, to_world)
            nodes["skips"][slot] = len(handle_of)

            if shape.kind == ShapeKind.GROUP:
                lo, hi = self._padded_bounds(handle)
                nodes["bounds_min"][slot] = lo
                nodes["bounds_max"][slot] = hi

        for root in self.roots:
            visit(root, identity())

        upload_nodes(**nodes)
        upload_triangles(**tris)

        self._slot_of = slot_of
        self._handle_of = handle_of
        self._skip = list(nodes["skips"])
        self._dirty = False
        logger.debug(
            "Committed scene: %d nodes (%d groups, %d triangles), %d materials, %d lights",
            len(handle_of),
            sum(1 for k in nodes["kinds"] if k == int(ShapeKind.GROUP)),
            len(tris["p1"]),
            len(self.materials),
            len(self.lights),
        )

    def _padded_bounds(self, handle: int) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32]]:
        box = self.local_bounds_of(handle)
        if box.is_empty:
            return box.clipped()
        lo = box.minimum.copy()
        hi = box.maximum.copy()
        finite_lo = np.isfinite(lo)
        finite_hi = np.isfinite(hi)
        lo[finite_lo] -= BOUNDS_PADDING * (1.0 + np.abs(lo[finite_lo]))
        hi[finite_hi] += BOUNDS_PADDING * (1.0 + np.abs(hi[finite_hi]))
        return BoundingBox(lo, hi).clipped()

    def ensure_committed(self) -> None:
        if self._dirty:
            self.commit()

    def slot_of(self, handle: int) -> int:
        """Arena slot of a shape in the current commit."""
        self.ensure_committed()
        self._check_handle(handle)
        return self._slot_of[handle]

    def handle_of(self, slot: int) -> int:
        """Shape handle stored at an arena slot in the current commit."""
        self.ensure_committed()
        return self._handle_of[slot]

    # =========================================================================
    # Queries
    # =========================================================================

    def _read_intersections(self, total: int) -> list[Intersection]:
        if total > MAX_INTERSECTIONS:
            raise RuntimeError(
                f"Ray produced {total} intersections; at most {MAX_INTERSECTIONS} can be returned"
            )
        n = int(xs_count[None])
        ts = xs_t.to_numpy()[:n]
        slots = xs_node.to_numpy()[:n]
        us = xs_u.to_numpy()[:n]
        vs = xs_v.to_numpy()[:n]
        xs = [
            Intersection(t=float(ts[i]), shape=self._handle_of[int(slots[i])], u=float(us[i]), v=float(vs[i]))
            for i in range(n)
        ]
        xs.sort(key=lambda x: x.t)
        return xs

    def intersect(self, origin, direction, use_bounds: bool = True) -> list[Intersection]:
        """Every intersection of a ray with the scene, sorted by t.

        Intersections behind the origin (negative t) are included.

        Args:
            origin: World-space ray origin.
            direction: World-space ray direction (need not be unit length).
            use_bounds: Prune groups by their bounding boxes. The result is
                the same either way.
        """
        self.ensure_committed()
        _set_inputs(origin, direction)
        _k_intersect(0, len(self._handle_of), 1 if use_bounds else 0)
        return self._read_intersections(int(_q_int[0]))

    def intersect_shape(self, handle: int, origin, direction) -> list[Intersection]:
        """Intersections of a world-space ray with one shape (and its subtree)."""
        slot = self.slot_of(handle)
        _set_inputs(origin, direction)
        _k_intersect(slot, self._skip[slot], 1)
        return self._read_intersections(int(_q_int[0]))

    def normal_at(self, handle: int, point, u: float = 0.0, v: float = 0.0) -> tuple[float, float, float]:
        """World-space unit normal of a leaf shape at a world-space point.

        Raises:
            SceneConfigError: If the handle is a group.
        """
        if self._check_handle(handle).kind not in LEAF_KINDS:
            raise SceneConfigError("Groups have no surface normal")
        slot = self.slot_of(handle)
        _set_inputs(point)
        _k_normal_at(slot, u, v)
        return _as_tuple(_q_vec[0])

    def is_shadowed(self, light_position, point) -> bool:
        """Whether a shadow-casting surface lies between a point and a light."""
        self.ensure_committed()
        _set_inputs(light_position, point)
        _k_is_shadowed()
        return bool(_q_int[0])

    def light_intensity_at(self, light: int, point) -> float:
        """Fraction of a light's samples visible from a point."""
        if not 0 <= light < len(self.lights):
            raise SceneConfigError(f"Unknown light index {light}")
        self.ensure_committed()
        _set_inputs(point)
        _k_intensity_at(light)
        return float(_q_scalar[0])

    def lighting(
        self,
        material: int,
        shape: int | None,
        light: int,
        point,
        eyev,
        normalv,
        intensity: float = 1.0,
    ) -> tuple[float, float, float]:
        """Phong color of a point lit by one light.

        Args:
            material: Material id.
            shape: Shape whose object space patterns are evaluated in, or
                None to evaluate them at ``point`` directly.
            light: Light index.
            point: World-space surface point.
            eyev: Unit vector toward the eye.
            normalv: Unit surface normal.
            intensity: Visible fraction of the light, 0 to 1.
        """
        if not 0 <= material < len(self.materials):
            raise SceneConfigError(f"Unknown material id {material}")
        if not 0 <= light < len(self.lights):
            raise SceneConfigError(f"Unknown light index {light}")
        slot = -1 if shape is None else self.slot_of(shape)
        self.ensure_committed()
        _set_inputs(point, eyev, normalv)
        _k_lighting(material, slot, light, intensity)
        return _as_tuple(_q_vec[0])

    def _resolve_hit(self, origin, direction, hit_: Intersection | None) -> Intersection | None:
        if hit_ is None:
            hit_ = hit(self.intersect(origin, direction))
        return hit_

    def prepare_computations(self, origin, direction, intersection: Intersection | None = None) -> Computations | None:
        """Shading state of an intersection along a ray.

        Args:
            origin: World-space ray origin.
            direction: World-space ray direction.
            intersection: The intersection to prepare; the ray's hit when None.

        Returns:
            The Computations, or None if the ray hits nothing.
        """
        intersection = self._resolve_hit(origin, direction, intersection)
        if intersection is None:
            return None
        slot = self.slot_of(intersection.shape)
        _set_inputs(origin, direction)
        _k_prepare(intersection.t, slot, intersection.u, intersection.v)
        return Computations(
            t=intersection.t,
            shape=intersection.shape,
            point=_as_tuple(_q_vec[0]),
            over_point=_as_tuple(_q_vec[1]),
            under_point=_as_tuple(_q_vec[2]),
            eyev=_as_tuple(_q_vec[3]),
            normalv=_as_tuple(_q_vec[4]),
            reflectv=_as_tuple(_q_vec[5]),
            inside=bool(_q_int[0]),
            n1=float(_q_scalar[0]),
            n2=float(_q_scalar[1]),
            reflectance=float(_q_scalar[2]),
        )

    def _remaining(self, remaining: int | None) -> int:
        if remaining is None:
            return self.config.max_depth
        if not 0 <= remaining <= MAX_RECURSION_DEPTH:
            raise SceneConfigError(f"remaining must be in [0, {MAX_RECURSION_DEPTH}], got {remaining}")
        return remaining

    def _shade(self, mode: int, origin, direction, intersection, remaining) -> tuple[float, float, float]:
        remaining = self._remaining(remaining)
        intersection = self._resolve_hit(origin, direction, intersection)
        if intersection is None:
            return tuple(float(c) for c in self.config.background)
        slot = self.slot_of(intersection.shape)
        _set_inputs(origin, direction)
        _k_shade(mode, intersection.t, slot, intersection.u, intersection.v, remaining)
        return _as_tuple(_q_vec[0])

    def shade_hit(self, origin, direction, intersection=None, remaining: int | None = None):
        """Surface, reflected and refracted color of an intersection."""
        return self._shade(SHADE_FULL, origin, direction, intersection, remaining)

    def reflected_color(self, origin, direction, intersection=None, remaining: int | None = None):
        """Reflective factor times the color along the reflected ray, before Schlick weighting."""
        return self._shade(SHADE_REFLECTED, origin, direction, intersection, remaining)

    def refracted_color(self, origin, direction, intersection=None, remaining: int | None = None):
        """Transparency times the color along the refracted ray; black under total internal reflection."""
        return self._shade(SHADE_REFRACTED, origin, direction, intersection, remaining)

    def color_at(self, origin, direction, remaining: int | None = None) -> tuple[float, float, float]:
        """Color seen along a ray; the background when it hits nothing.

        Args:
            origin: World-space ray origin.
            direction: World-space ray direction.
            remaining: Recursion budget; ``config.max_depth`` when None.
        """
        remaining = self._remaining(remaining)
        self.ensure_committed()
        _set_inputs(origin, direction)
        _k_color_at(remaining)
        return _as_tuple(_q_vec[0])

    def to_dict(self) -> dict[str, Any]:
        """Summarize the scene for logging and debugging."""
        return {
            "materials": [m.to_dict() for m in self.materials],
            "lights": len(self.lights),
            "shapes": [
                {"handle": h, "kind": s.kind.name, "material": s.material, "parent": s.parent}
                for h, s in enumerate(self.shapes)
            ],
        }
