"""Geometry module for shape primitives and bounding volumes.

Components:
    sphere: Unit sphere with robust quadratic intersection
    plane: Infinite xz plane
    cube: Axis-aligned unit cube (slab method)
    cylinder: Truncated, optionally capped cylinder
    triangle: Flat and smooth triangles (Möller–Trumbore)
    bounds: Host-side bounding boxes and the kernel slab test
    shapes: ShapeKind and the per-kind capability dispatch

All intersection routines are Taichi functions (@ti.func) working in object
space and returning every root, including those behind the ray origin. None of
these modules allocates fields, so they may be imported before ``ti.init``.
"""

from .bounds import T_INF, BoundingBox, intersect_slabs
from .shapes import LEAF_KINDS, ShapeKind, local_bounds, local_intersect, local_normal_at
from .triangle import triangle_geometry

__all__ = [
    "BoundingBox",
    "T_INF",
    "intersect_slabs",
    "ShapeKind",
    "LEAF_KINDS",
    "local_bounds",
    "local_intersect",
    "local_normal_at",
    "triangle_geometry",
]
