"""Scene module: the shape arena, the World and ready-made scenes.

Components:
    intersection: Arena fields and stackless kernel traversal
    world: World scene builder, commit and host-side queries
    presets: Reference two-sphere world and the showcase scene

The arena is a structure-of-arrays layout in depth-first pre-order; groups
carry bounding boxes and skip indices so kernels prune whole subtrees
without a stack.

Only the arena is re-exported here: the integrator builds on it, and the
World builds on the integrator. Import the World and the presets directly:
    from prism.scene.world import World
    from prism.scene.presets import create_showcase_scene
"""

from .intersection import (
    MAX_INTERSECTIONS,
    MAX_NODES,
    Hit,
    clear_arena,
    get_node_count,
    intersect_closest,
)

__all__ = [
    "Hit",
    "clear_arena",
    "get_node_count",
    "intersect_closest",
    "MAX_NODES",
    "MAX_INTERSECTIONS",
]
