"""Materials module: the Phong material model and procedural patterns.

Components:
    material: Material dataclass, refractive-index constants and registry
    patterns: Pattern kinds, pattern registry and pattern evaluation

Materials and patterns are validated on registration and stored in
structure-of-arrays Taichi fields read by the shading kernels. Importing this
package allocates those fields, so call ``ti.init`` (or
``prism.core.init_taichi``) first.
"""

from .material import (
    AIR,
    DIAMOND,
    GLASS,
    MAX_MATERIALS,
    VACUUM,
    WATER,
    Material,
    add_material,
    clear_materials,
    get_material_count,
)
from .patterns import (
    MAX_PATTERNS,
    Pattern,
    PatternKind,
    add_pattern,
    clear_patterns,
    get_pattern_count,
    pattern_at,
    pattern_at_shape,
)

__all__ = [
    # Material
    "Material",
    "add_material",
    "clear_materials",
    "get_material_count",
    "MAX_MATERIALS",
    "VACUUM",
    "AIR",
    "WATER",
    "GLASS",
    "DIAMOND",
    # Patterns
    "Pattern",
    "PatternKind",
    "add_pattern",
    "clear_patterns",
    "get_pattern_count",
    "pattern_at",
    "pattern_at_shape",
    "MAX_PATTERNS",
]
