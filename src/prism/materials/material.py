"""Phong material model and the material registry.

A material describes how a surface responds to light: its base color (or a
pattern that replaces the color), the four Phong coefficients, and the
reflective, transparent and refractive behavior used for secondary rays.

Materials are validated on the host when they are registered; kernels read
them from structure-of-arrays fields by material id.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.materials.material import Material, add_material
    >>> glass = add_material(Material(color=(0.1, 0.1, 0.1), transparency=0.9,
    ...                               refractive_index=1.5, reflective=0.9))
"""

from dataclasses import asdict, dataclass
from typing import Any

import taichi as ti
import taichi.math as tm

from prism.core.errors import SceneConfigError

# Type alias for 3D vectors
vec3 = tm.vec3

# Common refractive indices
VACUUM = 1.0
AIR = 1.00029
WATER = 1.333
GLASS = 1.5
DIAMOND = 2.417


@dataclass
class Material:
    """Optical properties of a surface.

    Attributes:
        color: Base RGB color, used when no pattern is set.
        ambient: Fraction of light reflected regardless of light direction.
        diffuse: Weight of the Lambertian term.
        specular: Weight of the Phong highlight.
        shininess: Phong exponent; larger is a smaller, sharper highlight.
        reflective: Weight of the mirror reflection, in [0, 1].
        transparency: Weight of the refracted ray, in [0, 1].
        refractive_index: Index of refraction, > 0 (1.0 is vacuum).
        pattern: Id of a registered pattern replacing ``color``, or None.
        casts_shadow: Whether the surface blocks shadow rays.
    """

    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    ambient: float = 0.1
    diffuse: float = 0.9
    specular: float = 0.9
    shininess: float = 200.0
    reflective: float = 0.0
    transparency: float = 0.0
    refractive_index: float = 1.0
    pattern: int | None = None
    casts_shadow: bool = True

    def validate(self) -> None:
        """Check every parameter against its documented range.

        Raises:
            SceneConfigError: If any parameter is out of range.
        """
        if len(self.color) != 3 or any(c < 0.0 for c in self.color):
            raise SceneConfigError(f"Material color must be a non-negative RGB triple, got {self.color}")
        for name in ("ambient", "diffuse", "specular"):
            value = getattr(self, name)
            if value < 0.0:
                raise SceneConfigError(f"Material {name} must be >= 0, got {value}")
        if self.shininess <= 0.0:
            raise SceneConfigError(f"Material shininess must be > 0, got {self.shininess}")
        for name in ("reflective", "transparency"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise SceneConfigError(f"Material {name} must be in [0, 1], got {value}")
        if self.refractive_index <= 0.0:
            raise SceneConfigError(
                f"Material refractive_index must be > 0, got {self.refractive_index}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_MATERIALS = 1024

material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_ambient = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflective = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_transparency = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_refractive_index = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_pattern = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_casts_shadow = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials.

    Resets the material count to zero; stale field data is overwritten by
    later registrations.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Validate a material and add it to the registry.

    Args:
        material: The material to register.

    Returns:
        The material id.

    Raises:
        SceneConfigError: If a parameter is out of range.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    material.validate()

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    c = material.color
    material_colors[idx] = vec3(c[0], c[1], c[2])
    material_ambient[idx] = material.ambient
    material_diffuse[idx] = material.diffuse
    material_specular[idx] = material.specular
    material_shininess[idx] = material.shininess
    material_reflective[idx] = material.reflective
    material_transparency[idx] = material.transparency
    material_refractive_index[idx] = material.refractive_index
    material_pattern[idx] = -1 if material.pattern is None else material.pattern
    material_casts_shadow[idx] = 1 if material.casts_shadow else 0
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


@ti.func
def get_refractive_index(material_id: ti.i32) -> ti.f32:
    return material_refractive_index[material_id]


@ti.func
def casts_shadow(material_id: ti.i32) -> ti.i32:
    return material_casts_shadow[material_id]
