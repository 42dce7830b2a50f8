"""Ready-made scenes.

``create_default_world`` is the two-sphere reference world used throughout
the tests: a light at (-10, 10, -10), a unit sphere with a green-yellow
material and a concentric sphere of radius 0.5.

``create_showcase_scene`` builds a small room exercising every shape kind,
patterns, reflection, refraction and an area light, together with a camera
looking into it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prism.scene.presets import create_showcase_scene
    >>> world, camera = create_showcase_scene(width=320, height=180)
"""

import math
from dataclasses import dataclass

from prism.camera.camera import Camera
from prism.core.config import RenderConfig
from prism.core.transforms import (
    chain,
    rotation_x,
    rotation_y,
    rotation_z,
    scaling,
    translation,
    view_transform,
)
from prism.materials.material import GLASS, Material
from prism.materials.patterns import Pattern, PatternKind
from prism.scene.world import World

# =============================================================================
# Default World
# =============================================================================

DEFAULT_LIGHT_POSITION = (-10.0, 10.0, -10.0)
DEFAULT_OUTER_MATERIAL = Material(color=(0.8, 1.0, 0.6), diffuse=0.7, specular=0.2)


def create_default_world(config: RenderConfig | None = None) -> tuple[World, int, int]:
    """Create the reference two-sphere world.

    Returns:
        A tuple of (world, outer_sphere, inner_sphere) handles.
    """
    world = World(config)
    world.add_point_light(position=DEFAULT_LIGHT_POSITION, intensity=(1.0, 1.0, 1.0))
    outer_material = world.add_material(DEFAULT_OUTER_MATERIAL)
    outer = world.add_sphere(material=outer_material)
    inner = world.add_sphere(transform=scaling(0.5, 0.5, 0.5))
    return world, outer, inner


# =============================================================================
# Showcase Scene
# =============================================================================


@dataclass
class ShowcaseParams:
    """Parameters for the showcase scene.

    Attributes:
        soft_shadows: Use a 4x4 area light instead of a point light.
        light_intensity: Gray level of the light.
        floor_reflective: Reflectivity of the checkered floor.
        field_of_view: Camera field of view in radians.
    """

    soft_shadows: bool = True
    light_intensity: float = 1.0
    floor_reflective: float = 0.2
    field_of_view: float = math.pi / 3.0


def create_showcase_scene(
    width: int = 400,
    height: int = 225,
    params: ShowcaseParams | None = None,
    config: RenderConfig | None = None,
) -> tuple[World, Camera]:
    """Create the showcase room and a camera looking into it.

    Args:
        width: Canvas width in pixels.
        height: Canvas height in pixels.
        params: Scene parameters; defaults to ``ShowcaseParams()``.
        config: Render configuration handed to the World.

    Returns:
        A tuple of (World, Camera).
    """
    if params is None:
        params = ShowcaseParams()

    world = World(config)
    gray = (params.light_intensity,) * 3
    if params.soft_shadows:
        world.add_area_light(
            corner=(-6.0, 8.0, -6.0),
            full_uvec=(2.0, 0.0, 0.0),
            usteps=4,
            full_vvec=(0.0, 0.0, 2.0),
            vsteps=4,
            intensity=gray,
        )
    else:
        world.add_point_light(position=(-5.0, 9.0, -5.0), intensity=gray)

    # =========================================================================
    # Materials
    # =========================================================================

    checker = world.add_pattern(
        Pattern(PatternKind.CHECKER, a=(0.35, 0.35, 0.35), b=(0.65, 0.65, 0.65))
    )
    stripes = world.add_pattern(
        Pattern(
            PatternKind.STRIPE,
            a=(0.8, 0.3, 0.2),
            b=(0.9, 0.8, 0.3),
            transform=chain(scaling(0.2, 0.2, 0.2), rotation_z(math.pi / 4)),
        )
    )
    rings = world.add_pattern(
        Pattern(PatternKind.RING, a=(0.2, 0.4, 0.7), b=(0.9, 0.9, 1.0), transform=scaling(0.15, 0.15, 0.15))
    )

    floor_mat = world.add_material(
        Material(pattern=checker, specular=0.0, reflective=params.floor_reflective)
    )
    wall_mat = world.add_material(
        Material(pattern=stripes, ambient=0.05, diffuse=0.6, specular=0.0)
    )
    glass_mat = world.add_material(
        Material(
            color=(0.05, 0.05, 0.08),
            diffuse=0.1,
            specular=1.0,
            shininess=300.0,
            reflective=0.9,
            transparency=0.9,
            refractive_index=GLASS,
            casts_shadow=False,
        )
    )
    mirror_mat = world.add_material(
        Material(color=(0.1, 0.1, 0.1), diffuse=0.2, specular=1.0, reflective=0.8)
    )
    matte_mat = world.add_material(Material(pattern=rings, specular=0.3))
    gold_mat = world.add_material(Material(color=(0.9, 0.7, 0.2), diffuse=0.7, specular=0.6, shininess=50.0))

    # =========================================================================
    # Room
    # =========================================================================

    world.add_plane(material=floor_mat)
    world.add_plane(
        transform=chain(rotation_x(math.pi / 2), translation(0.0, 0.0, 8.0)),
        material=wall_mat,
    )

    # =========================================================================
    # Objects
    # =========================================================================

    world.add_sphere(transform=translation(0.0, 1.0, 1.0), material=glass_mat)
    world.add_sphere(transform=chain(scaling(0.7, 0.7, 0.7), translation(-2.2, 0.7, 2.5)), material=mirror_mat)
    world.add_cube(
        transform=chain(scaling(0.6, 0.6, 0.6), rotation_y(math.pi / 5), translation(2.4, 0.6, 2.0)),
        material=matte_mat,
    )
    world.add_cylinder(
        minimum=0.0,
        maximum=1.5,
        closed=True,
        transform=chain(scaling(0.4, 1.0, 0.4), translation(1.0, 0.0, 4.0)),
        material=gold_mat,
    )

    # A small tetrahedron built as a mesh
    a, b, c, d = (0.0, 1.0, 0.0), (-0.8, 0.0, -0.5), (0.8, 0.0, -0.5), (0.0, 0.0, 0.9)
    world.add_mesh(
        [(a, b, c), (a, c, d), (a, d, b), (b, d, c)],
        transform=chain(rotation_y(math.pi / 7), translation(-1.0, 0.0, -0.6)),
        material=gold_mat,
    )

    camera = Camera(
        width,
        height,
        params.field_of_view,
        transform=view_transform((0.0, 2.5, -6.0), (0.0, 1.0, 1.5), (0.0, 1.0, 0.0)),
    )
    return world, camera
