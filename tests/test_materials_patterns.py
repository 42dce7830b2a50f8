"""Unit tests for materials, patterns and Phong lighting.

Tests cover:
- Material defaults and validation
- Registry ids and capacity checks
- Stripe, gradient, ring, checker and radial gradient patterns
- Pattern and shape transforms
- Phong lighting for the classic eye/light configurations
"""

import math

import numpy as np
import pytest
import taichi as ti

WHITE = (1.0, 1.0, 1.0)
BLACK = (0.0, 0.0, 0.0)


def _pattern_colors(pattern_id, points):
    """Evaluate a registered pattern at pattern-space points in a kernel."""
    from prism.materials.patterns import pattern_at

    n = len(points)
    pts = ti.Vector.field(3, dtype=ti.f32, shape=n)
    result = ti.Vector.field(3, dtype=ti.f32, shape=n)
    for i, p in enumerate(points):
        pts[i] = list(p)

    @ti.kernel
    def test_kernel():
        for i in range(n):
            result[i] = pattern_at(pattern_id, pts[i])

    test_kernel()
    return [tuple(result[i]) for i in range(n)]


class TestMaterial:
    """Tests for the Material dataclass and registry."""

    def test_defaults(self):
        from prism.materials.material import Material

        m = Material()
        assert m.color == WHITE
        assert m.ambient == 0.1
        assert m.diffuse == 0.9
        assert m.specular == 0.9
        assert m.shininess == 200.0
        assert m.reflective == 0.0
        assert m.transparency == 0.0
        assert m.refractive_index == 1.0
        assert m.pattern is None
        assert m.casts_shadow

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"color": (-0.1, 0.0, 0.0)},
            {"ambient": -0.1},
            {"diffuse": -1.0},
            {"specular": -0.5},
            {"shininess": 0.0},
            {"reflective": 1.5},
            {"transparency": -0.1},
            {"refractive_index": 0.0},
        ],
    )
    def test_invalid_parameters_raise(self, kwargs):
        from prism.core.errors import SceneConfigError
        from prism.materials.material import Material

        with pytest.raises(SceneConfigError):
            Material(**kwargs).validate()

    def test_add_material_returns_sequential_ids(self):
        from prism.materials.material import GLASS, Material, add_material, get_material_count

        assert add_material(Material()) == 0
        assert add_material(Material(transparency=1.0, refractive_index=GLASS)) == 1
        assert get_material_count() == 2

    def test_add_material_validates(self):
        from prism.core.errors import SceneConfigError
        from prism.materials.material import Material, add_material, get_material_count

        with pytest.raises(SceneConfigError):
            add_material(Material(shininess=-1.0))
        assert get_material_count() == 0

    def test_to_dict(self):
        from prism.materials.material import Material

        d = Material(reflective=0.5).to_dict()
        assert d["reflective"] == 0.5
        assert d["casts_shadow"] is True


class TestPatterns:
    """Tests for pattern evaluation in pattern space."""

    def test_stripe_alternates_in_x_only(self):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.STRIPE, WHITE, BLACK))
        colors = _pattern_colors(
            pid,
            [(0, 0, 0), (0, 1, 0), (0, 2, 0), (0, 0, 1), (0.9, 0, 0), (1, 0, 0), (-0.1, 0, 0), (-1, 0, 0), (-1.1, 0, 0)],
        )
        expected = [WHITE, WHITE, WHITE, WHITE, WHITE, BLACK, BLACK, BLACK, WHITE]
        for got, want in zip(colors, expected):
            assert got == pytest.approx(want)

    def test_gradient_interpolates(self):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.GRADIENT, WHITE, BLACK))
        colors = _pattern_colors(pid, [(0, 0, 0), (0.25, 0, 0), (0.5, 0, 0), (0.75, 0, 0)])
        for got, want in zip(colors, [1.0, 0.75, 0.5, 0.25]):
            assert got == pytest.approx((want, want, want))

    def test_ring_extends_in_x_and_z(self):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.RING, WHITE, BLACK))
        colors = _pattern_colors(pid, [(0, 0, 0), (1, 0, 0), (0, 0, 1), (0.708, 0, 0.708)])
        for got, want in zip(colors, [WHITE, BLACK, BLACK, BLACK]):
            assert got == pytest.approx(want)

    @pytest.mark.parametrize(
        "points",
        [
            [(0, 0, 0), (0.99, 0, 0), (1.01, 0, 0)],
            [(0, 0, 0), (0, 0.99, 0), (0, 1.01, 0)],
            [(0, 0, 0), (0, 0, 0.99), (0, 0, 1.01)],
        ],
    )
    def test_checker_repeats_in_each_dimension(self, points):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.CHECKER, WHITE, BLACK))
        colors = _pattern_colors(pid, points)
        for got, want in zip(colors, [WHITE, WHITE, BLACK]):
            assert got == pytest.approx(want)

    def test_checker_with_negative_coordinates(self):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.CHECKER, WHITE, BLACK))
        colors = _pattern_colors(pid, [(-0.5, 0, 0), (-0.5, -0.5, 0), (-1.5, 0.5, 0.5)])
        for got, want in zip(colors, [BLACK, WHITE, WHITE]):
            assert got == pytest.approx(want)

    def test_radial_gradient_grows_with_distance(self):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.RADIAL_GRADIENT, BLACK, WHITE))
        colors = _pattern_colors(pid, [(0, 0, 0), (0.3, 0, 0.4), (0, 5, 0)])
        assert colors[0] == pytest.approx(BLACK)
        assert colors[1] == pytest.approx((0.5, 0.5, 0.5), abs=1e-5)
        assert colors[2] == pytest.approx(BLACK)

    def test_solid_ignores_position(self):
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        pid = add_pattern(Pattern(PatternKind.SOLID, (0.2, 0.4, 0.6)))
        for got in _pattern_colors(pid, [(0, 0, 0), (3.5, -2, 7)]):
            assert got == pytest.approx((0.2, 0.4, 0.6))

    def test_singular_transform_raises(self):
        from prism.core.errors import SceneConfigError
        from prism.core.transforms import scaling
        from prism.materials.patterns import Pattern, PatternKind, add_pattern, get_pattern_count

        with pytest.raises(SceneConfigError):
            add_pattern(Pattern(PatternKind.STRIPE, WHITE, BLACK, transform=scaling(0, 1, 1)))
        assert get_pattern_count() == 0

    def test_negative_color_raises(self):
        from prism.core.errors import SceneConfigError
        from prism.materials.patterns import Pattern, PatternKind, add_pattern

        with pytest.raises(SceneConfigError):
            add_pattern(Pattern(PatternKind.STRIPE, (-1.0, 0.0, 0.0), BLACK))


class TestPatternTransforms:
    """Tests for patterns attached to transformed shapes."""

    @pytest.mark.parametrize(
        "shape_scale, pattern_scale, pattern_shift, point",
        [
            (2.0, 1.0, 0.0, (1.5, 0, 0)),
            (1.0, 2.0, 0.0, (1.5, 0, 0)),
            (2.0, 2.0, 0.5, (2.5, 0, 0)),
        ],
    )
    def test_stripe_follows_transforms(self, shape_scale, pattern_scale, pattern_shift, point):
        from prism.core.transforms import chain, invert, scaling, translation
        from prism.materials.patterns import Pattern, PatternKind, add_pattern, pattern_at_shape

        pid = add_pattern(
            Pattern(
                PatternKind.STRIPE,
                WHITE,
                BLACK,
                transform=chain(scaling(pattern_scale, pattern_scale, pattern_scale), translation(pattern_shift, 0, 0)),
            )
        )
        inverse = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        inverse[None] = invert(scaling(shape_scale, shape_scale, shape_scale)).astype(np.float32).tolist()
        p = ti.Vector.field(3, dtype=ti.f32, shape=())
        p[None] = list(point)
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = pattern_at_shape(pid, inverse[None], p[None])

        test_kernel()
        assert tuple(result[None]) == pytest.approx(WHITE)


class TestLighting:
    """Tests for World.lighting with a point light at the origin's front."""

    S2 = math.sqrt(2.0) / 2.0

    @pytest.mark.parametrize(
        "eyev, light_position, expected",
        [
            ((0, 0, -1), (0, 0, -10), 1.9),
            ((0, S2, -S2), (0, 0, -10), 1.0),
            ((0, 0, -1), (0, 10, -10), 0.7364),
            ((0, -S2, -S2), (0, 10, -10), 1.6364),
            ((0, 0, -1), (0, 0, 10), 0.1),
        ],
    )
    def test_phong_configurations(self, eyev, light_position, expected):
        from prism.scene.world import World

        world = World()
        light = world.add_point_light(light_position)
        color = world.lighting(0, None, light, (0, 0, 0), eyev, (0, 0, -1))
        assert color == pytest.approx((expected, expected, expected), abs=1e-4)

    def test_surface_in_shadow_gets_ambient_only(self):
        from prism.scene.world import World

        world = World()
        light = world.add_point_light((0, 0, -10))
        color = world.lighting(0, None, light, (0, 0, 0), (0, 0, -1), (0, 0, -1), intensity=0.0)
        assert color == pytest.approx((0.1, 0.1, 0.1))

    def test_light_color_scales_result(self):
        from prism.scene.world import World

        world = World()
        light = world.add_point_light((0, 0, -10), intensity=(1.0, 0.5, 0.0))
        color = world.lighting(0, None, light, (0, 0, 0), (0, 0, -1), (0, 0, -1))
        assert color == pytest.approx((1.9, 0.95, 0.0), abs=1e-4)

    def test_lighting_with_pattern(self):
        from prism.materials import Material, Pattern, PatternKind
        from prism.scene.world import World

        world = World()
        pid = world.add_pattern(Pattern(PatternKind.STRIPE, WHITE, BLACK))
        mid = world.add_material(Material(pattern=pid, ambient=1.0, diffuse=0.0, specular=0.0))
        light = world.add_point_light((0, 0, -10))

        c1 = world.lighting(mid, None, light, (0.9, 0, 0), (0, 0, -1), (0, 0, -1))
        c2 = world.lighting(mid, None, light, (1.1, 0, 0), (0, 0, -1), (0, 0, -1))
        assert c1 == pytest.approx(WHITE)
        assert c2 == pytest.approx(BLACK)

    def test_lighting_uses_shape_space_for_patterns(self):
        from prism.core.transforms import scaling
        from prism.materials import Material, Pattern, PatternKind
        from prism.scene.world import World

        world = World()
        pid = world.add_pattern(Pattern(PatternKind.STRIPE, WHITE, BLACK))
        mid = world.add_material(Material(pattern=pid, ambient=1.0, diffuse=0.0, specular=0.0))
        sphere = world.add_sphere(transform=scaling(2, 2, 2), material=mid)
        light = world.add_point_light((0, 0, -10))

        color = world.lighting(mid, sphere, light, (1.5, 0, 0), (0, 0, -1), (0, 0, -1))
        assert color == pytest.approx(WHITE)

    def test_unknown_pattern_rejected_by_world(self):
        from prism.core.errors import SceneConfigError
        from prism.materials import Material
        from prism.scene.world import World

        world = World()
        with pytest.raises(SceneConfigError, match="pattern"):
            world.add_material(Material(pattern=3))

    def test_unknown_light_and_material(self):
        from prism.core.errors import SceneConfigError
        from prism.scene.world import World

        world = World()
        with pytest.raises(SceneConfigError):
            world.lighting(0, None, 0, (0, 0, 0), (0, 0, -1), (0, 0, -1))
        world.add_point_light((0, 0, -10))
        with pytest.raises(SceneConfigError):
            world.lighting(5, None, 0, (0, 0, 0), (0, 0, -1), (0, 0, -1))
