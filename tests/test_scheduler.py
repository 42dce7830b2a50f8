"""Tests for the row-band render scheduler.

Tests cover:
- Rendering the reference world through a camera
- Results independent of band size
- Supersampling and single-pixel shading
- Progressive rendering and progress callbacks
- Configuration errors raised before rendering
"""

import logging
import math

import numpy as np
import pytest


def _camera(size=11):
    from prism.camera import Camera
    from prism.core.transforms import view_transform

    return Camera(size, size, math.pi / 2, transform=view_transform((0, 0, -5), (0, 0, 0), (0, 1, 0)))


class TestRender:
    """Tests for RenderScheduler.render."""

    def test_render_default_world(self, default_world):
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        canvas = RenderScheduler(world, _camera()).render()
        assert canvas.width == 11 and canvas.height == 11
        assert canvas.pixel_at(5, 5) == pytest.approx((0.38066, 0.47583, 0.2855), abs=1e-3)

    def test_corners_see_background(self, default_world):
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        canvas = RenderScheduler(world, _camera()).render()
        for x, y in [(0, 0), (10, 0), (0, 10), (10, 10)]:
            assert canvas.pixel_at(x, y) == pytest.approx((0, 0, 0))

    def test_band_size_does_not_change_result(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        camera = _camera(17)
        one_row = RenderScheduler(world, camera, RenderConfig(band_rows=1)).render().pixels.copy()
        big_band = RenderScheduler(world, camera, RenderConfig(band_rows=64)).render().pixels.copy()
        np.testing.assert_allclose(one_row, big_band, atol=1e-6)

    def test_supersampling_averages_subpixels(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        camera = _camera()
        plain = RenderScheduler(world, camera, RenderConfig(supersampling=1)).render().pixels.copy()
        smooth = RenderScheduler(world, camera, RenderConfig(supersampling=3)).render().pixels.copy()

        # Flat interior and empty corners agree; the silhouette is blended
        assert smooth[5, 5] == pytest.approx(plain[5, 5], abs=5e-2)
        assert smooth[0, 0] == pytest.approx((0, 0, 0))
        assert not np.allclose(plain, smooth)

    def test_shade_pixel_matches_render(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera(), RenderConfig(supersampling=2))
        canvas = scheduler.render()
        for x, y in [(5, 5), (3, 4), (7, 2)]:
            assert scheduler.shade_pixel(x, y) == pytest.approx(canvas.pixel_at(x, y), abs=1e-6)

    def test_host_camera_ray_matches_rendered_pixel(self, default_world):
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        camera = _camera()
        canvas = RenderScheduler(world, camera).render()
        origin, direction = camera.ray_for_pixel(4, 6)
        assert world.color_at(origin, direction) == pytest.approx(canvas.pixel_at(4, 6), abs=1e-4)

    def test_no_faults_on_a_clean_scene(self, default_world):
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera())
        scheduler.render()
        assert scheduler.fault_count == 0

    def test_max_depth_zero_disables_reflection(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler
        from prism.core.transforms import translation
        from prism.materials import Material

        world, _, _ = default_world
        mirror = world.add_material(Material(reflective=1.0, diffuse=0.0, specular=0.0, ambient=0.0))
        world.add_plane(transform=translation(0, -1, 0), material=mirror)
        camera = _camera()

        flat = RenderScheduler(world, camera, RenderConfig(max_depth=0)).render().pixels.copy()
        deep = RenderScheduler(world, camera, RenderConfig(max_depth=3)).render().pixels.copy()
        # The bottom row only sees the black mirror floor
        assert np.allclose(flat[10], 0.0)
        assert deep.sum() > flat.sum()


class TestProgressive:
    """Tests for progressive rendering and callbacks."""

    def test_render_progressive_yields_each_band(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera(), RenderConfig(band_rows=4))
        progress = list(scheduler.render_progressive())
        assert progress == [(4, 11), (8, 11), (11, 11)]

    def test_callback_receives_progress(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        calls = []
        RenderScheduler(world, _camera(), RenderConfig(band_rows=5)).render(
            callback=lambda done, total: calls.append((done, total))
        )
        assert calls == [(5, 11), (10, 11), (11, 11)]

    def test_partial_progress_leaves_later_rows_black(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera(), RenderConfig(band_rows=5))
        progress = scheduler.render_progressive()
        next(progress)
        assert scheduler.canvas.pixels[5:].max() == 0.0
        assert scheduler.canvas.pixels[:5].max() > 0.0


class TestSchedulerErrors:
    """Tests for configuration checks and logging."""

    def test_band_rows_capped_by_lanes(self, default_world):
        from prism.camera import Camera
        from prism.core.config import RenderConfig
        from prism.core.integrator import MAX_LANES
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, Camera(20000, 2, 1.0), RenderConfig(band_rows=16))
        assert scheduler.band_rows == MAX_LANES // 20000

    def test_canvas_wider_than_lanes_raises(self, default_world):
        from prism.camera import Camera
        from prism.core.errors import SceneConfigError
        from prism.core.integrator import MAX_LANES
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, Camera(MAX_LANES + 1, 1, 1.0))
        with pytest.raises(SceneConfigError):
            scheduler.render()

    def test_shade_pixel_outside_canvas(self, default_world):
        from prism.core.errors import SceneConfigError
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera())
        with pytest.raises(SceneConfigError):
            scheduler.shade_pixel(11, 0)
        with pytest.raises(SceneConfigError):
            scheduler.shade_pixel(0, -1)

    def test_scene_without_lights_warns(self, caplog):
        from prism.core.scheduler import RenderScheduler
        from prism.scene.world import World

        world = World()
        world.add_sphere()
        with caplog.at_level(logging.WARNING, logger="prism.core.scheduler"):
            canvas = RenderScheduler(world, _camera()).render()
        assert "no lights" in caplog.text
        assert canvas.pixels.max() == 0.0

    def test_render_logs_summary(self, default_world, caplog):
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        with caplog.at_level(logging.INFO, logger="prism.core.scheduler"):
            RenderScheduler(world, _camera()).render()
        assert "Rendered 11x11" in caplog.text

    def test_repr(self, default_world):
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        assert "width=11" in repr(RenderScheduler(world, _camera()))


class TestFaultsAndDeterminism:
    """Tests for per-pixel fault isolation and repeatable renders."""

    def test_render_twice_is_bit_identical(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera(), RenderConfig(supersampling=2, band_rows=3))
        first = scheduler.render().pixels.copy()
        second = scheduler.render().pixels.copy()
        assert np.array_equal(first, second)

    def test_non_finite_pixel_is_written_black(self, caplog):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler
        from prism.core.transforms import chain, scaling, translation
        from prism.materials import Material
        from prism.scene.presets import DEFAULT_LIGHT_POSITION, create_default_world

        config = RenderConfig(background=(0.2, 0.2, 0.2))
        world, _, _ = create_default_world(config)
        # Two lights whose ambient terms on the hot sphere overflow float32
        world.add_point_light(position=DEFAULT_LIGHT_POSITION)
        camera = _camera()
        clean = RenderScheduler(world, camera, config).render().pixels.copy()

        origin, direction = camera.ray_for_pixel(0, 0)
        center = origin + 8.0 * direction
        hot = world.add_material(Material(color=(3e38, 3e38, 3e38), ambient=1.0))
        world.add_sphere(transform=chain(scaling(0.3, 0.3, 0.3), translation(*center)), material=hot)

        scheduler = RenderScheduler(world, camera, config)
        with caplog.at_level(logging.WARNING, logger="prism.core.scheduler"):
            faulty = scheduler.render().pixels.copy()

        assert scheduler.fault_count == 1
        assert "non-finite" in caplog.text
        np.testing.assert_array_equal(faulty[0, 0], (0.0, 0.0, 0.0))
        assert np.isfinite(faulty).all()

        # Every other pixel, neighbours included, renders as before
        faulty[0, 0] = clean[0, 0]
        np.testing.assert_allclose(faulty, clean, atol=1e-6)
        assert faulty[0, 1] == pytest.approx((0.2, 0.2, 0.2))
        assert faulty[1, 0] == pytest.approx((0.2, 0.2, 0.2))

    def test_render_restores_world_shading_settings(self, default_world):
        from prism.core.config import RenderConfig
        from prism.core.scheduler import RenderScheduler

        world, _, _ = default_world
        scheduler = RenderScheduler(world, _camera(), RenderConfig(background=(0.5, 0.5, 0.5)))
        canvas = scheduler.render()
        assert canvas.pixel_at(0, 0) == pytest.approx((0.5, 0.5, 0.5))
        assert world.color_at((0, 0, -5), (0, 1, 0)) == pytest.approx((0, 0, 0))

        scheduler.shade_pixel(0, 0)
        assert world.color_at((0, 0, -5), (0, 1, 0)) == pytest.approx((0, 0, 0))
