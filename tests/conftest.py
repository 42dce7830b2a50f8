"""Pytest configuration for prism tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate every field allocated by the modules under test.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear every registry before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so the fields are allocated after ti.init
    from prism.core.config import RenderConfig
    from prism.core.integrator import configure_shading
    from prism.lights.light import clear_lights, set_area_light_jitter
    from prism.materials.material import clear_materials
    from prism.materials.patterns import clear_patterns
    from prism.scene.intersection import clear_arena

    def _clear_all():
        clear_arena()
        clear_materials()
        clear_patterns()
        clear_lights()
        set_area_light_jitter(False)
        configure_shading(RenderConfig())

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def default_world():
    """The reference two-sphere world: (world, outer, inner)."""
    from prism.scene.presets import create_default_world

    return create_default_world()
