"""Lights module: point and area lights.

Components:
    light: PointLight and AreaLight, the light registry and sample placement

Importing this package allocates the light fields; call ``ti.init`` first.
"""

from .light import (
    MAX_LIGHTS,
    AreaLight,
    Light,
    LightKind,
    PointLight,
    add_light,
    clear_lights,
    get_light_count,
    set_area_light_jitter,
)

__all__ = [
    "PointLight",
    "AreaLight",
    "Light",
    "LightKind",
    "add_light",
    "clear_lights",
    "get_light_count",
    "set_area_light_jitter",
    "MAX_LIGHTS",
]
