"""Core rendering module.

Components:
    errors: Exception taxonomy (configuration vs. render failures)
    config: RenderConfig and Taichi initialization
    transforms: Host-side 4x4 transform construction and inversion
    ray: Ray data structure and kernel-side transform helpers
    canvas: The row-major pixel buffer a render writes into
    integrator: Whitted shading (Phong, shadows, reflection, refraction)
    scheduler: Row-band render scheduler with supersampling

Only the field-free modules are imported here. Import the integrator and the
scheduler directly, after ``ti.init``:
    from prism.core.scheduler import RenderScheduler
"""

from .canvas import Canvas
from .config import RenderConfig, init_taichi
from .errors import PrismError, RenderError, SceneConfigError

__all__ = [
    "Canvas",
    "RenderConfig",
    "init_taichi",
    "PrismError",
    "RenderError",
    "SceneConfigError",
]
