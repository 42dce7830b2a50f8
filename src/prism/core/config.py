"""Render configuration and Taichi runtime initialization.

``RenderConfig`` collects every knob the renderer exposes: recursion depth,
supersampling factor, worker count, band size, shadow bias, background color
and area-light sampling mode. It is validated on construction so a bad value
fails before any field is touched.

Example:
    >>> from prism.core.config import RenderConfig, init_taichi
    >>> config = RenderConfig(supersampling=2, workers=4)
    >>> init_taichi(config)
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any

import taichi as ti

from prism.core.errors import SceneConfigError

logger = logging.getLogger(__name__)

# =============================================================================
# Limits
# =============================================================================

# Hard ceiling on the recursion budget; sizes the integrator's work stack
MAX_RECURSION_DEPTH = 16

# Largest supported supersampling grid edge (n x n rays per pixel)
MAX_SUPERSAMPLING = 8

_SUPPORTED_ARCHS = ("cpu", "gpu", "cuda", "vulkan", "metal")

_initialized = False


@dataclass
class RenderConfig:
    """Configuration for a render pass.

    Attributes:
        max_depth: Recursion budget for reflection and refraction rays.
            0 disables secondary rays entirely.
        supersampling: Edge length n of the n x n sub-pixel grid. 1 means
            one ray through each pixel center.
        workers: Number of CPU threads Taichi may use. None lets Taichi pick.
        band_rows: Number of canvas rows rendered per kernel launch.
        shadow_bias: Distance the hit point is nudged along the normal to
            form the over point (shadows, reflection) and under point
            (refraction).
        background: Color returned for rays that escape the scene.
        jitter_area_lights: Sample area-light cells at random positions
            instead of cell centers. Off by default for reproducible renders.
        seed: Random seed handed to ``ti.init``.
        arch: Taichi backend name ("cpu", "gpu", ...).
    """

    max_depth: int = 5
    supersampling: int = 1
    workers: int | None = None
    band_rows: int = 16
    shadow_bias: float = 1e-4
    background: tuple[float, float, float] = (0.0, 0.0, 0.0)
    jitter_area_lights: bool = False
    seed: int = 0
    arch: str = "cpu"

    def __post_init__(self) -> None:
        if not 0 <= self.max_depth <= MAX_RECURSION_DEPTH:
            raise SceneConfigError(
                f"max_depth must be in [0, {MAX_RECURSION_DEPTH}], got {self.max_depth}"
            )
        if not 1 <= self.supersampling <= MAX_SUPERSAMPLING:
            raise SceneConfigError(
                f"supersampling must be in [1, {MAX_SUPERSAMPLING}], got {self.supersampling}"
            )
        if self.workers is not None and self.workers < 1:
            raise SceneConfigError(f"workers must be positive, got {self.workers}")
        if self.band_rows < 1:
            raise SceneConfigError(f"band_rows must be positive, got {self.band_rows}")
        if self.shadow_bias <= 0.0:
            raise SceneConfigError(f"shadow_bias must be positive, got {self.shadow_bias}")
        if len(self.background) != 3 or any(c < 0.0 for c in self.background):
            raise SceneConfigError(f"background must be a non-negative RGB triple, got {self.background}")
        if self.arch not in _SUPPORTED_ARCHS:
            raise SceneConfigError(
                f"Unknown arch {self.arch!r}; expected one of {', '.join(_SUPPORTED_ARCHS)}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderConfig":
        """Create a configuration from a dictionary.

        Raises:
            SceneConfigError: If a key is not a RenderConfig field.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise SceneConfigError(f"Unknown render settings: {', '.join(unknown)}")
        kwargs = dict(data)
        if "background" in kwargs:
            kwargs["background"] = tuple(kwargs["background"])
        return cls(**kwargs)


def init_taichi(config: RenderConfig | None = None) -> None:
    """Initialize the Taichi runtime for rendering.

    The CPU thread pool size is fixed here: ``config.workers`` becomes
    ``cpu_max_num_threads``. Calling this twice is a no-op with a warning,
    since re-initializing Taichi invalidates every allocated field.

    Args:
        config: Render configuration. Defaults to ``RenderConfig()``.
    """
    global _initialized

    if config is None:
        config = RenderConfig()
    if _initialized:
        logger.warning("Taichi already initialized; ignoring repeated init_taichi()")
        return

    kwargs: dict[str, Any] = {"arch": getattr(ti, config.arch), "random_seed": config.seed}
    if config.workers is not None:
        kwargs["cpu_max_num_threads"] = config.workers

    ti.init(**kwargs)
    _initialized = True
    logger.info("Taichi initialized (arch=%s, workers=%s)", config.arch, config.workers or "auto")
