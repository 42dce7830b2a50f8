"""Exception taxonomy for scene construction and rendering.

Geometric degeneracies (parallel rays, zero determinants, grazing hits) are
never exceptions: they surface as "no intersection". Only configuration
problems and unrecoverable render failures are raised.
"""


class PrismError(Exception):
    """Base class for all errors raised by prism."""


class SceneConfigError(PrismError, ValueError):
    """The scene or render configuration is inconsistent.

    Raised at construction time, before any rendering starts: a singular
    transform, a material parameter out of range, an unknown handle, a camera
    of zero size.
    """


class RenderError(PrismError, RuntimeError):
    """A render pass failed in a way that cannot be isolated to one pixel."""
