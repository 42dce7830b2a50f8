"""Host-side 4x4 transform construction and inversion.

Transforms are built and composed on the host in float64 with NumPy, then
uploaded to Taichi fields as float32 when the scene is committed. Points carry
w=1 and vectors w=0, so the translation column never moves a direction.

Example:
    >>> import numpy as np
    >>> from prism.core.transforms import chain, point, rotation_x, scaling, translation
    >>> m = chain(rotation_x(np.pi / 2), scaling(5, 5, 5), translation(10, 5, 7))
    >>> m @ point(1, 0, 1)
    array([15.,  0.,  7.,  1.])
"""

import numpy as np
import numpy.typing as npt

from prism.core.errors import SceneConfigError

Matrix4 = npt.NDArray[np.float64]
Tuple4 = npt.NDArray[np.float64]

# Determinant magnitude below which a transform is treated as singular
SINGULAR_EPSILON = 1e-12


def point(x: float, y: float, z: float) -> Tuple4:
    """Create a point (w=1)."""
    return np.array([x, y, z, 1.0], dtype=np.float64)


def vector(x: float, y: float, z: float) -> Tuple4:
    """Create a direction vector (w=0)."""
    return np.array([x, y, z, 0.0], dtype=np.float64)


def identity() -> Matrix4:
    """Return the 4x4 identity matrix."""
    return np.eye(4, dtype=np.float64)


def translation(x: float, y: float, z: float) -> Matrix4:
    m = identity()
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def scaling(x: float, y: float, z: float) -> Matrix4:
    return np.diag([x, y, z, 1.0]).astype(np.float64)


def rotation_x(radians: float) -> Matrix4:
    c, s = np.cos(radians), np.sin(radians)
    m = identity()
    m[1, 1] = c
    m[1, 2] = -s
    m[2, 1] = s
    m[2, 2] = c
    return m


def rotation_y(radians: float) -> Matrix4:
    c, s = np.cos(radians), np.sin(radians)
    m = identity()
    m[0, 0] = c
    m[0, 2] = s
    m[2, 0] = -s
    m[2, 2] = c
    return m


def rotation_z(radians: float) -> Matrix4:
    c, s = np.cos(radians), np.sin(radians)
    m = identity()
    m[0, 0] = c
    m[0, 1] = -s
    m[1, 0] = s
    m[1, 1] = c
    return m


def shearing(xy: float, xz: float, yx: float, yz: float, zx: float, zy: float) -> Matrix4:
    """Create a shear transform.

    Each argument moves one component in proportion to another; ``xy`` moves x
    in proportion to y, and so on.
    """
    m = identity()
    m[0, 1] = xy
    m[0, 2] = xz
    m[1, 0] = yx
    m[1, 2] = yz
    m[2, 0] = zx
    m[2, 1] = zy
    return m


def chain(*matrices: Matrix4) -> Matrix4:
    """Compose transforms in application order.

    ``chain(a, b, c)`` applies ``a`` first and ``c`` last, i.e. it returns
    ``c @ b @ a``.
    """
    result = identity()
    for m in matrices:
        result = np.asarray(m, dtype=np.float64) @ result
    return result


def view_transform(
    from_point: tuple[float, float, float],
    to_point: tuple[float, float, float],
    up: tuple[float, float, float],
) -> Matrix4:
    """Build the world-to-eye transform for a camera.

    Args:
        from_point: Eye position.
        to_point: Point the eye looks at.
        up: Approximate up direction; need not be orthogonal to the view.

    Returns:
        The orientation matrix multiplied by the translation moving the eye to
        the origin.

    Raises:
        SceneConfigError: If the eye coincides with the target or ``up`` is
            parallel to the viewing direction.
    """
    eye = np.asarray(from_point, dtype=np.float64)
    forward = np.asarray(to_point, dtype=np.float64) - eye
    norm = np.linalg.norm(forward)
    if norm < SINGULAR_EPSILON:
        raise SceneConfigError("view_transform: from and to points coincide")
    forward = forward / norm

    upn = np.asarray(up, dtype=np.float64)
    upn = upn / max(np.linalg.norm(upn), SINGULAR_EPSILON)
    left = np.cross(forward, upn)
    if np.linalg.norm(left) < SINGULAR_EPSILON:
        raise SceneConfigError("view_transform: up vector is parallel to the view direction")
    true_up = np.cross(left, forward)

    orientation = identity()
    orientation[0, :3] = left
    orientation[1, :3] = true_up
    orientation[2, :3] = -forward
    return orientation @ translation(-eye[0], -eye[1], -eye[2])


def as_matrix(m) -> Matrix4:
    """Coerce a nested sequence or array into a validated 4x4 float64 matrix."""
    arr = np.asarray(m, dtype=np.float64)
    if arr.shape != (4, 4):
        raise SceneConfigError(f"Transform must be 4x4, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise SceneConfigError("Transform contains non-finite entries")
    return arr


def invert(m: Matrix4) -> Matrix4:
    """Invert a transform.

    Raises:
        SceneConfigError: If the matrix is singular. Every shape, pattern and
            camera transform must be invertible; this is a configuration
            error, never recovered at render time.
    """
    arr = as_matrix(m)
    det = np.linalg.det(arr)
    if abs(det) < SINGULAR_EPSILON:
        raise SceneConfigError(f"Transform is not invertible (determinant {det:.3g})")
    return np.linalg.inv(arr)


def normal_to_world(inverse: Matrix4, normal: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Map an object-space normal to world space via the inverse transpose."""
    n = inverse.T @ np.array([*np.asarray(normal, dtype=np.float64)[:3], 0.0])
    n3 = n[:3]
    return n3 / np.linalg.norm(n3)
