"""Camera module for primary ray generation.

Components:
    camera: Pinhole camera with host-side and kernel-side ray generation

Rays pass through the image plane at z = -1 in camera space; the camera
transform maps world to camera space and its inverse maps rays back.
"""

from .camera import Camera, ray_for_subpixel, setup_camera

__all__ = [
    "Camera",
    "setup_camera",
    "ray_for_subpixel",
]
