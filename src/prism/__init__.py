"""Taichi-accelerated Whitted-style ray tracer.

This package renders scenes built from spheres, planes, cubes, cylinders,
triangles and nested groups, shaded with the Phong model, hard and soft
shadows, recursive reflection and refraction, and supersampled
antialiasing.

Subpackages:
    core: Transforms, rays, configuration, shading integrator, scheduler, canvas
    geometry: Shape primitives, bounding boxes and intersection kernels
    materials: Phong materials and procedural patterns
    lights: Point and area lights
    scene: World construction, the shape arena and scene traversal
    camera: Pixel-to-ray mapping
    preview: Canvas export (PPM, PNG)

Modules that allocate Taichi fields (materials, lights, scene, camera and the
integrator) must be imported after ``ti.init()``; see
``prism.core.config.init_taichi``.
"""

__version__ = "0.1.0"
