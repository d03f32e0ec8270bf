"""Taichi-based progressive sphere ray tracer.

This package renders procedurally generated scenes of spheres with
GPU-accelerated ray tracing, with support for:
- Seeded, non-overlapping sphere placement inside a disk
- Diffuse and metallic spheres on a ground plane under a directional light
- Progressive Monte-Carlo accumulation that restarts exactly when the camera,
  light, output size or scene changes

Subpackages:
    core: Change detection, frame parameters, tracing kernel, accumulation
    geometry: Sphere value type, record layout and intersection routines
    scene: Scene generation and GPU-side sphere storage
    camera: Camera matrices
    preview: Output, tone mapping and interactive preview utilities
"""

__version__ = "0.1.0"
