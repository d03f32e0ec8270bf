"""Geometry module for the sphere primitive and its intersection routines.

Components:
    sphere: Host-side Sphere value, packed 40-byte record layout, and
        Taichi ray-sphere / ray-ground-plane intersection functions

Intersection routines are Taichi functions (@ti.func) called from the
tracing kernel. They follow the pattern:
    record = hit_shape(ray_origin, ray_direction, shape_data..., t_min, t_max)
"""

from .sphere import (
    SPHERE_DTYPE,
    SPHERE_RECORD_SIZE,
    HitRecord,
    Sphere,
    hit_ground_plane,
    hit_sphere,
)

__all__ = [
    "Sphere",
    "SPHERE_DTYPE",
    "SPHERE_RECORD_SIZE",
    "HitRecord",
    "hit_sphere",
    "hit_ground_plane",
]
