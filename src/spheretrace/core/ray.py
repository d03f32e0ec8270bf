"""Vector utilities for GPU-accelerated ray tracing.

This module provides the small set of vector helpers the tracing kernel
relies on. All operations are designed to work within Taichi kernels.
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Ray offset epsilon to avoid self-intersection
RAY_EPSILON = 1e-3


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect a vector about a normal.

    Args:
        incident: The incoming direction.
        normal: The unit surface normal.

    Returns:
        incident - 2 * dot(incident, normal) * normal.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def saturate(x: ti.f32) -> ti.f32:
    """Clamp a scalar to [0, 1]."""
    return tm.clamp(x, 0.0, 1.0)


@ti.func
def offset_ray_origin(point: vec3, normal: vec3) -> vec3:
    """Push a hit point off the surface along its normal."""
    return point + RAY_EPSILON * normal
