"""Sphere primitive: host-side value type, binary record and ray intersection.

This module provides:
- Sphere: immutable host-side description of a placed sphere
- SPHERE_DTYPE: the packed 40-byte record layout shared with the kernel
- hit_sphere: robust ray-sphere intersection for use inside Taichi kernels

The intersection uses the robust quadratic formula from Ray Tracing Gems to
avoid catastrophic cancellation when b^2 is nearly equal to 4ac.

Example:
    >>> from src.spheretrace.geometry.sphere import Sphere
    >>> sphere = Sphere(position=(0.0, 1.0, 0.0), radius=1.0,
    ...                 albedo=(0.8, 0.2, 0.2), specular=(0.0, 0.0, 0.0))
    >>> sphere.is_metal
    False
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Packed sphere record: 3 floats position, 1 float radius, 3 floats albedo,
# 3 floats specular. Field order and width are fixed (40 bytes per record).
SPHERE_DTYPE = np.dtype(
    [
        ("position", "<f4", (3,)),
        ("radius", "<f4"),
        ("albedo", "<f4", (3,)),
        ("specular", "<f4", (3,)),
    ]
)

SPHERE_RECORD_SIZE = SPHERE_DTYPE.itemsize

ZERO_RGB = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Sphere:
    """A sphere resting on the ground plane.

    Attributes:
        position: Center of the sphere (x, y, z). y equals the radius for
            generated spheres.
        radius: Radius of the sphere (positive).
        albedo: Diffuse reflectance (R, G, B). Zero for metallic spheres.
        specular: Specular reflectance (R, G, B). Zero for non-metallic spheres.
    """

    position: tuple[float, float, float]
    radius: float
    albedo: tuple[float, float, float] = ZERO_RGB
    specular: tuple[float, float, float] = ZERO_RGB

    @property
    def is_metal(self) -> bool:
        """Whether the sphere reflects specularly instead of diffusely."""
        return any(c != 0.0 for c in self.specular)

    def overlaps(self, other: "Sphere") -> bool:
        """Check whether two spheres intersect (touching is allowed)."""
        min_dist = self.radius + other.radius
        dx = self.position[0] - other.position[0]
        dy = self.position[1] - other.position[1]
        dz = self.position[2] - other.position[2]
        return dx * dx + dy * dy + dz * dz < min_dist * min_dist

    def to_record(self) -> np.void:
        """Pack the sphere into a single SPHERE_DTYPE record."""
        record = np.zeros((), dtype=SPHERE_DTYPE)
        record["position"] = self.position
        record["radius"] = self.radius
        record["albedo"] = self.albedo
        record["specular"] = self.specular
        return record[()]

    @classmethod
    def from_record(cls, record: np.void) -> "Sphere":
        """Unpack a SPHERE_DTYPE record."""
        return cls(
            position=tuple(float(c) for c in record["position"]),
            radius=float(record["radius"]),
            albedo=tuple(float(c) for c in record["albedo"]),
            specular=tuple(float(c) for c in record["specular"]),
        )


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray intersected the primitive, 0 otherwise.
        t: Ray parameter of the intersection. Only valid if hit == 1.
        point: Intersection point. Only valid if hit == 1.
        normal: Outward unit normal at the intersection point.
            Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 with the numerically stable formula.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray: fall back to the standard formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    center: vec3,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves |origin + t * direction - center|^2 = radius^2 in half-b form:
        a = dot(d, d), h = dot(d, oc), c = dot(oc, oc) - radius^2

    Args:
        ray_origin: Starting point of the ray.
        ray_direction: Direction of the ray (need not be normalized).
        center: Sphere center.
        radius: Sphere radius.
        t_min: Minimum accepted ray parameter.
        t_max: Maximum accepted ray parameter.

    Returns:
        A HitRecord for the nearest intersection in (t_min, t_max).
    """
    oc = ray_origin - center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - radius * radius

    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            hit_normal = (hit_point - center) / radius

    return HitRecord(hit=did_hit, t=hit_t, point=hit_point, normal=hit_normal)


@ti.func
def hit_ground_plane(ray_origin: vec3, ray_direction: vec3, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test for intersection with the ground plane y = 0."""
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)

    if ti.abs(ray_direction.y) > 1e-8:
        t = -ray_origin.y / ray_direction.y
        if t > t_min and t < t_max:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction

    return HitRecord(hit=did_hit, t=hit_t, point=hit_point, normal=vec3(0.0, 1.0, 0.0))
