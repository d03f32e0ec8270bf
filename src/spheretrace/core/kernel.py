"""Sphere tracing kernel and environment map.

This module implements the per-pixel ray tracer the progressive controller
dispatches. The controller treats it as an opaque callable:

    kernel(params, target, groups)

where ``params`` is a FrameParameters value, ``target`` a Taichi vector field
of shape (width, height) receiving one radiance sample per pixel, and
``groups`` the number of GROUP_SIZE x GROUP_SIZE work groups on each axis.

The reference kernel traces a ground plane and the bound sphere buffer:
- Primary rays are reconstructed from the inverse projection and the
  camera-to-world matrix, offset by the frame's pixel jitter
- Each hit adds directional-light diffuse shading (with a shadow ray) and
  reflects the ray, attenuating energy by the surface's specular color
- Escaped rays sample the equirectangular skybox

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.core.kernel import Skybox, SphereTracingKernel
    >>> kernel = SphereTracingKernel(Skybox.gradient())
"""

from typing import Protocol

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.spheretrace.core.frame import FrameParameters
from src.spheretrace.core.ray import offset_ray_origin, reflect, saturate
from src.spheretrace.geometry.sphere import hit_ground_plane, hit_sphere

# Type alias for 3D vectors
vec3 = tm.vec3

# Work group edge length (pixels) used to partition the output
GROUP_SIZE = 8

# t_min and t_max for ray intersection
T_MIN = 1e-4
T_MAX = 1e10

# Ground plane material (y = 0)
GROUND_ALBEDO = vec3(0.8, 0.8, 0.8)
GROUND_SPECULAR = vec3(0.04, 0.04, 0.04)

# Paths stop once every energy channel drops below this
MIN_ENERGY = 1e-4


class Kernel(Protocol):
    """Interface of a kernel the progressive controller can dispatch."""

    def __call__(self, params: FrameParameters, target: ti.MatrixField, groups: tuple[int, int]) -> None: ...


def dispatch_groups(width: int, height: int, group_size: int = GROUP_SIZE) -> tuple[int, int]:
    """Number of work groups needed to cover an image, rounding up per axis."""
    return -(-width // group_size), -(-height // group_size)


@ti.data_oriented
class Skybox:
    """Equirectangular environment map.

    Attributes:
        image: Vector field of shape (width, height), y = 0 at the bottom.
    """

    def __init__(self, image: npt.NDArray[np.float32]) -> None:
        """Upload an environment image.

        Args:
            image: Linear RGB array of shape (H, W, 3), top row first, with
                longitude along the width and latitude along the height.

        Raises:
            ValueError: If the image is not of shape (H, W, 3).
        """
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Skybox image must have shape (H, W, 3), got {image.shape}")

        height, width = image.shape[:2]
        self.width = width
        self.height = height
        self.image = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))

        # NumPy images are (height, width) top-down; the field is (x, y) bottom-up
        transposed = np.ascontiguousarray(
            np.transpose(np.flipud(image), (1, 0, 2)).astype(np.float32)
        )
        self.image.from_numpy(transposed)

    @classmethod
    def from_array(cls, image: npt.NDArray[np.floating]) -> "Skybox":
        """Create a skybox from a linear (H, W, 3) float image."""
        return cls(np.asarray(image, dtype=np.float32))

    @classmethod
    def from_file(cls, filepath: str, gamma: float = 2.2) -> "Skybox":
        """Load an 8-bit sRGB image with Pillow and linearize it."""
        from PIL import Image as PILImage

        with PILImage.open(filepath) as img:
            pixels = np.asarray(img.convert("RGB"), dtype=np.float32) / 255.0
        return cls.from_array(np.power(pixels, gamma))

    @classmethod
    def gradient(
        cls,
        width: int = 64,
        height: int = 32,
        zenith: tuple[float, float, float] = (0.5, 0.7, 1.0),
        horizon: tuple[float, float, float] = (1.0, 1.0, 1.0),
        ground: tuple[float, float, float] = (0.35, 0.3, 0.25),
    ) -> "Skybox":
        """Create a procedural sky fading from zenith to horizon."""
        # Elevation of each row, +1 at the top row and -1 at the bottom row
        elevation = np.linspace(1.0, -1.0, height, dtype=np.float32)[:, None, None]
        blend = np.clip(elevation, 0.0, 1.0)
        sky = (1.0 - blend) * np.asarray(horizon, dtype=np.float32) + blend * np.asarray(
            zenith, dtype=np.float32
        )
        image = np.where(elevation >= 0.0, sky, np.asarray(ground, dtype=np.float32))
        image = np.broadcast_to(image, (height, width, 3))
        return cls(np.ascontiguousarray(image, dtype=np.float32))

    @ti.func
    def sample(self, direction: vec3) -> vec3:
        """Nearest-neighbor lookup of the environment along a direction."""
        theta = tm.acos(tm.clamp(direction.y, -1.0, 1.0))
        phi = tm.atan2(direction.x, -direction.z)
        u = 0.5 + phi / (2.0 * tm.pi)
        v = 1.0 - theta / tm.pi
        i = tm.clamp(ti.cast(u * self.width, ti.i32), 0, self.width - 1)
        j = tm.clamp(ti.cast(v * self.height, ti.i32), 0, self.height - 1)
        return self.image[i, j]


@ti.data_oriented
class SphereTracingKernel:
    """Whitted-style sphere tracer with directional light and skybox.

    The kernel writes one radiance sample per pixel of the target. Frame
    constants (matrices, jitter, light) are staged in 0-D fields before each
    dispatch.
    """

    def __init__(self, skybox: Skybox | None = None) -> None:
        self.skybox = skybox if skybox is not None else Skybox.gradient()
        self._camera_to_world = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        self._inverse_projection = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        self._pixel_offset = ti.Vector.field(2, dtype=ti.f32, shape=())
        self._light = ti.Vector.field(4, dtype=ti.f32, shape=())

    def __call__(self, params: FrameParameters, target: ti.MatrixField, groups: tuple[int, int]) -> None:
        """Trace one sample for every pixel covered by ``groups``.

        Args:
            params: Frame parameters to bind.
            target: Raw output field of shape (width, height).
            groups: Work group counts (x, y).
        """
        self._camera_to_world.from_numpy(np.asarray(params.camera_to_world, dtype=np.float32))
        self._inverse_projection.from_numpy(np.asarray(params.inverse_projection, dtype=np.float32))
        self._pixel_offset[None] = [params.pixel_offset[0], params.pixel_offset[1]]
        self._light[None] = list(params.light)

        spheres = params.spheres
        self._trace(
            target,
            spheres.positions,
            spheres.radii,
            spheres.albedos,
            spheres.speculars,
            spheres.count,
            params.bounces,
            params.skybox_intensity,
            groups[0],
            groups[1],
        )

    @ti.func
    def _closest_hit(
        self,
        origin: vec3,
        direction: vec3,
        positions: ti.template(),
        radii: ti.template(),
        albedos: ti.template(),
        speculars: ti.template(),
        num_spheres: ti.i32,
    ):
        """Find the nearest surface along a ray.

        Returns:
            Tuple of (hit, point, normal, albedo, specular).
        """
        ground = hit_ground_plane(origin, direction, T_MIN, T_MAX)
        hit = ground.hit
        best_t = ti.select(ground.hit == 1, ground.t, T_MAX)
        point = ground.point
        normal = ground.normal
        albedo = GROUND_ALBEDO
        specular = GROUND_SPECULAR

        for k in range(num_spheres):
            record = hit_sphere(origin, direction, positions[k], radii[k], T_MIN, best_t)
            if record.hit == 1:
                hit = 1
                best_t = record.t
                point = record.point
                normal = record.normal
                albedo = albedos[k]
                specular = speculars[k]

        return hit, point, normal, albedo, specular

    @ti.func
    def _camera_ray(self, x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32):
        """Reconstruct the primary ray through a jittered pixel position."""
        offset = self._pixel_offset[None]
        ndc_x = (ti.cast(x, ti.f32) + offset.x) / ti.cast(width, ti.f32) * 2.0 - 1.0
        ndc_y = (ti.cast(y, ti.f32) + offset.y) / ti.cast(height, ti.f32) * 2.0 - 1.0

        camera_to_world = self._camera_to_world[None]
        origin4 = camera_to_world @ tm.vec4(0.0, 0.0, 0.0, 1.0)
        view4 = self._inverse_projection[None] @ tm.vec4(ndc_x, ndc_y, 0.0, 1.0)
        world4 = camera_to_world @ tm.vec4(view4.x, view4.y, view4.z, 0.0)

        origin = vec3(origin4.x, origin4.y, origin4.z)
        direction = tm.normalize(vec3(world4.x, world4.y, world4.z))
        return origin, direction

    @ti.kernel
    def _trace(
        self,
        target: ti.template(),
        positions: ti.template(),
        radii: ti.template(),
        albedos: ti.template(),
        speculars: ti.template(),
        num_spheres: ti.i32,
        bounces: ti.i32,
        skybox_intensity: ti.f32,
        groups_x: ti.i32,
        groups_y: ti.i32,
    ):
        width = target.shape[0]
        height = target.shape[1]
        light = self._light[None]
        to_light = -vec3(light.x, light.y, light.z)

        for gx, gy, lx, ly in ti.ndrange(groups_x, groups_y, GROUP_SIZE, GROUP_SIZE):
            x = gx * GROUP_SIZE + lx
            y = gy * GROUP_SIZE + ly
            # Edge groups overhang the image when it is not a multiple of GROUP_SIZE
            if x < width and y < height:
                origin, direction = self._camera_ray(x, y, width, height)
                result = vec3(0.0, 0.0, 0.0)
                energy = vec3(1.0, 1.0, 1.0)
                active = 1

                for _depth in range(bounces + 1):
                    if active == 1:
                        hit, point, normal, albedo, specular = self._closest_hit(
                            origin, direction, positions, radii, albedos, speculars, num_spheres
                        )
                        if hit == 1:
                            surface = offset_ray_origin(point, normal)
                            lit = saturate(tm.dot(normal, to_light)) * light.w
                            if lit > 0.0:
                                shadowed, _point, _normal, _albedo, _specular = self._closest_hit(
                                    surface, to_light, positions, radii, albedos, speculars, num_spheres
                                )
                                if shadowed == 1:
                                    lit = 0.0
                            result += energy * lit * albedo

                            origin = surface
                            direction = reflect(direction, normal)
                            energy *= specular
                            if ti.max(energy.x, energy.y, energy.z) < MIN_ENERGY:
                                active = 0
                        else:
                            result += energy * self.skybox.sample(direction) * skybox_intensity
                            active = 0

                target[x, y] = result
