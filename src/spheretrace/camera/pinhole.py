"""Pinhole camera model producing the matrices the tracing kernel consumes.

The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view in degrees
- Arbitrary aspect ratios

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

View space follows the OpenGL convention (camera looks down -Z). The kernel
receives the camera-to-world matrix (columns u, v, w, lookfrom) and the
inverse of an OpenGL-style perspective projection, and reconstructs primary
rays from normalized device coordinates.

Example:
    >>> from src.spheretrace.camera.pinhole import PinholeCamera
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 40.0, -120.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=16.0 / 9.0,
    ... )
    >>> camera.camera_to_world().shape
    (4, 4)
"""

import dataclasses
import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


@dataclass(frozen=True)
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
        near: Near clipping distance of the projection.
        far: Far clipping distance of the projection.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 60.0
    aspect_ratio: float = 1.0
    near: float = 0.3
    far: float = 1000.0

    def basis(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Compute the camera's orthonormal basis (u, v, w).

        Raises:
            ValueError: If lookfrom equals lookat or vup is parallel to the
                view direction.
        """
        lookfrom = np.asarray(self.lookfrom, dtype=np.float64)
        lookat = np.asarray(self.lookat, dtype=np.float64)
        vup = np.asarray(self.vup, dtype=np.float64)

        w = lookfrom - lookat
        w_len = np.linalg.norm(w)
        if w_len < 1e-12:
            raise ValueError("Camera lookfrom and lookat must differ")
        w = w / w_len

        u = np.cross(vup, w)
        u_len = np.linalg.norm(u)
        if u_len < 1e-12:
            raise ValueError("Camera vup must not be parallel to the view direction")
        u = u / u_len

        v = np.cross(w, u)
        return u, v, w

    def camera_to_world(self) -> npt.NDArray[np.float64]:
        """Get the 4x4 camera-to-world transform (columns u, v, w, position)."""
        u, v, w = self.basis()
        matrix = np.identity(4, dtype=np.float64)
        matrix[:3, 0] = u
        matrix[:3, 1] = v
        matrix[:3, 2] = w
        matrix[:3, 3] = self.lookfrom
        return matrix

    def projection_matrix(self, aspect_ratio: float | None = None) -> npt.NDArray[np.float64]:
        """Get the OpenGL-style perspective projection matrix.

        Args:
            aspect_ratio: Overrides the configured aspect ratio (typically the
                output width / height).
        """
        aspect = self.aspect_ratio if aspect_ratio is None else aspect_ratio
        f = 1.0 / math.tan(math.radians(self.vfov) / 2.0)
        near, far = self.near, self.far

        matrix = np.zeros((4, 4), dtype=np.float64)
        matrix[0, 0] = f / aspect
        matrix[1, 1] = f
        matrix[2, 2] = (far + near) / (near - far)
        matrix[2, 3] = 2.0 * far * near / (near - far)
        matrix[3, 2] = -1.0
        return matrix

    def inverse_projection(self, aspect_ratio: float | None = None) -> npt.NDArray[np.float64]:
        """Get the inverse of projection_matrix()."""
        return np.linalg.inv(self.projection_matrix(aspect_ratio))

    def orbit(self, degrees: float) -> "PinholeCamera":
        """Return a copy rotated around the vertical axis through lookat."""
        angle = math.radians(degrees)
        c, s = math.cos(angle), math.sin(angle)
        offset = np.asarray(self.lookfrom, dtype=np.float64) - np.asarray(self.lookat, dtype=np.float64)
        x = c * offset[0] + s * offset[2]
        z = -s * offset[0] + c * offset[2]
        lookfrom = (
            float(self.lookat[0] + x),
            float(self.lookat[1] + offset[1]),
            float(self.lookat[2] + z),
        )
        return dataclasses.replace(self, lookfrom=lookfrom)


def default_camera(aspect_ratio: float = 16.0 / 9.0) -> PinholeCamera:
    """Camera framing the default placement disk from above and behind."""
    return PinholeCamera(
        lookfrom=(0.0, 60.0, -160.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=60.0,
        aspect_ratio=aspect_ratio,
    )
