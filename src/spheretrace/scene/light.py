"""Directional light source.

The light is described by the direction its rays travel and a scalar
intensity. The kernel receives both packed into a 4-vector
(direction.xyz, intensity).

Only the direction is part of the light's transform: moving the light
invalidates accumulated samples, editing its intensity does not.
"""

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class DirectionalLight:
    """A light infinitely far away, shining along one direction.

    Attributes:
        direction: Direction the light travels (need not be normalized).
        intensity: Scalar light intensity. Default is 1.0.
    """

    direction: tuple[float, float, float] = (-0.3, -1.0, 0.4)
    intensity: float = 1.0

    def __post_init__(self) -> None:
        if np.linalg.norm(self.direction) < 1e-8:
            raise ValueError("Light direction must be non-zero")

    @property
    def forward(self) -> np.ndarray:
        """Unit direction the light travels."""
        d = np.asarray(self.direction, dtype=np.float64)
        return d / np.linalg.norm(d)

    @property
    def transform(self) -> np.ndarray:
        """Snapshot of the light's orientation for change detection."""
        return self.forward

    def as_vector(self) -> tuple[float, float, float, float]:
        """Pack as (x, y, z, intensity) with a unit direction."""
        f = self.forward
        return (float(f[0]), float(f[1]), float(f[2]), float(self.intensity))

    @classmethod
    def from_angles(cls, pitch: float, yaw: float, intensity: float = 1.0) -> "DirectionalLight":
        """Create a light from pitch/yaw angles in degrees.

        Pitch tilts the light downward from the horizon; yaw rotates it around
        the vertical axis, with yaw 0 shining toward -Z.
        """
        p = math.radians(pitch)
        y = math.radians(yaw)
        direction = (
            -math.cos(p) * math.sin(y),
            -math.sin(p),
            -math.cos(p) * math.cos(y),
        )
        return cls(direction=direction, intensity=intensity)
