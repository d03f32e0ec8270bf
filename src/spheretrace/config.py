"""Configuration for the sphere tracer.

This module provides the TracerConfig dataclass gathering every tunable the
tracer exposes: scene generation parameters (seed, sphere count, radius range,
placement radius, reflective probability) and per-frame shading parameters
(skybox intensity, bounce limit).

Scene-defining fields are reported by scene_key(); when they change the scene
must be regenerated and accumulation restarted. The remaining fields take
effect on the next frame without a reset.

Example:
    >>> from src.spheretrace.config import TracerConfig
    >>> config = TracerConfig(seed=1223832719, spheres_max=50)
    >>> config.bounces
    8
    >>> brighter = config.replace(skybox_intensity=1.5)
"""

import dataclasses
from dataclasses import dataclass
from typing import Any

# Conventional clamping ranges for the per-frame shading parameters
MAX_SKYBOX_INTENSITY = 2.0
MAX_BOUNCES = 12


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class TracerConfig:
    """Parameters for scene generation and rendering.

    Attributes:
        seed: Random seed for scene generation. 0 means non-deterministic
            (a fresh scene every build).
        reflective_probability: Probability in [0, 1] that a sphere is
            metallic. Default is 0.5.
        sphere_radius: (min, max) range the sphere radii are drawn from.
            An inverted range is accepted and simply yields radii in between.
        spheres_max: Maximum number of placement attempts (non-negative).
        placement_radius: Radius of the disk sphere centers are drawn from.
        skybox_intensity: Environment multiplier, clamped to [0, 2].
        bounces: Reflection bounce limit, clamped to [0, 12].

    Raises:
        ValueError: If spheres_max is negative.
    """

    seed: int = 0
    reflective_probability: float = 0.5
    sphere_radius: tuple[float, float] = (3.0, 8.0)
    spheres_max: int = 100
    placement_radius: float = 100.0
    skybox_intensity: float = 1.0
    bounces: int = 8

    def __post_init__(self) -> None:
        if self.spheres_max < 0:
            raise ValueError(f"spheres_max must be non-negative, got {self.spheres_max}")

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "seed", int(self.seed))
        object.__setattr__(self, "spheres_max", int(self.spheres_max))
        object.__setattr__(
            self,
            "reflective_probability",
            _clamp(float(self.reflective_probability), 0.0, 1.0),
        )
        object.__setattr__(
            self,
            "sphere_radius",
            (float(self.sphere_radius[0]), float(self.sphere_radius[1])),
        )
        object.__setattr__(self, "placement_radius", float(self.placement_radius))
        object.__setattr__(
            self,
            "skybox_intensity",
            _clamp(float(self.skybox_intensity), 0.0, MAX_SKYBOX_INTENSITY),
        )
        object.__setattr__(self, "bounces", int(_clamp(int(self.bounces), 0, MAX_BOUNCES)))

    def scene_key(self) -> tuple[Any, ...]:
        """Get the fields that define the generated scene.

        Two configs with equal scene keys produce the same scene for a
        non-zero seed.
        """
        return (
            self.seed,
            self.reflective_probability,
            self.sphere_radius,
            self.spheres_max,
            self.placement_radius,
        )

    def replace(self, **changes: Any) -> "TracerConfig":
        """Return a copy with the given fields replaced (and re-validated)."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Export the configuration to a dictionary (for JSON serialization)."""
        data = dataclasses.asdict(self)
        data["sphere_radius"] = list(self.sphere_radius)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TracerConfig":
        """Load a configuration from a dictionary.

        Missing keys fall back to defaults.

        Raises:
            ValueError: If the dictionary contains unknown keys or an
                invalid sphere count.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs = dict(data)
        if "sphere_radius" in kwargs:
            radius_list = kwargs["sphere_radius"]
            kwargs["sphere_radius"] = (radius_list[0], radius_list[1])
        return cls(**kwargs)
