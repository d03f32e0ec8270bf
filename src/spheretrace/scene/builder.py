"""Procedural scene generation.

This module places a bounded number of non-overlapping spheres with random
size and material inside a disk on the ground plane, using rejection
sampling with a single attempt per slot:

1. Draw a radius uniformly from the radius range.
2. Draw a uniform-area point inside the placement disk; the sphere rests on
   the ground plane (height = radius).
3. Drop the candidate if it overlaps any previously accepted sphere.
4. Draw a random HSV color and classify the sphere as metallic with the
   configured probability.

Rejected candidates are not retried, so the final count may be lower than
requested. Cramped parameters yield sparse scenes, never failures.

Example:
    >>> from src.spheretrace.scene.builder import generate_scene
    >>> scene = generate_scene(seed=42, count_max=50, radius_range=(3.0, 8.0),
    ...                        placement_radius=100.0, metal_probability=0.5)
    >>> len(scene) <= 50
    True
"""

import colorsys
import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from src.spheretrace.config import TracerConfig
from src.spheretrace.geometry.sphere import SPHERE_DTYPE, ZERO_RGB, Sphere
from src.spheretrace.scene.buffer import SphereBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scene:
    """An immutable, ordered collection of spheres.

    Attributes:
        spheres: Spheres in placement order.
        seed: The seed the scene was generated from (0 if non-deterministic).
    """

    spheres: tuple[Sphere, ...] = ()
    seed: int = 0

    def __len__(self) -> int:
        return len(self.spheres)

    def __iter__(self) -> Iterator[Sphere]:
        return iter(self.spheres)

    def to_records(self) -> np.ndarray:
        """Pack the scene into an array of 40-byte SPHERE_DTYPE records."""
        records = np.zeros(len(self.spheres), dtype=SPHERE_DTYPE)
        for i, sphere in enumerate(self.spheres):
            records[i] = sphere.to_record()
        return records

    @classmethod
    def from_records(cls, records: np.ndarray, seed: int = 0) -> "Scene":
        """Build a scene from an array of SPHERE_DTYPE records."""
        return cls(spheres=tuple(Sphere.from_record(r) for r in records), seed=seed)


def make_rng(seed: int, ambient: np.random.Generator | None = None) -> np.random.Generator:
    """Select the random stream for a scene build.

    A non-zero seed gets a dedicated, reproducible generator. Seed 0 uses the
    ambient generator (or a fresh OS-seeded one).
    """
    if seed != 0:
        return np.random.default_rng(seed)
    if ambient is not None:
        return ambient
    return np.random.default_rng()


def sample_in_disk(rng: np.random.Generator, radius: float) -> tuple[float, float]:
    """Draw a point uniformly distributed over the area of a disk."""
    r = radius * math.sqrt(rng.random())
    theta = 2.0 * math.pi * rng.random()
    return r * math.cos(theta), r * math.sin(theta)


def random_color(rng: np.random.Generator) -> tuple[float, float, float]:
    """Draw a color with hue, saturation and value each uniform in [0, 1]."""
    hue, saturation, value = rng.random(3)
    return colorsys.hsv_to_rgb(float(hue), float(saturation), float(value))


def generate_scene(
    seed: int,
    count_max: int,
    radius_range: tuple[float, float],
    placement_radius: float,
    metal_probability: float,
    rng: np.random.Generator | None = None,
) -> Scene:
    """Generate a non-overlapping set of spheres.

    Args:
        seed: Non-zero for a reproducible scene; 0 draws from ``rng`` (or a
            fresh generator when ``rng`` is None).
        count_max: Number of placement attempts. 0 yields an empty scene.
        radius_range: (min, max) radius range.
        placement_radius: Radius of the disk sphere centers are drawn from.
        metal_probability: Probability that a sphere is metallic.
        rng: Ambient generator used when seed is 0.

    Returns:
        The generated Scene. Its length may be smaller than count_max.
    """
    stream = make_rng(seed, rng)
    r_min, r_max = radius_range
    spheres: list[Sphere] = []
    rejected = 0

    for _ in range(count_max):
        radius = r_min + stream.random() * (r_max - r_min)
        x, z = sample_in_disk(stream, placement_radius)
        candidate = Sphere(position=(x, radius, z), radius=radius)

        if any(candidate.overlaps(other) for other in spheres):
            rejected += 1
            continue

        color = random_color(stream)
        if stream.random() < metal_probability:
            sphere = Sphere(candidate.position, radius, albedo=ZERO_RGB, specular=color)
        else:
            sphere = Sphere(candidate.position, radius, albedo=color, specular=ZERO_RGB)
        spheres.append(sphere)

    if rejected:
        logger.debug("Dropped %d of %d overlapping sphere candidates", rejected, count_max)

    return Scene(spheres=tuple(spheres), seed=seed)


class SceneBuilder:
    """Owner of the current scene and its uploaded sphere buffer.

    Each build replaces the previous scene wholesale and releases the
    previous sphere buffer.

    Attributes:
        scene: The most recently built Scene, or None before the first build.
        buffer: The SphereBuffer for the current scene, or None.

    Example:
        >>> builder = SceneBuilder()
        >>> scene = builder.build(seed=7, count_max=20, radius_range=(3.0, 8.0),
        ...                       placement_radius=100.0, metal_probability=0.5)
        >>> builder.buffer.count == len(scene)
        True
    """

    def __init__(self, rng: np.random.Generator | None = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self.scene: Scene | None = None
        self.buffer: SphereBuffer | None = None

    def build(
        self,
        seed: int,
        count_max: int,
        radius_range: tuple[float, float],
        placement_radius: float,
        metal_probability: float,
    ) -> Scene:
        """Generate a scene, upload it, and publish it as the current scene."""
        scene = generate_scene(
            seed,
            count_max,
            radius_range,
            placement_radius,
            metal_probability,
            rng=self._rng,
        )
        buffer = SphereBuffer.from_scene(scene)

        self.release()
        self.scene = scene
        self.buffer = buffer

        logger.info(
            "Built scene with %d of %d spheres (seed=%d)", len(scene), count_max, seed
        )
        return scene

    def build_from_config(self, config: TracerConfig) -> Scene:
        """Build a scene from the scene-defining fields of a TracerConfig."""
        return self.build(
            seed=config.seed,
            count_max=config.spheres_max,
            radius_range=config.sphere_radius,
            placement_radius=config.placement_radius,
            metal_probability=config.reflective_probability,
        )

    def release(self) -> None:
        """Release the current sphere buffer and forget the scene."""
        if self.buffer is not None:
            self.buffer.release()
        self.buffer = None
        self.scene = None
