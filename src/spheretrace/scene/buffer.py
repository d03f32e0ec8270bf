"""GPU-side sphere storage.

The sphere buffer holds a scene in Taichi fields using a Structure-of-Arrays
layout (positions, radii, albedos, speculars) for GPU-efficient access. The
fields live in their own SNode tree so a buffer can be released as a unit
when its scene is replaced.

An empty scene still allocates one storage slot; kernels iterate only over
the first ``count`` entries.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.scene.buffer import SphereBuffer
    >>> buffer = SphereBuffer.empty()
    >>> buffer.count
    0
    >>> buffer.release()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from src.spheretrace.geometry.sphere import SPHERE_DTYPE

if TYPE_CHECKING:
    from src.spheretrace.scene.builder import Scene


class SphereBuffer:
    """Sphere data uploaded to Taichi fields.

    Attributes:
        positions: Vector field of sphere centers.
        radii: Scalar field of sphere radii.
        albedos: Vector field of diffuse reflectances.
        speculars: Vector field of specular reflectances.
    """

    def __init__(self, records: np.ndarray) -> None:
        """Allocate fields and upload the given SPHERE_DTYPE records.

        Args:
            records: Array of SPHERE_DTYPE records (may be empty).
        """
        if records.dtype != SPHERE_DTYPE:
            raise ValueError(f"Expected records of dtype {SPHERE_DTYPE}, got {records.dtype}")

        self._count = len(records)
        capacity = max(self._count, 1)

        self.positions = ti.Vector.field(3, dtype=ti.f32)
        self.radii = ti.field(dtype=ti.f32)
        self.albedos = ti.Vector.field(3, dtype=ti.f32)
        self.speculars = ti.Vector.field(3, dtype=ti.f32)

        builder = ti.FieldsBuilder()
        builder.dense(ti.i, capacity).place(
            self.positions, self.radii, self.albedos, self.speculars
        )
        self._snode_tree = builder.finalize()

        padded = np.zeros(capacity, dtype=SPHERE_DTYPE)
        padded[: self._count] = records
        self.positions.from_numpy(np.ascontiguousarray(padded["position"]))
        self.radii.from_numpy(np.ascontiguousarray(padded["radius"]))
        self.albedos.from_numpy(np.ascontiguousarray(padded["albedo"]))
        self.speculars.from_numpy(np.ascontiguousarray(padded["specular"]))

    @classmethod
    def from_scene(cls, scene: Scene) -> SphereBuffer:
        """Upload a Scene."""
        return cls(scene.to_records())

    @classmethod
    def empty(cls) -> SphereBuffer:
        """Create a buffer with no spheres (sky and ground only)."""
        return cls(np.zeros(0, dtype=SPHERE_DTYPE))

    @property
    def count(self) -> int:
        """Number of live spheres in the buffer."""
        return self._count

    @property
    def released(self) -> bool:
        """Whether the underlying fields have been destroyed."""
        return self._snode_tree is None

    def release(self) -> None:
        """Destroy the underlying fields. Safe to call more than once."""
        if self._snode_tree is not None:
            self._snode_tree.destroy()
            self._snode_tree = None

    def to_records(self) -> np.ndarray:
        """Download the live spheres as SPHERE_DTYPE records.

        Raises:
            RuntimeError: If the buffer has been released.
        """
        if self.released:
            raise RuntimeError("Sphere buffer has been released")

        records = np.zeros(self._count, dtype=SPHERE_DTYPE)
        if self._count:
            records["position"] = self.positions.to_numpy()[: self._count]
            records["radius"] = self.radii.to_numpy()[: self._count]
            records["albedo"] = self.albedos.to_numpy()[: self._count]
            records["specular"] = self.speculars.to_numpy()[: self._count]
        return records

    def __repr__(self) -> str:
        return f"SphereBuffer(count={self._count}, released={self.released})"
