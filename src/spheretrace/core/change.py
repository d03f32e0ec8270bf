"""Edge-triggered change detection for the camera and light transforms.

Each poll compares the current transforms with the snapshots recorded at the
previous poll. A change marks the corresponding dirty flag and replaces the
snapshot, so every change is reported exactly once.

Example:
    >>> import numpy as np
    >>> detector = ChangeDetector()
    >>> detector.poll(np.identity(4), np.array([0.0, -1.0, 0.0]))
    True
    >>> detector.poll(np.identity(4), np.array([0.0, -1.0, 0.0]))
    False
"""

import numpy as np
import numpy.typing as npt


class ChangeDetector:
    """Tracks camera and light transforms across frames.

    The first poll after construction or reset() has nothing to compare
    against and reports a change.

    Attributes:
        camera_dirty: Whether the camera changed at the most recent poll.
        light_dirty: Whether the light changed at the most recent poll.
    """

    def __init__(self) -> None:
        self._camera: npt.NDArray[np.float64] | None = None
        self._light: npt.NDArray[np.float64] | None = None
        self.camera_dirty = False
        self.light_dirty = False

    @staticmethod
    def _changed(previous: npt.NDArray[np.float64] | None, current: npt.NDArray[np.float64]) -> bool:
        return previous is None or previous.shape != current.shape or not np.array_equal(previous, current)

    def poll(self, camera_transform: npt.ArrayLike, light_transform: npt.ArrayLike) -> bool:
        """Compare against the previous poll and record the new transforms.

        Args:
            camera_transform: Current camera transform (e.g. camera-to-world).
            light_transform: Current light transform (e.g. its direction).

        Returns:
            True if either transform changed since the previous poll.
        """
        camera = np.array(camera_transform, dtype=np.float64)
        light = np.array(light_transform, dtype=np.float64)

        self.camera_dirty = self._changed(self._camera, camera)
        self.light_dirty = self._changed(self._light, light)

        if self.camera_dirty:
            self._camera = camera
        if self.light_dirty:
            self._light = light

        return self.camera_dirty or self.light_dirty

    def reset(self) -> None:
        """Forget the recorded snapshots."""
        self._camera = None
        self._light = None
        self.camera_dirty = False
        self.light_dirty = False
