"""Tests for GPU-side sphere storage."""

import numpy as np
import pytest


class TestSphereBuffer:
    """Test SphereBuffer upload, download and release."""

    def test_upload_matches_scene(self):
        from src.spheretrace.scene.buffer import SphereBuffer
        from src.spheretrace.scene.builder import generate_scene

        scene = generate_scene(17, 30, (3.0, 8.0), 100.0, 0.5)
        buffer = SphereBuffer.from_scene(scene)

        assert buffer.count == len(scene)
        assert np.array_equal(buffer.to_records(), scene.to_records())
        buffer.release()

    def test_field_values(self):
        from src.spheretrace.geometry.sphere import Sphere
        from src.spheretrace.scene.buffer import SphereBuffer
        from src.spheretrace.scene.builder import Scene

        scene = Scene((Sphere((1.0, 2.0, 3.0), 2.0, specular=(0.5, 0.6, 0.7)),))
        buffer = SphereBuffer.from_scene(scene)

        assert np.allclose(buffer.positions[0].to_numpy(), [1.0, 2.0, 3.0])
        assert buffer.radii[0] == pytest.approx(2.0)
        assert np.allclose(buffer.speculars[0].to_numpy(), [0.5, 0.6, 0.7])
        assert np.allclose(buffer.albedos[0].to_numpy(), 0.0)
        buffer.release()

    def test_empty_buffer_keeps_one_slot(self):
        from src.spheretrace.scene.buffer import SphereBuffer

        buffer = SphereBuffer.empty()

        assert buffer.count == 0
        assert buffer.radii.shape == (1,)
        assert buffer.to_records().shape == (0,)
        buffer.release()

    def test_release_is_idempotent(self):
        from src.spheretrace.scene.buffer import SphereBuffer

        buffer = SphereBuffer.empty()
        buffer.release()
        buffer.release()

        assert buffer.released
        assert "released=True" in repr(buffer)

    def test_download_after_release_raises(self):
        from src.spheretrace.scene.buffer import SphereBuffer

        buffer = SphereBuffer.empty()
        buffer.release()

        with pytest.raises(RuntimeError, match="released"):
            buffer.to_records()

    def test_rejects_wrong_dtype(self):
        from src.spheretrace.scene.buffer import SphereBuffer

        with pytest.raises(ValueError, match="dtype"):
            SphereBuffer(np.zeros((4, 10), dtype=np.float32))
