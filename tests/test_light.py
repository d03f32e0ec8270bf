"""Tests for the directional light."""

import numpy as np
import pytest

from src.spheretrace.scene.light import DirectionalLight


class TestDirectionalLight:
    """Test DirectionalLight."""

    def test_forward_is_normalized(self):
        light = DirectionalLight(direction=(0.0, -3.0, 4.0))

        assert np.allclose(light.forward, [0.0, -0.6, 0.8])

    def test_as_vector_packs_intensity(self):
        light = DirectionalLight(direction=(0.0, -2.0, 0.0), intensity=0.75)

        assert light.as_vector() == pytest.approx((0.0, -1.0, 0.0, 0.75))

    def test_zero_direction_rejected(self):
        with pytest.raises(ValueError, match="non-zero"):
            DirectionalLight(direction=(0.0, 0.0, 0.0))

    def test_transform_ignores_intensity(self):
        a = DirectionalLight(intensity=1.0)
        b = DirectionalLight(intensity=3.0)

        assert np.array_equal(a.transform, b.transform)

    def test_from_angles_straight_down(self):
        light = DirectionalLight.from_angles(90.0, 0.0)

        assert np.allclose(light.forward, [0.0, -1.0, 0.0], atol=1e-12)

    def test_from_angles_yaw_zero_faces_negative_z(self):
        light = DirectionalLight.from_angles(0.0, 0.0, intensity=2.0)

        assert np.allclose(light.forward, [0.0, 0.0, -1.0], atol=1e-12)
        assert light.intensity == 2.0
