"""Tests for the reference sphere tracing kernel and the skybox.

These run the real Taichi kernel on small images.
"""

import numpy as np
import pytest


def _uniform_sky(value):
    from src.spheretrace.core.kernel import Skybox

    return Skybox.from_array(np.full((4, 8, 3), value, dtype=np.float32))


def _render(kernel, camera, dims, config=None, scene=None, frames=1, light=None):
    from src.spheretrace.config import TracerConfig
    from src.spheretrace.core.frame import bind_frame_parameters
    from src.spheretrace.core.progressive import ProgressiveRenderer
    from src.spheretrace.scene.buffer import SphereBuffer
    from src.spheretrace.scene.light import DirectionalLight

    config = config or TracerConfig()
    light = light or DirectionalLight()
    buffer = SphereBuffer.from_scene(scene) if scene is not None else SphereBuffer.empty()
    rng = np.random.default_rng(0)
    renderer = ProgressiveRenderer()

    for _ in range(frames):
        renderer.prepare(dims)
        params = bind_frame_parameters(
            camera, light, renderer.sample_count, config, buffer, rng, aspect_ratio=dims[0] / dims[1]
        )
        renderer.render(dims, params, kernel)

    image = renderer.get_image().to_numpy()
    renderer.release()
    buffer.release()
    return image


@pytest.fixture
def sky_camera():
    """Camera looking steeply upward; every primary ray escapes."""
    from src.spheretrace.camera.pinhole import PinholeCamera

    return PinholeCamera(lookfrom=(0.0, 10.0, 0.0), lookat=(0.0, 20.0, 1.0), vfov=60.0)


class TestSkybox:
    """Test skybox construction."""

    def test_from_array_stores_transposed(self):
        sky = _uniform_sky(0.3)

        assert sky.image.shape == (8, 4)
        assert np.allclose(sky.image.to_numpy(), 0.3)

    def test_rejects_bad_shape(self):
        from src.spheretrace.core.kernel import Skybox

        with pytest.raises(ValueError, match="shape"):
            Skybox(np.zeros((4, 8), dtype=np.float32))

    def test_gradient_is_brighter_above(self):
        from src.spheretrace.core.kernel import Skybox

        image = Skybox.gradient(width=4, height=8).image.to_numpy()

        # Field rows run bottom-up
        assert image[0, -1].sum() > image[0, 0].sum()


class TestSphereTracingKernel:
    """Test the reference kernel."""

    def test_empty_scene_sky_only(self, sky_camera):
        from src.spheretrace.core.kernel import SphereTracingKernel

        image = _render(SphereTracingKernel(_uniform_sky(0.25)), sky_camera, (12, 10))

        assert np.allclose(image, 0.25, atol=1e-5)

    def test_skybox_intensity_scales_sky(self, sky_camera):
        from src.spheretrace.config import TracerConfig
        from src.spheretrace.core.kernel import SphereTracingKernel

        image = _render(
            SphereTracingKernel(_uniform_sky(0.25)),
            sky_camera,
            (12, 10),
            config=TracerConfig(skybox_intensity=2.0),
        )

        assert np.allclose(image, 0.5, atol=1e-5)

    def test_all_pixels_written_for_uneven_size(self, sky_camera):
        """Test that edge pixels of partial work groups are traced."""
        from src.spheretrace.core.kernel import SphereTracingKernel

        image = _render(SphereTracingKernel(_uniform_sky(1.0)), sky_camera, (13, 11))

        assert image.shape == (13, 11, 3)
        assert np.all(image > 0.99)

    def test_scene_render_is_finite(self):
        from src.spheretrace.camera.pinhole import default_camera
        from src.spheretrace.core.kernel import Skybox, SphereTracingKernel
        from src.spheretrace.scene.builder import generate_scene

        scene = generate_scene(1223832719, 40, (3.0, 8.0), 100.0, 0.5)
        image = _render(
            SphereTracingKernel(Skybox.gradient()),
            default_camera(2.0),
            (32, 16),
            scene=scene,
            frames=3,
        )

        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)
        assert image.max() > 0.0

    def test_ground_is_lit_without_spheres(self):
        """Test that a ground pixel receives direct light."""
        from src.spheretrace.camera.pinhole import PinholeCamera
        from src.spheretrace.config import TracerConfig
        from src.spheretrace.core.kernel import SphereTracingKernel
        from src.spheretrace.scene.light import DirectionalLight

        camera = PinholeCamera(lookfrom=(0.0, 10.0, 0.0), lookat=(0.0, 0.0, 1e-3), vup=(0.0, 0.0, 1.0))
        image = _render(
            SphereTracingKernel(_uniform_sky(0.0)),
            camera,
            (8, 8),
            config=TracerConfig(bounces=0),
            light=DirectionalLight(direction=(0.0, -1.0, 0.0), intensity=1.0),
        )

        # Ground albedo 0.8 under a unit-intensity overhead light
        assert np.allclose(image, 0.8, atol=1e-4)
