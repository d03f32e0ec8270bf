"""Tests for the preview module.

This module tests the preview/display and preview/export functionality including:
- DisplaySettings validation and labels
- The tone map / gamma display pipeline on renderers, surfaces and arrays
- PNG export of accumulated images
- InteractivePreview as a display sink

Note: Tests avoid opening windows; show_preview and run() are not called.
"""

import os
import tempfile

import numpy as np
import pytest
from PIL import Image as PILImage


@pytest.fixture
def accumulated(frame_params, kernel_factory):
    """A renderer holding a 24x12 image of constant radiance 2.0."""
    from src.spheretrace.core.progressive import ProgressiveRenderer

    renderer = ProgressiveRenderer()
    renderer.render((24, 12), frame_params, kernel_factory([2.0]))
    yield renderer
    renderer.release()


class TestDisplaySettings:
    """Test display encoding settings."""

    def test_defaults(self):
        from src.spheretrace.preview.display import DisplaySettings

        settings = DisplaySettings()

        assert settings.tone_map == "none"
        assert settings.gamma == pytest.approx(2.2)

    def test_unknown_tone_map_raises(self):
        from src.spheretrace.preview.display import DisplaySettings

        with pytest.raises(ValueError, match="Unknown tone mapping"):
            DisplaySettings(tone_map="aces")

    def test_non_positive_gamma_raises(self):
        from src.spheretrace.preview.display import DisplaySettings

        with pytest.raises(ValueError, match="gamma"):
            DisplaySettings(gamma=0.0)

    @pytest.mark.parametrize(
        "kwargs, label",
        [
            ({}, "gamma 2.2"),
            ({"tone_map": "reinhard", "gamma": 1.0}, "reinhard, gamma 1"),
            ({"tone_map": "exposure", "exposure": 2.0}, "exposure 2, gamma 2.2"),
        ],
    )
    def test_describe(self, kwargs, label):
        from src.spheretrace.preview.display import DisplaySettings

        assert DisplaySettings(**kwargs).describe() == label


class TestToneMap:
    """Test tone mapping without gamma."""

    @pytest.mark.parametrize("value", [0.0, 0.5, 1.0, 2.0, 10.0])
    def test_reinhard(self, value):
        from src.spheretrace.preview.display import DisplaySettings, tone_map

        result = tone_map(np.full((2, 2, 3), value, dtype=np.float32), DisplaySettings("reinhard"))

        assert np.allclose(result, value / (1.0 + value), atol=1e-6)

    @pytest.mark.parametrize("exposure", [0.5, 1.0, 2.0])
    def test_exposure(self, exposure):
        from src.spheretrace.preview.display import DisplaySettings, tone_map

        settings = DisplaySettings("exposure", exposure=exposure)
        result = tone_map(np.ones((2, 2, 3), dtype=np.float32), settings)

        assert np.allclose(result, 1.0 - np.exp(-exposure), atol=1e-6)

    def test_none_clamps_to_unit_range(self):
        from src.spheretrace.preview.display import DisplaySettings, tone_map

        image = np.array([[[-1.0, 0.25, 4.0]]], dtype=np.float32)

        assert tone_map(image, DisplaySettings()).tolist() == [[[0.0, 0.25, 1.0]]]

    def test_non_finite_radiance(self):
        """Test that NaN shows as black and +Inf as white."""
        from src.spheretrace.preview.display import DisplaySettings, tone_map

        image = np.array([[[np.nan, np.inf, -np.inf]]], dtype=np.float32)
        result = tone_map(image, DisplaySettings("reinhard"))

        assert np.all(np.isfinite(result))
        assert result[0, 0, 0] == 0.0
        assert result[0, 0, 1] == pytest.approx(1.0)
        assert result[0, 0, 2] == 0.0


class TestEncodeDisplay:
    """Test the full display pipeline."""

    def test_gamma_applied_after_tone_map(self):
        from src.spheretrace.preview.display import DisplaySettings, encode_display

        image = np.ones((4, 4, 3), dtype=np.float32)
        result = encode_display(image, DisplaySettings("reinhard", gamma=2.0))

        assert np.allclose(result, 0.5**0.5, atol=1e-6)

    @pytest.mark.parametrize("tone_map", ["none", "reinhard", "exposure"])
    def test_output_always_valid(self, tone_map):
        from src.spheretrace.preview.display import DisplaySettings, encode_display

        image = np.random.default_rng(1).random((8, 8, 3)).astype(np.float32) * 10
        result = encode_display(image, DisplaySettings(tone_map))

        assert result.dtype == np.float32
        assert np.all((result >= 0.0) & (result <= 1.0))

    def test_does_not_modify_input(self):
        from src.spheretrace.preview.display import DisplaySettings, encode_display

        image = np.full((4, 4, 3), 3.0, dtype=np.float32)
        encode_display(image, DisplaySettings("reinhard"))

        assert np.all(image == 3.0)

    def test_renderer_and_surface_agree(self, accumulated):
        from src.spheretrace.preview.display import encode_display

        from_renderer = encode_display(accumulated)
        from_surface = encode_display(accumulated.surface)

        assert from_renderer.shape == (12, 24, 3)
        assert np.array_equal(from_renderer, from_surface)


class TestLinearImage:
    """Test reading accumulated images back."""

    def test_renderer_is_unclamped(self, accumulated):
        from src.spheretrace.preview.display import linear_image

        image = linear_image(accumulated)

        assert image.shape == (12, 24, 3)
        assert np.allclose(image, 2.0)

    def test_unrendered_renderer_raises(self):
        from src.spheretrace.core.progressive import ProgressiveRenderer
        from src.spheretrace.preview.display import linear_image

        with pytest.raises(RuntimeError):
            linear_image(ProgressiveRenderer())

    def test_rejects_bad_array_shape(self):
        from src.spheretrace.preview.display import linear_image

        with pytest.raises(ValueError, match="height, width, 3"):
            linear_image(np.zeros((4, 4), dtype=np.float32))


class TestExport:
    """Test PNG export."""

    def test_to_uint8_rounds(self):
        from src.spheretrace.preview.export import to_uint8

        encoded = np.array([[[0.0, 0.5, 1.5]]], dtype=np.float32)

        result = to_uint8(encoded)

        assert result.dtype == np.uint8
        assert result.tolist() == [[[0, 128, 255]]]

    def test_save_png_from_renderer(self, accumulated):
        from src.spheretrace.preview.display import DisplaySettings
        from src.spheretrace.preview.export import save_png

        with tempfile.TemporaryDirectory() as tmpdir:
            path = save_png(
                accumulated,
                os.path.join(tmpdir, "spheres.png"),
                DisplaySettings("reinhard", gamma=1.0),
            )

            with PILImage.open(path) as img:
                assert img.size == (24, 12)
                assert img.mode == "RGB"
                # 2 / (1 + 2) -> 170
                assert np.all(np.asarray(img) == 170)

    def test_save_png_from_array(self):
        from src.spheretrace.preview.export import save_png

        image = np.zeros((6, 10, 3), dtype=np.float32)
        image[:, :, 0] = 1.0

        with tempfile.TemporaryDirectory() as tmpdir:
            path = save_png(image, os.path.join(tmpdir, "red.png"))

            with PILImage.open(path) as img:
                pixels = np.asarray(img)
                assert pixels.shape == (6, 10, 3)
                assert np.all(pixels[:, :, 0] == 255)
                assert np.all(pixels[:, :, 1:] == 0)


class TestModuleExports:
    """Test the preview package exports."""

    def test_package_imports(self):
        import src.spheretrace.preview as preview

        for name in preview.__all__:
            assert hasattr(preview, name)
        assert "InteractivePreview" in preview.__all__

    def test_present_through_package(self, accumulated):
        """Test that the display sink loads and runs its kernel."""
        from src.spheretrace.preview import InteractivePreview

        preview = InteractivePreview(24, 12, gamma=1.0)
        preview.present(accumulated.get_image(), 3)

        assert np.allclose(preview.display_image.to_numpy(), 1.0)
        preview.release()

    def test_gui_light_type_is_module_level(self):
        from src.spheretrace.preview import interactive
        from src.spheretrace.scene.light import DirectionalLight

        assert interactive.DirectionalLight is DirectionalLight


class TestInteractivePreview:
    """Test InteractivePreview without opening a window."""

    def test_init_defers_window_creation(self):
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(32, 16)

        assert preview.display_image.shape == (32, 16)
        assert preview._window is None
        assert preview.sample_count == 0
        preview.release()

    def test_update_image_validates_shape(self):
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(32, 16)

        with pytest.raises(ValueError, match="doesn't match"):
            preview.update_image(np.zeros((32, 16, 3), dtype=np.float32))
        preview.release()

    def test_update_image_flips_rows(self):
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(4, 2)
        image = np.zeros((2, 4, 3), dtype=np.float32)
        image[0, :, :] = 1.0  # top row

        preview.update_image(image)
        field = preview.display_image.to_numpy()

        assert np.allclose(field[:, 1], 1.0)
        assert np.allclose(field[:, 0], 0.0)
        preview.release()

    def test_present_applies_gamma(self, accumulated):
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(24, 12, gamma=2.0)
        preview.present(accumulated.get_image(), 7)

        # Values are clamped to 1 before gamma
        assert np.allclose(preview.display_image.to_numpy(), 1.0)
        assert preview.sample_count == 7
        preview.release()

    def test_present_adopts_surface_size(self, frame_params, kernel_factory):
        from src.spheretrace.core.progressive import ProgressiveRenderer
        from src.spheretrace.preview.interactive import InteractivePreview

        renderer = ProgressiveRenderer()
        renderer.render((10, 6), frame_params, kernel_factory([0.25]))
        preview = InteractivePreview(24, 12, gamma=2.0)

        preview.present(renderer.get_image(), 0)

        assert preview.display_image.shape == (10, 6)
        assert (preview.width, preview.height) == (10, 6)
        assert np.allclose(preview.display_image.to_numpy(), 0.5, atol=1e-6)
        renderer.release()
        preview.release()

    def test_resize_frees_previous_buffer(self, monkeypatch, accumulated):
        """Test that a size change destroys the old canvas buffer."""
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(8, 8)
        old_tree = preview._display_tree
        destroyed = []
        real_destroy = old_tree.destroy

        def destroy():
            destroyed.append(True)
            real_destroy()

        monkeypatch.setattr(old_tree, "destroy", destroy)

        preview.present(accumulated.get_image(), 0)

        assert destroyed == [True]
        assert preview._display_tree is not old_tree
        assert not preview.released
        preview.release()

    def test_same_size_keeps_buffer(self, accumulated):
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(24, 12)
        field = preview.display_image

        preview.present(accumulated.get_image(), 0)
        preview.present(accumulated.get_image(), 1)

        assert preview.display_image is field
        preview.release()

    def test_release_is_idempotent(self):
        from src.spheretrace.preview.interactive import InteractivePreview

        preview = InteractivePreview(8, 8)

        preview.release()
        preview.release()

        assert preview.released

    def test_is_display_available_returns_bool(self):
        from src.spheretrace.preview.interactive import InteractivePreview

        assert isinstance(InteractivePreview.is_display_available(), bool)
