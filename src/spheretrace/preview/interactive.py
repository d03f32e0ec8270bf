"""Interactive preview window using Taichi GGUI.

This module provides an interactive preview window that displays the
tracer's blended surface every frame. InteractivePreview implements the
tracer's display sink: the tracer hands it the display field after each
blend and the preview gamma-corrects it into its own canvas buffer.

Features:
    - Real-time progressive rendering display
    - Taichi GGUI-based window (GPU-accelerated)
    - Support for updating display from numpy arrays
    - Light, shading and scene controls; scene edits restart accumulation
    - PNG export of the current accumulation

Example:
    >>> from src.spheretrace.camera.pinhole import default_camera
    >>> from src.spheretrace.core.tracer import SphereTracer
    >>> from src.spheretrace.preview.interactive import InteractivePreview
    >>> from src.spheretrace.scene.light import DirectionalLight
    >>>
    >>> preview = InteractivePreview(960, 540)
    >>> tracer = SphereTracer()
    >>> preview.run(tracer, default_camera(), DirectionalLight())
"""

import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from src.spheretrace.preview.display import DisplaySettings
from src.spheretrace.preview.export import save_png
from src.spheretrace.scene.light import DirectionalLight

if TYPE_CHECKING:
    import numpy.typing as npt

    from src.spheretrace.camera.pinhole import PinholeCamera
    from src.spheretrace.core.tracer import SphereTracer

logger = logging.getLogger(__name__)


@ti.kernel
def _present(src: ti.template(), dst: ti.template(), inv_gamma: ti.f32):
    for i, j in src:
        dst[i, j] = ti.pow(ti.math.clamp(src[i, j], 0.0, 1.0), inv_gamma)


class InteractivePreview:
    """Interactive preview window using Taichi GGUI.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        gamma: Display gamma applied to presented surfaces.
        display_image: Taichi field storing the display image (RGB float).
        sample_count: Sample index of the last presented frame.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        title: str = "Sphere Tracer - Interactive Preview",
        gamma: float = 2.2,
    ) -> None:
        """Initialize the interactive preview.

        Args:
            width: Window width in pixels.
            height: Window height in pixels.
            title: Window title.
            gamma: Display gamma (default 2.2 for sRGB).

        Note:
            The window is created lazily on first use so the preview can be
            constructed (and fed images) without a display.
        """
        self.width = width
        self.height = height
        self.gamma = gamma
        self.sample_count = 0
        self._title = title

        self._window: "ti.ui.Window | None" = None
        self._canvas: "ti.ui.Canvas | None" = None

        # Shape is (width, height) for Taichi field, RGB values stored as vec3
        self._display_tree = None
        self._allocate_display(width, height)

        # GUI state, filled in by run()
        self._tracer: "SphereTracer | None" = None
        self._light_pitch = 60.0
        self._light_yaw = 30.0
        self._light_intensity = 1.0
        self._orbit_speed = 0.0

    def _initialize_window(self) -> None:
        if self._window is not None:
            return

        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    def _allocate_display(self, width: int, height: int) -> None:
        """Allocate the canvas buffer in its own SNode tree, freeing the old one."""
        self.release()
        self.display_image = ti.Vector.field(3, dtype=ti.f32)
        builder = ti.FieldsBuilder()
        builder.dense(ti.ij, (width, height)).place(self.display_image)
        self._display_tree = builder.finalize()
        self.width = width
        self.height = height

    @property
    def released(self) -> bool:
        return self._display_tree is None

    def release(self) -> None:
        """Destroy the canvas buffer. Safe to call more than once."""
        if self._display_tree is not None:
            self._display_tree.destroy()
            self._display_tree = None

    def _ensure_display_shape(self, width: int, height: int) -> None:
        if self._display_tree is None or self.display_image.shape != (width, height):
            self._allocate_display(width, height)

    def present(self, surface: ti.MatrixField, sample_count: int) -> None:
        """Receive the tracer's blended display surface.

        Args:
            surface: Linear RGB vector field of shape (width, height).
            sample_count: Sample index of the frame that produced it.
        """
        width, height = surface.shape
        self._ensure_display_shape(width, height)
        _present(surface, self.display_image, 1.0 / self.gamma)
        self.sample_count = sample_count

    def update_image(self, image: "npt.NDArray[np.float32]") -> None:
        """Update the display image from a numpy array.

        The image is displayed as-is: tone mapping and gamma correction
        should be applied before calling this method if needed.

        Args:
            image: NumPy array of shape (height, width, 3) with dtype float32.

        Raises:
            ValueError: If image shape doesn't match (height, width, 3).
        """
        expected_shape = (self.height, self.width, 3)
        if image.shape != expected_shape:
            raise ValueError(
                f"Image shape {image.shape} doesn't match expected {expected_shape}"
            )

        # Fields are (x, y) with the origin at the bottom-left
        image_transposed = np.ascontiguousarray(
            np.transpose(np.flipud(image), (1, 0, 2)).astype(np.float32)
        )
        self.display_image.from_numpy(image_transposed)

    def is_running(self) -> bool:
        return self.window.running

    def show_frame(self) -> None:
        """Draw the display image and present the window."""
        self.canvas.set_image(self.display_image)
        self.window.show()

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering.

        Returns:
            True if a display is available, False for headless environments.
        """
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        # On macOS, display is always available if not in SSH
        if os.uname().sysname == "Darwin":
            ssh_connection = os.environ.get("SSH_CONNECTION")
            return not (ssh_connection and not display)

        return bool(display or wayland)

    # =========================================================================
    # Tracer loop
    # =========================================================================

    def run(
        self,
        tracer: "SphereTracer",
        camera: "PinholeCamera",
        light: DirectionalLight,
        *,
        orbit_speed: float = 0.0,
    ) -> None:
        """Run the tracer until the window is closed.

        One tracer tick is performed per displayed frame. The camera orbits
        around its target by orbit_speed degrees per frame; any motion
        restarts accumulation.

        GUI Controls:
            - Light pitch/yaw/intensity sliders
            - Skybox intensity and bounce sliders (no restart)
            - Reflective probability slider and Regenerate button
            - Orbit speed slider and Export PNG button

        Args:
            tracer: The tracer to drive. It is activated if needed and this
                preview is installed as its display sink.
            camera: Initial camera.
            light: Initial light; its intensity seeds the intensity slider.
            orbit_speed: Camera orbit speed in degrees per frame.
        """
        self._initialize_window()
        self._tracer = tracer
        self._orbit_speed = orbit_speed
        self._light_intensity = light.intensity
        tracer.sink = self
        tracer.activate()

        logger.info("Interactive preview started (%dx%d)", self.width, self.height)

        while self.is_running():
            if self._orbit_speed != 0.0:
                camera = camera.orbit(self._orbit_speed)

            light = self._draw_gui_panel(light)

            width, height = self.window.get_window_shape()
            tracer.tick(camera, light, (width, height))
            self.show_frame()

        logger.info("Interactive preview closed after %d samples", tracer.sample_count)

    def _draw_gui_panel(self, light: DirectionalLight) -> DirectionalLight:
        """Draw the control panels and apply their edits.

        Returns:
            The light to render this frame with.
        """
        assert self._tracer is not None
        tracer = self._tracer
        config = tracer.config

        with self.window.GUI.sub_window("Light", 0.02, 0.02, 0.25, 0.16) as gui:
            pitch = gui.slider_float("Pitch", self._light_pitch, minimum=5.0, maximum=90.0)
            yaw = gui.slider_float("Yaw", self._light_yaw, minimum=-180.0, maximum=180.0)
            intensity = gui.slider_float(
                "Intensity", self._light_intensity, minimum=0.0, maximum=4.0
            )

        if (pitch, yaw, intensity) != (
            self._light_pitch,
            self._light_yaw,
            self._light_intensity,
        ):
            self._light_pitch, self._light_yaw, self._light_intensity = pitch, yaw, intensity
            light = DirectionalLight.from_angles(pitch, yaw, intensity)

        with self.window.GUI.sub_window("Scene", 0.02, 0.20, 0.25, 0.22) as gui:
            skybox = gui.slider_float(
                "Skybox", config.skybox_intensity, minimum=0.0, maximum=2.0
            )
            bounces = gui.slider_int("Bounces", config.bounces, minimum=0, maximum=12)
            reflective = gui.slider_float(
                "Reflective", config.reflective_probability, minimum=0.0, maximum=1.0
            )
            regenerate = gui.button("Regenerate")

        updated = config.replace(
            skybox_intensity=skybox,
            bounces=bounces,
            reflective_probability=reflective,
        )
        if updated != config:
            tracer.update_config(updated)
        if regenerate:
            tracer.regenerate()

        with self.window.GUI.sub_window("View", 0.02, 0.44, 0.25, 0.12) as gui:
            self._orbit_speed = gui.slider_float(
                "Orbit", self._orbit_speed, minimum=-2.0, maximum=2.0
            )
            if gui.button("Export PNG"):
                self._export_png()

        return light

    def _export_png(self) -> None:
        """Export the current accumulation to a timestamped PNG file."""
        assert self._tracer is not None
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"spheres_{timestamp}.png"

        save_png(self._tracer.renderer, filename, DisplaySettings(gamma=self.gamma))
        logger.info("Exported %s (%d samples)", filename, self._tracer.sample_count)
