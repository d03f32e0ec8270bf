"""Progressive accumulation controller.

This module owns the accumulation surface and the sample counter, and runs
one frame of progressive rendering:

1. Reconcile the surface with the output dimensions (reallocating and
   resetting the sample count on mismatch)
2. Dispatch the kernel over GROUP_SIZE x GROUP_SIZE work groups covering the
   whole output, and wait for it to complete
3. Blend the raw sample into the display surface with weight
   1 / (sample_count + 1), an online incremental mean
4. Advance the sample count

Zero-sized output skips the frame. A failing dispatch raises
KernelDispatchError and leaves the accumulation state untouched.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.spheretrace.core.progressive import ProgressiveRenderer
    >>> renderer = ProgressiveRenderer()
    >>> renderer.render((512, 512), params, kernel)  # one sample
    >>> image = renderer.get_image_numpy()
"""

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.spheretrace.core.frame import FrameParameters
from src.spheretrace.core.kernel import Kernel, dispatch_groups

logger = logging.getLogger(__name__)


class KernelDispatchError(RuntimeError):
    """A kernel dispatch failed; the frame was dropped without blending."""


@ti.kernel
def _blend(raw: ti.template(), display: ti.template(), weight: ti.f32):
    """display = display * (1 - weight) + raw * weight, per pixel."""
    for i, j in raw:
        color = raw[i, j]

        # Keep NaN/Inf from poisoning the running mean
        for c in ti.static(range(3)):
            if ti.math.isnan(color[c]) or ti.math.isinf(color[c]):
                color[c] = 0.0

        display[i, j] = display[i, j] * (1.0 - weight) + color * weight


class AccumulationSurface:
    """Linear float RGB surfaces sized to the output resolution.

    Attributes:
        width: Surface width in pixels.
        height: Surface height in pixels.
        raw: Kernel write target, one fresh sample per dispatch.
        display: Running mean of all samples since the last reset.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface dimensions must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self.raw = ti.Vector.field(3, dtype=ti.f32)
        self.display = ti.Vector.field(3, dtype=ti.f32)

        builder = ti.FieldsBuilder()
        builder.dense(ti.ij, (width, height)).place(self.raw, self.display)
        self._snode_tree = builder.finalize()

        self.raw.fill(0.0)
        self.display.fill(0.0)

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def released(self) -> bool:
        return self._snode_tree is None

    def release(self) -> None:
        """Destroy the surface fields. Safe to call more than once."""
        if self._snode_tree is not None:
            self._snode_tree.destroy()
            self._snode_tree = None


@dataclass
class AccumulationState:
    """Mutable accumulation bookkeeping.

    Attributes:
        sample_count: Samples accumulated since the last reset. 0 means the
            next sample starts a fresh run.
        surface: The accumulation surface, or None before the first frame.
    """

    sample_count: int = 0
    surface: AccumulationSurface | None = None

    @property
    def dimensions(self) -> tuple[int, int] | None:
        """Dimensions the surface was created for, or None."""
        if self.surface is None:
            return None
        return self.surface.dimensions


def surface_to_numpy(field: ti.MatrixField) -> npt.NDArray[np.float32]:
    """Convert an (x, y) bottom-up field into a (height, width, 3) top-down image."""
    image = field.to_numpy()
    image = np.transpose(image, (1, 0, 2))
    image = np.flipud(image)
    return np.ascontiguousarray(image, dtype=np.float32)


class ProgressiveRenderer:
    """Progressive accumulation controller.

    The renderer owns its AccumulationState exclusively; the kernel only
    sees the raw surface for the duration of one dispatch.

    Attributes:
        state: The accumulation state.
    """

    def __init__(self) -> None:
        self.state = AccumulationState()

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return self.state.sample_count

    @property
    def width(self) -> int:
        """Get the surface width (0 before the first frame)."""
        return self.state.surface.width if self.state.surface is not None else 0

    @property
    def height(self) -> int:
        """Get the surface height (0 before the first frame)."""
        return self.state.surface.height if self.state.surface is not None else 0

    @property
    def surface(self) -> AccumulationSurface | None:
        return self.state.surface

    def reset(self) -> None:
        """Restart accumulation; the next sample fully overwrites the display."""
        self.state.sample_count = 0

    def prepare(self, output_dimensions: tuple[int, int]) -> bool:
        """Reconcile the surface with the output dimensions.

        Args:
            output_dimensions: (width, height) of the output.

        Returns:
            False if the dimensions are zero on either axis (frame must be
            skipped), True once a matching surface exists.
        """
        width, height = output_dimensions
        if width <= 0 or height <= 0:
            return False

        surface = self.state.surface
        if surface is None or surface.dimensions != (width, height):
            if surface is not None:
                surface.release()
                logger.info(
                    "Output resized from %dx%d to %dx%d, restarting accumulation",
                    surface.width,
                    surface.height,
                    width,
                    height,
                )
            self.state.surface = AccumulationSurface(width, height)
            self.state.sample_count = 0
        return True

    def render(
        self,
        output_dimensions: tuple[int, int],
        frame_params: FrameParameters,
        kernel: Kernel,
    ) -> None:
        """Render and accumulate one sample.

        Args:
            output_dimensions: (width, height) of the output.
            frame_params: Parameters bound for this dispatch.
            kernel: Kernel called as kernel(frame_params, raw_surface, groups).

        Raises:
            KernelDispatchError: If the kernel raised. The sample count is not
                advanced and the display surface is not touched.
        """
        if not self.prepare(output_dimensions):
            logger.debug("Skipping frame with zero-sized output %s", tuple(output_dimensions))
            return

        surface = self.state.surface
        groups = dispatch_groups(surface.width, surface.height)

        try:
            kernel(frame_params, surface.raw, groups)
            # The blend must not read the raw surface before the dispatch completes
            ti.sync()
        except Exception as exc:
            logger.error("Kernel dispatch failed at sample %d: %s", self.state.sample_count, exc)
            raise KernelDispatchError(f"Kernel dispatch failed: {exc}") from exc

        weight = 1.0 / (self.state.sample_count + 1)
        _blend(surface.raw, surface.display, weight)
        self.state.sample_count += 1

    def release(self) -> None:
        """Release the accumulation surface and reset the sample count."""
        if self.state.surface is not None:
            self.state.surface.release()
        self.state.surface = None
        self.state.sample_count = 0

    def get_image(self) -> ti.MatrixField:
        """Get the display field.

        Raises:
            RuntimeError: If no frame has been rendered yet.
        """
        if self.state.surface is None:
            raise RuntimeError("No accumulation surface. Render a frame first.")
        return self.state.surface.display

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the accumulated image as a NumPy array.

        Returns the display surface with values clamped to [0, 1] and
        optionally gamma corrected. The array shape is (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.
        """
        image = np.clip(surface_to_numpy(self.get_image()), 0.0, 1.0)

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image.astype(np.float32)

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the accumulated image as an 8-bit array (gamma corrected)."""
        image = self.get_image_numpy(gamma=gamma)
        return (image * 255).astype(np.uint8)

    def save_image(self, filepath: str, gamma: float = 2.2) -> None:
        """Save the accumulated image to a file (format from the extension)."""
        from PIL import Image as PILImage

        image_uint8 = self.get_image_uint8(gamma=gamma)
        pil_image = PILImage.fromarray(image_uint8)
        pil_image.save(filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
