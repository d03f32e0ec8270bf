"""Tracer lifecycle: scene, change detection and progressive rendering per frame.

SphereTracer is an explicit two-state machine:

    UNINITIALIZED --activate()--> ACTIVE --deactivate()--> UNINITIALIZED

Each tick(camera, light, output_dimensions) renders one frame:

1. Poll the change detector; a camera or light change restarts accumulation
2. Reconcile the accumulation surface with the output dimensions
3. Bind the frame parameters (jitter follows the current sample count)
4. Dispatch, blend and advance the sample count
5. Hand the blended display surface to the display sink, if any

Accumulation restarts on activation, camera or light movement, output
resize and scene regeneration, and at no other time.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.spheretrace.camera.pinhole import default_camera
    >>> from src.spheretrace.config import TracerConfig
    >>> from src.spheretrace.core.tracer import SphereTracer
    >>> from src.spheretrace.scene.light import DirectionalLight
    >>>
    >>> tracer = SphereTracer(TracerConfig(seed=7))
    >>> tracer.activate()
    >>> for _ in range(64):
    ...     tracer.tick(default_camera(), DirectionalLight(), (640, 360))
    >>> tracer.renderer.save_image("spheres.png")
"""

import logging
from enum import Enum
from typing import Protocol

import numpy as np
import taichi as ti

from src.spheretrace.camera.pinhole import PinholeCamera
from src.spheretrace.config import TracerConfig
from src.spheretrace.core.change import ChangeDetector
from src.spheretrace.core.frame import bind_frame_parameters
from src.spheretrace.core.kernel import Kernel, SphereTracingKernel
from src.spheretrace.core.progressive import ProgressiveRenderer
from src.spheretrace.scene.buffer import SphereBuffer
from src.spheretrace.scene.builder import SceneBuilder
from src.spheretrace.scene.light import DirectionalLight

logger = logging.getLogger(__name__)


class TracerState(Enum):
    """Lifecycle states of a SphereTracer."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class DisplaySink(Protocol):
    """Receiver of the blended display surface after every frame."""

    def present(self, surface: ti.MatrixField, sample_count: int) -> None: ...


class SphereTracer:
    """Frame-synchronous progressive sphere tracer.

    Attributes:
        config: Current configuration.
        builder: Scene builder owning the scene and its sphere buffer.
        detector: Camera/light change detector.
        renderer: Progressive accumulation controller.
        sink: Optional display sink receiving each blended frame.
    """

    def __init__(
        self,
        config: TracerConfig | None = None,
        kernel: Kernel | None = None,
        *,
        rng: np.random.Generator | None = None,
        sink: DisplaySink | None = None,
    ) -> None:
        """Create an inactive tracer.

        Args:
            config: Tracer configuration. Defaults to TracerConfig().
            kernel: Kernel to dispatch. Defaults to a SphereTracingKernel,
                created on first use.
            rng: Ambient random stream for jitter and seed-0 scenes.
            sink: Display sink receiving each blended frame.
        """
        self.config = config if config is not None else TracerConfig()
        self._kernel = kernel
        self._rng = rng if rng is not None else np.random.default_rng()
        self.builder = SceneBuilder(rng=self._rng)
        self.detector = ChangeDetector()
        self.renderer = ProgressiveRenderer()
        self.sink = sink
        self._empty_buffer: SphereBuffer | None = None
        self._state = TracerState.UNINITIALIZED

    @property
    def state(self) -> TracerState:
        return self._state

    @property
    def sample_count(self) -> int:
        return self.renderer.sample_count

    @property
    def kernel(self) -> Kernel:
        """The dispatched kernel, created on first access."""
        if self._kernel is None:
            self._kernel = SphereTracingKernel()
        return self._kernel

    def activate(self) -> None:
        """Build the scene and start a fresh accumulation run."""
        if self._state is TracerState.ACTIVE:
            return

        self.builder.build_from_config(self.config)
        self.detector.reset()
        self.renderer.reset()
        self._state = TracerState.ACTIVE
        logger.info("Tracer activated")

    def deactivate(self) -> None:
        """Release the sphere buffer and the accumulation surface."""
        self.builder.release()
        self.renderer.release()
        if self._empty_buffer is not None:
            self._empty_buffer.release()
            self._empty_buffer = None
        self._state = TracerState.UNINITIALIZED
        logger.info("Tracer deactivated")

    def update_config(self, config: TracerConfig) -> bool:
        """Apply a new configuration.

        Scene-defining changes regenerate the scene and restart accumulation
        while active. Shading-only changes apply from the next frame.

        Returns:
            True if the scene was regenerated.
        """
        rebuild = config.scene_key() != self.config.scene_key()
        self.config = config

        if rebuild and self._state is TracerState.ACTIVE:
            self.builder.build_from_config(config)
            self.renderer.reset()
            return True
        return False

    def regenerate(self) -> bool:
        """Rebuild the scene from the current configuration and restart.

        Does nothing while inactive; activation builds the scene.

        Returns:
            True if the scene was regenerated.
        """
        if self._state is not TracerState.ACTIVE:
            return False

        self.builder.build_from_config(self.config)
        self.renderer.reset()
        return True

    def _sphere_buffer(self) -> SphereBuffer:
        if self.builder.buffer is not None:
            return self.builder.buffer
        # No scene yet: bind an empty buffer instead of failing
        if self._empty_buffer is None:
            self._empty_buffer = SphereBuffer.empty()
        return self._empty_buffer

    def tick(
        self,
        camera: PinholeCamera,
        light: DirectionalLight,
        output_dimensions: tuple[int, int],
    ) -> bool:
        """Render one frame.

        Args:
            camera: Camera state for this frame.
            light: Light state for this frame.
            output_dimensions: (width, height) of the output.

        Returns:
            True if a frame was rendered, False if it was skipped because
            the output has zero size.

        Raises:
            KernelDispatchError: If the kernel dispatch failed.
        """
        if self.detector.poll(camera.camera_to_world(), light.transform):
            self.renderer.reset()

        if not self.renderer.prepare(output_dimensions):
            logger.debug("Skipping frame with zero-sized output %s", tuple(output_dimensions))
            return False

        width, height = output_dimensions
        sample = self.renderer.sample_count
        params = bind_frame_parameters(
            camera,
            light,
            sample,
            self.config,
            self._sphere_buffer(),
            self._rng,
            aspect_ratio=width / height,
        )
        self.renderer.render(output_dimensions, params, self.kernel)

        if self.sink is not None:
            self.sink.present(self.renderer.get_image(), sample)
        return True
