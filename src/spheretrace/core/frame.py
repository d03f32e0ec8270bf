"""Per-frame kernel parameters.

FrameParameters is rebuilt every frame from the camera, the light, the
current sample count and the tracer configuration. Only the pixel jitter
depends on the sample count: the first sample of an accumulation run goes
through pixel centers, later samples are jittered uniformly within the pixel.
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.spheretrace.camera.pinhole import PinholeCamera
from src.spheretrace.config import TracerConfig
from src.spheretrace.scene.buffer import SphereBuffer
from src.spheretrace.scene.light import DirectionalLight

# Jitter of the first sample in every accumulation run
PIXEL_CENTER = (0.5, 0.5)


@dataclass(frozen=True)
class FrameParameters:
    """Everything the tracing kernel reads for one dispatch.

    Attributes:
        camera_to_world: 4x4 camera-to-world transform.
        inverse_projection: 4x4 inverse perspective projection.
        pixel_offset: Sub-pixel jitter (x, y) in [0, 1).
        light: (direction.x, direction.y, direction.z, intensity).
        bounces: Reflection bounce limit.
        skybox_intensity: Environment multiplier.
        spheres: Sphere buffer bound for the dispatch.
    """

    camera_to_world: npt.NDArray[np.float32]
    inverse_projection: npt.NDArray[np.float32]
    pixel_offset: tuple[float, float]
    light: tuple[float, float, float, float]
    bounces: int
    skybox_intensity: float
    spheres: SphereBuffer


def pixel_jitter(sample_count: int, rng: np.random.Generator) -> tuple[float, float]:
    """Get the sub-pixel offset for a sample.

    Args:
        sample_count: Index of the sample about to be rendered.
        rng: Random stream for jittered samples.

    Returns:
        (0.5, 0.5) for sample 0, otherwise a uniform offset in [0, 1)^2.
    """
    if sample_count == 0:
        return PIXEL_CENTER
    return float(rng.random()), float(rng.random())


def bind_frame_parameters(
    camera: PinholeCamera,
    light: DirectionalLight,
    sample_count: int,
    config: TracerConfig,
    spheres: SphereBuffer,
    rng: np.random.Generator,
    aspect_ratio: float | None = None,
) -> FrameParameters:
    """Assemble the kernel inputs for one frame.

    Args:
        camera: Camera state for this frame.
        light: Light state for this frame.
        sample_count: Current accumulated sample count.
        config: Tracer configuration (bounce limit, skybox intensity).
        spheres: Sphere buffer to bind.
        rng: Random stream for pixel jitter.
        aspect_ratio: Output width / height; defaults to the camera's.

    Returns:
        An immutable FrameParameters value.
    """
    camera_to_world = camera.camera_to_world().astype(np.float32)
    inverse_projection = camera.inverse_projection(aspect_ratio).astype(np.float32)
    camera_to_world.flags.writeable = False
    inverse_projection.flags.writeable = False

    return FrameParameters(
        camera_to_world=camera_to_world,
        inverse_projection=inverse_projection,
        pixel_offset=pixel_jitter(sample_count, rng),
        light=light.as_vector(),
        bounces=config.bounces,
        skybox_intensity=config.skybox_intensity,
        spheres=spheres,
    )
