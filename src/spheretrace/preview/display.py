"""Display encoding and Matplotlib preview of the accumulated image.

The accumulation surface holds linear radiance that may exceed 1. Turning
it into something viewable is one pipeline, configured by DisplaySettings:

    radiance -> (clip negatives/NaN) -> tone map -> clamp -> gamma

The same pipeline feeds the Matplotlib preview and the PNG exporter, so a
saved image always matches what show_preview displays.

Example:
    >>> from src.spheretrace.preview.display import DisplaySettings, show_preview
    >>> show_preview(tracer.renderer, DisplaySettings(tone_map="reinhard"))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

import numpy as np
import numpy.typing as npt

from src.spheretrace.core.progressive import (
    AccumulationSurface,
    ProgressiveRenderer,
    surface_to_numpy,
)

ToneMapMethod = Literal["none", "reinhard", "exposure"]

# Anything holding an accumulated image
ImageSource = Union[ProgressiveRenderer, AccumulationSurface, npt.NDArray[np.float32]]


@dataclass(frozen=True)
class DisplaySettings:
    """How linear radiance is encoded for display.

    Attributes:
        tone_map: "none" clamps, "reinhard" maps c / (1 + c), "exposure"
            maps 1 - exp(-c * exposure).
        gamma: Display gamma (2.2 for sRGB). 1.0 leaves values linear.
        exposure: Exposure scale, only used by the "exposure" tone map.
    """

    tone_map: ToneMapMethod = "none"
    gamma: float = 2.2
    exposure: float = 1.0

    def __post_init__(self) -> None:
        if self.tone_map not in ("none", "reinhard", "exposure"):
            raise ValueError(f"Unknown tone mapping method: {self.tone_map}")
        if self.gamma <= 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")

    def describe(self) -> str:
        """Short label for figure titles, e.g. "reinhard, gamma 2.2"."""
        label = f"gamma {self.gamma:g}"
        if self.tone_map == "exposure":
            return f"exposure {self.exposure:g}, {label}"
        if self.tone_map == "reinhard":
            return f"reinhard, {label}"
        return label


def linear_image(source: ImageSource) -> npt.NDArray[np.float32]:
    """Get an accumulated image as an unclamped (height, width, 3) array.

    Args:
        source: A renderer (its display surface is read), an accumulation
            surface, or an array that is already (height, width, 3).

    Raises:
        RuntimeError: If a renderer has not rendered a frame yet.
        ValueError: If an array source is not (height, width, 3).
    """
    if isinstance(source, ProgressiveRenderer):
        return surface_to_numpy(source.get_image())
    if isinstance(source, AccumulationSurface):
        return surface_to_numpy(source.display)

    image = np.asarray(source, dtype=np.float32)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected a (height, width, 3) image, got shape {image.shape}")
    return image


def tone_map(
    radiance: npt.NDArray[np.float32],
    settings: DisplaySettings,
) -> npt.NDArray[np.float32]:
    """Compress linear radiance into [0, 1] without gamma."""
    # NaN and negative radiance display as black
    radiance = np.nan_to_num(radiance, nan=0.0, posinf=np.finfo(np.float32).max)
    radiance = np.maximum(radiance, 0.0)

    if settings.tone_map == "reinhard":
        radiance = radiance / (1.0 + radiance)
    elif settings.tone_map == "exposure":
        radiance = 1.0 - np.exp(-radiance * settings.exposure)

    return np.clip(radiance, 0.0, 1.0).astype(np.float32)


def encode_display(
    source: ImageSource,
    settings: DisplaySettings | None = None,
) -> npt.NDArray[np.float32]:
    """Run the full display pipeline on an accumulated image.

    Args:
        source: Renderer, accumulation surface or linear array.
        settings: Encoding settings. Defaults to DisplaySettings().

    Returns:
        Display-referred (height, width, 3) float32 image in [0, 1]. The
        source is never modified.
    """
    settings = settings or DisplaySettings()
    encoded = tone_map(linear_image(source), settings)
    if settings.gamma != 1.0:
        encoded = np.power(encoded, 1.0 / settings.gamma)
    return encoded.astype(np.float32)


def show_preview(
    renderer: ProgressiveRenderer,
    settings: DisplaySettings | None = None,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (10, 6),
    block: bool = True,
) -> None:
    """Display the current accumulated image as a Matplotlib figure.

    Args:
        renderer: The ProgressiveRenderer to display.
        settings: Display encoding. Defaults to DisplaySettings().
        title: Custom title (default shows the sample count and encoding).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    settings = settings or DisplaySettings()
    image = encode_display(renderer, settings)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(image)
    ax.axis("off")

    if title is None:
        title = f"Sphere Tracer - {renderer.sample_count} samples ({settings.describe()})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
