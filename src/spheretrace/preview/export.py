"""PNG export of accumulated images.

Images go through the same DisplaySettings pipeline as the preview and are
written as 8-bit RGB with Pillow.

Example:
    >>> from src.spheretrace.preview.display import DisplaySettings
    >>> from src.spheretrace.preview.export import save_png
    >>> save_png(tracer.renderer, "spheres.png", DisplaySettings(tone_map="reinhard"))
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.spheretrace.preview.display import DisplaySettings, ImageSource, encode_display

logger = logging.getLogger(__name__)


def to_uint8(encoded: npt.NDArray[np.float32]) -> npt.NDArray[np.uint8]:
    """Quantize a display-encoded [0, 1] image to 8 bits, rounding to nearest."""
    return np.rint(np.clip(encoded, 0.0, 1.0) * 255.0).astype(np.uint8)


def save_png(
    source: ImageSource,
    filepath: str | Path,
    settings: DisplaySettings | None = None,
) -> Path:
    """Encode an accumulated image and write it as a PNG file.

    Args:
        source: Renderer, accumulation surface or linear (H, W, 3) array.
        filepath: Output file path; parent directories must exist.
        settings: Display encoding. Defaults to DisplaySettings().

    Returns:
        The path written.

    Raises:
        RuntimeError: If a renderer source has not rendered a frame yet.
    """
    path = Path(filepath)
    pixels = to_uint8(encode_display(source, settings))
    PILImage.fromarray(pixels).save(path, format="PNG")

    height, width = pixels.shape[:2]
    logger.info("Saved %dx%d image to %s", width, height, path)
    return path
