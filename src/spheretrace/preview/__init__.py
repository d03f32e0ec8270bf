"""Preview module for output and visualization.

This module handles rendering output and interactive preview:

Components:
    display: Display encoding (tone mapping, gamma) and Matplotlib preview
    export: PNG export through the same display encoding
    interactive: Taichi GGUI-based interactive preview window

The preview window shows the accumulated display surface and updates
progressively as samples are added. Tone mapping allows HDR content to be
displayed on standard monitors.

Example:
    >>> from src.spheretrace.preview import DisplaySettings, save_png, show_preview
    >>>
    >>> for _ in range(100):
    ...     tracer.tick(camera, light, (640, 360))
    >>> settings = DisplaySettings(tone_map="reinhard")
    >>> show_preview(tracer.renderer, settings)
    >>> save_png(tracer.renderer, "output.png", settings)
"""

from src.spheretrace.preview.display import (
    DisplaySettings,
    ImageSource,
    ToneMapMethod,
    encode_display,
    linear_image,
    show_preview,
    tone_map,
)
from src.spheretrace.preview.export import save_png, to_uint8
from src.spheretrace.preview.interactive import InteractivePreview

__all__ = [
    # Interactive preview
    "InteractivePreview",
    # Display encoding
    "DisplaySettings",
    "ImageSource",
    "ToneMapMethod",
    "encode_display",
    "linear_image",
    "tone_map",
    "show_preview",
    # Export
    "save_png",
    "to_uint8",
]
