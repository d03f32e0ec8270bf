"""Camera module for view and projection matrices.

Components:
    pinhole: Simple pinhole (perspective) camera model

Camera responsibilities:
    - Build the camera-to-world transform from look-at parameters
    - Build the perspective projection and its inverse
    - Provide the transform snapshot used for change detection

Primary rays are reconstructed inside the tracing kernel from normalized
device coordinates in [-1, 1] on both axes.
"""

from .pinhole import PinholeCamera, default_camera

__all__ = [
    "PinholeCamera",
    "default_camera",
]
