"""Scene module for procedural scene generation and GPU-side storage.

Components:
    builder: Scene value type and the rejection-sampling scene generator
    buffer: Sphere data uploaded to Taichi fields (Structure-of-Arrays)
    light: Directional light description

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for sphere data
    - One SNode tree per buffer so a replaced scene frees its storage
    - Packed 40-byte records for host-side interchange
"""

from .buffer import SphereBuffer
from .builder import (
    Scene,
    SceneBuilder,
    generate_scene,
    make_rng,
    random_color,
    sample_in_disk,
)
from .light import DirectionalLight

__all__ = [
    "Scene",
    "SceneBuilder",
    "SphereBuffer",
    "DirectionalLight",
    "generate_scene",
    "make_rng",
    "random_color",
    "sample_in_disk",
]
