"""Core rendering module.

This module contains the per-frame machinery of the progressive tracer:

Components:
    ray: Vector helpers for Taichi kernels
    change: Edge-triggered camera/light change detection
    frame: Per-frame kernel parameters and the pixel jitter policy
    kernel: Reference sphere tracing kernel, skybox, work group partitioning
    progressive: Accumulation surface, sample counter and incremental blend
    tracer: Lifecycle state machine tying scene, detector and renderer together

The kernel is dispatched once per displayed frame; each dispatch produces
one sample per pixel which is folded into a running mean. Any change that
invalidates earlier samples restarts the mean with full weight.
"""

from .change import ChangeDetector
from .frame import PIXEL_CENTER, FrameParameters, bind_frame_parameters, pixel_jitter
from .kernel import GROUP_SIZE, Kernel, Skybox, SphereTracingKernel, dispatch_groups
from .progressive import (
    AccumulationState,
    AccumulationSurface,
    KernelDispatchError,
    ProgressiveRenderer,
    surface_to_numpy,
)
from .ray import offset_ray_origin, reflect, saturate
from .tracer import DisplaySink, SphereTracer, TracerState

__all__ = [
    "offset_ray_origin",
    "saturate",
    "reflect",
    "ChangeDetector",
    "FrameParameters",
    "PIXEL_CENTER",
    "bind_frame_parameters",
    "pixel_jitter",
    "GROUP_SIZE",
    "Kernel",
    "Skybox",
    "SphereTracingKernel",
    "dispatch_groups",
    "AccumulationState",
    "AccumulationSurface",
    "KernelDispatchError",
    "ProgressiveRenderer",
    "surface_to_numpy",
    "DisplaySink",
    "SphereTracer",
    "TracerState",
]
