"""Pytest configuration for sphere tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session, and small fakes
standing in for the tracing kernel and the display sink.
"""

import numpy as np
import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


class FakeKernel:
    """Kernel stand-in that fills the target with a scripted value per call.

    Attributes:
        calls: (params, groups) of every dispatch, in order.
        values: Values written by successive dispatches. The last value is
            repeated once the list is exhausted.
        fail: If set, the next dispatch raises this exception.
    """

    def __init__(self, values=(1.0,)):
        self.values = list(values)
        self.calls = []
        self.fail = None

    def __call__(self, params, target, groups):
        if self.fail is not None:
            exc, self.fail = self.fail, None
            raise exc
        index = min(len(self.calls), len(self.values) - 1)
        self.calls.append((params, groups))
        target.fill(self.values[index])


class RecordingSink:
    """Display sink that keeps a copy of every presented frame."""

    def __init__(self):
        self.frames = []

    def present(self, surface, sample_count):
        self.frames.append((surface.to_numpy().copy(), sample_count))


@pytest.fixture
def fake_kernel():
    return FakeKernel()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def kernel_factory():
    """Create FakeKernels writing a given sequence of values."""
    return FakeKernel


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def frame_params(rng):
    """Frame parameters bound to an empty sphere buffer."""
    from src.spheretrace.camera.pinhole import default_camera
    from src.spheretrace.config import TracerConfig
    from src.spheretrace.core.frame import bind_frame_parameters
    from src.spheretrace.scene.buffer import SphereBuffer
    from src.spheretrace.scene.light import DirectionalLight

    buffer = SphereBuffer.empty()
    params = bind_frame_parameters(
        default_camera(), DirectionalLight(), 0, TracerConfig(), buffer, rng
    )
    yield params
    buffer.release()
