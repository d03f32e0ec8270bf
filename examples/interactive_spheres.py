#!/usr/bin/env python3
"""Interactive sphere tracer with real-time controls.

This script opens a preview window on a procedurally generated sphere scene.
Samples accumulate while nothing moves; moving the camera or light, resizing
the window or regenerating the scene restarts the accumulation.

Usage:
    python -m examples.interactive_spheres [--seed SEED] [--orbit DEG]

Controls:
    - Light Pitch/Yaw: Move the light (restarts accumulation)
    - Light Intensity, Skybox, Bounces: Shading edits (no restart)
    - Reflective + Regenerate: Rebuild the scene
    - Orbit: Camera orbit speed in degrees per frame
    - Export PNG: Save current render with timestamp
"""

from __future__ import annotations

import argparse
import logging
import platform
import sys
from pathlib import Path

# Ensure the project root is in the Python path for direct execution
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import taichi as ti  # noqa: E402


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def main() -> int:
    """Main entry point for the interactive sphere tracer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(description="Interactive sphere tracer.")
    parser.add_argument("--seed", type=int, default=0, help="Scene seed, 0 for random (default: 0)")
    parser.add_argument("--orbit", type=float, default=0.0, help="Orbit speed in degrees per frame")
    parser.add_argument("--width", type=int, default=960)
    parser.add_argument("--height", type=int, default=540)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")

    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    from src.spheretrace.camera.pinhole import default_camera
    from src.spheretrace.config import TracerConfig
    from src.spheretrace.core.tracer import SphereTracer
    from src.spheretrace.preview.interactive import InteractivePreview
    from src.spheretrace.scene.light import DirectionalLight

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    print(f"Creating interactive preview window ({args.width}x{args.height})...")
    preview = InteractivePreview(args.width, args.height)
    tracer = SphereTracer(TracerConfig(seed=args.seed))

    print("Starting interactive rendering...")
    print("  - Adjust sliders to modify the light and shading")
    print("  - Click 'Regenerate' for a new scene")
    print("  - Click 'Export PNG' to save current render")
    print("  - Close window to exit")
    print()

    try:
        preview.run(
            tracer,
            default_camera(args.width / args.height),
            DirectionalLight.from_angles(60.0, 30.0),
            orbit_speed=args.orbit,
        )
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        preview.release()
        tracer.deactivate()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
