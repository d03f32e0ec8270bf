#!/usr/bin/env python3
"""Render a procedurally generated sphere scene.

This script builds a seeded scene of non-overlapping spheres, drives the
tracer for a number of static frames (one sample per pixel each) and saves
the converged image.

Usage:
    python -m examples.render_spheres [options]

Options:
    --width WIDTH           Image width in pixels (default: 640)
    --height HEIGHT         Image height in pixels (default: 360)
    --frames FRAMES         Number of frames to accumulate (default: 64)
    --seed SEED             Scene seed, 0 for a random scene (default: 1223832719)
    --spheres N             Maximum number of spheres (default: 100)
    --reflective P          Probability that a sphere is metallic (default: 0.5)
    --bounces N             Reflection bounce limit (default: 8)
    --config PATH           JSON file with TracerConfig fields
    --skybox-image PATH     Equirectangular sky image (default: procedural)
    --output OUTPUT         Output file path (default: spheres.png)
    --tone-map METHOD       none, reinhard or exposure (default: none)
    --quiet                 Suppress progress output

Example:
    python -m examples.render_spheres --width 320 --height 180 --frames 32
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a procedurally generated sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=640, help="Image width in pixels (default: 640)")
    parser.add_argument("--height", type=int, default=360, help="Image height in pixels (default: 360)")
    parser.add_argument(
        "--frames",
        type=int,
        default=64,
        help="Number of frames to accumulate (default: 64)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=1223832719,
        help="Scene seed, 0 for a random scene (default: 1223832719)",
    )
    parser.add_argument("--spheres", type=int, default=100, help="Maximum number of spheres (default: 100)")
    parser.add_argument(
        "--reflective",
        type=float,
        default=0.5,
        help="Probability that a sphere is metallic (default: 0.5)",
    )
    parser.add_argument("--bounces", type=int, default=8, help="Reflection bounce limit (default: 8)")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file with TracerConfig fields (overrides scene flags)",
    )
    parser.add_argument(
        "--skybox-image",
        type=str,
        default=None,
        help="Equirectangular sky image (default: procedural gradient)",
    )
    parser.add_argument("--output", type=str, default="spheres.png", help="Output file path (default: spheres.png)")
    parser.add_argument(
        "--tone-map",
        choices=["none", "reinhard", "exposure"],
        default="none",
        help="Tone mapping for the saved PNG (default: none)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def build_config(args: argparse.Namespace):
    """Build a TracerConfig from a JSON file or the command-line flags."""
    from src.spheretrace.config import TracerConfig

    if args.config is not None:
        with open(args.config) as f:
            return TracerConfig.from_dict(json.load(f))

    return TracerConfig(
        seed=args.seed,
        spheres_max=args.spheres,
        reflective_probability=args.reflective,
        bounces=args.bounces,
    )


def render_spheres(
    config,
    width: int = 640,
    height: int = 360,
    frames: int = 64,
    output_path: str = "spheres.png",
    skybox_image: str | None = None,
    tone_map: str = "none",
    quiet: bool = False,
) -> Path:
    """Render the sphere scene and save to file.

    Args:
        config: TracerConfig describing the scene and shading.
        width: Image width in pixels.
        height: Image height in pixels.
        frames: Number of frames (samples per pixel) to accumulate.
        output_path: Output file path (PNG).
        skybox_image: Optional equirectangular sky image path.
        tone_map: Tone mapping for the saved PNG ("none", "reinhard", "exposure").
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.spheretrace.camera.pinhole import default_camera
    from src.spheretrace.core.kernel import Skybox, SphereTracingKernel
    from src.spheretrace.core.tracer import SphereTracer
    from src.spheretrace.preview.display import DisplaySettings
    from src.spheretrace.preview.export import save_png
    from src.spheretrace.scene.light import DirectionalLight

    skybox = Skybox.from_file(skybox_image) if skybox_image else Skybox.gradient()
    tracer = SphereTracer(config, SphereTracingKernel(skybox))
    tracer.activate()

    if not quiet:
        print(f"Scene: {len(tracer.builder.scene)} spheres ({width}x{height})")
        print(f"Rendering {frames} frames...")

    camera = default_camera(width / height)
    light = DirectionalLight()

    start_time = time.time()
    for frame in range(frames):
        tracer.tick(camera, light, (width, height))
        if not quiet:
            elapsed = time.time() - start_time
            done = frame + 1
            samples_per_sec = done / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {done}/{frames} samples "
                f"({done / frames * 100:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    if not quiet:
        print()

    output_file = Path(output_path)
    save_png(tracer.renderer, output_file, DisplaySettings(tone_map=tone_map))
    tracer.deactivate()

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_spheres(
            build_config(args),
            width=args.width,
            height=args.height,
            frames=args.frames,
            output_path=args.output,
            skybox_image=args.skybox_image,
            tone_map=args.tone_map,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
