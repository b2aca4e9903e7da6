#!/usr/bin/env python3
"""Render the random spheres scene.

This script renders a field of small random spheres around three large ones
(glass, diffuse and metal) with a thin-lens camera, reporting progress per
band of scanlines. A scene can also be loaded from a JSON file produced by
SceneManager.to_dict(), optionally with a "camera" entry.

Usage:
    python -m examples.render_random_spheres [options]

Options:
    --width WIDTH             Image width in pixels (default: 600)
    --height HEIGHT           Image height in pixels (default: 400)
    --samples SAMPLES         Number of samples per pixel (default: 50)
    --max-depth DEPTH         Maximum bounces per path (default: 50)
    --output OUTPUT           Output file path (default: random_spheres.png)
    --seed SEED               Seed for scene placement and sampling (default: 42)
    --scene FILE              Load the scene from a JSON file instead
    --rows-per-batch ROWS     Scanlines per progress update (default: 16)
    --normals                 Shade by surface normal instead of path tracing
    --no-bvh                  Test every sphere instead of traversing the BVH
    --quiet                   Suppress progress output

Example:
    python -m examples.render_random_spheres --width 300 --height 200 --samples 10
"""

import argparse
import dataclasses
import json
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the random spheres scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=600, help="Image width in pixels (default: 600)")
    parser.add_argument("--height", type=int, default=400, help="Image height in pixels (default: 400)")
    parser.add_argument(
        "--samples",
        type=int,
        default=50,
        help="Number of samples per pixel (default: 50)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum bounces per path (default: 50)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="random_spheres.png",
        help="Output file path (default: random_spheres.png)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Seed for scene placement and sampling (default: 42)",
    )
    parser.add_argument(
        "--scene",
        type=str,
        default=None,
        help="Load the scene from a JSON file instead of generating it",
    )
    parser.add_argument(
        "--rows-per-batch",
        type=int,
        default=16,
        help="Scanlines per progress update (default: 16)",
    )
    parser.add_argument(
        "--normals",
        action="store_true",
        help="Shade by surface normal instead of path tracing",
    )
    parser.add_argument(
        "--no-bvh",
        action="store_true",
        help="Test every sphere instead of traversing the BVH",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def load_scene(scene_path: str, aspect_ratio: float):
    """Load a scene and camera from a JSON file.

    The camera defaults to the random spheres camera when the file has no
    "camera" entry.
    """
    from spheretrace.camera.thin_lens import ThinLensCamera
    from spheretrace.scene.manager import SceneManager
    from spheretrace.scene.random_spheres import create_random_spheres_camera

    with open(scene_path, encoding="utf-8") as f:
        data = json.load(f)

    scene = SceneManager()
    scene.from_dict(data)

    if "camera" in data:
        camera = ThinLensCamera.from_dict(data["camera"])
    else:
        camera = create_random_spheres_camera(aspect_ratio)
    return scene, camera


def render_random_spheres(
    width: int = 600,
    height: int = 400,
    num_samples: int = 50,
    max_depth: int = 50,
    output_path: str = "random_spheres.png",
    seed: int = 42,
    scene_path: str | None = None,
    rows_per_batch: int = 16,
    normals: bool = False,
    use_bvh: bool = True,
    quiet: bool = False,
) -> Path:
    """Render the scene and save it to file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        num_samples: Number of samples per pixel.
        max_depth: Maximum bounces per path.
        output_path: Output file path (PNG).
        seed: Seed for the scene placement.
        scene_path: Optional JSON scene file to render instead.
        rows_per_batch: Number of scanlines rendered between progress updates.
        normals: If True, shade by surface normal.
        use_bvh: If False, test every sphere for each ray.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretrace.core.integrator import RenderSettings, ShadingMode
    from spheretrace.core.progressive import ProgressiveRenderer
    from spheretrace.scene.random_spheres import create_random_spheres_scene

    aspect_ratio = width / height

    if scene_path is not None:
        if not quiet:
            print(f"Loading scene from {scene_path} ({width}x{height})...")
        scene, camera = load_scene(scene_path, aspect_ratio)
    else:
        if not quiet:
            print(f"Creating random spheres scene ({width}x{height}, seed {seed})...")
        scene, camera = create_random_spheres_scene(seed=seed, aspect_ratio=aspect_ratio)

    camera = dataclasses.replace(camera, aspect_ratio=aspect_ratio)

    settings = RenderSettings(
        width=width,
        height=height,
        samples_per_pixel=num_samples,
        max_depth=max_depth,
        shading=ShadingMode.NORMALS if normals else ShadingMode.PATH,
        use_bvh=use_bvh,
    )
    renderer = ProgressiveRenderer(scene, camera, settings, rows_per_batch=rows_per_batch)

    if not quiet:
        print(f"Rendering {scene.get_sphere_count()} spheres at {num_samples} samples per pixel...")

    start_time = time.time()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (rows_done / total_rows) * 100 if total_rows > 0 else 0
            print(
                f"\r  Scanlines complete: {rows_done}/{total_rows} "
                f"({progress_pct:.1f}%) - {elapsed:.1f}s",
                end="",
                flush=True,
            )

    renderer.render(callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    renderer.save_image(str(output_file))

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    ti.init(arch=ti.cpu, random_seed=args.seed)

    try:
        render_random_spheres(
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            max_depth=args.max_depth,
            output_path=args.output,
            seed=args.seed,
            scene_path=args.scene,
            rows_per_batch=args.rows_per_batch,
            normals=args.normals,
            use_bvh=not args.no_bvh,
            quiet=args.quiet,
        )
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
