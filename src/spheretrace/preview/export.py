"""Image export utilities for rendered images.

The renderer produces bytes of shape (height, width, 3) with row 0 at the
bottom of the image. Image files store the top row first, so export flips
the rows before encoding.

Supported formats:
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from spheretrace.core.integrator import render
    >>> from spheretrace.preview.export import save_png
    >>>
    >>> pixels = render(scene, camera, 300, 200, samples_per_pixel=10, max_depth=50)
    >>> save_png(pixels, "output.png")
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage


def orient_for_display(pixels: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    """Convert a bottom-row-first buffer to top-row-first.

    Rotating the buffer by 180 degrees and mirroring it horizontally is the
    same as flipping it vertically.

    Args:
        pixels: Image array of shape (H, W, 3), row 0 at the bottom.

    Returns:
        Image array of shape (H, W, 3), row 0 at the top.
    """
    return np.ascontiguousarray(np.flipud(pixels))


def save_png(
    pixels: npt.NDArray[np.uint8],
    filepath: str | Path,
    *,
    orient: bool = True,
) -> None:
    """Save rendered bytes as a PNG file.

    Args:
        pixels: Image array of shape (H, W, 3) with dtype uint8.
        filepath: Output file path (should end in .png).
        orient: Flip a bottom-row-first buffer to top-row-first before saving.

    Raises:
        ValueError: If the array is not an (H, W, 3) uint8 image.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected dtype uint8, got {pixels.dtype}")

    image = orient_for_display(pixels) if orient else pixels

    # Save using Pillow
    pil_image = PILImage.fromarray(image)
    pil_image.save(str(filepath))


def load_png(filepath: str | Path) -> npt.NDArray[np.uint8]:
    """Load a PNG file as an (H, W, 3) uint8 array, top row first."""
    with PILImage.open(str(filepath)) as pil_image:
        return np.asarray(pil_image.convert("RGB"), dtype=np.uint8)


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
