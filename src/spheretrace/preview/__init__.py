"""Preview module for rendered output.

Components:
    export: Display orientation, PNG export and image comparison

Example:
    >>> from spheretrace.preview import save_png
    >>> save_png(pixels, "output.png")
"""

from spheretrace.preview.export import compute_rmse, load_png, orient_for_display, save_png

__all__ = [
    "orient_for_display",
    "save_png",
    "load_png",
    "compute_rmse",
]
