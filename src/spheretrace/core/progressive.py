"""Band-by-band renderer with progress reporting and cancellation.

This module wraps the core render loop to render an image in bands of
scanlines, bottom to top. After every band it can:
- Report progress through a callback or a generator
- Stop early when cancel() has been called

Cancellation is cooperative: a band that is already running completes, and
the flag is polled before the next one starts.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import RenderSettings
    >>> from spheretrace.core.progressive import ProgressiveRenderer
    >>> from spheretrace.scene.random_spheres import create_random_spheres_scene
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=42)
    >>> settings = RenderSettings(width=300, height=200, samples_per_pixel=10)
    >>> renderer = ProgressiveRenderer(scene, camera, settings, rows_per_batch=20)
    >>> renderer.render(callback=lambda done, total: print(f"{done}/{total}"))
    True
    >>> pixels = renderer.get_pixels()
"""

from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from spheretrace.camera.thin_lens import ThinLensCamera
from spheretrace.core.integrator import (
    RenderSettings,
    clear_pixels,
    get_pixels,
    prepare_render,
    render_rows,
)
from spheretrace.scene.manager import SceneManager

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Renders a scene in bands of rows.

    The renderer delegates to the global byte buffer of the integrator
    (a Taichi field), so only one image is in flight at a time.

    Attributes:
        scene: The scene to render.
        camera: The camera configuration.
        settings: Render parameters.
        rows_per_batch: Number of rows rendered per band.
    """

    def __init__(
        self,
        scene: SceneManager,
        camera: ThinLensCamera,
        settings: RenderSettings,
        rows_per_batch: int = 16,
    ) -> None:
        """Initialize the renderer.

        Raises:
            ValueError: If rows_per_batch is less than 1.
        """
        if rows_per_batch < 1:
            raise ValueError(f"rows_per_batch = {rows_per_batch} must be at least 1")
        self.scene = scene
        self.camera = camera
        self.settings = settings
        self.rows_per_batch = rows_per_batch
        self._rows_done = 0
        self._cancel_requested = False
        self._cancelled = False

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.settings.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.settings.height

    @property
    def rows_done(self) -> int:
        """Number of rows rendered by the last (or current) render."""
        return self._rows_done

    @property
    def cancelled(self) -> bool:
        """True if the last render stopped early because of cancel()."""
        return self._cancelled

    def cancel(self) -> None:
        """Request the current render to stop before its next band."""
        self._cancel_requested = True

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render band by band, yielding progress after each band.

        Starting a render clears any earlier cancellation request and the
        byte buffer.

        Yields:
            Tuple of (rows_done, total_rows).

        Example:
            >>> for done, total in renderer.render_progressive():
            ...     print(f"Scanlines complete: {done}/{total}")
        """
        self._cancel_requested = False
        self._cancelled = False
        self._rows_done = 0

        prepare_render(self.scene, self.camera)
        clear_pixels()

        total = self.settings.height
        while self._rows_done < total:
            if self._cancel_requested:
                self._cancelled = True
                return
            row_end = min(self._rows_done + self.rows_per_batch, total)
            render_rows(self._rows_done, row_end, self.settings)
            self._rows_done = row_end
            yield (self._rows_done, total)

    def render(self, callback: ProgressCallback | None = None) -> bool:
        """Render the whole image with an optional progress callback.

        The callback may call cancel() to stop the render early.

        Args:
            callback: Optional function called after each band with
                (rows_done, total_rows).

        Returns:
            True if every row was rendered, False if cancelled.
        """
        for done, total in self.render_progressive():
            if callback is not None:
                callback(done, total)
        return not self._cancelled

    def get_pixels(self) -> npt.NDArray[np.uint8]:
        """Get the image as bytes of shape (height, width, 3), bottom row first."""
        return get_pixels(self.width, self.height)

    def save_image(self, filepath: str) -> None:
        """Save the image to a file, top row first.

        Args:
            filepath: Path to save the image (e.g., "output.png").
        """
        from spheretrace.preview.export import save_png

        save_png(self.get_pixels(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"rows_done={self._rows_done})"
        )
