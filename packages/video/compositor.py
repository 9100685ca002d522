"""
Compositor - Rasterize composition layers into output frames.
"""

from typing import Mapping, Optional, Sequence, Tuple

import anyio
import cv2
import numpy as np

from packages.core.protocols import LoadedSource
from packages.core.utils import parse_color
from packages.timeline.composition import CompositionLayer

from .filters import apply_filters


class FrameCompositor:
    """
    Export-scoped render surface.

    Each render fills the background and draws the layers bottom to top.
    A layer is filtered, flipped for negative scale, rotated in quarter
    turns, scaled about its fitted rectangle's centre, offset by the clip
    transform and alpha-blended using its opacity. Anything outside the
    canvas is clipped.

    Usage:
        surface = FrameCompositor(1920, 1080, sources, background_color="#000000")
        frame = await surface.render(composition.layers)
        surface.dispose()
    """

    def __init__(
        self,
        width: int,
        height: int,
        sources: Mapping[str, LoadedSource],
        background_color: str = "#000000"
    ):
        """
        Initialize the render surface.

        Args:
            width: Output width in pixels
            height: Output height in pixels
            sources: Loaded sources keyed by asset id
            background_color: Hex color behind all layers
        """
        self.width = width
        self.height = height
        self.sources = sources
        self.background: Tuple[int, int, int] = parse_color(background_color)
        self._canvas: Optional[np.ndarray] = np.empty((height, width, 3), dtype=np.uint8)
        self.disposed = False

    def render_frame(self, layers: Sequence[CompositionLayer]) -> np.ndarray:
        """
        Draw layers (bottom to top) into a new RGB frame.

        Returns:
            uint8 array of shape (height, width, 3)
        """
        if self._canvas is None:
            raise RuntimeError("Render surface already disposed")

        canvas = self._canvas
        canvas[:] = self.background

        for layer in layers:
            source = self.sources.get(layer.asset_id)
            if source is None:
                continue
            self._draw_layer(canvas, source.frame_at(layer.source_timestamp), layer)

        return canvas.copy()

    async def render(self, layers: Sequence[CompositionLayer]) -> np.ndarray:
        """Render off the event loop thread."""
        return await anyio.to_thread.run_sync(self.render_frame, list(layers))

    def _draw_layer(
        self,
        canvas: np.ndarray,
        frame: np.ndarray,
        layer: CompositionLayer
    ) -> None:
        alpha = layer.filters.alpha
        if alpha <= 0:
            return

        transform = layer.transform
        dest_w = layer.rect.width * abs(transform.scale_x)
        dest_h = layer.rect.height * abs(transform.scale_y)
        if dest_w < 0.5 or dest_h < 0.5:
            return

        if not layer.filters.is_identity:
            frame = apply_filters(frame, layer.filters)

        if transform.scale_x < 0:
            frame = frame[:, ::-1]
        if transform.scale_y < 0:
            frame = frame[::-1]
        if transform.quarter_turns:
            # Positive rotation turns clockwise
            frame = np.rot90(frame, k=-transform.quarter_turns)

        center_x, center_y = layer.rect.center
        center_x += transform.x
        center_y += transform.y

        draw_w = int(round(dest_w))
        draw_h = int(round(dest_h))
        left = int(round(center_x - dest_w / 2.0))
        top = int(round(center_y - dest_h / 2.0))

        # Clip to canvas
        x0 = max(0, left)
        y0 = max(0, top)
        x1 = min(self.width, left + draw_w)
        y1 = min(self.height, top + draw_h)
        if x1 <= x0 or y1 <= y0:
            return

        resized = cv2.resize(
            np.ascontiguousarray(frame),
            (draw_w, draw_h),
            interpolation=cv2.INTER_LINEAR
        )
        patch = resized[y0 - top:y1 - top, x0 - left:x1 - left]

        if alpha >= 1.0:
            canvas[y0:y1, x0:x1] = patch
        else:
            region = canvas[y0:y1, x0:x1]
            canvas[y0:y1, x0:x1] = cv2.addWeighted(patch, alpha, region, 1.0 - alpha, 0)

    def dispose(self) -> None:
        """Release the canvas."""
        self._canvas = None
        self.disposed = True
