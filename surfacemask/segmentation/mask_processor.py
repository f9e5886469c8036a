"""
Mask Processing Utilities.

Handles:
- Mask area and point containment
- Bounding box extraction
- Mask union for "all masks" display
- Recolouring a frame inside a mask
"""

from __future__ import annotations

from typing import Optional, Tuple, List
import numpy as np
from numpy.typing import NDArray
import cv2
from loguru import logger

from surfacemask.core.contracts import MASK_ON


DEFAULT_OVERLAY_COLOR = (135, 206, 235)  # sky blue, RGB


def mask_area(mask: NDArray[np.uint8]) -> int:
    """Count of "on" (255) pixels."""
    return int(np.count_nonzero(mask == MASK_ON))


def mask_contains(mask: NDArray[np.uint8], x: int, y: int) -> bool:
    """Whether pixel (x, y) is "on"."""
    return bool(mask[y, x] == MASK_ON)


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """
    Parse "#RRGGBB" (or "RRGGBB") into an RGB tuple.

    Raises:
        ValueError: If the string is not a 6-digit hex colour.
    """
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"Expected a #RRGGBB colour, got {value!r}")
    try:
        return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    except ValueError:
        raise ValueError(f"Expected a #RRGGBB colour, got {value!r}") from None


class MaskProcessor:
    """
    Processor for binary surface masks.

    Masks are S x S uint8 arrays with values 0 / 255 at model resolution;
    frames may be any size.
    """

    def __init__(
        self,
        overlay_alpha: float = 0.6,
        on_threshold: int = 127,
    ):
        """
        Initialize mask processor.

        Args:
            overlay_alpha: Alpha for coloured pixels in RGBA overlays
            on_threshold: Values above this count as inside the mask
        """
        self.overlay_alpha = overlay_alpha
        self.on_threshold = on_threshold

    def create_overlay(
        self,
        mask: NDArray[np.uint8],
        color: Tuple[int, int, int] = DEFAULT_OVERLAY_COLOR,
    ) -> NDArray[np.uint8]:
        """
        Create an RGBA overlay image from a mask.

        Inside pixels get the colour at overlay_alpha; everything else is
        fully transparent.

        Returns:
            H x W x 4 uint8 RGBA image
        """
        h, w = mask.shape[:2]
        overlay = np.zeros((h, w, 4), dtype=np.uint8)
        inside = mask > self.on_threshold

        overlay[inside, 0] = color[0]
        overlay[inside, 1] = color[1]
        overlay[inside, 2] = color[2]
        overlay[inside, 3] = int(round(255 * self.overlay_alpha))

        return overlay

    def apply_color_overlay(
        self,
        frame: NDArray[np.uint8],
        mask: NDArray[np.uint8],
        color: Tuple[int, int, int] = DEFAULT_OVERLAY_COLOR,
        opacity: float = 0.5,
    ) -> NDArray[np.uint8]:
        """
        Recolour the frame inside the mask.

        The mask is resized to the frame with nearest-neighbour sampling
        (it lives at model resolution, the frame at camera resolution).

        Args:
            frame: RGB frame (H x W x 3)
            mask: Binary mask at any resolution
            color: RGB overlay colour
            opacity: Blend weight of the colour inside the mask

        Returns:
            New RGB frame
        """
        if frame is None or frame.size == 0:
            return frame

        h, w = frame.shape[:2]
        if mask.shape[:2] != (h, w):
            mask = cv2.resize(mask, (w, h), interpolation=cv2.INTER_NEAREST)

        inside = mask > self.on_threshold
        if not inside.any():
            logger.debug("Overlay mask is empty, frame unchanged")
            return frame.copy()

        tint = np.full_like(frame, color, dtype=np.uint8)
        blended = cv2.addWeighted(frame, 1.0 - opacity, tint, opacity, 0)

        result = frame.copy()
        result[inside] = blended[inside]
        return result

    def combine_masks(
        self,
        masks: List[NDArray[np.uint8]],
    ) -> Optional[NDArray[np.uint8]]:
        """
        Union of several masks.

        Returns:
            Combined 0/255 mask, or None for an empty list
        """
        if not masks:
            return None

        result = masks[0].copy()
        for mask in masks[1:]:
            result = np.maximum(result, mask)

        return result

    def mask_to_bbox(
        self,
        mask: NDArray[np.uint8],
    ) -> Optional[Tuple[int, int, int, int]]:
        """
        Extract bounding box from mask.

        Returns:
            Tuple of (x_min, y_min, x_max, y_max) or None if mask is empty
        """
        inside = mask > self.on_threshold
        rows = np.any(inside, axis=1)
        cols = np.any(inside, axis=0)

        if not rows.any() or not cols.any():
            return None

        y_min, y_max = np.where(rows)[0][[0, -1]]
        x_min, x_max = np.where(cols)[0][[0, -1]]

        return (int(x_min), int(y_min), int(x_max), int(y_max))
