"""
Point Selector.

Picks the mask that best matches a normalized tap coordinate:
1. Smallest mask containing the tap point (most specific object)
2. Otherwise the largest mask (closest to "the main surface")
3. Otherwise a synthesized ellipse around the tap point
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from surfacemask.core.contracts import MASK_ON, DEFAULT_MODEL_INPUT_SIZE
from .mask_processor import mask_area, mask_contains


def tap_to_pixel(
    tap_x: float,
    tap_y: float,
    model_input_size: int = DEFAULT_MODEL_INPUT_SIZE,
) -> Tuple[int, int]:
    """
    Normalized tap -> clamped (px, py), rounding half up.

    NaN maps to the centre pixel; infinities clamp to the nearest edge.
    """
    def to_pixel(value: float) -> int:
        scaled = value * model_input_size + 0.5
        if math.isnan(scaled):
            return model_input_size // 2
        if math.isinf(scaled):
            return model_input_size - 1 if scaled > 0 else 0
        pixel = int(math.floor(scaled))
        return min(max(pixel, 0), model_input_size - 1)

    return to_pixel(tap_x), to_pixel(tap_y)


def generate_fallback_mask(
    tap_x: float,
    tap_y: float,
    model_input_size: int = DEFAULT_MODEL_INPUT_SIZE,
) -> NDArray[np.uint8]:
    """
    Synthesize the demo mask: an ellipse with half-axes S // 3 centred on
    the tap pixel, clipped to the image.

    The half-axis uses integer division (213 for S=640, not 213.33), so the
    boundary sits up to one pixel inside the exact S / 3 circle.
    """
    size = model_input_size
    center_x, center_y = tap_to_pixel(tap_x, tap_y, size)
    radius = max(size // 3, 1)

    ys, xs = np.ogrid[0:size, 0:size]
    dx = (xs - center_x) / radius
    dy = (ys - center_y) / radius

    mask = np.where(dx * dx + dy * dy < 1.0, MASK_ON, 0).astype(np.uint8)
    logger.debug(
        f"Generated fallback mask at ({center_x}, {center_y}) "
        f"with {int(np.count_nonzero(mask))} pixels"
    )
    return mask


def select_at(
    masks: Sequence[NDArray[np.uint8]],
    tap_x: float,
    tap_y: float,
    model_input_size: int = DEFAULT_MODEL_INPUT_SIZE,
) -> NDArray[np.uint8]:
    """
    Select the mask for a tap.

    Args:
        masks: Candidate S x S binary masks
        tap_x: Normalized x in [0, 1]
        tap_y: Normalized y in [0, 1]
        model_input_size: S

    Returns:
        The chosen mask (never None)
    """
    index = find_mask_index(masks, tap_x, tap_y, model_input_size)
    if index is None:
        return generate_fallback_mask(tap_x, tap_y, model_input_size)
    return masks[index]


def find_mask_index(
    masks: Sequence[NDArray[np.uint8]],
    tap_x: float,
    tap_y: float,
    model_input_size: int = DEFAULT_MODEL_INPUT_SIZE,
) -> Optional[int]:
    """
    Index of the mask select_at would return, or None when it would
    synthesize the fallback.
    """
    if not masks:
        return None

    px, py = tap_to_pixel(tap_x, tap_y, model_input_size)
    logger.debug(f"Selecting mask at pixel ({px}, {py})")

    areas = [mask_area(mask) for mask in masks]

    best_index = None
    smallest_area = None
    for idx, mask in enumerate(masks):
        inside = mask_contains(mask, px, py)
        logger.debug(f"  Mask[{idx}]: inside={inside}, area={areas[idx]}")
        if inside and areas[idx] > 0:
            if smallest_area is None or areas[idx] < smallest_area:
                smallest_area = areas[idx]
                best_index = idx

    if best_index is None:
        logger.debug("No mask at tap point, selecting largest mask")
        best_index = max(range(len(masks)), key=lambda i: areas[i])

    return best_index


def all_masks(masks: Sequence[NDArray[np.uint8]]) -> List[NDArray[np.uint8]]:
    """Every surviving mask, unfiltered."""
    return list(masks)
