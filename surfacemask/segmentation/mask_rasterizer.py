"""
Mask Rasterizer.

Combines prototypes with one detection's coefficients and turns the
result into a binary mask at model-input resolution:

1. field = sum_p coeff[p] * prototype[p]     (maskH x maskW)
2. sigmoid + threshold                        (0 / 255)
3. nearest-neighbour upsample                 (S x S)

Thresholding before upsampling gives byte-identical output to sampling
first, since nearest-neighbour only copies values.

The mask is NOT cropped to the detection box.
"""

from __future__ import annotations

from typing import Sequence
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from surfacemask.core.contracts import (
    Detection,
    MASK_ON,
    DEFAULT_MODEL_INPUT_SIZE,
    DEFAULT_MASK_THRESHOLD,
)
from .tensor_decoder import validate_prototype_shape


def sigmoid(values: NDArray[np.float32]) -> NDArray[np.float32]:
    """Logistic activation 1 / (1 + e^-v)."""
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-values))


def combine_prototypes(
    prototypes: NDArray[np.float32],
    num_protos: int,
    mask_h: int,
    mask_w: int,
    coefficients: NDArray[np.float32],
) -> NDArray[np.float32]:
    """
    Linear combination of prototypes, accumulated in place.

    Only min(num_protos, len(coefficients)) terms are summed.

    Returns:
        Float field of shape (mask_h, mask_w)
    """
    plane = mask_h * mask_w
    field = np.zeros(plane, dtype=np.float32)

    for p in range(min(num_protos, len(coefficients))):
        field += np.float32(coefficients[p]) * prototypes[p * plane:(p + 1) * plane]

    return field.reshape(mask_h, mask_w)


def nearest_indices(output_size: int, source_size: int) -> NDArray[np.intp]:
    """Source index floor(i / scale) for each output index, clamped to range."""
    scale = output_size / source_size
    indices = np.floor(np.arange(output_size) / scale).astype(np.intp)
    return np.clip(indices, 0, source_size - 1)


def rasterize(
    prototypes,
    proto_shape: Sequence[int],
    detection: Detection,
    model_input_size: int = DEFAULT_MODEL_INPUT_SIZE,
    mask_threshold: float = DEFAULT_MASK_THRESHOLD,
) -> NDArray[np.uint8]:
    """
    Build the binary mask for one detection.

    Args:
        prototypes: Flat prototype buffer
        proto_shape: Declared shape [1, numProtos, maskH, maskW]
        detection: Detection whose coefficients weight the prototypes
        model_input_size: Output mask side length (S)
        mask_threshold: Sigmoid threshold for "on" pixels

    Returns:
        uint8 mask of shape (S, S) with values 0 / 255
    """
    flat = np.asarray(prototypes, dtype=np.float32).reshape(-1)
    num_protos, mask_h, mask_w = validate_prototype_shape(proto_shape, flat.size)

    field = combine_prototypes(
        flat, num_protos, mask_h, mask_w, detection.mask_coefficients
    )

    small = np.where(sigmoid(field) > mask_threshold, MASK_ON, 0).astype(np.uint8)

    rows = nearest_indices(model_input_size, mask_h)
    cols = nearest_indices(model_input_size, mask_w)
    mask = small[np.ix_(rows, cols)]

    # Box in prototype coordinates, for diagnostics only
    scale_y = mask_h / model_input_size
    scale_x = mask_w / model_input_size
    x1 = int(np.clip(detection.x_min * scale_x, 0, mask_w - 1))
    y1 = int(np.clip(detection.y_min * scale_y, 0, mask_h - 1))
    x2 = int(np.clip(detection.x_max * scale_x, 0, mask_w - 1))
    y2 = int(np.clip(detection.y_max * scale_y, 0, mask_h - 1))
    logger.debug(
        f"  Field range: [{float(field.min()):.3f}, {float(field.max()):.3f}], "
        f"bbox in mask coords: ({x1},{y1})-({x2},{y2}), "
        f"positive pixels: {int(np.count_nonzero(mask))}"
    )

    return np.ascontiguousarray(mask)
