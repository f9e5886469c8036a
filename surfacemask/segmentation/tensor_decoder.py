"""
Detection Tensor Decoder.

Turns the raw model outputs into Detection candidates:
- output0: [1, channels, numDetections], channel-major
- output1: [1, numProtos, maskH, maskW] mask prototypes

Channel layout per column i:
    rows 0-3  -> center_x, center_y, width, height
    row  4    -> confidence
    rows 5..  -> mask coefficients
"""

from __future__ import annotations

from typing import List, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from surfacemask.core.contracts import (
    Detection,
    BOX_CHANNELS,
    CONFIDENCE_CHANNEL,
    COEFFICIENT_OFFSET,
)
from surfacemask.core.errors import MalformedOutputShape


def _as_flat(tensor) -> NDArray[np.float32]:
    return np.asarray(tensor, dtype=np.float32).reshape(-1)


def _numel(shape: Sequence[int]) -> int:
    total = 1
    for dim in shape:
        total *= int(dim)
    return total


def validate_detection_shape(
    detection_shape: Sequence[int],
    buffer_size: int,
) -> Tuple[int, int]:
    """
    Validate a [1, channels, numDetections] shape.

    Returns:
        (channels, num_detections)

    Raises:
        MalformedOutputShape: On wrong rank, batch, channel count or buffer size.
    """
    if len(detection_shape) != 3:
        raise MalformedOutputShape(
            f"Detection tensor must be rank 3 [1, channels, detections], "
            f"got shape {tuple(detection_shape)}"
        )

    batch, channels, num_detections = (int(d) for d in detection_shape)
    if batch != 1:
        raise MalformedOutputShape(f"Detection tensor batch must be 1, got {batch}")
    if channels < COEFFICIENT_OFFSET:
        raise MalformedOutputShape(
            f"Detection tensor needs >= {COEFFICIENT_OFFSET} channels, got {channels}"
        )
    if buffer_size < _numel(detection_shape):
        raise MalformedOutputShape(
            f"Detection buffer holds {buffer_size} values, "
            f"shape {tuple(detection_shape)} needs {_numel(detection_shape)}"
        )

    return channels, num_detections


def validate_prototype_shape(
    prototype_shape: Sequence[int],
    buffer_size: int,
) -> Tuple[int, int, int]:
    """
    Validate a [1, numProtos, maskH, maskW] shape.

    Returns:
        (num_protos, mask_h, mask_w)

    Raises:
        MalformedOutputShape: On wrong rank, batch, empty spatial dims or buffer size.
    """
    if len(prototype_shape) != 4:
        raise MalformedOutputShape(
            f"Prototype tensor must be rank 4 [1, protos, maskH, maskW], "
            f"got shape {tuple(prototype_shape)}"
        )

    batch, num_protos, mask_h, mask_w = (int(d) for d in prototype_shape)
    if batch != 1:
        raise MalformedOutputShape(f"Prototype tensor batch must be 1, got {batch}")
    if mask_h <= 0 or mask_w <= 0:
        raise MalformedOutputShape(
            f"Prototype spatial size must be positive, got {mask_h}x{mask_w}"
        )
    if buffer_size < _numel(prototype_shape):
        raise MalformedOutputShape(
            f"Prototype buffer holds {buffer_size} values, "
            f"shape {tuple(prototype_shape)} needs {_numel(prototype_shape)}"
        )

    return num_protos, mask_h, mask_w


def decode(
    detection_tensor,
    detection_shape: Sequence[int],
    prototype_tensor,
    prototype_shape: Sequence[int],
) -> List[Detection]:
    """
    Decode every detection column, regardless of confidence.

    Args:
        detection_tensor: Flat float buffer of the detection output
        detection_shape: Declared shape [1, channels, numDetections]
        prototype_tensor: Flat float buffer of the prototype output
        prototype_shape: Declared shape [1, numProtos, maskH, maskW]

    Returns:
        One Detection per column, in column order

    Raises:
        MalformedOutputShape: If either shape does not match the expected layout.
    """
    detections_flat = _as_flat(detection_tensor)
    channels, num_detections = validate_detection_shape(
        detection_shape, detections_flat.size
    )
    num_protos, mask_h, mask_w = validate_prototype_shape(
        prototype_shape, _as_flat(prototype_tensor).size
    )

    num_coeffs = channels - COEFFICIENT_OFFSET
    if num_coeffs != num_protos:
        logger.warning(
            f"Mismatch: mask coeffs ({num_coeffs}) != protos ({num_protos}), "
            f"truncating to {min(num_coeffs, num_protos)}"
        )
    usable_coeffs = min(num_coeffs, num_protos)

    logger.debug(
        f"Detection format: {channels} channels, {num_detections} detections; "
        f"prototypes: {num_protos} x {mask_h}x{mask_w}"
    )

    n = num_detections
    # value[channel * n + i]: slicing whole channel rows keeps the layout explicit
    box_rows = [
        detections_flat[c * n:(c + 1) * n] for c in range(BOX_CHANNELS)
    ]
    confidences = detections_flat[CONFIDENCE_CHANNEL * n:(CONFIDENCE_CHANNEL + 1) * n]
    coefficient_rows = detections_flat[
        COEFFICIENT_OFFSET * n:(COEFFICIENT_OFFSET + usable_coeffs) * n
    ].reshape(usable_coeffs, n)

    center_x, center_y, width, height = box_rows

    detections = []
    for i in range(n):
        detections.append(
            Detection(
                center_x=float(center_x[i]),
                center_y=float(center_y[i]),
                width=float(width[i]),
                height=float(height[i]),
                confidence=float(confidences[i]),
                mask_coefficients=coefficient_rows[:, i].copy(),
            )
        )

    return detections


def confidence_stats(detections: List[Detection]) -> Tuple[float, float]:
    """Return (max, mean) confidence over all decoded candidates."""
    if not detections:
        return 0.0, 0.0
    scores = [d.confidence for d in detections]
    return max(scores), sum(scores) / len(scores)
