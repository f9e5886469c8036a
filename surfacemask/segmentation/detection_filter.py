"""
Detection filtering: confidence gate and greedy Non-Maximum Suppression.
"""

from __future__ import annotations

from typing import List
from loguru import logger

from surfacemask.core.contracts import (
    Detection,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_IOU_THRESHOLD,
)


def box_iou(a: Detection, b: Detection) -> float:
    """IoU of the axis-aligned boxes of two detections."""
    return a.iou(b)


def confidence_gate(
    detections: List[Detection],
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> List[Detection]:
    """Keep detections with confidence strictly above the threshold."""
    return [d for d in detections if d.confidence > confidence_threshold]


def non_max_suppression(
    detections: List[Detection],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> List[Detection]:
    """
    Classic greedy NMS.

    Detections are visited in descending confidence (stable for ties).
    Each kept detection suppresses every later one whose IoU with it
    exceeds iou_threshold.

    Returns:
        Kept detections, highest confidence first
    """
    if not detections:
        return []

    ordered = sorted(detections, key=lambda d: d.confidence, reverse=True)
    suppressed = [False] * len(ordered)
    selected = []

    for i, candidate in enumerate(ordered):
        if suppressed[i]:
            continue
        selected.append(candidate)
        for j in range(i + 1, len(ordered)):
            if suppressed[j]:
                continue
            if candidate.iou(ordered[j]) > iou_threshold:
                suppressed[j] = True

    return selected


def filter_detections(
    detections: List[Detection],
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> List[Detection]:
    """
    Confidence gate followed by NMS.

    The default confidence threshold is low; NMS and point selection
    narrow the set further downstream.
    """
    valid = confidence_gate(detections, confidence_threshold)
    logger.debug(
        f"Valid detections (conf > {confidence_threshold}): {len(valid)} of {len(detections)}"
    )
    if not valid:
        return []

    for idx, det in enumerate(sorted(valid, key=lambda d: d.confidence, reverse=True)[:5]):
        logger.debug(
            f"  Top[{idx}]: conf={det.confidence:.3f}, box=({det.center_x:.1f}, "
            f"{det.center_y:.1f}, {det.width:.1f}, {det.height:.1f})"
        )

    kept = non_max_suppression(valid, iou_threshold)
    logger.debug(f"After NMS: {len(kept)} detections")
    return kept
