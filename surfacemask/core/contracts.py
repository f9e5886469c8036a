"""
Core data contracts for the surface segmentation pipeline.

All components must adhere to these contracts for:
- Channel-major tensor decoding
- Deterministic mask output
- Safe degradation to the fallback mask
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, List, Tuple
import numpy as np
from numpy.typing import NDArray


# ============================================================
# CONSTANTS
# ============================================================

MASK_ON = 255
MASK_OFF = 0

DEFAULT_MODEL_INPUT_SIZE = 640
DEFAULT_CONFIDENCE_THRESHOLD = 0.1
DEFAULT_IOU_THRESHOLD = 0.7
DEFAULT_MASK_THRESHOLD = 0.3

# 4 box parameters + 1 confidence score precede the mask coefficients
BOX_CHANNELS = 4
CONFIDENCE_CHANNEL = 4
COEFFICIENT_OFFSET = 5


# ============================================================
# CORE DATA STRUCTURES
# ============================================================

@dataclass(eq=False)
class Detection:
    """
    One candidate object proposal decoded from the detection tensor.

    Box values are in model-input pixel space (center + size).
    """
    center_x: float
    center_y: float
    width: float
    height: float
    confidence: float
    mask_coefficients: NDArray[np.float32] = field(
        default_factory=lambda: np.zeros(0, dtype=np.float32)
    )

    @property
    def x_min(self) -> float:
        return self.center_x - self.width / 2

    @property
    def y_min(self) -> float:
        return self.center_y - self.height / 2

    @property
    def x_max(self) -> float:
        return self.center_x + self.width / 2

    @property
    def y_max(self) -> float:
        return self.center_y + self.height / 2

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def iou(self, other: Detection) -> float:
        """Calculate Intersection over Union with another detection box."""
        x_left = max(self.x_min, other.x_min)
        y_top = max(self.y_min, other.y_min)
        x_right = min(self.x_max, other.x_max)
        y_bottom = min(self.y_max, other.y_max)

        intersection = max(0.0, x_right - x_left) * max(0.0, y_bottom - y_top)
        union = self.area + other.area - intersection

        return intersection / union if union > 0 else 0.0


@dataclass
class SegmentationConfig:
    """Configuration for the segmentation pipeline."""
    model_input_size: int = DEFAULT_MODEL_INPUT_SIZE
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    iou_threshold: float = DEFAULT_IOU_THRESHOLD
    mask_threshold: float = DEFAULT_MASK_THRESHOLD

    # Model provisioning is external; this is only where to look
    model_path: Optional[str] = None
    num_threads: int = 4

    def __post_init__(self):
        for name in ("model_input_size", "num_threads"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in ("confidence_threshold", "iou_threshold", "mask_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
        if self.model_path is not None and not isinstance(self.model_path, str):
            raise ValueError(f"model_path must be a string, got {self.model_path!r}")

        if self.model_input_size <= 0:
            raise ValueError(
                f"model_input_size must be positive, got {self.model_input_size}"
            )
        for name in ("confidence_threshold", "iou_threshold", "mask_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be >= 1, got {self.num_threads}")


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class SegmentationResult:
    """Result of an "all masks" query."""
    masks: List[NDArray[np.uint8]]
    inference_time_ms: float = 0.0
    num_candidates: int = 0  # detections above the confidence threshold
    used_fallback: bool = False

    # If a pipeline stage failed
    success: bool = True
    error_message: Optional[str] = None


@dataclass
class MaskSelection:
    """Result of a point query: the single mask chosen for the tap."""
    mask: NDArray[np.uint8]  # S x S, values 0 / 255
    tap_pixel: Tuple[int, int]  # (px, py) in model-input pixels
    inference_time_ms: float = 0.0
    num_masks: int = 0
    contains_tap: bool = False
    used_fallback: bool = False

    success: bool = True
    error_message: Optional[str] = None

    @property
    def area(self) -> int:
        return int(np.count_nonzero(self.mask == MASK_ON))

    def to_bytes(self) -> bytes:
        """Row-major 0/255 bytes, the outbound wire form of the mask."""
        return np.ascontiguousarray(self.mask, dtype=np.uint8).tobytes()
