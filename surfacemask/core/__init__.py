"""
Core contracts and error taxonomy for the segmentation pipeline.
"""

from .contracts import (
    Detection,
    SegmentationConfig,
    SegmentationResult,
    MaskSelection,
    MASK_ON,
    MASK_OFF,
)
from .errors import (
    SegmentationError,
    MalformedOutputShape,
    ModelUnavailable,
    InferenceExecutionFailure,
    NotInitialized,
)
