"""
Error taxonomy for the segmentation pipeline.

Only NotInitialized is allowed to reach the caller. Every other
condition is recovered inside the pipeline by degrading to the
fallback mask.
"""


class SegmentationError(Exception):
    """Base class for all pipeline errors."""


class MalformedOutputShape(SegmentationError):
    """Model output tensor rank or shape does not match the expected layout."""


class ModelUnavailable(SegmentationError):
    """No model session could be loaded (missing or unreadable model file)."""


class InferenceExecutionFailure(SegmentationError):
    """The model call itself raised."""


class NotInitialized(SegmentationError):
    """A query was issued before the pipeline was initialized (or after release)."""
