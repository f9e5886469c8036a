"""
Segmentation pipeline lifecycle and queries.
"""

from .context import PipelineContext, create_context, release_context
from .orchestrator import (
    SegmentationEngine,
    segment_at_point,
    get_all_masks,
    generate_masks,
)
