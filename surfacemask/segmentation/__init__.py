"""
Segmentation decoding.

Responsibilities:
- Decoding detection + prototype tensors
- Confidence gating and NMS
- Prototype combination into binary masks
- Tap-point mask selection
"""

from .tensor_decoder import decode
from .detection_filter import filter_detections, non_max_suppression, box_iou
from .mask_rasterizer import rasterize
from .point_selector import select_at, all_masks, generate_fallback_mask
from .mask_processor import MaskProcessor
