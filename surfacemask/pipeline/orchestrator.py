"""
Pipeline Orchestrator.

Executes the segmentation pipeline in strict order:

1. Preprocess frame (box resize, planar RGB in [0, 1])
2. Run the injected model capability
3. Decode detections from the raw tensors
4. Confidence gate + NMS
5. Rasterize one mask per surviving detection
6. Select the mask under the tap (or return all masks)

Guarantees:
- Data problems never raise; they degrade to the fallback ellipse
- Querying an uninitialized pipeline raises NotInitialized
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from surfacemask.core.contracts import (
    SegmentationConfig,
    SegmentationResult,
    MaskSelection,
    MASK_ON,
)
from surfacemask.core.errors import (
    InferenceExecutionFailure,
    MalformedOutputShape,
)
from surfacemask.runtime.model_runner import ModelRunner, describe_outputs, load_model_runner
from surfacemask.runtime.preprocess import preprocess_image
from surfacemask.segmentation.tensor_decoder import decode, confidence_stats
from surfacemask.segmentation.detection_filter import filter_detections
from surfacemask.segmentation.mask_rasterizer import rasterize
from surfacemask.segmentation.point_selector import (
    find_mask_index,
    generate_fallback_mask,
    tap_to_pixel,
    all_masks,
)
from .context import (
    PipelineContext,
    RunnerFactory,
    create_context,
    release_context,
    require_initialized,
)


def run_model(
    runner: ModelRunner,
    input_tensor: NDArray[np.float32],
) -> Sequence[NDArray[np.float32]]:
    """
    Call the model capability.

    Raises:
        InferenceExecutionFailure: If the call raises.
    """
    try:
        return runner(input_tensor)
    except Exception as e:
        raise InferenceExecutionFailure(f"Model execution failed: {e}") from e


def generate_masks(
    context: PipelineContext,
    image: NDArray[np.uint8],
) -> Tuple[List[NDArray[np.uint8]], int]:
    """
    Run steps 1-5 on one frame.

    Returns:
        (masks, number of detections above the confidence threshold)

    Raises:
        ValueError: Invalid image
        InferenceExecutionFailure: Model call failed
        MalformedOutputShape: Outputs do not match the expected layout
    """
    config = context.config
    size = config.model_input_size

    input_tensor = preprocess_image(image, size)
    logger.debug(f"Input tensor created: {input_tensor.shape}")

    start = time.perf_counter()
    outputs = run_model(context.runner, input_tensor)
    logger.debug(f"Inference completed in {(time.perf_counter() - start) * 1000:.1f}ms")
    describe_outputs(outputs)

    if len(outputs) < 2:
        raise MalformedOutputShape(
            f"Model has only {len(outputs)} output(s), need 2 for segmentation"
        )

    detection_tensor = np.asarray(outputs[0], dtype=np.float32)
    prototype_tensor = np.asarray(outputs[1], dtype=np.float32)

    detections = decode(
        detection_tensor.reshape(-1),
        detection_tensor.shape,
        prototype_tensor.reshape(-1),
        prototype_tensor.shape,
    )
    max_conf, avg_conf = confidence_stats(detections)
    logger.debug(f"Confidence stats: max={max_conf:.3f}, avg={avg_conf:.3f}")

    survivors = filter_detections(
        detections,
        confidence_threshold=config.confidence_threshold,
        iou_threshold=config.iou_threshold,
    )
    num_candidates = sum(
        1 for d in detections if d.confidence > config.confidence_threshold
    )

    prototypes = prototype_tensor.reshape(-1)
    masks = []
    for idx, detection in enumerate(survivors):
        logger.debug(f"Generating mask for detection {idx} (conf={detection.confidence:.3f})")
        masks.append(
            rasterize(
                prototypes,
                prototype_tensor.shape,
                detection,
                model_input_size=size,
                mask_threshold=config.mask_threshold,
            )
        )

    logger.debug(f"Generated {len(masks)} masks")
    return masks, num_candidates


def segment_at_point(
    context: Optional[PipelineContext],
    image: NDArray[np.uint8],
    tap_x: float,
    tap_y: float,
) -> MaskSelection:
    """
    Mask of the object under a normalized tap point.

    Args:
        context: Initialized pipeline context
        image: RGB frame (H x W x 3)
        tap_x: Normalized x in [0, 1]
        tap_y: Normalized y in [0, 1]

    Returns:
        MaskSelection; its mask is never None

    Raises:
        NotInitialized: If the context is missing or released.
    """
    context = require_initialized(context)
    size = context.config.model_input_size
    tap_pixel = tap_to_pixel(tap_x, tap_y, size)
    logger.debug(f"Segment at point: tap=({tap_x:.3f}, {tap_y:.3f}) -> pixel {tap_pixel}")

    if not context.has_model:
        logger.debug("No model session, returning demo mask")
        return MaskSelection(
            mask=generate_fallback_mask(tap_x, tap_y, size),
            tap_pixel=tap_pixel,
            used_fallback=True,
            error_message=context.unavailable_reason,
        )

    start_time = time.perf_counter()
    try:
        masks, _ = generate_masks(context, image)
    except MalformedOutputShape as e:
        logger.error(f"Malformed model output, treating as zero detections: {e}")
        masks = []
        error_message = str(e)
    except Exception as e:
        logger.error(f"Segmentation failed: {e}")
        return MaskSelection(
            mask=generate_fallback_mask(tap_x, tap_y, size),
            tap_pixel=tap_pixel,
            inference_time_ms=(time.perf_counter() - start_time) * 1000,
            used_fallback=True,
            success=False,
            error_message=str(e),
        )
    else:
        error_message = None

    elapsed_ms = (time.perf_counter() - start_time) * 1000

    index = find_mask_index(masks, tap_x, tap_y, size)
    if index is None:
        logger.debug("No masks generated, using demo mask")
        return MaskSelection(
            mask=generate_fallback_mask(tap_x, tap_y, size),
            tap_pixel=tap_pixel,
            inference_time_ms=elapsed_ms,
            used_fallback=True,
            success=error_message is None,
            error_message=error_message,
        )

    selected = masks[index]
    px, py = tap_pixel
    selection = MaskSelection(
        mask=selected,
        tap_pixel=tap_pixel,
        inference_time_ms=elapsed_ms,
        num_masks=len(masks),
        contains_tap=bool(selected[py, px] == MASK_ON),
    )
    logger.info(
        f"Selected mask {index} of {len(masks)}: {selection.area} pixels "
        f"in {elapsed_ms:.1f}ms"
    )
    return selection


def get_all_masks(
    context: Optional[PipelineContext],
    image: NDArray[np.uint8],
) -> SegmentationResult:
    """
    Every surviving mask for a frame.

    Falls back to a single centred ellipse when nothing survives.

    Raises:
        NotInitialized: If the context is missing or released.
    """
    context = require_initialized(context)
    size = context.config.model_input_size

    def fallback(**kwargs) -> SegmentationResult:
        return SegmentationResult(
            masks=[generate_fallback_mask(0.5, 0.5, size)],
            used_fallback=True,
            **kwargs,
        )

    if not context.has_model:
        return fallback(error_message=context.unavailable_reason)

    start_time = time.perf_counter()
    try:
        masks, num_candidates = generate_masks(context, image)
    except Exception as e:
        logger.error(f"Get all masks failed: {e}")
        return fallback(
            inference_time_ms=(time.perf_counter() - start_time) * 1000,
            success=False,
            error_message=str(e),
        )

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    if not masks:
        return fallback(inference_time_ms=elapsed_ms, num_candidates=num_candidates)

    return SegmentationResult(
        masks=all_masks(masks),
        inference_time_ms=elapsed_ms,
        num_candidates=num_candidates,
    )


class SegmentationEngine:
    """
    Tap-to-segment engine.

    Owns one PipelineContext between initialize() and release().

    Guarantees:
    - Falls back to the ellipse mask on any data or model failure
    - Raises NotInitialized for queries outside the initialize/release window
    """

    def __init__(
        self,
        config: Optional[SegmentationConfig] = None,
        runner: Optional[ModelRunner] = None,
        runner_factory: RunnerFactory = load_model_runner,
    ):
        """
        Args:
            config: Pipeline configuration
            runner: Injected model capability (skips loading)
            runner_factory: Loads a runner from config when none is injected
        """
        self.config = config or SegmentationConfig()
        self._runner = runner
        self._runner_factory = runner_factory
        self._context: Optional[PipelineContext] = None

    def initialize(self) -> bool:
        """
        Initialize the pipeline.

        Returns:
            True if a real model is loaded, False in demo mode.
        """
        if self._context is not None:
            release_context(self._context)
        self._context = create_context(
            self.config,
            runner=self._runner,
            runner_factory=self._runner_factory,
        )
        return self._context.has_model

    def segment_at_point(
        self,
        image: NDArray[np.uint8],
        tap_x: float,
        tap_y: float,
    ) -> MaskSelection:
        """Mask of the object under the tap; see segment_at_point()."""
        return segment_at_point(self._context, image, tap_x, tap_y)

    def get_all_masks(self, image: NDArray[np.uint8]) -> SegmentationResult:
        """All surviving masks; see get_all_masks()."""
        return get_all_masks(self._context, image)

    def release(self):
        """Clean up resources."""
        release_context(self._context)
        self._context = None

    @property
    def context(self) -> Optional[PipelineContext]:
        return self._context

    @property
    def is_initialized(self) -> bool:
        return self._context is not None and self._context.initialized

    @property
    def has_model(self) -> bool:
        return self.is_initialized and self._context.has_model
