"""
Explicit pipeline state.

A PipelineContext holds everything a query needs: configuration and the
loaded model capability. Creating one is initialization; releasing it is
teardown. A context with runner=None is permanent demo mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
from loguru import logger

from surfacemask.core.contracts import SegmentationConfig
from surfacemask.core.errors import ModelUnavailable, NotInitialized
from surfacemask.runtime.model_runner import ModelRunner, load_model_runner


RunnerFactory = Callable[[SegmentationConfig], ModelRunner]


@dataclass
class PipelineContext:
    """Loaded model capability + configuration for one pipeline."""
    config: SegmentationConfig
    runner: Optional[ModelRunner] = None
    initialized: bool = False
    unavailable_reason: Optional[str] = None

    @property
    def has_model(self) -> bool:
        return self.runner is not None


def create_context(
    config: Optional[SegmentationConfig] = None,
    runner: Optional[ModelRunner] = None,
    runner_factory: RunnerFactory = load_model_runner,
) -> PipelineContext:
    """
    Initialize a pipeline context.

    Args:
        config: Pipeline configuration (defaults if None)
        runner: Pre-built model capability; skips the factory when given
        runner_factory: Builds a runner from config when none is given

    Returns:
        An initialized context. If the model is unavailable the context
        runs in demo mode and every query returns the fallback mask.
    """
    config = config or SegmentationConfig()
    context = PipelineContext(config=config, runner=runner)

    if runner is None:
        try:
            context.runner = runner_factory(config)
        except ModelUnavailable as e:
            logger.warning(f"Model unavailable, using demo mode: {e}")
            context.unavailable_reason = str(e)

    context.initialized = True
    logger.info(
        f"Segmentation pipeline initialized "
        f"(size={config.model_input_size}, model={'yes' if context.has_model else 'demo'})"
    )
    return context


def release_context(context: Optional[PipelineContext]) -> None:
    """Drop the model capability and mark the context unusable."""
    if context is None:
        return
    context.runner = None
    context.initialized = False
    logger.info("Segmentation pipeline released")


def require_initialized(context: Optional[PipelineContext]) -> PipelineContext:
    """
    Raises:
        NotInitialized: If the context is missing or released.
    """
    if context is None or not context.initialized:
        raise NotInitialized("Segmentation pipeline not initialized")
    return context
