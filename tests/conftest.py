"""Shared fixtures: synthetic model outputs in the network's memory layout."""

import numpy as np
import pytest
from loguru import logger

from surfacemask.core.contracts import Detection, SegmentationConfig


def _build_detection_tensor(columns, num_coeffs):
    """
    Pack (cx, cy, w, h, conf, coeffs) tuples into a channel-major
    [1, 5 + num_coeffs, N] tensor.
    """
    channels = 5 + num_coeffs
    tensor = np.zeros((1, channels, len(columns)), dtype=np.float32)
    for i, (cx, cy, w, h, conf, coeffs) in enumerate(columns):
        tensor[0, 0:5, i] = (cx, cy, w, h, conf)
        tensor[0, 5:5 + len(coeffs), i] = coeffs
    return tensor


@pytest.fixture
def detection_tensor_factory():
    return _build_detection_tensor


@pytest.fixture
def make_detection():
    def factory(cx=320.0, cy=320.0, w=100.0, h=100.0, conf=0.9, coeffs=(1.0,)):
        return Detection(
            center_x=cx,
            center_y=cy,
            width=w,
            height=h,
            confidence=conf,
            mask_coefficients=np.asarray(coeffs, dtype=np.float32),
        )
    return factory


@pytest.fixture
def ones_prototypes():
    """Single all-ones 160x160 prototype."""
    return np.ones((1, 1, 160, 160), dtype=np.float32)


@pytest.fixture
def small_config():
    """Small model size keeps the pipeline tests fast."""
    return SegmentationConfig(model_input_size=64)


@pytest.fixture
def frame():
    rng = np.random.default_rng(0)
    return rng.integers(0, 256, size=(48, 80, 3), dtype=np.uint8)


@pytest.fixture
def log_messages():
    """Capture loguru output as (level, message) tuples."""
    records = []
    handler_id = logger.add(
        lambda message: records.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
    )
    yield records
    logger.remove(handler_id)
