"""
Configuration loading.

Settings come from a YAML file:

    model:
      path: models/fastsam-s.onnx
      num_threads: 4
    segmentation:
      model_input_size: 640
      confidence_threshold: 0.1
      iou_threshold: 0.7
      mask_threshold: 0.3

Missing sections fall back to SegmentationConfig defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml
from loguru import logger

from surfacemask.core.contracts import SegmentationConfig


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"

_SEGMENTATION_KEYS = (
    "model_input_size",
    "confidence_threshold",
    "iou_threshold",
    "mask_threshold",
)
_MODEL_KEYS = {"path": "model_path", "num_threads": "num_threads"}


def load_settings(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load raw settings from the given file, else the default location."""
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = DEFAULT_CONFIG_PATH
        if not path.exists():
            return {}

    with open(path) as f:
        settings = yaml.safe_load(f) or {}

    if not isinstance(settings, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    logger.debug(f"Loaded settings from {path}")
    return settings


def config_from_settings(
    settings: Dict[str, Any],
    **overrides: Any,
) -> SegmentationConfig:
    """
    Build a SegmentationConfig from raw settings.

    Args:
        settings: Parsed YAML mapping
        **overrides: Field values that win over the file (None is ignored)
    """
    values: Dict[str, Any] = {}

    segmentation = settings.get("segmentation") or {}
    for key, value in segmentation.items():
        if key in _SEGMENTATION_KEYS:
            values[key] = value
        else:
            logger.warning(f"Ignoring unknown segmentation setting: {key}")

    model = settings.get("model") or {}
    for key, value in model.items():
        if key in _MODEL_KEYS:
            values[_MODEL_KEYS[key]] = value
        else:
            logger.warning(f"Ignoring unknown model setting: {key}")

    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    return SegmentationConfig(**values)


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> SegmentationConfig:
    """Load configuration from file with optional field overrides."""
    return config_from_settings(load_settings(config_path), **overrides)
