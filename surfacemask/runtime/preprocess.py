"""
Image decoding and model-input preprocessing.

The model expects a 1 x 3 x S x S float tensor of planar RGB in [0, 1],
produced by a plain box resize (no letterboxing). Downstream coordinate
math assumes this resize policy.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union
import numpy as np
from numpy.typing import NDArray
import cv2


def to_rgb(image: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """
    Normalize grayscale / RGBA input to H x W x 3 RGB.

    Raises:
        ValueError: For empty images or unsupported channel counts.
    """
    if image is None or image.size == 0:
        raise ValueError("Invalid frame input")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)

    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2RGB)

    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)

    if image.ndim == 3 and image.shape[2] == 3:
        return image

    raise ValueError(f"Unsupported image shape {image.shape}")


def preprocess_image(
    image: NDArray[np.uint8],
    model_input_size: int,
) -> NDArray[np.float32]:
    """
    Build the model input tensor.

    Args:
        image: RGB frame (H x W x 3), grayscale or RGBA also accepted
        model_input_size: Square model input side S

    Returns:
        float32 tensor of shape (1, 3, S, S)
    """
    rgb = to_rgb(image)
    if rgb.dtype != np.uint8:
        rgb = np.clip(rgb, 0, 255).astype(np.uint8)

    resized = cv2.resize(
        rgb,
        (model_input_size, model_input_size),
        interpolation=cv2.INTER_LINEAR,
    )

    planar = resized.astype(np.float32).transpose(2, 0, 1) / 255.0
    return np.ascontiguousarray(planar[np.newaxis, ...])


def decode_image_bytes(data: bytes) -> NDArray[np.uint8]:
    """
    Decode encoded image bytes (JPEG/PNG) to RGB.

    Raises:
        ValueError: If the bytes cannot be decoded.
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if bgr is None:
        raise ValueError("Could not decode image bytes")
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def load_image(path: Union[str, Path]) -> NDArray[np.uint8]:
    """
    Read an image file as RGB.

    Raises:
        ValueError: If the file is missing or unreadable.
    """
    bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if bgr is None:
        raise ValueError(f"Cannot read image: {path}")
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
