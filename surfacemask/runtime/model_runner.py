"""
Model runtime boundary.

The pipeline treats the network as a single function-shaped capability:

    runner(input_tensor) -> [detection_tensor, prototype_tensor]

Anything callable with that signature can be injected; OpenCVModelRunner
is the concrete adapter for ONNX segmentation models.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Protocol, Sequence
import numpy as np
from numpy.typing import NDArray
import cv2
from loguru import logger

from surfacemask.core.contracts import SegmentationConfig
from surfacemask.core.errors import ModelUnavailable


class ModelRunner(Protocol):
    """Opaque synchronous model call."""

    def __call__(self, input_tensor: NDArray[np.float32]) -> Sequence[NDArray[np.float32]]:
        """
        Run the network on a (1, 3, S, S) tensor.

        Returns:
            Output tensors in the network's declared order
        """
        ...


class OpenCVModelRunner:
    """
    ONNX segmentation model executed through OpenCV's dnn module.

    Outputs are returned in the network's declared order
    (detections first, prototypes second for YOLOv8-seg / FastSAM exports).
    """

    def __init__(self, model_path: str, num_threads: int = 4):
        """
        Load the network.

        Args:
            model_path: Path to an .onnx file
            num_threads: OpenCV worker thread count

        Raises:
            ModelUnavailable: If OpenCV cannot parse the model.
        """
        self.model_path = model_path
        cv2.setNumThreads(num_threads)

        try:
            self._net = cv2.dnn.readNetFromONNX(str(model_path))
        except cv2.error as e:
            raise ModelUnavailable(f"Failed to load model {model_path}: {e}") from e

        self._output_names = list(self._net.getUnconnectedOutLayersNames())
        logger.info(f"Model loaded: {model_path} (outputs: {self._output_names})")

    @property
    def output_names(self) -> List[str]:
        return list(self._output_names)

    def __call__(self, input_tensor: NDArray[np.float32]) -> List[NDArray[np.float32]]:
        self._net.setInput(input_tensor)
        outputs = self._net.forward(self._output_names)
        return [np.asarray(output, dtype=np.float32) for output in outputs]


def load_model_runner(config: SegmentationConfig) -> OpenCVModelRunner:
    """
    Build the default runner from configuration.

    Raises:
        ModelUnavailable: If no model is configured or the file is missing.
    """
    if not config.model_path:
        raise ModelUnavailable("No model path configured")

    path = Path(config.model_path).expanduser()
    if not path.is_file():
        raise ModelUnavailable(f"Model file not found: {path}")

    logger.debug(f"Model file: {path} ({path.stat().st_size} bytes)")
    return OpenCVModelRunner(str(path), num_threads=config.num_threads)


def describe_outputs(outputs: Sequence[NDArray[np.float32]], sample_size: int = 20) -> None:
    """Log shape, first values and range of every model output."""
    logger.debug(f"Output count: {len(outputs)}")

    for i, output in enumerate(outputs):
        array = np.asarray(output)
        flat = array.reshape(-1)
        logger.debug(f"Output[{i}] shape: {tuple(array.shape)}, dtype: {array.dtype}")
        logger.debug(f"  Total elements: {flat.size}")
        if flat.size == 0:
            continue
        samples = np.array2string(flat[:sample_size], precision=4, separator=", ")
        logger.debug(f"  First {min(sample_size, flat.size)} values: {samples}")
        logger.debug(f"  Min: {float(flat.min())}, Max: {float(flat.max())}")
