"""
Model runtime boundary and input preprocessing.
"""

from .model_runner import ModelRunner, OpenCVModelRunner, load_model_runner
from .preprocess import preprocess_image, decode_image_bytes, load_image
