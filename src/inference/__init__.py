"""
Inference engine contract, ONNX Runtime engine and input preprocessing.
"""

from .backend import InferenceEngine, InferenceError, SessionHandle, read_model_bytes
from .preprocess import INPUT_SHAPE, ImagePreprocessor, InvalidFrameError

__all__ = [
    "InferenceEngine",
    "InferenceError",
    "SessionHandle",
    "read_model_bytes",
    "INPUT_SHAPE",
    "ImagePreprocessor",
    "InvalidFrameError",
]
