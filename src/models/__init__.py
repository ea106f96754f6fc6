"""
Typed models for the NudeNet camera pipeline.
"""

from .frame import Frame, FrameReleasedError, PixelFormat
from .detection import BoundingBox, Detection, DetectionSet
from .result import Result
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DetectionConfig,
    OverlayConfig,
    PipelineSettings,
)

__all__ = [
    # Frame
    "Frame",
    "FrameReleasedError",
    "PixelFormat",
    # Detection
    "BoundingBox",
    "Detection",
    "DetectionSet",
    "Result",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DetectionConfig",
    "OverlayConfig",
    "PipelineSettings",
]
