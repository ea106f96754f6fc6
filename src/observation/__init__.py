"""
Observation layer for pluggable frame sources.

This layer abstracts the source of frames (camera, video file) from the
processing pipeline. Each source implements the ObservationSource interface
and returns Frame objects.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .sampler import FrameSampler, select_sample_stride

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "FrameSampler",
    "select_sample_stride",
]
