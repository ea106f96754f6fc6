"""
Pipeline module for the NudeNet camera pipeline.

The pipeline orchestrates the full processing flow:
- Latest-frame intake from the camera thread
- Sampling, preprocessing, inference and decoding on a worker thread
- Result hand-off to a single consumer
"""

from .engine import PipelineEngine, PipelineConfig, PipelineStats, SessionState
from .queues import LatestFrameSlot, ResultQueue

__all__ = [
    "PipelineEngine",
    "PipelineConfig",
    "PipelineStats",
    "SessionState",
    "LatestFrameSlot",
    "ResultQueue",
]
