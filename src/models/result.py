"""
Per-frame result handed to the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .detection import Detection


@dataclass
class Result:
    """
    Outcome of processing one frame.

    Attributes:
        detections: Detections in decode order.
        process_time_ms: Inference duration in milliseconds.
        frame_index: Index of the frame this result belongs to.
        error: Error message when inference failed for this frame.
    """
    detections: List[Detection] = field(default_factory=list)
    process_time_ms: float = 0.0
    frame_index: int = 0
    error: Optional[str] = None

    @property
    def class_indices(self) -> List[int]:
        return [d.class_index for d in self.detections]

    @property
    def scores(self) -> List[float]:
        return [d.confidence for d in self.detections]

    @property
    def ok(self) -> bool:
        return self.error is None
