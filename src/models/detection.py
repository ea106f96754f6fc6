"""
Detection models for model output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in surface pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))


@dataclass(frozen=True)
class Detection:
    """
    A single detection decoded from the model output.

    Geometry is normalized to [0, 1] and anchored at the top-left corner.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Box width, never negative.
        height: Box height, never negative.
        confidence: Best class score, clipped to [0, 1].
        class_index: Index into the class label table.
    """
    x: float
    y: float
    width: float
    height: float
    confidence: float
    class_index: int

    def to_bbox(self, surface_width: float, surface_height: float) -> BoundingBox:
        """Scale the normalized box onto a surface of the given size."""
        return BoundingBox(
            x1=self.x * surface_width,
            y1=self.y * surface_height,
            x2=(self.x + self.width) * surface_width,
            y2=(self.y + self.height) * surface_height,
        )

    def to_numpy(self) -> np.ndarray:
        """Convert to numpy array [x, y, width, height, confidence, class_index]."""
        return np.array([
            self.x, self.y, self.width, self.height,
            self.confidence, self.class_index,
        ])


# Decode order, not confidence order.
DetectionSet = List[Detection]


def detections_to_numpy(detections: DetectionSet) -> np.ndarray:
    """
    Convert a list of Detection objects to a numpy array.

    Returns:
        Array of shape (N, 6) with [x, y, width, height, confidence, class_index].
    """
    if not detections:
        return np.empty((0, 6))
    return np.array([d.to_numpy() for d in detections])
