"""
Bounding-box overlay drawn on top of the camera preview.

Boxes are colored by confidence tier: high (> 0.7) red, medium (> 0.5)
yellow, everything else green. Each box carries a "<label>: <pct>%" tag on a
half-transparent black background just above its top-left corner.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from detection.labels import LabelTable
from models.config import OverlayConfig
from models.detection import BoundingBox, Detection

HIGH_CONFIDENCE = 0.7
MEDIUM_CONFIDENCE = 0.5

# Text anchor offset above the box and label padding, in pixels.
LABEL_OFFSET = 10
LABEL_PADDING = 5


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# BGR, matching the OpenCV preview surface.
TIER_COLORS = {
    ConfidenceTier.HIGH: (0, 0, 255),      # Red
    ConfidenceTier.MEDIUM: (0, 255, 255),  # Yellow
    ConfidenceTier.LOW: (0, 255, 0),       # Green
}
COLOR_TEXT = (255, 255, 255)
COLOR_SUMMARY = (255, 0, 0)            # Blue
COLOR_SUMMARY_ALERT = (0, 0, 255)      # Red
COLOR_SUMMARY_EMPTY = (128, 128, 128)  # Gray


def confidence_tier(confidence: float) -> ConfidenceTier:
    if confidence > HIGH_CONFIDENCE:
        return ConfidenceTier.HIGH
    if confidence > MEDIUM_CONFIDENCE:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def confidence_percent(confidence: float) -> int:
    """Round half up to a whole percentage."""
    return int(np.floor(confidence * 100 + 0.5))


def label_text(detection: Detection, labels: LabelTable) -> str:
    return f"{labels.name(detection.class_index)}: {confidence_percent(detection.confidence)}%"


@dataclass(frozen=True)
class OverlayItem:
    """Everything needed to draw one detection."""
    box: BoundingBox
    tier: ConfidenceTier
    color: Tuple[int, int, int]
    text: str
    text_origin: Tuple[int, int]
    label_rect: Tuple[int, int, int, int]


class OverlayRenderer:
    """Holds the current DetectionSet and draws it onto preview frames."""

    def __init__(self, labels: Optional[LabelTable] = None, config: Optional[OverlayConfig] = None):
        self.labels = labels or LabelTable()
        self.config = config or OverlayConfig()
        self._detections: List[Detection] = []

    @property
    def detections(self) -> List[Detection]:
        return list(self._detections)

    def update_detections(self, detections: Sequence[Detection]) -> None:
        """Replace (never merge) the detections to draw."""
        self._detections = list(detections)

    def layout(self, surface_width: int, surface_height: int) -> List[OverlayItem]:
        """Compute box geometry, colors and label placement for a surface size."""
        font = cv2.FONT_HERSHEY_SIMPLEX
        items: List[OverlayItem] = []
        for detection in self._detections:
            box = detection.to_bbox(surface_width, surface_height)
            tier = confidence_tier(detection.confidence)
            text = label_text(detection, self.labels)

            (text_w, text_h), _ = cv2.getTextSize(
                text, font, self.config.font_scale, self.config.text_thickness
            )
            text_x = int(box.x1)
            text_y = int(box.y1) - LABEL_OFFSET
            label_rect = (
                text_x - LABEL_PADDING,
                text_y - text_h - LABEL_PADDING,
                text_x + text_w + 2 * LABEL_PADDING,
                text_y + LABEL_PADDING,
            )
            items.append(
                OverlayItem(
                    box=box,
                    tier=tier,
                    color=TIER_COLORS[tier],
                    text=text,
                    text_origin=(text_x, text_y),
                    label_rect=label_rect,
                )
            )
        return items

    def render(self, frame: np.ndarray) -> np.ndarray:
        """
        Draw the current detections on a copy of `frame`.

        The input is never modified, so rendering the same set twice gives
        the same picture.
        """
        canvas = frame.copy()
        if not self._detections:
            return canvas

        surface_h, surface_w = canvas.shape[:2]
        for item in self.layout(surface_w, surface_h):
            x1, y1, x2, y2 = item.box.as_int_tuple()
            cv2.rectangle(canvas, (x1, y1), (x2, y2), item.color, self.config.stroke_width)
            self._shade(canvas, item.label_rect)
            cv2.putText(
                canvas,
                item.text,
                item.text_origin,
                cv2.FONT_HERSHEY_SIMPLEX,
                self.config.font_scale,
                COLOR_TEXT,
                self.config.text_thickness,
            )
        return canvas

    def render_summary(
        self,
        frame: np.ndarray,
        lines: Sequence[str],
        color: Tuple[int, int, int] = COLOR_SUMMARY,
    ) -> np.ndarray:
        """Draw summary text lines in the top-left corner of a copy of `frame`."""
        canvas = frame.copy()
        y = 30
        for line in lines:
            cv2.putText(canvas, line, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2)
            y += 30
        return canvas

    @staticmethod
    def _shade(canvas: np.ndarray, rect: Tuple[int, int, int, int]) -> None:
        """Darken a rectangle to half brightness (black at ~50% alpha)."""
        h, w = canvas.shape[:2]
        x1, y1, x2, y2 = rect
        x1, x2 = max(0, x1), min(w, x2)
        y1, y2 = max(0, y1), min(h, y2)
        if x1 >= x2 or y1 >= y2:
            return
        canvas[y1:y2, x1:x2] = canvas[y1:y2, x1:x2] // 2
