"""
Summary statistics over a frame's detections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from detection.labels import NUM_CLASSES, LabelTable
from models.detection import Detection

HIGHLIGHT_THRESHOLD = 0.5


@dataclass(frozen=True)
class DetectionSummary:
    """
    Aggregated view of one DetectionSet.

    Attributes:
        detection_count: Number of detections.
        top_detection: Highest-confidence detection (first wins ties), or None.
        class_counts: Detections per class index.
        top1_class: Most frequent class, or None.
        top1_count: Count of top1_class.
        top2_class: Second most frequent class, or None.
        top2_count: Count of top2_class.
    """
    detection_count: int
    top_detection: Optional[Detection]
    class_counts: Tuple[int, ...]
    top1_class: Optional[int] = None
    top1_count: int = 0
    top2_class: Optional[int] = None
    top2_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.detection_count == 0

    @property
    def top_confidence_percent(self) -> int:
        """Progress-meter value: top confidence as a whole percentage."""
        if self.top_detection is None:
            return 0
        return int(self.top_detection.confidence * 100)

    @property
    def highlight(self) -> bool:
        """Whether the top detection is confident enough to flag."""
        return self.top_detection is not None and self.top_detection.confidence > HIGHLIGHT_THRESHOLD


class ResultAggregator:
    """Derive top detection, class counts and top-2 classes."""

    def __init__(self, num_classes: int = NUM_CLASSES):
        self.num_classes = num_classes

    def summarize(self, detections: Sequence[Detection]) -> DetectionSummary:
        top_detection: Optional[Detection] = None
        counts = [0] * self.num_classes

        for detection in detections:
            if top_detection is None or detection.confidence > top_detection.confidence:
                top_detection = detection
            if 0 <= detection.class_index < self.num_classes:
                counts[detection.class_index] += 1

        # Single pass: a new leader demotes the old one to second place.
        max_count, max_class = 0, None
        second_count, second_class = 0, None
        for class_index, count in enumerate(counts):
            if count > max_count:
                second_count, second_class = max_count, max_class
                max_count, max_class = count, class_index
            elif count > second_count:
                second_count, second_class = count, class_index

        return DetectionSummary(
            detection_count=len(detections),
            top_detection=top_detection,
            class_counts=tuple(counts),
            top1_class=max_class,
            top1_count=max_count,
            top2_class=second_class,
            top2_count=second_count,
        )


def format_summary(
    summary: DetectionSummary,
    labels: LabelTable,
    process_time_ms: Optional[float] = None,
) -> List[str]:
    """Text lines for the summary panel."""
    lines: List[str] = []
    if summary.is_empty:
        lines.append("No detections")
    else:
        lines.append(f"Detections: {summary.detection_count}")
        lines.append(f"Top: {summary.top_confidence_percent}%")
        if summary.top1_class is not None:
            lines.append(f"Most detected: {labels.name(summary.top1_class)}")
            lines.append(f"Count: {summary.top1_count}")
        if summary.top2_class is not None:
            lines.append(f"Second: {labels.name(summary.top2_class)}")
            lines.append(f"Count: {summary.top2_count}")

    if process_time_ms is not None:
        lines.append(f"{int(process_time_ms)}ms")
    return lines
