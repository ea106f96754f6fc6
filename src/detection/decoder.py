"""
Decoder for the NudeNet raw output tensor.

The model emits [1, features, detections]: rows 0-3 hold the normalized
top-left x, y and the box width and height, rows 4.. hold one score per
class. Every detection slot whose best class score clears the threshold
becomes a Detection. Overlapping boxes are not merged (no NMS).
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np

from models.detection import Detection
from .labels import NUM_CLASSES

GEOMETRY_ROWS = 4
DETECTION_THRESHOLD = 0.2


class DetectionDecoder:
    """Turn a raw output tensor into detections, in slot order."""

    def __init__(self, conf_threshold: float = DETECTION_THRESHOLD, num_classes: int = NUM_CLASSES):
        self.conf_threshold = conf_threshold
        self.num_classes = num_classes

    @property
    def num_features(self) -> int:
        return GEOMETRY_ROWS + self.num_classes

    def decode(self, raw_output: np.ndarray) -> List[Detection]:
        """
        Decode a [1, F, N] (or [F, N]) output tensor.

        Feature rows missing from the tensor read as zero. A tensor of any
        other rank decodes to no detections.
        """
        output = np.asarray(raw_output, dtype=np.float32)
        if output.ndim == 3:
            if output.shape[0] == 0:
                logging.warning(f"Empty batch in raw output: shape={output.shape}")
                return []
            output = output[0]
        if output.ndim != 2:
            logging.warning(f"Unexpected raw output shape {output.shape}, skipping decode")
            return []

        num_features, num_detections = output.shape
        logging.debug(f"Raw output: {num_features} features, {num_detections} detections")
        if num_detections == 0:
            return []

        if num_features < self.num_features:
            logging.debug(
                f"Raw output has {num_features} feature rows, expected {self.num_features}; "
                f"missing rows read as 0"
            )
        features = np.zeros((self.num_features, num_detections), dtype=np.float32)
        rows = min(num_features, self.num_features)
        features[:rows] = output[:rows]

        scores = features[GEOMETRY_ROWS:]
        # argmax returns the first index of the maximum, so ties go to the lower class.
        class_indices = np.argmax(scores, axis=0)
        confidences = scores[class_indices, np.arange(num_detections)]

        keep = np.flatnonzero(confidences >= self.conf_threshold)
        # Detections hold confidence in [0, 1] and non-negative extents.
        confidences = np.clip(confidences, 0.0, 1.0)
        features[2:GEOMETRY_ROWS] = np.maximum(features[2:GEOMETRY_ROWS], 0.0)
        detections = [
            Detection(
                x=float(features[0, i]),
                y=float(features[1, i]),
                width=float(features[2, i]),
                height=float(features[3, i]),
                confidence=float(confidences[i]),
                class_index=int(class_indices[i]),
            )
            for i in keep
        ]

        logging.debug(
            f"Found {len(detections)} detections with confidence >= {self.conf_threshold}"
        )
        return detections
