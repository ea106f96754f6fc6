"""
NudeNet class label table.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence, Tuple

NUDENET_CLASSES: Tuple[str, ...] = (
    "FEMALE_GENITALIA_COVERED",
    "FACE_FEMALE",
    "BUTTOCKS_EXPOSED",
    "FEMALE_BREAST_EXPOSED",
    "FEMALE_GENITALIA_EXPOSED",
    "MALE_BREAST_EXPOSED",
    "ANUS_EXPOSED",
    "FEET_EXPOSED",
    "BELLY_EXPOSED",
    "FEET_COVERED",
    "ARMPITS_EXPOSED",
    "ARMPITS_COVERED",
    "FACE_MALE",
    "BELLY_COVERED",
    "MALE_GENITALIA_EXPOSED",
    "BUTTOCKS_COVERED",
    "FEMALE_BREAST_COVERED",
    "MALE_GENITALIA_COVERED",
)

NUM_CLASSES = len(NUDENET_CLASSES)


class LabelTable:
    """Read-only positional mapping from class index to name."""

    def __init__(self, names: Sequence[str] = NUDENET_CLASSES):
        self._names: Tuple[str, ...] = tuple(names)

    def __len__(self) -> int:
        return len(self._names)

    def __getitem__(self, index: int) -> str:
        return self.name(index)

    def name(self, index: int) -> str:
        if 0 <= index < len(self._names):
            return self._names[index]
        return f"UNKNOWN_{index}"

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names


def load_labels(path: str) -> List[str]:
    """
    Read a line-delimited label file.

    Trailing newlines and trailing blank lines are dropped; interior lines are
    kept positionally so indices stay aligned with the model.
    """
    with open(path, "r", encoding="utf-8") as f:
        labels = [line.rstrip("\r\n") for line in f]
    while labels and not labels[-1].strip():
        labels.pop()
    return labels


def create_label_table(path: Optional[str] = None) -> LabelTable:
    """
    Build the label table from a label file, or the built-in names.

    A missing or unreadable file falls back to the built-in NudeNet names.
    """
    if not path:
        return LabelTable()

    if not os.path.exists(path):
        logging.warning(f"Label file not found: {path}, using built-in labels")
        return LabelTable()

    try:
        labels = load_labels(path)
    except (OSError, UnicodeDecodeError) as e:
        logging.error(f"Error reading labels from {path}: {e}")
        return LabelTable()

    if len(labels) != NUM_CLASSES:
        logging.warning(f"Label file {path} has {len(labels)} entries, expected {NUM_CLASSES}")
    logging.info(f"Loaded {len(labels)} labels from {path}")
    return LabelTable(labels)
