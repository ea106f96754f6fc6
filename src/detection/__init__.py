"""
NudeNet Camera Pipeline - Detection Module

This module turns raw model output into detections and names their classes.
"""

from .decoder import DetectionDecoder
from .labels import NUDENET_CLASSES, LabelTable, create_label_table, load_labels

__all__ = ['DetectionDecoder', 'NUDENET_CLASSES', 'LabelTable', 'create_label_table', 'load_labels']
