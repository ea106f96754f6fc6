"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  path: "models/test.onnx"

detection:
  conf_threshold: 0.2

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
            "pixel_format": "luminance",
            "rotate": 0,
        },
        "model": {
            "path": "models/nudenet_320n.onnx",
            "labels_path": "resources/nsfw_classes.txt",
            "providers": ["CPUExecutionProvider"],
        },
        "detection": {
            "conf_threshold": 0.2,
            "num_classes": 18,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


def build_raw_output(rows, num_features=22, num_slots=None):
    """
    Encode detection rows into a [1, num_features, N] raw output tensor.

    Each row is (x, y, w, h, class_index, score). Feature rows that do not
    fit into `num_features` are dropped.
    """
    num_slots = len(rows) if num_slots is None else num_slots
    full = np.zeros((22, num_slots), dtype=np.float32)
    for i, (x, y, w, h, class_index, score) in enumerate(rows):
        full[0:4, i] = (x, y, w, h)
        full[4 + class_index, i] = score
    return full[:num_features][None, :, :]


@pytest.fixture
def make_raw_output():
    return build_raw_output
