"""
Tests for observation layer.
"""

from typing import Optional
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from models.frame import Frame, PixelFormat
from observation.base import ObservationConfig, ObservationSource
from observation.opencv_source import OpenCVSource, OpenCVSourceConfig


class MockSource(ObservationSource):
    """Mock observation source for testing."""

    def __init__(self, config: ObservationConfig, images: list = None):
        super().__init__(config)
        self._images = images or []
        self._pos = 0

    def open(self) -> None:
        self._is_open = True
        self._pos = 0
        self._frame_index = 0

    def read(self) -> Optional[Frame]:
        if not self._is_open or self._pos >= len(self._images):
            return None

        image = self._images[self._pos]
        self._pos += 1
        return self._make_frame(image)

    def close(self) -> None:
        self._is_open = False


def mock_capture(images):
    """A cv2.VideoCapture stand-in that plays `images` then reports EOF."""
    cap = MagicMock()
    cap.isOpened.return_value = True
    cap.read.side_effect = [(True, img) for img in images] + [(False, None)] * 5
    return cap


class TestObservationConfig:
    def test_default_config(self):
        config = ObservationConfig()
        assert config.source_id == "default"
        assert config.resolution is None
        assert config.fps is None


class TestOpenCVSourceConfig:
    def test_from_camera_config(self):
        camera_cfg = {
            "device_id": "videos/sample.mp4",
            "resolution": [1280, 720],
            "fps": 30,
            "pixel_format": "rgba",
            "rotate": 90,
            "flip_horizontal": True,
        }
        config = OpenCVSourceConfig.from_camera_config(camera_cfg, source_id="main-camera")

        assert config.source_id == "main-camera"
        assert config.device_id == "videos/sample.mp4"
        assert config.resolution == (1280, 720)
        assert config.fps == 30
        assert config.pixel_format is PixelFormat.RGBA
        assert config.rotate == 90
        assert config.flip_horizontal is True
        assert config.flip_vertical is False

    def test_defaults(self):
        config = OpenCVSourceConfig.from_camera_config({})

        assert config.device_id == 0
        assert config.pixel_format is PixelFormat.LUMINANCE
        assert config.rotate == 0


class TestMockSource:
    def test_context_manager(self):
        images = [np.zeros((50, 50), dtype=np.uint8) for _ in range(2)]

        with MockSource(ObservationConfig(source_id="ctx-test"), images) as source:
            assert source.is_open
            count = sum(1 for _ in source)
            assert count == 2

        assert not source.is_open

    def test_iteration(self):
        images = [np.full((10, 10), i, dtype=np.uint8) for i in range(5)]

        with MockSource(ObservationConfig(), images) as source:
            collected = list(source)

        assert [f.frame_index for f in collected] == [1, 2, 3, 4, 5]

    def test_frames_carry_configured_rotation(self):
        config = ObservationConfig(rotate=180)

        with MockSource(config, [np.zeros((4, 4), dtype=np.uint8)]) as source:
            frame = source.read()

        assert frame.rotation_degrees == 180
        assert frame.pixel_format is PixelFormat.LUMINANCE
        assert source.frame_index == 1

    def test_iteration_requires_open(self):
        source = MockSource(ObservationConfig(), [])

        with pytest.raises(RuntimeError, match="must be open"):
            list(source)


class TestOpenCVSource:
    @pytest.fixture
    def video_file(self, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"\x00")
        return str(path)

    def test_usb_camera_is_not_file(self):
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        assert source.is_file is False

    def test_reads_luminance_frames(self, video_file):
        bgr = np.zeros((48, 64, 3), dtype=np.uint8)
        bgr[..., 2] = 255  # red
        cap = mock_capture([bgr])

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id=video_file, rotate=270))
            source.open()
            frame = source.read()
            end = source.read()
            source.close()

        assert frame.pixel_format is PixelFormat.LUMINANCE
        assert frame.size == (64, 48)
        assert frame.rotation_degrees == 270
        assert frame.frame_index == 1
        # BT.601 luma of pure red.
        assert abs(int(frame.to_image()[0, 0]) - 76) <= 1
        assert end is None
        cap.release.assert_called()

    def test_reads_rgba_frames(self, video_file):
        bgr = np.zeros((8, 8, 3), dtype=np.uint8)
        bgr[..., 0] = 200  # blue
        cap = mock_capture([bgr])

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id=video_file, pixel_format=PixelFormat.RGBA))
            source.open()
            frame = source.read()

        pixels = frame.to_image()
        assert tuple(pixels[0, 0]) == (0, 0, 200, 255)
        assert source.last_preview is not None

    def test_horizontal_flip(self, video_file):
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[0, 0] = 255
        cap = mock_capture([bgr])

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id=video_file, flip_horizontal=True))
            source.open()
            frame = source.read()

        image = frame.to_image()
        assert image[0, 1] == 255
        assert image[0, 0] == 0

    def test_open_failure_raises(self):
        cap = MagicMock()
        cap.isOpened.return_value = False

        with patch("observation.opencv_source.cv2.VideoCapture", return_value=cap), \
                patch("observation.opencv_source.time.sleep"):
            source = OpenCVSource(OpenCVSourceConfig(device_id=0, max_retries=2))
            with pytest.raises(RuntimeError, match="Failed to open"):
                source.open()
