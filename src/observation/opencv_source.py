"""
OpenCV frame source for USB webcams (integer index) and video files (path).

OpenCV delivers BGR images; they are flipped as configured and converted to
luminance (the equivalent of a camera Y plane) or RGBA. Rotation is not
applied here, only reported on each Frame for the preprocessor.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import Frame, PixelFormat
from .base import ObservationConfig, ObservationSource

# Consecutive failed reads on a live camera before giving up on reconnects.
MAX_READ_RECONNECTS = 3

_FLIP_CODES = {
    (True, False): 1,
    (False, True): 0,
    (True, True): -1,
}


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Camera index (int) or video file path (str).
        buffer_size: Capture buffer size; 1 keeps only the newest frame.
        max_retries: Attempts to open the device before failing.
        flip_horizontal: Mirror frames left to right.
        flip_vertical: Mirror frames top to bottom.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """Build from the `camera` section of the YAML config."""
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            pixel_format=PixelFormat(camera_cfg.get("pixel_format", "luminance")),
            rotate=camera_cfg.get("rotate", 0) or 0,
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
            flip_vertical=camera_cfg.get("flip_vertical", False),
        )


class OpenCVSource(ObservationSource):
    """
    Frame source backed by cv2.VideoCapture.

    The last BGR image read stays available as `last_preview` so the display
    can draw on it after the Frame has been handed to the pipeline.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._failed_reads = 0
        self.last_preview: Optional[np.ndarray] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._cv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        self._connect()
        self._is_open = True
        self._frame_index = 0
        self._failed_reads = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, device={self.device_id}, "
            f"format={self._cv_config.pixel_format.value}, rotate={self._cv_config.rotate}"
        )

    def _connect(self) -> None:
        """Open the capture, backing off between attempts."""
        attempts = max(1, self._cv_config.max_retries)
        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(2 ** attempt, 10)
                logging.info(f"Retrying device {self.device_id} ({attempt + 1}/{attempts}) after {wait_time}s")
                time.sleep(wait_time)

            self._release_capture()
            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                self._configure_capture()
                return
            logging.warning(f"Failed to open device {self.device_id}")

        self._release_capture()
        raise RuntimeError(f"Failed to open device {self.device_id} after {attempts} attempts")

    def _configure_capture(self) -> None:
        # Capture properties only apply to USB cameras.
        if not isinstance(self.device_id, int):
            return
        cfg = self._cv_config
        if cfg.resolution:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.resolution[0])
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.resolution[1])
        if cfg.fps:
            self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)
        logging.info(
            f"Camera actual resolution: {self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x"
            f"{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)}"
        )

    def read(self) -> Optional[Frame]:
        if not self._is_open or self._cap is None:
            return None

        image = self._grab()
        if image is None:
            return None

        if self._cv_config.flip_horizontal or self._cv_config.flip_vertical:
            flip_code = _FLIP_CODES[(self._cv_config.flip_horizontal, self._cv_config.flip_vertical)]
            image = cv2.flip(image, flip_code)
        self.last_preview = image

        if self._cv_config.pixel_format is PixelFormat.LUMINANCE:
            pixels = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            pixels = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        return self._make_frame(pixels)

    def _grab(self) -> Optional[np.ndarray]:
        """Read one BGR image, reconnecting a live camera after a failed read."""
        ret, image = self._cap.read()
        if ret and image is not None:
            self._failed_reads = 0
            return image

        if self.is_file:
            logging.info("End of video file reached")
            return None

        self._failed_reads += 1
        if self._failed_reads > MAX_READ_RECONNECTS:
            logging.error(f"Too many consecutive read failures ({self._failed_reads})")
            return None

        logging.warning(f"Failed to read frame (failures: {self._failed_reads}), reconnecting")
        try:
            self._connect()
        except RuntimeError as e:
            logging.error(f"Reconnect failed: {e}")
            return None
        ret, image = self._cap.read()
        if not ret or image is None:
            return None
        self._failed_reads = 0
        return image

    def _release_capture(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def close(self) -> None:
        self._release_capture()
        self._is_open = False
        self.last_preview = None
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")
