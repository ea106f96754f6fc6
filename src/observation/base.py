"""
Frame source contract.

Every camera or video input hands the pipeline Frame objects carrying the
configured pixel format and the sensor rotation. Ownership of a Frame passes
to the caller on read(); the pipeline releases it once processed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

from models.frame import Frame, PixelFormat


@dataclass
class ObservationConfig:
    """
    Settings shared by all frame sources.

    Attributes:
        source_id: Name used in log messages (e.g., "main-camera").
        resolution: Requested (width, height), or None for the device default.
        fps: Requested frame rate, or None for the device default.
        pixel_format: Format of the frames handed out.
        rotate: Clockwise sensor rotation reported on every frame.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None
    pixel_format: PixelFormat = PixelFormat.LUMINANCE
    rotate: int = 0


class ObservationSource(ABC):
    """
    Base class for frame sources.

    Usage:
        with OpenCVSource(config) as source:
            for frame in source:
                engine.submit(frame)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Frames handed out since open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """Acquire the device. Raises RuntimeError when it cannot be opened."""

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """Next frame, or None at end of input or on a device error."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call multiple times."""

    def _make_frame(self, pixels: np.ndarray) -> Frame:
        """Wrap packed pixels as the next Frame, stamped with index and rotation."""
        self._frame_index += 1
        return Frame.from_image(
            pixels,
            rotation_degrees=self._config.rotate,
            frame_index=self._frame_index,
        )

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Frame]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame = self.read()
            if frame is None:
                return
            yield frame
