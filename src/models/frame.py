"""
Frame model for camera frames.

A Frame wraps a flat byte buffer plus the layout needed to read it
(row stride, pixel stride, pixel format). Frames are ephemeral: the
pipeline releases them explicitly once processing completes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import cv2
import numpy as np


class PixelFormat(str, Enum):
    """Pixel layout of a frame buffer."""
    LUMINANCE = "luminance"
    RGBA = "rgba"

    @property
    def channels(self) -> int:
        return 1 if self is PixelFormat.LUMINANCE else 4


class FrameReleasedError(RuntimeError):
    """Raised when a released frame is accessed."""


@dataclass
class Frame:
    """
    A single camera frame.

    Attributes:
        buffer: Flat uint8 pixel buffer. None once released.
        width: Frame width in pixels.
        height: Frame height in pixels.
        pixel_format: LUMINANCE (one byte per sample) or RGBA.
        row_stride: Bytes between the starts of two rows.
        pixel_stride: Bytes between two horizontally adjacent pixels.
        rotation_degrees: Clockwise rotation reported by the camera (0/90/180/270).
        timestamp: Unix timestamp when the frame was captured.
        frame_index: Sequential frame number since the source opened.
    """
    buffer: Optional[np.ndarray]
    width: int
    height: int
    pixel_format: PixelFormat = PixelFormat.LUMINANCE
    row_stride: int = 0
    pixel_stride: int = 0
    rotation_degrees: int = 0
    timestamp: float = field(default_factory=time.time)
    frame_index: int = 0

    def __post_init__(self):
        if self.pixel_stride <= 0:
            self.pixel_stride = self.pixel_format.channels
        if self.row_stride <= 0:
            self.row_stride = self.width * self.pixel_stride
        if self.buffer is not None:
            self.buffer = np.asarray(self.buffer, dtype=np.uint8).reshape(-1)

    @classmethod
    def from_image(
        cls,
        image: np.ndarray,
        rotation_degrees: int = 0,
        timestamp: Optional[float] = None,
        frame_index: int = 0,
    ) -> "Frame":
        """
        Create a tightly packed Frame from an image array.

        2-D arrays become LUMINANCE frames. 3-channel arrays are taken as RGB
        and widened to RGBA; 4-channel arrays are taken as RGBA.
        """
        image = np.asarray(image, dtype=np.uint8)
        if image.ndim == 2:
            pixel_format = PixelFormat.LUMINANCE
        elif image.ndim == 3 and image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_RGB2RGBA)
            pixel_format = PixelFormat.RGBA
        elif image.ndim == 3 and image.shape[2] == 4:
            pixel_format = PixelFormat.RGBA
        else:
            raise ValueError(f"Unsupported image shape: {image.shape}")

        h, w = image.shape[:2]
        return cls(
            buffer=np.ascontiguousarray(image).reshape(-1),
            width=w,
            height=h,
            pixel_format=pixel_format,
            rotation_degrees=rotation_degrees,
            timestamp=timestamp if timestamp is not None else time.time(),
            frame_index=frame_index,
        )

    @property
    def released(self) -> bool:
        return self.buffer is None

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    @property
    def is_packed(self) -> bool:
        """Whether rows and pixels are laid out without padding."""
        channels = self.pixel_format.channels
        return self.pixel_stride == channels and self.row_stride == self.width * channels

    def to_image(self) -> np.ndarray:
        """
        Return the pixels as an (H, W) or (H, W, 4) array view.

        Only tightly packed frames can be viewed directly; strided frames go
        through the FrameSampler first.
        """
        if self.buffer is None:
            raise FrameReleasedError(f"Frame {self.frame_index} has been released")
        if not self.is_packed:
            raise ValueError(
                f"Frame {self.frame_index} is strided "
                f"(row_stride={self.row_stride}, pixel_stride={self.pixel_stride})"
            )
        expected = self.width * self.height * self.pixel_format.channels
        if self.buffer.size < expected:
            raise ValueError(f"Frame buffer too small: {self.buffer.size} < {expected}")

        data = self.buffer[:expected]
        if self.pixel_format is PixelFormat.LUMINANCE:
            return data.reshape(self.height, self.width)
        return data.reshape(self.height, self.width, 4)

    def release(self) -> None:
        """Drop the pixel buffer. Safe to call multiple times."""
        self.buffer = None

    def __enter__(self) -> "Frame":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
