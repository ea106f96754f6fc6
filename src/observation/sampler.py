"""
Frame sampling for oversized camera frames.

Large sensor frames are subsampled (nearest neighbour, every S-th pixel)
before any further allocation so that peak memory stays bounded no matter
what resolution the camera delivers.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from models.frame import Frame, PixelFormat

SMALL_FRAME_LIMIT = 2048
LARGE_FRAME_LIMIT = 4096


def select_sample_stride(width: int, height: int) -> int:
    """
    Pick the sampling stride for a width x height frame.

    - max dimension <= 2048: 1
    - 2048 < max dimension <= 4096: max // 1024
    - max dimension > 4096: max // 2048
    """
    max_dimension = max(width, height)
    if max_dimension > LARGE_FRAME_LIMIT:
        return max_dimension // 2048
    if max_dimension > SMALL_FRAME_LIMIT:
        return max_dimension // 1024
    return 1


class FrameSampler:
    """Subsample frames to a bounded working resolution as opaque RGBA."""

    def sample(self, frame: Frame, stride: Optional[int] = None) -> Frame:
        """
        Sample every `stride`-th pixel of `frame` in both axes.

        Args:
            frame: Source frame (luminance or RGBA, possibly strided).
            stride: Sampling stride. Chosen by select_sample_stride when None.

        Returns:
            A packed RGBA frame of floor(W/S) x floor(H/S). Luminance samples
            are copied into R, G and B. Buffer reads past the end of the
            source buffer yield black.
        """
        if frame.buffer is None:
            raise ValueError(f"Cannot sample released frame {frame.frame_index}")

        if stride is None:
            stride = select_sample_stride(frame.width, frame.height)
        if stride < 1:
            raise ValueError(f"Sampling stride must be >= 1, got {stride}")

        sampled_w = frame.width // stride
        sampled_h = frame.height // stride

        ys = np.arange(sampled_h, dtype=np.int64) * stride
        xs = np.arange(sampled_w, dtype=np.int64) * stride
        offsets = ys[:, None] * frame.row_stride + xs[None, :] * frame.pixel_stride

        if frame.pixel_format is PixelFormat.LUMINANCE:
            luma = self._gather(frame.buffer, offsets)
            rgba = np.empty((sampled_h, sampled_w, 4), dtype=np.uint8)
            rgba[..., 0] = luma
            rgba[..., 1] = luma
            rgba[..., 2] = luma
            rgba[..., 3] = 255
        else:
            rgba = np.stack(
                [self._gather(frame.buffer, offsets + c) for c in range(4)],
                axis=-1,
            )

        if stride > 1:
            logging.debug(
                f"Sampled frame {frame.frame_index}: {frame.width}x{frame.height} "
                f"-> {sampled_w}x{sampled_h} (stride={stride})"
            )

        return Frame(
            buffer=rgba.reshape(-1),
            width=sampled_w,
            height=sampled_h,
            pixel_format=PixelFormat.RGBA,
            rotation_degrees=frame.rotation_degrees,
            timestamp=frame.timestamp,
            frame_index=frame.frame_index,
        )

    @staticmethod
    def _gather(buffer: np.ndarray, offsets: np.ndarray) -> np.ndarray:
        out = np.zeros(offsets.shape, dtype=np.uint8)
        valid = offsets < buffer.size
        out[valid] = buffer[offsets[valid]]
        return out
