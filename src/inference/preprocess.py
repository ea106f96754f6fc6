"""
Image preprocessing for the NudeNet 320n model.

The model expects a [1, 3, 320, 320] float tensor: planar R, G, B with
values scaled to [0, 1] (no mean/std whitening).
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from models.frame import Frame

IMAGE_SIZE_X = 320
IMAGE_SIZE_Y = 320
DIM_BATCH_SIZE = 1
DIM_PIXEL_SIZE = 3
INPUT_SHAPE: Tuple[int, int, int, int] = (DIM_BATCH_SIZE, DIM_PIXEL_SIZE, IMAGE_SIZE_Y, IMAGE_SIZE_X)

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class InvalidFrameError(ValueError):
    """Frame cannot be turned into a model input tensor."""


class ImagePreprocessor:
    """Stretch, rotate and convert frames into planar input tensors."""

    def __init__(self, size_x: int = IMAGE_SIZE_X, size_y: int = IMAGE_SIZE_Y):
        self.size_x = size_x
        self.size_y = size_y

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return (DIM_BATCH_SIZE, DIM_PIXEL_SIZE, self.size_y, self.size_x)

    def preprocess(self, frame: Frame) -> np.ndarray:
        """
        Convert a packed frame into a flat float32 tensor of length 3*H*W.

        Raises:
            InvalidFrameError: If the frame is empty, reports an unsupported
                rotation, or does not scale to the model geometry.
        """
        image = self.normalize_geometry(frame.to_image(), frame.rotation_degrees)
        return self.to_tensor(image)

    def normalize_geometry(self, image: np.ndarray, rotation_degrees: int = 0) -> np.ndarray:
        """Stretch to the input size (no aspect preservation) and rotate clockwise."""
        if image.size == 0 or image.shape[0] == 0 or image.shape[1] == 0:
            raise InvalidFrameError(f"Empty frame: shape={image.shape}")

        # Nearest neighbour matches an unfiltered bitmap scale.
        scaled = cv2.resize(image, (self.size_x, self.size_y), interpolation=cv2.INTER_NEAREST)
        if scaled.shape[0] != self.size_y or scaled.shape[1] != self.size_x:
            raise InvalidFrameError(
                f"Scaled frame must be exactly {self.size_x}x{self.size_y}, "
                f"got {scaled.shape[1]}x{scaled.shape[0]}"
            )

        degrees = rotation_degrees % 360
        if degrees == 0:
            return scaled
        if degrees not in _ROTATIONS:
            raise InvalidFrameError(f"Unsupported rotation: {rotation_degrees}")
        return cv2.rotate(scaled, _ROTATIONS[degrees])

    def to_tensor(self, image: np.ndarray) -> np.ndarray:
        """
        Write R/255, G/255, B/255 planes into one flat float32 buffer.

        Pixel (row i, col j) lands at i*W + j inside each plane; planes are
        ordered R, G, B. Grey (2-D) images fill all three planes.
        """
        if image.shape[0] != self.size_y or image.shape[1] != self.size_x:
            raise InvalidFrameError(
                f"Image must be exactly {self.size_x}x{self.size_y}, "
                f"got {image.shape[1]}x{image.shape[0]}"
            )

        if image.ndim == 2:
            rgb = np.repeat(image[:, :, None], 3, axis=2)
        elif image.ndim == 3 and image.shape[2] >= 3:
            rgb = image[:, :, :3]
        else:
            raise InvalidFrameError(f"Unsupported image shape: {image.shape}")

        planar = np.transpose(rgb, (2, 0, 1)).astype(np.float32) / 255.0
        return np.ascontiguousarray(planar).reshape(-1)
