"""Deterministic pixel transforms used by the barcode decode strategies.

Every transform returns a new ``ImageBuffer`` and never touches the input
array. Color transforms work on the RGB channels and carry an alpha channel
through unchanged; grayscale buffers are transformed per pixel.

Transforms:
    - identity: copy of the input
    - upscale(factor): nearest-neighbor resize, keeps hard module edges
    - grayscale: per-pixel average of R, G and B
    - contrast(c): linear stretch around 128 with
      f = (259 * (c + 255)) / (255 * (259 - c))
    - sharpen: 3x3 kernel [[0,-1,0],[-1,5,-1],[0,-1,0]], 1-pixel border
      copied from the input
    - threshold(t): pixel becomes 255 when its channel average is above t,
      else 0

Example:
    >>> preprocessor = ImagePreprocessor()
    >>> bigger = preprocessor.transform(image, PreprocessKind.UPSCALE, 2)
    >>> print(bigger.shape)
"""

import logging
from typing import Optional, Union

import cv2
import numpy as np

from src.common.deadline import Deadline
from src.common.types import ImageBuffer

from .config_loader import PreprocessingConfig
from .types import PreprocessKind

logger = logging.getLogger(__name__)

SHARPEN_KERNEL = np.array(
    [
        [0, -1, 0],
        [-1, 5, -1],
        [0, -1, 0],
    ],
    dtype=np.float32,
)


def _split_alpha(data: np.ndarray):
    """Split an image into (color, alpha) where alpha may be None."""
    if data.ndim == 3 and data.shape[2] == 4:
        return data[:, :, :3], data[:, :, 3:]
    return data, None


def _merge_alpha(color: np.ndarray, alpha: Optional[np.ndarray]) -> np.ndarray:
    if alpha is None:
        return color
    return np.concatenate([color, alpha], axis=2)


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


class ImagePreprocessor:
    """Pure pixel-buffer transforms for barcode decode strategies.

    Args:
        config: Default transform parameters (contrast level, threshold
            level, upscale limit). Uses module defaults if None.
    """

    def __init__(self, config: Optional[PreprocessingConfig] = None):
        self.config = config if config is not None else PreprocessingConfig()

    def transform(
        self,
        image: Union[ImageBuffer, np.ndarray],
        kind: PreprocessKind,
        parameter: Optional[float] = None,
        deadline: Optional[Deadline] = None,
    ) -> ImageBuffer:
        """Apply one transform.

        Args:
            image: Input image (never modified)
            kind: Transform to apply
            parameter: Transform parameter; None uses the configured default
            deadline: Optional cooperative deadline, checked before and
                after the pixel work

        Returns:
            New ImageBuffer with the transformed pixels

        Raises:
            InvalidImage: If the input is empty or zero-sized
            DeadlineExceeded: If the deadline expires
        """
        buffer = ImageBuffer.from_numpy(image)

        if deadline is not None:
            deadline.check()

        if kind == PreprocessKind.IDENTITY:
            result = self.identity(buffer)
        elif kind == PreprocessKind.UPSCALE:
            result = self.upscale(buffer, 2 if parameter is None else parameter)
        elif kind == PreprocessKind.GRAYSCALE:
            result = self.grayscale(buffer)
        elif kind == PreprocessKind.CONTRAST:
            level = self.config.contrast_level if parameter is None else parameter
            result = self.contrast(buffer, level)
        elif kind == PreprocessKind.SHARPEN:
            result = self.sharpen(buffer)
        elif kind == PreprocessKind.THRESHOLD:
            level = self.config.threshold_level if parameter is None else parameter
            result = self.threshold(buffer, level)
        else:
            raise ValueError(f"Unknown preprocess kind: {kind}")

        if deadline is not None:
            deadline.check()

        logger.debug(f"Applied {kind.value}: {buffer.shape} -> {result.shape}")
        return result

    def identity(self, image: ImageBuffer) -> ImageBuffer:
        return image.copy()

    def upscale(self, image: ImageBuffer, factor: float) -> ImageBuffer:
        """Enlarge by ``factor`` with nearest-neighbor sampling.

        Bar and module edges stay hard; no smoothing is applied.
        """
        if factor <= 0 or factor > self.config.max_upscale_factor:
            raise ValueError(
                f"Upscale factor must be in (0, {self.config.max_upscale_factor}], "
                f"got {factor}"
            )

        data = image.data
        new_width = max(1, int(round(image.width * factor)))
        new_height = max(1, int(round(image.height * factor)))
        resized = cv2.resize(
            data, (new_width, new_height), interpolation=cv2.INTER_NEAREST
        )
        # cv2 drops a trailing singleton channel
        if data.ndim == 3 and resized.ndim == 2:
            resized = resized[:, :, np.newaxis]
        return ImageBuffer(data=resized)

    def grayscale(self, image: ImageBuffer) -> ImageBuffer:
        """Replace R, G and B with their per-pixel average."""
        data = image.data
        if data.ndim == 2 or data.shape[2] == 1:
            return image.copy()

        color, alpha = _split_alpha(data)
        avg = _to_uint8(color.astype(np.float32).mean(axis=2))
        gray = np.repeat(avg[:, :, np.newaxis], 3, axis=2)
        return ImageBuffer(data=_merge_alpha(gray, alpha))

    def contrast(self, image: ImageBuffer, level: float) -> ImageBuffer:
        """Linear contrast stretch around mid-gray (128)."""
        if level >= 259:
            raise ValueError(f"Contrast level must be < 259, got {level}")

        factor = (259.0 * (level + 255.0)) / (255.0 * (259.0 - level))
        color, alpha = _split_alpha(image.data)
        stretched = _to_uint8(factor * (color.astype(np.float32) - 128.0) + 128.0)
        return ImageBuffer(data=_merge_alpha(stretched, alpha))

    def sharpen(self, image: ImageBuffer) -> ImageBuffer:
        """Convolve with the 3x3 sharpen kernel; border pixels are copied."""
        data = image.data
        color, alpha = _split_alpha(data)
        squeeze = color.ndim == 3 and color.shape[2] == 1
        plane = color[:, :, 0] if squeeze else color

        out = plane.copy()
        if plane.shape[0] >= 3 and plane.shape[1] >= 3:
            filtered = cv2.filter2D(plane.astype(np.float32), -1, SHARPEN_KERNEL)
            out[1:-1, 1:-1] = _to_uint8(filtered[1:-1, 1:-1])

        if squeeze:
            out = out[:, :, np.newaxis]
        return ImageBuffer(data=_merge_alpha(out, alpha))

    def threshold(self, image: ImageBuffer, level: float) -> ImageBuffer:
        """Binarize on the per-pixel channel average."""
        color, alpha = _split_alpha(image.data)
        if color.ndim == 2:
            avg = color.astype(np.float32)
        else:
            avg = color.astype(np.float32).mean(axis=2)

        binary = np.where(avg > level, 255, 0).astype(np.uint8)
        if color.ndim == 3:
            binary = np.repeat(binary[:, :, np.newaxis], color.shape[2], axis=2)
        return ImageBuffer(data=_merge_alpha(binary, alpha))
