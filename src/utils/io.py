"""
I/O Utilities

Image loading and result saving.
"""

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Dict, Union

import cv2
import numpy as np

from src.common.exceptions import InvalidImage
from src.common.types import ImageBuffer


def _bgr_to_rgb(image: np.ndarray) -> np.ndarray:
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return image


def decode_image_bytes(data: bytes) -> ImageBuffer:
    """Decode encoded image bytes (JPEG, PNG, ...) into an RGB ImageBuffer.

    Raises:
        InvalidImage: If the bytes are empty or not a decodable image
    """
    if not data:
        raise InvalidImage("Image bytes are empty", component="io")

    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise InvalidImage("Could not decode image bytes", component="io")

    return ImageBuffer.from_numpy(_bgr_to_rgb(image))


def decode_base64_image(data: str) -> ImageBuffer:
    """Decode a base64 image, with or without a ``data:image/...;base64,`` prefix.

    Raises:
        InvalidImage: If the text is not valid base64 or not an image
    """
    if "base64," in data:
        data = data.split("base64,", 1)[1]
    # Files and e-mail bodies wrap base64 text across lines
    data = "".join(data.split())

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImage("Invalid base64 image data", component="io", original_error=e) from e

    return decode_image_bytes(raw)


def load_image_file(file_path: Union[str, Path]) -> ImageBuffer:
    """Load an image file as an RGB ImageBuffer.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidImage: If the file is not a decodable image
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Image not found: {file_path}")
    return decode_image_bytes(file_path.read_bytes())


def save_json(data: Dict[str, Any], file_path: Path, indent: int = 2):
    """Save data to JSON file."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w') as f:
        json.dump(data, f, indent=indent)
