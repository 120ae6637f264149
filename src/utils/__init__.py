"""
Shared Utilities

Common functions used across all modules.
"""

from src.utils.io import (
    decode_base64_image,
    decode_image_bytes,
    load_image_file,
    save_json,
)

__all__ = [
    "decode_base64_image",
    "decode_image_bytes",
    "load_image_file",
    "save_json",
]
