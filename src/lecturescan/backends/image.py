"""Image input conversion utilities.

Recognition accepts several image sources. Screen or camera frames arrive as
numpy arrays in BGRA format; everything is converted to a PIL image before it
reaches Tesseract.
"""

import io
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import Image

# Type alias for BGRA frame (height, width, 4 channels)
BGRAFrame = NDArray[np.uint8]


def bgra_to_rgb(frame: BGRAFrame) -> NDArray[np.uint8]:
    """Convert BGRA numpy array to RGB numpy array.

    Args:
        frame: numpy array of shape (H, W, 4) in BGRA format.

    Returns:
        numpy array of shape (H, W, 3) in RGB format.
    """
    # Reorder channels: B=0, G=1, R=2, A=3 -> R=2, G=1, B=0
    rgb = frame[:, :, [2, 1, 0]]
    return np.ascontiguousarray(rgb)


def to_pil_image(image) -> Image.Image:
    """Convert a supported image source to a PIL image.

    Args:
        image: A PIL image, a filesystem path, encoded image bytes, or a
            numpy array of shape (H, W), (H, W, 3) RGB or (H, W, 4) BGRA.

    Returns:
        PIL Image ready for recognition.

    Raises:
        TypeError: If the source type or array shape is not supported.
    """
    if isinstance(image, Image.Image):
        return image

    if isinstance(image, (str, Path)):
        with Image.open(image) as opened:
            opened.load()
            return opened.copy()

    if isinstance(image, (bytes, bytearray, memoryview)):
        with Image.open(io.BytesIO(bytes(image))) as opened:
            opened.load()
            return opened.copy()

    if isinstance(image, np.ndarray):
        array = image.astype(np.uint8, copy=False)
        if array.ndim == 2:
            return Image.fromarray(array)
        if array.ndim == 3 and array.shape[2] == 3:
            return Image.fromarray(np.ascontiguousarray(array))
        if array.ndim == 3 and array.shape[2] == 4:
            return Image.fromarray(bgra_to_rgb(array))
        raise TypeError(f"Unsupported image array shape: {array.shape}")

    raise TypeError(f"Unsupported image type: {type(image).__name__}")
