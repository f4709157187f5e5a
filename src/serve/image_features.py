"""Image payload to feature-vector conversion.

This module decodes raw JPEG/PNG bytes with Pillow and samples a fixed
grid of grayscale intensities, giving the classifier a constant input width.
"""

from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from core.constants import FEATURE_GRID_SIZE
from core.errors import ImageDecodeError


def extract_features(image_bytes: bytes, grid_size: int = FEATURE_GRID_SIZE) -> np.ndarray:
    """Decode an image and sample a ``grid_size`` x ``grid_size`` intensity grid.

    Each feature is the mean of the R, G and B channels at the nearest
    pixel of a uniform grid, scaled into [0, 1], in row-major order.

    Args:
        image_bytes: Encoded image payload.
        grid_size: Grid cells per side.

    Returns:
        Float vector of length ``grid_size ** 2``.

    Raises:
        ImageDecodeError: If the payload is not a decodable image.
    """
    pixels = _decode_rgb(image_bytes)
    height, width = pixels.shape[:2]
    if width == 0 or height == 0:
        raise ImageDecodeError("Image payload decoded to an empty image.")
    grid = np.arange(grid_size, dtype=np.float64)
    columns = np.minimum(width - 1, np.floor(grid * (width / grid_size))).astype(np.int64)
    rows = np.minimum(height - 1, np.floor(grid * (height / grid_size))).astype(np.int64)
    sampled = pixels[np.ix_(rows, columns)].astype(np.float64)
    intensities = sampled.mean(axis=2) / 255.0
    return intensities.reshape(-1)


def _decode_rgb(image_bytes: bytes) -> np.ndarray:
    """Decode image bytes into an RGB uint8 array."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return np.asarray(image.convert("RGB"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as error:
        raise ImageDecodeError(f"Failed to decode image payload: {error}.") from error
