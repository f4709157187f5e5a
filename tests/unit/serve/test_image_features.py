"""Unit tests for image feature extraction."""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from core.errors import ImageDecodeError
from serve.image_features import extract_features
from tests.shard_fixtures import png_bytes


def test_extract_features_returns_fixed_width_vector() -> None:
    """Any image size should map to a grid-sized feature vector."""
    features = extract_features(png_bytes(size=3))

    assert features.shape == (256,)


def test_extract_features_averages_channels_into_unit_range() -> None:
    """Features should be the mean RGB intensity scaled to [0, 1]."""
    features = extract_features(png_bytes(color=(255, 0, 0), size=32))

    assert np.allclose(features, 85.0 / 255.0)


def test_extract_features_samples_nearest_pixels_row_major() -> None:
    """Grid cells should map to the nearest pixels in row-major order."""
    image = Image.new("RGB", (2, 2), (0, 0, 0))
    image.putpixel((1, 0), (255, 255, 255))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")

    features = extract_features(buffer.getvalue(), grid_size=2)

    assert features.tolist() == [0.0, 1.0, 0.0, 0.0]


def test_extract_features_rejects_undecodable_payload() -> None:
    """Bytes that are not an image should raise a decode error."""
    with pytest.raises(ImageDecodeError):
        extract_features(b"definitely not an image")
