import numpy as np
import pytest

from raster_proxy.processing.buffer import PixelBuffer


@pytest.fixture
def gradient_buffer() -> PixelBuffer:
    """8x6 opaque buffer with a horizontal red ramp and a vertical green ramp."""
    width, height = 8, 6
    buffer = PixelBuffer(width, height)
    xs = np.linspace(0, 255, width).astype(np.uint8)
    ys = np.linspace(0, 255, height).astype(np.uint8)
    buffer.pixels[..., 0] = xs[None, :]
    buffer.pixels[..., 1] = ys[:, None]
    buffer.pixels[..., 2] = 90
    buffer.pixels[..., 3] = 255
    return buffer


@pytest.fixture
def noisy_buffer() -> PixelBuffer:
    rng = np.random.default_rng(1234)
    data = rng.integers(0, 256, size=(12, 16, 4), dtype=np.uint8)
    data[..., 3] = 200
    return PixelBuffer(16, 12, data)
