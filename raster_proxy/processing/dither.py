from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .buffer import PixelBuffer
from .quantize import UNIFORM_STEPS

LOGGER = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.299, 0.587, 0.114)

CLUSTER_4X4 = (
    (0.75, 0.375, 0.625, 0.25),
    (0.0625, 1.0, 0.875, 0.4375),
    (0.5, 0.8125, 0.9375, 0.125),
    (0.1875, 0.5625, 0.3125, 0.6875),
)

RANDOM_NOISE = 0.2

# Floyd-Steinberg weights: ahead, behind on the next row, below, ahead on the next row.
FS_AHEAD = 7.0 / 16.0
FS_BEHIND_BELOW = 3.0 / 16.0
FS_BELOW = 5.0 / 16.0
FS_AHEAD_BELOW = 1.0 / 16.0


def luminance(pixels: np.ndarray) -> np.ndarray:
    r = pixels[..., 0].astype(np.float64)
    g = pixels[..., 1].astype(np.float64)
    b = pixels[..., 2].astype(np.float64)
    return LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b


def grayscale_values(pixels: np.ndarray) -> np.ndarray:
    """Truncated integer luminance, the value every mono dither starts from."""
    return luminance(pixels).astype(np.int32)


def _write_mono(pixels: np.ndarray, black: np.ndarray) -> None:
    mono = np.where(black, 0, 255).astype(np.uint8)
    pixels[..., :3] = mono[..., None]


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("grayscale")
    pixels[..., :3] = grayscale_values(pixels).astype(np.uint8)[..., None]
    return buffer


def dither_threshold(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("dither_threshold")
    _write_mono(pixels, luminance(pixels) < 128.0)
    return buffer


def dither_random(buffer: PixelBuffer, rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    pixels = buffer.require_pixels("dither_random")
    rng = rng if rng is not None else np.random.default_rng()
    noisy = luminance(pixels) / 256.0 + rng.uniform(-RANDOM_NOISE, RANDOM_NOISE, size=pixels.shape[:2])
    _write_mono(pixels, np.floor(noisy * 256.0) < 128)
    return buffer


def _serpentine_diffuse(values: List[List[float]], width: int, height: int, snap) -> None:
    """Serpentine error diffusion over a row-major plane of floats.

    ``snap`` maps an accumulated value to its output level; the residual is
    spread with the Floyd-Steinberg weights and dropped at the borders.
    ``values`` is overwritten with the output levels.
    """

    for y in range(height):
        flip = y % 2 == 1
        step = -1 if flip else 1
        x_range = range(width - 1, -1, -1) if flip else range(width)
        row = values[y]
        below = values[y + 1] if y + 1 < height else None
        for x in x_range:
            old = row[x]
            new = snap(old)
            row[x] = new
            error = old - new

            ahead = x + step
            behind = x - step
            ahead_ok = 0 <= ahead < width
            if ahead_ok:
                row[ahead] += error * FS_AHEAD
            if below is not None:
                if 0 <= behind < width:
                    below[behind] += error * FS_BEHIND_BELOW
                below[x] += error * FS_BELOW
                if ahead_ok:
                    below[ahead] += error * FS_AHEAD_BELOW


def _snap_mono(value: float) -> float:
    return 0.0 if value <= 0.5 else 1.0


def dither_fs(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("dither_fs")
    plane = (grayscale_values(pixels) / 255.0).tolist()
    _serpentine_diffuse(plane, buffer.width, buffer.height, _snap_mono)
    _write_mono(pixels, np.asarray(plane) == 0.0)
    return buffer


def dither_bright(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("dither_bright")
    gray = grayscale_values(pixels)
    count = gray.size

    mean = gray.sum() / count / 256.0
    rank = int((1.0 - mean) * count)
    if rank >= count:
        cutoff = 256
    else:
        cutoff = int(np.sort(gray, axis=None)[rank])
    LOGGER.debug("dither_bright mean=%.4f rank=%d cutoff=%d", mean, rank, cutoff)

    _write_mono(pixels, gray < cutoff)
    return buffer


def dither_cluster(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("dither_cluster")
    height, width = buffer.height, buffer.width
    matrix = np.asarray(CLUSTER_4X4)
    thresholds = np.tile(matrix, ((height + 3) // 4, (width + 3) // 4))[:height, :width]
    _write_mono(pixels, grayscale_values(pixels) / 255.0 < thresholds)
    return buffer


def dither_color(buffer: PixelBuffer) -> PixelBuffer:
    """Floyd-Steinberg each channel onto the uniform quantization levels."""

    pixels = buffer.require_pixels("dither_color")
    for channel, step in enumerate(int(s) for s in UNIFORM_STEPS):
        top = (256 // step - 1) * step

        def snap(value: float, step: int = step, top: int = top) -> float:
            level = int(value / step + 0.5) * step if value > 0 else 0
            return float(min(level, top))

        plane = pixels[..., channel].astype(np.float64).tolist()
        _serpentine_diffuse(plane, buffer.width, buffer.height, snap)
        pixels[..., channel] = np.asarray(plane, dtype=np.float64).astype(np.uint8)
    return buffer
