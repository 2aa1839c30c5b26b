from __future__ import annotations

import logging

import numpy as np

from .buffer import PixelBuffer

LOGGER = logging.getLogger(__name__)

# Red and green keep 8 levels, blue keeps 4: 8 * 8 * 4 == 256 colors.
UNIFORM_STEPS = np.array([32, 32, 64], dtype=np.uint8)

COARSE_STEP = 8
COARSE_LEVELS = 32
PALETTE_SIZE = 256


def quant_uniform(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("quant_uniform")
    rgb = pixels[..., :3]
    pixels[..., :3] = rgb // UNIFORM_STEPS * UNIFORM_STEPS
    return buffer


def encode_coarse(coarse: np.ndarray) -> np.ndarray:
    """Pack ``(..., 3)`` coarse channels into ``r*1024 + g*32 + b``."""

    coarse = coarse.astype(np.int32)
    return coarse[..., 0] * (COARSE_LEVELS * COARSE_LEVELS) + coarse[..., 1] * COARSE_LEVELS + coarse[..., 2]


def decode_coarse(indices: np.ndarray) -> np.ndarray:
    indices = np.asarray(indices, dtype=np.int32)
    red = indices // (COARSE_LEVELS * COARSE_LEVELS)
    green = (indices % (COARSE_LEVELS * COARSE_LEVELS)) // COARSE_LEVELS
    blue = indices % COARSE_LEVELS
    return np.stack([red, green, blue], axis=-1)


def build_popularity_palette(indices: np.ndarray) -> np.ndarray:
    """Return the 256 most popular coarse colors as a ``(256, 3)`` array.

    Colors counted strictly above the 256th-largest count come first, in
    ascending index order. The remaining slots are filled with colors whose
    count equals that floor, again in ascending index order. When fewer than
    256 colors occur, the floor is zero and unused colors pad the palette.
    """

    histogram = np.bincount(np.ravel(indices), minlength=COARSE_LEVELS ** 3)
    floor = np.sort(histogram)[::-1][PALETTE_SIZE - 1]

    above = np.flatnonzero(histogram > floor)
    at_floor = np.flatnonzero(histogram == floor)
    chosen = np.concatenate([above, at_floor[: PALETTE_SIZE - above.size]])
    LOGGER.debug("popularity floor=%d, %d colors above it", floor, above.size)
    return decode_coarse(chosen)


def nearest_palette_indices(colors: np.ndarray, palette: np.ndarray, chunk: int = 4096) -> np.ndarray:
    """Index of the closest palette entry for each ``(n, 3)`` color.

    Squared Euclidean distance; ``argmin`` keeps the lowest palette index
    among equally distant entries.
    """

    colors = colors.astype(np.int32)
    palette = palette.astype(np.int32)
    result = np.empty(colors.shape[0], dtype=np.int64)
    for start in range(0, colors.shape[0], chunk):
        block = colors[start : start + chunk]
        diff = block[:, None, :] - palette[None, :, :]
        distances = np.einsum("ijk,ijk->ij", diff, diff)
        result[start : start + chunk] = np.argmin(distances, axis=1)
    return result


def quant_populosity(buffer: PixelBuffer) -> PixelBuffer:
    pixels = buffer.require_pixels("quant_populosity")

    coarse = pixels[..., :3] // COARSE_STEP
    indices = encode_coarse(coarse)
    palette = build_popularity_palette(indices)

    unique, inverse = np.unique(indices.ravel(), return_inverse=True)
    nearest = nearest_palette_indices(decode_coarse(unique), palette)
    remapped = palette[nearest][inverse.reshape(-1)]

    pixels[..., :3] = (remapped.reshape(buffer.height, buffer.width, 3) * COARSE_STEP).astype(np.uint8)
    return buffer
