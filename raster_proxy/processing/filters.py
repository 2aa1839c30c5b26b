from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .buffer import PixelBuffer

LOGGER = logging.getLogger(__name__)

ROUNDING_POLICIES = ("round", "floor")

# Larger kernels overflow 64-bit accumulators (weight sum 2^(2(N-1)) times 255).
MAX_GAUSSIAN_SIZE = 27


def binomial(n: int, s: int) -> int:
    """n choose s."""
    result = 1
    for i in range(1, s + 1):
        result = result * (n - i + 1) // i
    return result


@dataclass(frozen=True)
class Kernel:
    weights: np.ndarray
    divisor: int

    @property
    def size(self) -> int:
        return self.weights.shape[0]

    @property
    def half(self) -> int:
        return (self.size - 1) // 2


def box_kernel() -> Kernel:
    return Kernel(np.ones((5, 5), dtype=np.int64), 25)


def bartlett_kernel() -> Kernel:
    tent = np.array([3 - abs(d) for d in range(-2, 3)], dtype=np.int64)
    return Kernel(np.outer(tent, tent), 81)


def gaussian_kernel() -> Kernel:
    row = np.array([binomial(4, d + 2) for d in range(-2, 3)], dtype=np.int64)
    return Kernel(np.outer(row, row), 256)


def gaussian_kernel_n(size: int) -> Kernel:
    if size < 1 or size % 2 == 0:
        raise ValueError(f"Gaussian size must be a positive odd integer, got {size}")
    if size > MAX_GAUSSIAN_SIZE:
        raise ValueError(f"Gaussian size {size} exceeds the maximum of {MAX_GAUSSIAN_SIZE}")
    row = np.array([binomial(size - 1, k) for k in range(size)], dtype=np.int64)
    return Kernel(np.outer(row, row), 2 ** (2 * (size - 1)))


def reflected_offsets(length: int, half: int) -> np.ndarray:
    """Sample coordinates for every position and offset ``-half..half``.

    Row ``i`` holds ``i + d`` for each offset ``d``; an out-of-range sample
    uses ``i - d`` instead (the offset is mirrored through the current
    pixel, not through the edge). Axes shorter than the kernel can still
    land outside after mirroring; those samples clamp to the nearest edge.
    """

    positions = np.arange(length)[:, None]
    offsets = np.arange(-half, half + 1)[None, :]
    forward = positions + offsets
    mirrored = positions - offsets
    inside = (forward >= 0) & (forward < length)
    return np.clip(np.where(inside, forward, mirrored), 0, length - 1)


def _weighted_sums(rgb: np.ndarray, kernel: Kernel) -> np.ndarray:
    height, width, _ = rgb.shape
    rows = reflected_offsets(height, kernel.half)
    cols = reflected_offsets(width, kernel.half)
    source = rgb.astype(np.int64)
    sums = np.zeros_like(source)
    for ky in range(kernel.size):
        band = source[rows[:, ky]]
        for kx in range(kernel.size):
            weight = int(kernel.weights[ky, kx])
            if weight:
                sums += weight * band[:, cols[:, kx]]
    return sums


def convolve(buffer: PixelBuffer, kernel: Kernel, rounding: str = "round", operation: str = "convolve") -> PixelBuffer:
    """Replace R, G and B with the kernel-weighted neighbourhood of the original.

    Every sample comes from a snapshot of the input, so no pixel sees a
    partially filtered neighbour. Alpha is left untouched.
    """

    if rounding not in ROUNDING_POLICIES:
        raise ValueError(f"Unknown rounding policy: {rounding}")
    pixels = buffer.require_pixels(operation)

    sums = _weighted_sums(pixels[..., :3], kernel)
    if rounding == "round":
        # floor(sum / divisor + 0.5) without leaving integer arithmetic
        filtered = (2 * sums + kernel.divisor) // (2 * kernel.divisor)
    else:
        filtered = sums // kernel.divisor

    pixels[..., :3] = np.clip(filtered, 0, 255).astype(np.uint8)
    return buffer


def filter_box(buffer: PixelBuffer) -> PixelBuffer:
    return convolve(buffer, box_kernel(), "round", "filter_box")


def filter_bartlett(buffer: PixelBuffer) -> PixelBuffer:
    return convolve(buffer, bartlett_kernel(), "round", "filter_bartlett")


def filter_gaussian(buffer: PixelBuffer) -> PixelBuffer:
    return convolve(buffer, gaussian_kernel(), "round", "filter_gaussian")


def filter_gaussian_n(buffer: PixelBuffer, size: int, rounding: str = "floor") -> PixelBuffer:
    kernel = gaussian_kernel_n(size)
    LOGGER.debug("filter_gaussian_n size=%d divisor=%d rounding=%s", size, kernel.divisor, rounding)
    return convolve(buffer, kernel, rounding, "filter_gaussian_n")


def _high_pass(buffer: PixelBuffer, operation: str) -> np.ndarray:
    pixels = buffer.require_pixels(operation)
    original = pixels[..., :3].astype(np.int64)
    smoothed = filter_bartlett(buffer.copy()).pixels[..., :3].astype(np.int64)
    return original - smoothed


def filter_edge(buffer: PixelBuffer) -> PixelBuffer:
    """High-pass: the original minus its 5x5 Bartlett blur."""

    detail = _high_pass(buffer, "filter_edge")
    buffer.pixels[..., :3] = np.clip(detail, 0, 255).astype(np.uint8)
    return buffer


def filter_enhance(buffer: PixelBuffer) -> PixelBuffer:
    """Sharpen by adding the high-pass detail back onto the original."""

    detail = _high_pass(buffer, "filter_enhance")
    enhanced = buffer.pixels[..., :3].astype(np.int64) + detail
    buffer.pixels[..., :3] = np.clip(enhanced, 0, 255).astype(np.uint8)
    return buffer
