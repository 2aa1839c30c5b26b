"""Porter-Duff style compositing of two equally sized buffers.

``A`` is the buffer being modified and ``B`` the argument. The operators are
the usual normalised formulas (``a`` and ``b`` are the alphas over 255);
they are evaluated on integer channels scaled by 255 so that the final
``* 255`` truncates the exact value instead of a rounded float.
``difference`` works on the unmultiplied RGB of both operands and forces
the result opaque.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

import numpy as np

from .buffer import PixelBuffer
from .errors import DimensionMismatchError, NullBufferError

LOGGER = logging.getLogger(__name__)

FULL = 255

Planes = Tuple[np.ndarray, np.ndarray]
Blend = Callable[[np.ndarray, np.ndarray, np.ndarray, np.ndarray], Planes]


def _check_operands(operation: str, buffer: PixelBuffer, other: Optional[PixelBuffer]) -> Tuple[np.ndarray, np.ndarray]:
    pixels = buffer.require_pixels(operation)
    if other is None or other.is_null:
        raise NullBufferError(f"{operation}: second image is missing")
    if buffer.size != other.size:
        raise DimensionMismatchError(operation, buffer.size, other.size)
    return pixels, other.pixels


def _split(pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    values = pixels.astype(np.int64)
    return values[..., :3], values[..., 3:4]


def _composite(operation: str, blend: Blend, buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    pixels, other_pixels = _check_operands(operation, buffer, other)
    color_a, alpha_a = _split(pixels)
    color_b, alpha_b = _split(other_pixels)

    # blend() returns values scaled by 255 * 255
    color, alpha = blend(color_a, alpha_a, color_b, alpha_b)
    pixels[..., :3] = np.clip(color // FULL, 0, 255).astype(np.uint8)
    pixels[..., 3:4] = np.clip(alpha // FULL, 0, 255).astype(np.uint8)
    LOGGER.debug("%s composited %dx%d", operation, buffer.width, buffer.height)
    return buffer


def _over(A, a, B, b) -> Planes:
    return A * FULL + (FULL - a) * B, a * FULL + (FULL - a) * b


def _in(A, a, B, b) -> Planes:
    return A * b, a * b


def _out(A, a, B, b) -> Planes:
    return A * (FULL - b), a * (FULL - b)


def _atop(A, a, B, b) -> Planes:
    return A * b + B * (FULL - a), a * b + (FULL - a) * b


def _xor(A, a, B, b) -> Planes:
    return A * (FULL - b) + B * (FULL - a), a * (FULL - b) + (FULL - a) * b


def comp_over(buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    return _composite("comp_over", _over, buffer, other)


def comp_in(buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    return _composite("comp_in", _in, buffer, other)


def comp_out(buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    return _composite("comp_out", _out, buffer, other)


def comp_atop(buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    return _composite("comp_atop", _atop, buffer, other)


def comp_xor(buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    return _composite("comp_xor", _xor, buffer, other)


def difference(buffer: PixelBuffer, other: Optional[PixelBuffer]) -> PixelBuffer:
    pixels, _ = _check_operands("difference", buffer, other)
    rgb_a = buffer.to_rgb().astype(np.int16)
    rgb_b = other.to_rgb().astype(np.int16)
    pixels[..., :3] = np.abs(rgb_a - rgb_b).astype(np.uint8)
    pixels[..., 3] = 255
    return buffer
