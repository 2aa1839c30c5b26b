from __future__ import annotations

from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..config import BACKGROUND
from .errors import NullBufferError

BytesLike = Union[bytes, bytearray, memoryview, np.ndarray]

RED, GREEN, BLUE, ALPHA = 0, 1, 2, 3


def rgba_to_rgb(rgba: Sequence[int]) -> Tuple[int, int, int]:
    """Composite one RGBA pixel over ``BACKGROUND``.

    Alpha 0 yields the background; otherwise every channel is scaled by
    ``255 / alpha``, floored and clipped to [0, 255].
    """

    alpha = int(rgba[ALPHA])
    if alpha == 0:
        return BACKGROUND
    r, g, b = (min(255, int(rgba[c]) * 255 // alpha) for c in (RED, GREEN, BLUE))
    return r, g, b


class PixelBuffer:
    """Owned ``height x width x 4`` RGBA byte array.

    ``pixels`` is a ``uint8`` array of shape ``(height, width, 4)`` or ``None``
    for a null-backed buffer. Copies never alias the backing array.
    """

    __slots__ = ("width", "height", "pixels")

    def __init__(self, width: int, height: int, data: Optional[BytesLike] = b"") -> None:
        if width < 0 or height < 0:
            raise ValueError(f"Invalid dimensions: {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        expected = self.width * self.height * 4

        if data is None:
            self.pixels: Optional[np.ndarray] = None
            return

        if not isinstance(data, np.ndarray) and len(data) == 0:
            self.pixels = np.zeros((self.height, self.width, 4), dtype=np.uint8)
            return

        if isinstance(data, np.ndarray):
            flat = np.asarray(data, dtype=np.uint8).reshape(-1)
        else:
            flat = np.frombuffer(bytes(data), dtype=np.uint8)
        if flat.size != expected:
            raise ValueError(
                f"Expected {expected} bytes for a {self.width}x{self.height} RGBA buffer, got {flat.size}"
            )
        self.pixels = flat.reshape(self.height, self.width, 4).copy()

    @classmethod
    def empty(cls) -> "PixelBuffer":
        return cls(0, 0, None)

    @classmethod
    def filled(cls, width: int, height: int, color: Sequence[int]) -> "PixelBuffer":
        buffer = cls(width, height)
        buffer.pixels[:, :] = np.asarray(color, dtype=np.uint8)
        return buffer

    @property
    def is_null(self) -> bool:
        return self.pixels is None

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def require_pixels(self, operation: str) -> np.ndarray:
        if self.pixels is None or self.width == 0 or self.height == 0:
            raise NullBufferError(f"{operation}: buffer has no pixel data")
        return self.pixels

    def copy(self) -> "PixelBuffer":
        if self.pixels is None:
            return PixelBuffer(self.width, self.height, None)
        return PixelBuffer(self.width, self.height, self.pixels)

    __copy__ = copy

    def __deepcopy__(self, memo) -> "PixelBuffer":
        return self.copy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        if self.size != other.size:
            return False
        if self.pixels is None or other.pixels is None:
            return self.pixels is None and other.pixels is None
        return bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        state = "null" if self.pixels is None else "rgba"
        return f"PixelBuffer({self.width}x{self.height}, {state})"

    def tobytes(self) -> bytes:
        return b"" if self.pixels is None else self.pixels.tobytes()

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self.require_pixels("pixel")[y, x]
        return int(r), int(g), int(b), int(a)

    def clear(self) -> None:
        if self.pixels is not None:
            self.pixels.fill(0)

    def to_rgb(self) -> Optional[np.ndarray]:
        """Flatten onto ``BACKGROUND`` into a new ``(height, width, 3)`` array.

        Returns ``None`` for a null-backed buffer.
        """

        if self.pixels is None:
            return None
        rgb = self.pixels[..., :3].astype(np.int32)
        alpha = self.pixels[..., ALPHA].astype(np.int32)
        opaque = alpha > 0
        scaled = (rgb * 255) // np.where(opaque, alpha, 1)[..., None]
        out = np.where(opaque[..., None], np.clip(scaled, 0, 255), np.asarray(BACKGROUND))
        return out.astype(np.uint8)

    def reverse_rows(self) -> Optional["PixelBuffer"]:
        """Return a copy with the scanline order reversed, ``None`` if null."""

        if self.pixels is None:
            return None
        return PixelBuffer(self.width, self.height, self.pixels[::-1])
