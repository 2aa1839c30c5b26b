from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .buffer import PixelBuffer


@dataclass(frozen=True)
class Stroke:
    """One paint daub: a disc of ``radius`` centred on ``(x, y)``."""

    radius: int
    x: int
    y: int
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        for name in ("radius", "x", "y"):
            if getattr(self, name) < 0:
                raise ValueError(f"Stroke {name} must be non-negative")
        for name in ("r", "g", "b", "a"):
            if not 0 <= getattr(self, name) <= 255:
                raise ValueError(f"Stroke channel {name} must be within 0..255")

    @property
    def color(self) -> Tuple[int, int, int, int]:
        return self.r, self.g, self.b, self.a


def paint_stroke(buffer: PixelBuffer, stroke: Stroke) -> None:
    """Stamp ``stroke`` onto ``buffer``.

    Pixels within the radius take the stroke color outright; the ring at
    squared distance ``radius**2 + 1`` is averaged with what is already
    there. Pixels outside the buffer are skipped.
    """

    pixels = buffer.require_pixels("paint_stroke")
    radius = stroke.radius
    radius_squared = radius * radius
    color = stroke.color

    for y_off in range(-radius, radius + 1):
        y = stroke.y + y_off
        if not 0 <= y < buffer.height:
            continue
        for x_off in range(-radius, radius + 1):
            x = stroke.x + x_off
            if not 0 <= x < buffer.width:
                continue
            dist_squared = x_off * x_off + y_off * y_off
            if dist_squared <= radius_squared:
                pixels[y, x] = color
            elif dist_squared == radius_squared + 1:
                current = pixels[y, x]
                pixels[y, x] = [(int(current[c]) + color[c]) // 2 for c in range(4)]
