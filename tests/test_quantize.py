import numpy as np
import pytest

from raster_proxy.processing.buffer import PixelBuffer
from raster_proxy.processing.errors import NullBufferError
from raster_proxy.processing.quantize import (
    build_popularity_palette,
    decode_coarse,
    encode_coarse,
    nearest_palette_indices,
    quant_populosity,
    quant_uniform,
)


def _distinct_rgb(buffer: PixelBuffer) -> int:
    return len(np.unique(buffer.pixels[..., :3].reshape(-1, 3), axis=0))


def test_quant_uniform_snaps_to_fixed_levels():
    buffer = PixelBuffer(1, 1, bytes((255, 63, 130, 77)))

    quant_uniform(buffer)

    assert buffer.pixel(0, 0) == (224, 32, 128, 77)


def test_quant_uniform_is_idempotent(noisy_buffer):
    once = quant_uniform(noisy_buffer.copy())
    twice = quant_uniform(once.copy())

    assert once == twice


def test_quant_uniform_leaves_at_most_256_colors(noisy_buffer):
    assert _distinct_rgb(quant_uniform(noisy_buffer)) <= 256


def test_coarse_encoding_round_trips_one_color():
    coarse = np.array([[31, 2, 17]])

    index = encode_coarse(coarse)

    assert index[0] == 31 * 1024 + 2 * 32 + 17
    assert decode_coarse(index).tolist() == [[31, 2, 17]]


def test_popularity_palette_prefers_frequent_colors_then_ascending_ties():
    indices = np.array([5] * 10 + [700] * 3 + [42])

    palette = build_popularity_palette(indices)
    chosen = encode_coarse(palette).tolist()

    assert len(chosen) == 256
    # Floor count is zero: the three used colors lead, unused ones fill from index 0.
    assert chosen[:3] == [5, 42, 700]
    assert chosen[3:6] == [0, 1, 2]


def test_popularity_palette_breaks_floor_ties_by_index():
    # 300 colors used exactly twice, one color used five times.
    indices = np.concatenate([np.repeat(np.arange(300), 2), np.full(5, 20000)])

    chosen = encode_coarse(build_popularity_palette(indices)).tolist()

    assert chosen[0] == 20000
    assert chosen[1:] == list(range(255))


def test_nearest_palette_prefers_lowest_index_on_ties():
    palette = np.array([[0, 0, 2], [0, 0, 0], [0, 0, 4]])

    nearest = nearest_palette_indices(np.array([[0, 0, 1], [0, 0, 3]]), palette)

    assert nearest.tolist() == [0, 0]


def test_quant_populosity_keeps_exact_colors_when_few_are_used():
    buffer = PixelBuffer(2, 1, bytes((16, 32, 64, 255, 200, 8, 0, 10)))

    quant_populosity(buffer)

    assert buffer.pixel(0, 0) == (16, 32, 64, 255)
    assert buffer.pixel(1, 0) == (200, 8, 0, 10)


def test_quant_populosity_truncates_to_coarse_steps():
    buffer = PixelBuffer(1, 1, bytes((15, 33, 255, 128)))

    quant_populosity(buffer)

    assert buffer.pixel(0, 0) == (8, 32, 248, 128)


def test_quant_populosity_never_exceeds_256_colors():
    rng = np.random.default_rng(7)
    data = rng.integers(0, 256, size=(64, 64, 4), dtype=np.uint8)
    buffer = PixelBuffer(64, 64, data)

    quant_populosity(buffer)

    assert _distinct_rgb(buffer) <= 256
    assert np.array_equal(buffer.pixels[..., 3], data[..., 3])
    assert not (buffer.pixels[..., :3] % 8).any()


@pytest.mark.parametrize("operation", [quant_uniform, quant_populosity])
def test_quantizers_reject_null_buffer(operation):
    with pytest.raises(NullBufferError):
        operation(PixelBuffer.empty())
