"""Pixel-buffer transformation engine."""

from .buffer import PixelBuffer, rgba_to_rgb
from .codec import decode_bytes, encode_png, load_image, save_image
from .composite import comp_atop, comp_in, comp_out, comp_over, comp_xor, difference
from .dither import (
    dither_bright,
    dither_cluster,
    dither_color,
    dither_fs,
    dither_random,
    dither_threshold,
    to_grayscale,
)
from .errors import (
    DimensionMismatchError,
    ImageOperationError,
    NullBufferError,
    UnknownOperationError,
    UnsupportedOperationError,
)
from .filters import (
    binomial,
    filter_bartlett,
    filter_box,
    filter_edge,
    filter_enhance,
    filter_gaussian,
    filter_gaussian_n,
)
from .pipeline import OPERATIONS, UNSUPPORTED_OPERATIONS, OperationResult, apply_operations, run_operation
from .quantize import quant_populosity, quant_uniform
from .stroke import Stroke, paint_stroke

__all__ = [
    "PixelBuffer",
    "rgba_to_rgb",
    "decode_bytes",
    "encode_png",
    "load_image",
    "save_image",
    "comp_atop",
    "comp_in",
    "comp_out",
    "comp_over",
    "comp_xor",
    "difference",
    "dither_bright",
    "dither_cluster",
    "dither_color",
    "dither_fs",
    "dither_random",
    "dither_threshold",
    "to_grayscale",
    "DimensionMismatchError",
    "ImageOperationError",
    "NullBufferError",
    "UnknownOperationError",
    "UnsupportedOperationError",
    "binomial",
    "filter_bartlett",
    "filter_box",
    "filter_edge",
    "filter_enhance",
    "filter_gaussian",
    "filter_gaussian_n",
    "OPERATIONS",
    "UNSUPPORTED_OPERATIONS",
    "OperationResult",
    "apply_operations",
    "run_operation",
    "quant_populosity",
    "quant_uniform",
    "Stroke",
    "paint_stroke",
]
