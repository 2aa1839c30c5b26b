from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..config import SETTINGS
from .buffer import PixelBuffer
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
from .errors import ImageOperationError, UnknownOperationError, UnsupportedOperationError
from .filters import (
    filter_bartlett,
    filter_box,
    filter_edge,
    filter_enhance,
    filter_gaussian,
    filter_gaussian_n,
)
from .quantize import quant_populosity, quant_uniform

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operation:
    name: str
    func: Callable[..., PixelBuffer]
    needs_other: bool = False
    params: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one named operation: the buffer on success, a reason otherwise."""

    ok: bool
    operation: str
    buffer: Optional[PixelBuffer] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, operation: str, buffer: PixelBuffer) -> "OperationResult":
        return cls(True, operation, buffer, None)

    @classmethod
    def failure(cls, operation: str, reason: str) -> "OperationResult":
        return cls(False, operation, None, reason)


def _random_with_seed(buffer: PixelBuffer, seed: Optional[int] = None) -> PixelBuffer:
    seed = SETTINGS.random_seed if seed is None else int(seed)
    rng = np.random.default_rng(seed)
    return dither_random(buffer, rng)


def _gaussian_n(buffer: PixelBuffer, size: Optional[int] = None, rounding: str = "floor") -> PixelBuffer:
    return filter_gaussian_n(buffer, SETTINGS.gaussian_size if size is None else int(size), rounding)


_CATALOG = (
    Operation("grayscale", to_grayscale),
    Operation("quant_uniform", quant_uniform),
    Operation("quant_populosity", quant_populosity),
    Operation("dither_threshold", dither_threshold),
    Operation("dither_random", _random_with_seed, params=("seed",)),
    Operation("dither_fs", dither_fs),
    Operation("dither_bright", dither_bright),
    Operation("dither_cluster", dither_cluster),
    Operation("dither_color", dither_color),
    Operation("filter_box", filter_box),
    Operation("filter_bartlett", filter_bartlett),
    Operation("filter_gaussian", filter_gaussian),
    Operation("filter_gaussian_n", _gaussian_n, params=("size", "rounding")),
    Operation("filter_edge", filter_edge),
    Operation("filter_enhance", filter_enhance),
    Operation("comp_over", comp_over, needs_other=True),
    Operation("comp_in", comp_in, needs_other=True),
    Operation("comp_out", comp_out, needs_other=True),
    Operation("comp_atop", comp_atop, needs_other=True),
    Operation("comp_xor", comp_xor, needs_other=True),
    Operation("difference", difference, needs_other=True),
)

OPERATIONS: Dict[str, Operation] = {op.name: op for op in _CATALOG}

# Named in the catalog but without an algorithm.
UNSUPPORTED_OPERATIONS: Tuple[str, ...] = ("half_size", "double_size", "resize", "rotate", "npr_paint")


def get_operation(name: str) -> Operation:
    key = (name or "").lower()
    if key in UNSUPPORTED_OPERATIONS:
        raise UnsupportedOperationError(key)
    try:
        return OPERATIONS[key]
    except KeyError:
        raise UnknownOperationError(name) from None


def run_operation(
    name: str,
    buffer: PixelBuffer,
    other: Optional[PixelBuffer] = None,
    **params,
) -> OperationResult:
    """Run one named operation on ``buffer`` in place.

    Precondition failures leave ``buffer`` untouched and come back as a
    failed ``OperationResult``; nothing is raised.
    """

    try:
        operation = get_operation(name)
        unexpected = sorted(set(params) - set(operation.params))
        if unexpected:
            raise ValueError(f"{operation.name}: unexpected parameters {', '.join(unexpected)}")
        if operation.needs_other:
            result = operation.func(buffer, other, **params)
        else:
            result = operation.func(buffer, **params)
    except (ImageOperationError, TypeError, ValueError) as exc:
        LOGGER.warning("%s", exc)
        return OperationResult.failure(str(name), str(exc))

    LOGGER.debug("%s applied to %dx%d buffer", operation.name, buffer.width, buffer.height)
    return OperationResult.success(operation.name, result)


def apply_operations(
    buffer: PixelBuffer,
    names: Iterable[str],
    other: Optional[PixelBuffer] = None,
) -> List[OperationResult]:
    """Run ``names`` in order, stopping after the first failure."""

    results: List[OperationResult] = []
    for name in names:
        outcome = run_operation(name, buffer, other)
        results.append(outcome)
        if not outcome.ok:
            break
    return results
