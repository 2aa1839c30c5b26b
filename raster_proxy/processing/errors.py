"""Failure types raised by the pixel-buffer operations."""

from __future__ import annotations


class ImageOperationError(Exception):
    """Base class for operations that refuse to run on their inputs."""


class NullBufferError(ImageOperationError):
    """A buffer (or a required second operand) has no pixel storage."""


class DimensionMismatchError(ImageOperationError):
    def __init__(self, operation: str, size_a, size_b) -> None:
        super().__init__(f"{operation}: images not the same size ({size_a} vs {size_b})")
        self.operation = operation
        self.size_a = size_a
        self.size_b = size_b


class UnsupportedOperationError(ImageOperationError):
    """The operation is catalogued but has no algorithm behind it."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation}: operation is not supported")
        self.operation = operation


class UnknownOperationError(ImageOperationError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"unknown operation: {operation}")
        self.operation = operation
