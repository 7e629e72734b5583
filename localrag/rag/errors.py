"""Errors raised by the pure text-processing core."""


class InvalidArgumentError(ValueError):
    """Raised when a caller passes a value that violates a function's contract,
    such as non-string text or an overlap outside ``[0, chunk_size)``."""
