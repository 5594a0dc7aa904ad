"""
Exceptions raised by the YuNet post-processing core.

Both concrete errors also derive from ValueError, so callers that
already guard configuration and tensor handling with ``except ValueError``
keep working.
"""


class YuNetError(Exception):
    """Base exception for the post-processing core."""


class ShapeMismatch(YuNetError, ValueError):
    """Raised when model output tensors do not match the anchor set.

    Fatal to the call: tensors are never truncated or padded to fit.
    """


class InvalidParameter(YuNetError, ValueError):
    """Raised when a threshold, input size or anchor table is invalid."""
