"""Exception types raised by exrmerge."""

from __future__ import annotations


class ExrMergeError(Exception):
    """Base class for exrmerge errors."""


class CodecError(ExrMergeError):
    """The image codec could not parse, decode or encode a file."""
