"""exrmerge: merge and split channels of numbered OpenEXR frame sequences."""

from .config import FileSelection, MergeRequest
from .core.errors import CodecError, ExrMergeError
from .core.types import Progress
from .processing.run import RunHandle, submit, submit_request

__all__ = [
    "CodecError",
    "ExrMergeError",
    "FileSelection",
    "MergeRequest",
    "Progress",
    "RunHandle",
    "submit",
    "submit_request",
]

__version__ = "0.1.0"
