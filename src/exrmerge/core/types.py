"""
Core data types for exrmerge.

This module contains the data classes shared by the job builder, the channel
merger and the run handle.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np


class PixelType(Enum):
    """OpenEXR pixel types, numbered as in the file format."""

    UINT = 0
    HALF = 1
    FLOAT = 2

    @property
    def dtype(self) -> np.dtype:
        """numpy dtype holding one sample of this type."""
        if self is PixelType.UINT:
            return np.dtype(np.uint32)
        if self is PixelType.HALF:
            return np.dtype(np.float16)
        return np.dtype(np.float32)


@dataclass(frozen=True)
class SourceFile:
    """One input file and the channel names to keep from it."""

    path: str
    channels: frozenset[str]

    def use_channel(self, name: str) -> bool:
        return name in self.channels


@dataclass(frozen=True)
class FrameJob:
    """All source files sharing one frame number; `frame` is None when unnumbered."""

    frame: int | None
    files: tuple[SourceFile, ...]

    @property
    def label(self) -> str:
        """Frame number as shown in messages."""
        return "<unnumbered>" if self.frame is None else str(self.frame)

    def __len__(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class ChannelEntry:
    """A named channel and its pixel buffer."""

    name: str
    pixel_type: PixelType
    data: np.ndarray


@dataclass(frozen=True)
class ExrHeader:
    """Parsed header: channel layout in file order plus the codec's raw header."""

    path: str
    channels: tuple[tuple[str, PixelType], ...]
    raw: Any = None

    @property
    def channel_names(self) -> list[str]:
        return [name for name, _ in self.channels]


@dataclass
class MergeResult:
    """Merged channel set and the header used as the encoding template."""

    header: ExrHeader
    channels: list[ChannelEntry]

    def output_header(self) -> ExrHeader:
        """Template header with its channel list replaced by the merged set."""
        return ExrHeader(
            path=self.header.path,
            channels=tuple((c.name, c.pixel_type) for c in self.channels),
            raw=self.header.raw,
        )


@dataclass(frozen=True)
class Progress:
    """Poll snapshot of a running batch."""

    done: int
    max: int
    finished: bool
