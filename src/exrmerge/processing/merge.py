"""
Channel merging for one frame job.

Loads every file of the job through the codec, keeps the requested channels
in one name-sorted set and encodes that set to the frame's output path.
"""

from __future__ import annotations

import bisect
import contextlib
from typing import Protocol

from ..config import PLACEHOLDER_CHAR
from ..core.errors import CodecError
from ..core.types import ChannelEntry, ExrHeader, FrameJob, MergeResult
from ..utils.path import format_output_path
from .exr import Codec


class MergeSink(Protocol):
    """Receives progress milestones and error messages from a merge."""

    def advance(self) -> None: ...

    def error(self, message: str) -> None: ...


def insert_channel(channels: list[ChannelEntry], entry: ChannelEntry) -> None:
    """Insert `entry` keeping `channels` sorted and unique by name.

    An existing entry with the same name is replaced.
    """
    index = bisect.bisect_left(channels, entry.name, key=lambda c: c.name)
    if index < len(channels) and channels[index].name == entry.name:
        channels[index] = entry
    else:
        channels.insert(index, entry)


def merge_frame(
    job: FrameJob,
    sink: MergeSink,
    codec: Codec,
    output_template: str,
    placeholder: str = PLACEHOLDER_CHAR,
) -> bool:
    """Merge the requested channels of every file in `job` into one output file.

    The sink is advanced once per successfully loaded file and exactly once
    more when the job ends, whatever the outcome. Failures are reported to the
    sink and abandon the job; decoded images are released on every path.

    Args:
        job (FrameJob): Files sharing one frame number.
        sink (MergeSink): Progress and error receiver.
        codec (Codec): File-format collaborator.
        output_template (str): Output path template with a placeholder run.
        placeholder (str): Placeholder character of the template.

    Returns:
        bool: True when the output file was written.
    """
    with contextlib.ExitStack() as stack:
        try:
            result = _collect_channels(job, sink, codec, stack)
            if result is None:
                return False
            out_path = format_output_path(output_template, job.frame, placeholder)
            try:
                codec.encode(result.output_header(), result.channels, out_path)
            except CodecError as ex:
                sink.error(f"failed to save {out_path}: {ex}")
                return False
            return True
        finally:
            sink.advance()


def _collect_channels(
    job: FrameJob, sink: MergeSink, codec: Codec, stack: contextlib.ExitStack
) -> MergeResult | None:
    template: ExrHeader | None = None
    channels: list[ChannelEntry] = []

    for source in job.files:
        try:
            header = codec.parse_header(source.path)
        except CodecError as ex:
            sink.error(f"failed to parse {source.path}: {ex}")
            return None
        try:
            image = stack.enter_context(codec.decode(header, source.path))
        except CodecError as ex:
            sink.error(f"failed to load {source.path}: {ex}")
            return None

        sink.advance()
        if template is None:
            template = header

        for name, pixel_type in header.channels:
            if source.use_channel(name):
                insert_channel(channels, ChannelEntry(name, pixel_type, image.channel(name)))

    if template is None or not channels:
        sink.error(f"frame {job.label} has no channels")
        return None
    return MergeResult(header=template, channels=channels)
