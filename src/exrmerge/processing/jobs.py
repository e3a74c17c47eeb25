"""Grouping of source files into per-frame jobs."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.types import FrameJob, SourceFile
from ..utils.path import parse_frame


def _frame_sort_key(frame: int | None) -> tuple[bool, int]:
    # Unnumbered sorts after every numbered frame.
    return (frame is None, frame or 0)


def build_jobs(entries: Iterable[tuple[str, Iterable[str]]]) -> list[FrameJob]:
    """Group (path, channels) pairs into frame jobs.

    Every entry lands in exactly one job. Jobs are ordered by ascending frame
    number with the unnumbered job last; files inside a job keep input order.
    Duplicate paths are kept as separate files.

    Args:
        entries: Source paths with the channel names to keep from each.

    Returns:
        List[FrameJob]: Jobs in processing order.
    """
    buckets: dict[int | None, list[SourceFile]] = {}
    for path, channels in entries:
        source = SourceFile(path=path, channels=frozenset(channels))
        buckets.setdefault(parse_frame(path), []).append(source)

    return [
        FrameJob(frame=frame, files=tuple(files))
        for frame, files in sorted(buckets.items(), key=lambda item: _frame_sort_key(item[0]))
    ]
