"""
Path and filename utilities for exrmerge.

This module handles all path-related functionality including:
- Frame number parsing from filenames
- Output path templating for frame numbers
- Natural sorting of frame sequences
- Common directory prefix for display
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..config import PLACEHOLDER_CHAR

_ASCII_DIGITS = frozenset("0123456789")


def parse_frame(name: str) -> int | None:
    """Return the frame number carried by a filename, or None.

    The frame number is the last run of ASCII digits in the string, found by
    scanning backwards: first over trailing non-digits, then over the run.
    Directory components are not treated specially.

    Examples:
        "render_0007.exr" -> 7
        "v10_take2.exr" -> 2
        "shot.exr" -> None

    Args:
        name (str): Filename or full path.

    Returns:
        Optional[int]: Parsed frame number when a digit run exists, else None.
    """
    end = len(name)
    while end > 0 and name[end - 1] not in _ASCII_DIGITS:
        end -= 1
    begin = end
    while begin > 0 and name[begin - 1] in _ASCII_DIGITS:
        begin -= 1
    if begin == end:
        return None
    return int(name[begin:end])


def format_output_path(template: str, frame: int | None, placeholder: str = PLACEHOLDER_CHAR) -> str:
    """Substitute a frame number into the rightmost placeholder run of `template`.

    The run is replaced by the frame number zero-padded to the run length;
    longer numbers are written in full. The template is returned unchanged
    when `frame` is None or the template has no placeholder.

    Examples:
        ("out_####.exr", 7) -> "out_0007.exr"
        ("out_##.exr", 123456) -> "out_123456.exr"

    Args:
        template (str): Output path template.
        frame (Optional[int]): Frame number of the job.
        placeholder (str): Single placeholder character.

    Returns:
        str: Output path for the frame.
    """
    if frame is None:
        return template
    end = template.rfind(placeholder)
    if end < 0:
        return template
    begin = end
    while begin > 0 and template[begin - 1] == placeholder:
        begin -= 1
    width = end - begin + 1
    return f"{template[:begin]}{frame:0{width}d}{template[end + 1:]}"


def natural_key(s: str) -> list[object]:
    """Convert string to list of mixed integers and strings for natural sorting."""
    return [int(c) if c.isdigit() else c for c in re.split(r"(\d+)", s)]


def common_dir_prefix(names: Iterable[str]) -> str:
    """Longest shared prefix of `names` that ends at a path separator.

    Used to shorten file names for display; returns "" when nothing is shared.
    """
    prefix: str | None = None
    for name in names:
        if prefix is None:
            best = max(name.rfind("/"), name.rfind("\\"))
            prefix = name[: best + 1]
            continue
        best = 0
        for i, ch in enumerate(name):
            if i >= len(prefix) or ch != prefix[i]:
                break
            if ch in "/\\":
                best = i + 1
        prefix = prefix[:best]
    return prefix or ""
