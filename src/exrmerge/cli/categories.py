"""Channel categories used to group channel listings for display."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import NamedTuple


class ChannelCategory(NamedTuple):
    """A display label and the full-match pattern of its channel names."""

    label: str
    pattern: re.Pattern[str]


# Order matters: a channel belongs to the first category that matches.
CHANNEL_CATEGORIES: tuple[ChannelCategory, ...] = (
    ChannelCategory("Color (Beauty)", re.compile(r"[RGBA]")),
    ChannelCategory("Normal (N)", re.compile(r"N\.[XYZ]")),
    ChannelCategory("Depth (Z)", re.compile(r"Z")),
    ChannelCategory("Ambient Occlusion (AO)", re.compile(r"AO\.[RGBA]")),
    ChannelCategory("Crypto Object", re.compile(r"crypto_object.*")),
    ChannelCategory("Crypto Material", re.compile(r"crypto_material.*")),
    ChannelCategory("Sample density", re.compile(r"AA_inv_density.*")),
    ChannelCategory("Variance", re.compile(r"variance.*")),
    ChannelCategory("Noice", re.compile(r".*noice.*")),
    ChannelCategory("Others", re.compile(r".*")),
)


def categorize_channels(names: Iterable[str]) -> list[tuple[str, list[str]]]:
    """Group channel names by category, skipping empty categories.

    Returns (label, sorted names) pairs in category order.
    """
    remaining = list(names)
    groups: list[tuple[str, list[str]]] = []
    for category in CHANNEL_CATEGORIES:
        matched = [n for n in remaining if category.pattern.fullmatch(n)]
        if matched:
            groups.append((category.label, sorted(matched)))
            remaining = [n for n in remaining if n not in matched]
    return groups
