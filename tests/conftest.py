from __future__ import annotations

import threading
from collections.abc import Sequence

import numpy as np
import pytest

from exrmerge.core.errors import CodecError
from exrmerge.core.types import ChannelEntry, ExrHeader, PixelType
from exrmerge.processing.exr import ExrImage


class FakeCodec:
    """In-memory codec: each path maps to {channel: fill value}."""

    def __init__(
        self,
        files: dict[str, dict[str, float]] | None = None,
        fail_parse: Sequence[str] = (),
        fail_decode: Sequence[str] = (),
        fail_encode: Sequence[str] = (),
        gate: threading.Event | None = None,
    ) -> None:
        self.files = files or {}
        self.fail_parse = set(fail_parse)
        self.fail_decode = set(fail_decode)
        self.fail_encode = set(fail_encode)
        self.gate = gate
        self.lock = threading.Lock()
        self.parsed: list[str] = []
        self.images: list[ExrImage] = []
        self.written: dict[str, dict[str, np.ndarray]] = {}
        self.headers: dict[str, ExrHeader] = {}

    def parse_header(self, path: str) -> ExrHeader:
        if self.gate is not None:
            self.gate.wait()
        with self.lock:
            self.parsed.append(path)
        if path in self.fail_parse or path not in self.files:
            raise CodecError("bad magic number")
        channels = tuple((name, PixelType.HALF) for name in sorted(self.files[path]))
        return ExrHeader(path=path, channels=channels, raw={"source": path})

    def decode(self, header: ExrHeader, path: str) -> ExrImage:
        if path in self.fail_decode:
            raise CodecError("truncated scanline")
        buffers = {
            name: np.full(4, value, dtype=np.float16) for name, value in self.files[path].items()
        }
        image = ExrImage(header, buffers)
        with self.lock:
            self.images.append(image)
        return image

    def encode(self, header: ExrHeader, channels: Sequence[ChannelEntry], path: str) -> None:
        if path in self.fail_encode:
            raise CodecError("disk full")
        with self.lock:
            self.written[path] = {c.name: c.data.copy() for c in channels}
            self.headers[path] = header


@pytest.fixture
def fake_codec():
    """Factory for FakeCodec instances."""
    return FakeCodec
