"""
OpenEXR codec for exrmerge.

This module handles all file-format functionality including:
- Header parsing into a channel layout
- Decoding channel pixel buffers into numpy arrays
- Encoding a merged channel set back to an EXR file

The merge engine only relies on the `Codec` protocol; `OpenEXRCodec` is the
implementation backed by the OpenEXR/Imath bindings.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import numpy as np

from ..core.errors import CodecError
from ..core.types import ChannelEntry, ExrHeader, PixelType


class ExrImage:
    """Decoded pixel buffers of one file, keyed by channel name.

    Buffers are released by `close()`; use the image as a context manager so
    every exit path releases them.
    """

    def __init__(self, header: ExrHeader, buffers: dict[str, np.ndarray]) -> None:
        self.header = header
        self._buffers: dict[str, np.ndarray] | None = buffers

    @property
    def closed(self) -> bool:
        return self._buffers is None

    def channel(self, name: str) -> np.ndarray:
        if self._buffers is None:
            raise ValueError(f"image already released: {self.header.path}")
        return self._buffers[name]

    def close(self) -> None:
        self._buffers = None

    def __enter__(self) -> ExrImage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Codec(Protocol):
    """File-format collaborator used by the channel merger."""

    def parse_header(self, path: str) -> ExrHeader:
        """Read the header of `path`. Raises CodecError."""
        ...

    def decode(self, header: ExrHeader, path: str) -> ExrImage:
        """Decode every channel listed in `header`. Raises CodecError."""
        ...

    def encode(self, header: ExrHeader, channels: Sequence[ChannelEntry], path: str) -> None:
        """Write `channels` to `path` using `header` as template. Raises CodecError."""
        ...


def _imath_type(pixel_type: PixelType):
    import Imath

    return Imath.PixelType(pixel_type.value)


class OpenEXRCodec:
    """Codec backed by the OpenEXR scanline API.

    The bindings are imported on first use, so the rest of the package works
    without them.
    """

    def parse_header(self, path: str) -> ExrHeader:
        import OpenEXR

        try:
            exr = OpenEXR.InputFile(path)
        except Exception as ex:
            raise CodecError(f"{type(ex).__name__}: {ex}") from ex
        try:
            raw = exr.header()
        finally:
            exr.close()

        channels = []
        for name, info in sorted(raw.get("channels", {}).items()):
            try:
                pixel_type = PixelType(info.type.v)
            except ValueError as ex:
                raise CodecError(f"unsupported pixel type for channel {name}") from ex
            channels.append((name, pixel_type))
        return ExrHeader(path=path, channels=tuple(channels), raw=raw)

    def decode(self, header: ExrHeader, path: str) -> ExrImage:
        import OpenEXR

        buffers: dict[str, np.ndarray] = {}
        try:
            exr = OpenEXR.InputFile(path)
        except Exception as ex:
            raise CodecError(f"{type(ex).__name__}: {ex}") from ex
        try:
            for name, pixel_type in header.channels:
                data = exr.channel(name, _imath_type(pixel_type))
                buffers[name] = np.frombuffer(data, dtype=pixel_type.dtype)
        except Exception as ex:
            raise CodecError(f"{type(ex).__name__}: {ex}") from ex
        finally:
            exr.close()
        return ExrImage(header, buffers)

    def encode(self, header: ExrHeader, channels: Sequence[ChannelEntry], path: str) -> None:
        import Imath
        import OpenEXR

        raw = dict(header.raw) if header.raw else {}
        raw["channels"] = {c.name: Imath.Channel(_imath_type(c.pixel_type)) for c in channels}
        try:
            out = OpenEXR.OutputFile(path, raw)
            try:
                out.writePixels({c.name: np.ascontiguousarray(c.data).tobytes() for c in channels})
            finally:
                out.close()
        except Exception as ex:
            raise CodecError(f"{type(ex).__name__}: {ex}") from ex
