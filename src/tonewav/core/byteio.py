from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO

import numpy as np

from tonewav.domain.errors import ReadFailure, SeekFailure, WriteFailure


@dataclass(slots=True)
class CheckedStream:
    """Binary stream wrapper whose every failure names the target it was writing.

    Errors from the underlying file object surface as ``ReadFailure``,
    ``WriteFailure`` or ``SeekFailure``; a short read counts as a read failure.
    """

    fileobj: BinaryIO
    name: str

    def write_bytes(self, data: bytes) -> None:
        try:
            written = self.fileobj.write(data)
        except (OSError, ValueError) as exc:
            raise WriteFailure(self.name, str(exc)) from exc
        if written is not None and written != len(data):
            raise WriteFailure(self.name, f"wrote {written} of {len(data)} bytes")

    def read_bytes(self, byte_count: int) -> bytes:
        try:
            data = self.fileobj.read(byte_count)
        except (OSError, ValueError) as exc:
            raise ReadFailure(self.name, str(exc)) from exc
        if data is None or len(data) != byte_count:
            got = 0 if data is None else len(data)
            raise ReadFailure(self.name, f"expected {byte_count} bytes, got {got}")
        return data

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        try:
            return self.fileobj.seek(offset, whence)
        except (OSError, ValueError) as exc:
            raise SeekFailure(self.name, str(exc)) from exc

    def size(self) -> int:
        """Total stream length; leaves the position at the end."""
        return self.seek(0, io.SEEK_END)

    def flush(self) -> None:
        try:
            self.fileobj.flush()
        except (OSError, ValueError) as exc:
            raise WriteFailure(self.name, str(exc)) from exc

    def write_uint_le(self, value: int, byte_count: int) -> None:
        if value < 0 or value >= 1 << (8 * byte_count):
            raise ValueError(f"{value} does not fit in {byte_count} unsigned bytes")
        self.write_bytes(value.to_bytes(byte_count, "little"))

    def read_uint_le(self, byte_count: int) -> int:
        return int.from_bytes(self.read_bytes(byte_count), "little")

    def write_fixed_string(self, value: bytes, byte_count: int) -> None:
        if len(value) != byte_count:
            raise ValueError(f"{value!r} is not exactly {byte_count} bytes")
        self.write_bytes(value)

    def read_fixed_string(self, byte_count: int) -> bytes:
        return self.read_bytes(byte_count)

    def write_samples_int16(self, samples: np.ndarray) -> None:
        data = np.asarray(samples, dtype=np.int16).astype("<i2", copy=False)
        self.write_bytes(data.tobytes())
