from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import numpy as np

from tonewav.core.byteio import CheckedStream
from tonewav.domain.errors import (
    ConfigurationError,
    HeaderCorruptionError,
    SampleCountOverflowError,
)

logger = logging.getLogger(__name__)

CHUNK_ID = b"RIFF"
FORMAT = b"WAVE"
SUBCHUNK1_ID = b"fmt "
SUBCHUNK1_SIZE = 16
AUDIO_FORMAT_PCM = 1
SUBCHUNK2_ID = b"data"

HEADER_SIZE = 44
# Bytes counted by the RIFF chunk size besides the sample data itself.
CHUNK_SIZE_OVERHEAD = HEADER_SIZE - 8
MAX_CHUNK_SIZE = 0xFFFFFFFF


@dataclass(frozen=True, slots=True)
class HeaderField:
    attr: str
    label: str
    offset: int
    size: int
    is_tag: bool = False


HEADER_FIELDS: tuple[HeaderField, ...] = (
    HeaderField("chunk_id", "chunk id", 0, 4, is_tag=True),
    HeaderField("chunk_size", "chunk size", 4, 4),
    HeaderField("format", "format", 8, 4, is_tag=True),
    HeaderField("subchunk1_id", "subchunk1 id", 12, 4, is_tag=True),
    HeaderField("subchunk1_size", "subchunk1 size", 16, 4),
    HeaderField("audio_format", "audio format", 20, 2),
    HeaderField("num_channels", "num channels", 22, 2),
    HeaderField("sample_rate", "sample rate", 24, 4),
    HeaderField("byte_rate", "byte rate", 28, 4),
    HeaderField("block_align", "block align", 32, 2),
    HeaderField("bits_per_sample", "bits per sample", 34, 2),
    HeaderField("subchunk2_id", "subchunk2 id", 36, 4, is_tag=True),
    HeaderField("subchunk2_size", "subchunk2 size", 40, 4),
)

_FIELDS_BY_ATTR = {f.attr: f for f in HEADER_FIELDS}


@dataclass(frozen=True, slots=True)
class WavFormat:
    sample_rate_hz: int
    num_channels: int = 1
    bits_per_sample: int = 16

    def __post_init__(self) -> None:
        if not (1 <= self.sample_rate_hz <= 0xFFFFFFFF):
            raise ConfigurationError("sample_rate_hz must be in 1..4294967295")
        if not (1 <= self.num_channels <= 0xFFFF):
            raise ConfigurationError("num_channels must be in 1..65535")
        if self.bits_per_sample != 16:
            raise ConfigurationError("only 16-bit PCM samples are supported")
        if self.byte_rate > 0xFFFFFFFF:
            raise ConfigurationError(
                f"byte rate of {self.byte_rate} for {self.sample_rate_hz} Hz does not fit in WAVE format"
            )

    @property
    def block_align(self) -> int:
        return self.num_channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate_hz * self.block_align

    def data_size(self, sample_count: int) -> int:
        """Bytes occupied by ``sample_count`` interleaved samples."""
        return sample_count * self.bits_per_sample // 8


@dataclass(frozen=True, slots=True)
class WavHeader:
    chunk_id: bytes
    chunk_size: int
    format: bytes
    subchunk1_id: bytes
    subchunk1_size: int
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    subchunk2_id: bytes
    subchunk2_size: int

    @classmethod
    def for_data(cls, fmt: WavFormat, data_size: int) -> "WavHeader":
        return cls(
            chunk_id=CHUNK_ID,
            chunk_size=CHUNK_SIZE_OVERHEAD + data_size,
            format=FORMAT,
            subchunk1_id=SUBCHUNK1_ID,
            subchunk1_size=SUBCHUNK1_SIZE,
            audio_format=AUDIO_FORMAT_PCM,
            num_channels=fmt.num_channels,
            sample_rate=fmt.sample_rate_hz,
            byte_rate=fmt.byte_rate,
            block_align=fmt.block_align,
            bits_per_sample=fmt.bits_per_sample,
            subchunk2_id=SUBCHUNK2_ID,
            subchunk2_size=data_size,
        )


def _check_data_size(data_size: int) -> None:
    if CHUNK_SIZE_OVERHEAD + data_size > MAX_CHUNK_SIZE:
        raise SampleCountOverflowError(
            f"{data_size} bytes of sample data is too large to store in WAVE format"
        )


def write_header(stream: CheckedStream, header: WavHeader) -> None:
    """Write all fields in layout order from the current position."""
    for field in HEADER_FIELDS:
        value = getattr(header, field.attr)
        if field.is_tag:
            stream.write_fixed_string(value, field.size)
        else:
            stream.write_uint_le(value, field.size)


def read_header(stream: CheckedStream) -> WavHeader:
    values: dict[str, bytes | int] = {}
    for field in HEADER_FIELDS:
        stream.seek(field.offset)
        if field.is_tag:
            values[field.attr] = stream.read_fixed_string(field.size)
        else:
            values[field.attr] = stream.read_uint_le(field.size)
    return WavHeader(**values)  # type: ignore[arg-type]


def create(
    stream: CheckedStream,
    samples: np.ndarray,
    sample_rate_hz: int,
    *,
    num_channels: int = 1,
    bits_per_sample: int = 16,
) -> WavHeader:
    """Write a complete container (header then samples) to ``stream``.

    The stream is written strictly sequentially, so non-seekable targets such as
    standard output work.
    """
    fmt = WavFormat(sample_rate_hz, num_channels=num_channels, bits_per_sample=bits_per_sample)
    data_size = fmt.data_size(len(samples))
    _check_data_size(data_size)

    header = WavHeader.for_data(fmt, data_size)
    write_header(stream, header)
    stream.write_samples_int16(samples)
    stream.flush()
    logger.info("Wrote %d samples (%d data bytes) to %s", len(samples), data_size, stream.name)
    return header


def encode(
    samples: np.ndarray,
    sample_rate_hz: int,
    *,
    num_channels: int = 1,
    bits_per_sample: int = 16,
) -> bytes:
    buf = io.BytesIO()
    create(
        CheckedStream(buf, "<memory>"),
        samples,
        sample_rate_hz,
        num_channels=num_channels,
        bits_per_sample=bits_per_sample,
    )
    return buf.getvalue()


def verify_header(stream: CheckedStream, fmt: WavFormat) -> int:
    """Check an existing header against ``fmt`` and return its data size in bytes.

    Reads every field before comparing anything and never writes, so a failed
    check leaves the stream's bytes untouched.
    """
    actual = read_header(stream)

    if actual.chunk_size < CHUNK_SIZE_OVERHEAD:
        raise HeaderCorruptionError(
            _FIELDS_BY_ATTR["chunk_size"].label, f">= {CHUNK_SIZE_OVERHEAD}", actual.chunk_size
        )
    previous = actual.chunk_size - CHUNK_SIZE_OVERHEAD

    expected = WavHeader.for_data(fmt, previous)
    for field in HEADER_FIELDS:
        want = getattr(expected, field.attr)
        got = getattr(actual, field.attr)
        if want != got:
            raise HeaderCorruptionError(field.label, want, got)

    if previous % fmt.block_align:
        raise HeaderCorruptionError(
            _FIELDS_BY_ATTR["subchunk2_size"].label,
            f"a multiple of {fmt.block_align}",
            previous,
        )

    stream_size = stream.size()
    if stream_size < HEADER_SIZE + previous:
        raise HeaderCorruptionError(
            "data payload", f">= {HEADER_SIZE + previous} bytes", f"{stream_size} bytes"
        )
    return previous


def append(
    stream: CheckedStream,
    samples: np.ndarray,
    sample_rate_hz: int,
    *,
    num_channels: int = 1,
    bits_per_sample: int = 16,
) -> WavHeader:
    """Extend an existing container in place with ``samples``.

    The whole header is verified first; only then are the two size fields
    rewritten and the new samples written directly after the old data.
    """
    fmt = WavFormat(sample_rate_hz, num_channels=num_channels, bits_per_sample=bits_per_sample)
    previous = verify_header(stream, fmt)
    added = fmt.data_size(len(samples))
    total = previous + added
    _check_data_size(total)

    header = WavHeader.for_data(fmt, total)
    stream.seek(_FIELDS_BY_ATTR["chunk_size"].offset)
    stream.write_uint_le(header.chunk_size, _FIELDS_BY_ATTR["chunk_size"].size)
    stream.seek(_FIELDS_BY_ATTR["subchunk2_size"].offset)
    stream.write_uint_le(header.subchunk2_size, _FIELDS_BY_ATTR["subchunk2_size"].size)

    stream.seek(HEADER_SIZE + previous)
    stream.write_samples_int16(samples)
    stream.flush()
    logger.info(
        "Appended %d samples to %s (%d -> %d data bytes)", len(samples), stream.name, previous, total
    )
    return header


def read_samples(stream: CheckedStream) -> np.ndarray:
    """Return the 16-bit samples described by the header's data size."""
    header = read_header(stream)
    stream.seek(HEADER_SIZE)
    data = stream.read_bytes(header.subchunk2_size)
    return np.frombuffer(data, dtype="<i2").astype(np.int16)
