from __future__ import annotations

import io
import struct

import numpy as np
import pytest

from tonewav.core import container
from tonewav.core.byteio import CheckedStream
from tonewav.domain.errors import (
    ConfigurationError,
    HeaderCorruptionError,
    ReadFailure,
    SampleCountOverflowError,
)


def _samples(*values: int) -> np.ndarray:
    return np.array(values, dtype=np.int16)


def _expected_header(sample_rate: int, sample_count: int) -> bytes:
    data_size = sample_count * 2
    return (
        b"RIFF"
        + struct.pack("<I", 36 + data_size)
        + b"WAVE"
        + b"fmt "
        + struct.pack("<IHHIIHH", 16, 1, 1, sample_rate, sample_rate * 2, 2, 16)
        + b"data"
        + struct.pack("<I", data_size)
    )


def _write(path, samples: np.ndarray, sample_rate: int) -> None:
    with open(path, "wb") as f:
        container.create(CheckedStream(f, str(path)), samples, sample_rate)


def _append(path, samples: np.ndarray, sample_rate: int) -> container.WavHeader:
    with open(path, "r+b") as f:
        return container.append(CheckedStream(f, str(path)), samples, sample_rate)


def test_create_matches_byte_layout():
    data = container.encode(_samples(1, -2, 3), 8000)
    assert data[:44] == _expected_header(8000, 3)
    assert data[44:] == struct.pack("<3h", 1, -2, 3)


def test_scenario_header_sizes():
    data = container.encode(np.zeros((800,), dtype=np.int16), 8000)
    header = container.read_header(CheckedStream(io.BytesIO(data), "mem"))
    assert header.chunk_size == 1636
    assert header.subchunk2_size == 1600
    assert len(data) == 44 + 1600


def test_read_header_roundtrip():
    data = container.encode(_samples(5, 6), 44100)
    header = container.read_header(CheckedStream(io.BytesIO(data), "mem"))
    assert header == container.WavHeader.for_data(container.WavFormat(44100), 4)
    assert header.byte_rate == 88200
    assert header.block_align == 2


def test_header_fields_cover_44_contiguous_bytes():
    end = 0
    for field in container.HEADER_FIELDS:
        assert field.offset == end
        end += field.size
    assert end == container.HEADER_SIZE


def test_create_rejects_oversized_data(monkeypatch):
    monkeypatch.setattr(container, "MAX_CHUNK_SIZE", 36 + 4)
    with pytest.raises(SampleCountOverflowError):
        container.encode(_samples(1, 2, 3), 8000)


def test_append_equals_single_create(tmp_path):
    first = _samples(1, 2, 3, -4)
    second = _samples(100, -200, 32767)
    appended = tmp_path / "appended.wav"
    single = tmp_path / "single.wav"

    _write(appended, first, 22050)
    header = _append(appended, second, 22050)
    _write(single, np.concatenate([first, second]), 22050)

    assert appended.read_bytes() == single.read_bytes()
    assert header.subchunk2_size == 14
    assert header.chunk_size == 50


def test_append_twice_and_read_back(tmp_path):
    path = tmp_path / "tone.wav"
    _write(path, _samples(1), 8000)
    _append(path, _samples(2, 3), 8000)
    _append(path, _samples(), 8000)
    _append(path, _samples(4), 8000)

    with open(path, "rb") as f:
        samples = container.read_samples(CheckedStream(f, str(path)))
    assert samples.tolist() == [1, 2, 3, 4]


def _corrupt(data: bytes, field: container.HeaderField) -> bytes:
    if field.is_tag:
        replacement = b"JUNK"
    else:
        value = int.from_bytes(data[field.offset : field.offset + field.size], "little")
        replacement = ((value + 2) % (1 << (8 * field.size))).to_bytes(field.size, "little")
    return data[: field.offset] + replacement + data[field.offset + field.size :]


@pytest.mark.parametrize("field", container.HEADER_FIELDS, ids=lambda f: f.attr)
def test_append_rejects_any_altered_field_without_writing(tmp_path, field):
    path = tmp_path / "tone.wav"
    original = _corrupt(container.encode(_samples(1, 2, 3, 4), 8000), field)
    path.write_bytes(original)

    with pytest.raises(HeaderCorruptionError):
        _append(path, _samples(9, 9), 8000)
    assert path.read_bytes() == original


def test_sample_rate_mismatch_names_field(tmp_path):
    path = tmp_path / "tone.wav"
    _write(path, _samples(1, 2), 8000)
    before = path.read_bytes()

    with pytest.raises(HeaderCorruptionError) as excinfo:
        _append(path, _samples(3), 44100)

    err = excinfo.value
    assert err.field == "sample rate"
    assert err.expected == 44100
    assert err.actual == 8000
    assert "sample rate" in str(err)
    assert path.read_bytes() == before


def test_chunk_size_below_header_overhead(tmp_path):
    path = tmp_path / "tone.wav"
    data = bytearray(container.encode(_samples(1), 8000))
    data[4:8] = struct.pack("<I", 10)
    path.write_bytes(bytes(data))

    with pytest.raises(HeaderCorruptionError) as excinfo:
        _append(path, _samples(2), 8000)
    assert excinfo.value.field == "chunk size"


def test_odd_data_size_is_rejected(tmp_path):
    path = tmp_path / "tone.wav"
    data = bytearray(container.encode(_samples(1, 2), 8000))
    data[4:8] = struct.pack("<I", 36 + 3)
    data[40:44] = struct.pack("<I", 3)
    path.write_bytes(bytes(data))

    with pytest.raises(HeaderCorruptionError) as excinfo:
        _append(path, _samples(2), 8000)
    assert excinfo.value.field == "subchunk2 size"


def test_truncated_payload_is_rejected(tmp_path):
    path = tmp_path / "tone.wav"
    data = container.encode(_samples(1, 2, 3, 4), 8000)
    path.write_bytes(data[:-2])

    with pytest.raises(HeaderCorruptionError) as excinfo:
        _append(path, _samples(5), 8000)
    assert excinfo.value.field == "data payload"
    assert path.read_bytes() == data[:-2]


def test_foreign_short_file_is_a_read_failure(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello")
    with pytest.raises(ReadFailure):
        _append(path, _samples(1), 8000)
    assert path.read_bytes() == b"hello"


def test_append_overflow_leaves_file_untouched(tmp_path, monkeypatch):
    path = tmp_path / "tone.wav"
    _write(path, _samples(1, 2, 3, 4), 8000)
    before = path.read_bytes()

    monkeypatch.setattr(container, "MAX_CHUNK_SIZE", 36 + 10)
    with pytest.raises(SampleCountOverflowError):
        _append(path, _samples(5, 6), 8000)
    assert path.read_bytes() == before


def test_wav_format_derived_fields():
    fmt = container.WavFormat(48000, num_channels=2)
    assert fmt.block_align == 4
    assert fmt.byte_rate == 192000
    with pytest.raises(ValueError):
        container.WavFormat(44100, bits_per_sample=8)
    with pytest.raises(ValueError):
        container.WavFormat(0)


def test_wav_format_rejects_byte_rate_wider_than_header_field():
    with pytest.raises(ConfigurationError, match="byte rate"):
        container.WavFormat(3000000000)
    assert container.WavFormat(2147483647).byte_rate == 0xFFFFFFFE


def test_create_with_unrepresentable_rate_writes_nothing():
    buf = io.BytesIO()
    with pytest.raises(ConfigurationError):
        container.create(CheckedStream(buf, "mem"), _samples(1, 2), 3000000000)
    assert buf.getvalue() == b""
