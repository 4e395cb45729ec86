from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from tonewav.core.waves import WaveFunction
from tonewav.domain.errors import ConfigurationError, SampleCountOverflowError

logger = logging.getLogger(__name__)

INT16_MAX = 32767

# Largest mono 16-bit payload whose RIFF chunk size (36 + data bytes) fits in 32 bits.
MAX_SAMPLES = (0xFFFFFFFF - 36) // 2

DEFAULT_BLOCK_SAMPLES = 1 << 16


def expand_frequencies(fundamentals: Sequence[float], overtones: int) -> tuple[float, ...]:
    """Return every fundamental followed by its overtones, grouped per fundamental.

    Overtone ``o`` of fundamental ``f`` is ``f * (o + 1)``, so ``overtones=0`` yields
    the fundamentals unchanged.
    """
    if overtones < 0:
        raise ConfigurationError("overtones must be >= 0")
    return tuple(f * (o + 1) for f in fundamentals for o in range(overtones + 1))


def get_num_samples(
    duration_ms: int, sample_rate_hz: int, *, max_samples: int = MAX_SAMPLES
) -> int:
    if duration_ms < 1:
        raise ConfigurationError("duration must be >= 1 ms")
    if sample_rate_hz < 1:
        raise ConfigurationError("sample rate must be >= 1 Hz")

    # Exact integer ceil(duration * rate / 1000); Python ints do not wrap.
    num_samples = -(-duration_ms * sample_rate_hz // 1000)
    if num_samples > max_samples:
        raise SampleCountOverflowError(
            f"Duration of {duration_ms} ms and sample rate of {sample_rate_hz} Hz combine to "
            f"create a file that is too large to store in WAVE format "
            f"({num_samples} samples, limit {max_samples})"
        )
    return num_samples


def synthesize(
    frequencies: Sequence[float],
    amplitude_percent: float,
    num_samples: int,
    wave: WaveFunction,
    *,
    sample_rate_hz: int,
    block_samples: int = DEFAULT_BLOCK_SAMPLES,
) -> np.ndarray:
    """Mix ``frequencies`` through ``wave`` into ``num_samples`` signed 16-bit samples.

    Each frequency contributes ``amplitude_percent / 100 * INT16_MAX * wave(f, t) / n``
    and the per-sample sum is truncated toward zero, wrapping like a C integer cast.
    """
    if not frequencies:
        raise ConfigurationError("at least one frequency is required")
    if num_samples < 0:
        raise ConfigurationError("num_samples must be >= 0")
    if block_samples <= 0:
        raise ValueError("block_samples must be > 0")

    count = len(frequencies)
    scale = (amplitude_percent / 100) * INT16_MAX
    out = np.empty((num_samples,), dtype=np.int16)

    logger.debug(
        "Synthesizing %d samples from %d frequencies at %d Hz", num_samples, count, sample_rate_hz
    )
    for start in range(0, num_samples, block_samples):
        stop = min(start + block_samples, num_samples)
        t = np.arange(start, stop, dtype=np.int64)
        mixed = np.zeros((stop - start,), dtype=np.float64)
        for frequency in frequencies:
            mixed += (scale * wave(frequency, t, sample_rate_hz=sample_rate_hz)) / count
        out[start:stop] = np.trunc(mixed).astype(np.int64).astype(np.int16)
    return out
