from __future__ import annotations

import math
from enum import Enum
from typing import Protocol, TypeAlias

import numpy as np

SampleIndex: TypeAlias = int | np.ndarray
WaveValue: TypeAlias = float | np.ndarray


class WaveKind(str, Enum):
    SINE = "sine"
    SQUARE = "square"
    TRIANGLE = "triangle"
    SAWTOOTH = "sawtooth"
    POINT = "point"
    CIRCLE = "circle"


class WaveFunction(Protocol):
    def __call__(
        self, frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int
    ) -> WaveValue:
        """Return the amplitude in [-1, 1] at the given sample index."""


def _indices(sample_index: SampleIndex) -> np.ndarray:
    return np.asarray(sample_index, dtype=np.float64)


def _result(values: np.ndarray) -> WaveValue:
    if np.ndim(values) == 0:
        return float(values)
    return values


def _half_cycle_sign(x: np.ndarray) -> np.ndarray:
    # -1 on every other half cycle, starting positive.
    return np.where(np.floor((x + 1) / 2) % 2 == 1, -1.0, 1.0)


def sine_wave(frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int) -> WaveValue:
    t = _indices(sample_index)
    x = (2 * math.pi * t * frequency) / sample_rate_hz
    return _result(np.sin(x))


def square_wave(frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int) -> WaveValue:
    t = _indices(sample_index)
    x = (2 * t * frequency) / sample_rate_hz
    return _result(np.where(np.floor(x) % 2 == 1, 1.0, -1.0))


def triangle_wave(frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int) -> WaveValue:
    t = _indices(sample_index)
    x = (4 * t * frequency) / sample_rate_hz
    return _result((x - 2 * np.floor((x + 1) / 2)) * _half_cycle_sign(x))


def sawtooth_wave(frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int) -> WaveValue:
    t = _indices(sample_index)
    x = (t * frequency) / sample_rate_hz
    return _result(2 * (x - np.floor(x)) - 1)


def point_wave(frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int) -> WaveValue:
    """Inverted quarter-circle arcs that pinch toward zero at each crossing."""
    t = _indices(sample_index)
    x = (4 * t * frequency) / sample_rate_hz
    root = x - (1 + np.floor(x / 2) * 2)
    return _result((1 - np.sqrt(1 - root * root)) * _half_cycle_sign(x))


def circle_wave(frequency: float, sample_index: SampleIndex, *, sample_rate_hz: int) -> WaveValue:
    """Semicircle arcs of alternating polarity."""
    t = _indices(sample_index)
    x = (4 * t * frequency) / sample_rate_hz
    root = x - np.floor(x / 2) * 2 - 1
    return _result(np.sqrt(1 - root * root) * _half_cycle_sign(x))


WAVE_FUNCTIONS: dict[WaveKind, WaveFunction] = {
    WaveKind.SINE: sine_wave,
    WaveKind.SQUARE: square_wave,
    WaveKind.TRIANGLE: triangle_wave,
    WaveKind.SAWTOOTH: sawtooth_wave,
    WaveKind.POINT: point_wave,
    WaveKind.CIRCLE: circle_wave,
}


def get_wave_function(kind: WaveKind | str) -> WaveFunction:
    try:
        return WAVE_FUNCTIONS[WaveKind(kind)]
    except ValueError:
        names = ", ".join(repr(k.value) for k in WaveKind)
        raise ValueError(f"wave function must be one of {names}") from None
