from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tonewav.core.waves import WaveKind
from tonewav.domain.errors import ConfigurationError

UINT32_MAX = 0xFFFFFFFF
# The header byte rate (rate * 2 for mono 16-bit) is a 32-bit field.
MAX_SAMPLE_RATE_HZ = UINT32_MAX // 2
MIN_AMPLITUDE_PERCENT = 100 / 32767
MAX_AMPLITUDE_PERCENT = 100.0
MIN_FREQUENCY_HZ = 1.0
MAX_FREQUENCY_HZ = 30000.0
MAX_OVERTONES = 127


@dataclass(frozen=True, slots=True)
class SynthConfig:
    """Validated request for one run: what to synthesize and where it goes.

    ``output_path=None`` targets standard output, which cannot be appended to.
    """

    frequencies: tuple[float, ...]
    duration_ms: int = 1000
    amplitude_percent: float = 33.333333
    sample_rate_hz: int = 44100
    overtones: int = 0
    wave: WaveKind = WaveKind.SINE
    output_path: Path | None = None
    append: bool = False

    def __post_init__(self) -> None:
        if not self.frequencies:
            raise ConfigurationError("At least one frequency required")
        for frequency in self.frequencies:
            if not (MIN_FREQUENCY_HZ <= frequency <= MAX_FREQUENCY_HZ):
                raise ConfigurationError(
                    f"Frequency must be in the range [{MIN_FREQUENCY_HZ:g}, {MAX_FREQUENCY_HZ:g}]"
                )
        if not (1 <= self.duration_ms <= UINT32_MAX):
            raise ConfigurationError(f"Duration must be in the range [1, {UINT32_MAX}]")
        if not (MIN_AMPLITUDE_PERCENT <= self.amplitude_percent <= MAX_AMPLITUDE_PERCENT):
            raise ConfigurationError(
                f"Amplitude must be in the range [{MIN_AMPLITUDE_PERCENT:f}, {MAX_AMPLITUDE_PERCENT:f}]"
            )
        if not (1 <= self.sample_rate_hz <= MAX_SAMPLE_RATE_HZ):
            raise ConfigurationError(f"Sample rate must be in the range [1, {MAX_SAMPLE_RATE_HZ}]")
        if not (0 <= self.overtones <= MAX_OVERTONES):
            raise ConfigurationError(f"Overtones must be in the range [0, {MAX_OVERTONES}]")
        if not isinstance(self.wave, WaveKind):
            raise ConfigurationError("invalid wave function")
        if self.append and self.output_path is None:
            raise ConfigurationError("Cannot append to standard output")

    @property
    def output_name(self) -> str:
        return "stdout" if self.output_path is None else str(self.output_path)
