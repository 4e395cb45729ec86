from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tonewav.core.waves import WaveKind
from tonewav.domain.models import (
    MAX_AMPLITUDE_PERCENT,
    MAX_OVERTONES,
    MAX_SAMPLE_RATE_HZ,
    MIN_AMPLITUDE_PERCENT,
    UINT32_MAX,
)

DEFAULT_DURATION_MS = 1000
DEFAULT_AMPLITUDE_PERCENT = 33.333333
DEFAULT_SAMPLE_RATE_HZ = 44100
DEFAULT_OVERTONES = 0


@dataclass(slots=True)
class SynthSettings:
    """User defaults applied before command-line flags."""

    duration_ms: int = DEFAULT_DURATION_MS
    amplitude_percent: float = DEFAULT_AMPLITUDE_PERCENT
    sample_rate_hz: int = DEFAULT_SAMPLE_RATE_HZ
    wave: WaveKind = WaveKind.SINE
    overtones: int = DEFAULT_OVERTONES

    def validate(self) -> None:
        if not (1 <= self.duration_ms <= UINT32_MAX):
            raise ValueError(f"duration_ms must be in 1..{UINT32_MAX}")
        if not (MIN_AMPLITUDE_PERCENT <= self.amplitude_percent <= MAX_AMPLITUDE_PERCENT):
            raise ValueError("amplitude_percent must be in 100/32767..100")
        if not (1 <= self.sample_rate_hz <= MAX_SAMPLE_RATE_HZ):
            raise ValueError(f"sample_rate_hz must be in 1..{MAX_SAMPLE_RATE_HZ}")
        if not isinstance(self.wave, WaveKind):
            raise ValueError("invalid wave function")
        if not (0 <= self.overtones <= MAX_OVERTONES):
            raise ValueError(f"overtones must be in 0..{MAX_OVERTONES}")


def to_dict(settings: SynthSettings) -> dict[str, Any]:
    return {
        "duration_ms": settings.duration_ms,
        "amplitude_percent": settings.amplitude_percent,
        "sample_rate_hz": settings.sample_rate_hz,
        "wave": settings.wave.value,
        "overtones": settings.overtones,
    }


def from_dict(data: dict[str, Any]) -> SynthSettings:
    try:
        settings = SynthSettings(
            duration_ms=int(data.get("duration_ms", DEFAULT_DURATION_MS)),
            amplitude_percent=float(data.get("amplitude_percent", DEFAULT_AMPLITUDE_PERCENT)),
            sample_rate_hz=int(data.get("sample_rate_hz", DEFAULT_SAMPLE_RATE_HZ)),
            wave=WaveKind(data.get("wave", WaveKind.SINE.value)),
            overtones=int(data.get("overtones", DEFAULT_OVERTONES)),
        )
    except TypeError as exc:
        raise ValueError(f"invalid settings value: {exc}") from exc
    settings.validate()
    return settings


def load_settings(path: Path) -> SynthSettings:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("settings file must contain a JSON object")
    return from_dict(raw)


def save_settings(path: Path, settings: SynthSettings) -> None:
    settings.validate()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(to_dict(settings), indent=2), encoding="utf-8")
