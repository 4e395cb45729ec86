from __future__ import annotations

import contextlib
import logging
import sys
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator

import numpy as np

from tonewav.core import container
from tonewav.core.byteio import CheckedStream
from tonewav.core.synth import expand_frequencies, get_num_samples, synthesize
from tonewav.core.waves import get_wave_function
from tonewav.domain.errors import ConfigurationError, WriteFailure
from tonewav.domain.models import SynthConfig

logger = logging.getLogger(__name__)


def render_samples(config: SynthConfig) -> np.ndarray:
    num_samples = get_num_samples(config.duration_ms, config.sample_rate_hz)
    frequencies = expand_frequencies(config.frequencies, config.overtones)
    logger.info(
        "Rendering %d samples of %s wave over %d frequencies",
        num_samples,
        config.wave.value,
        len(frequencies),
    )
    return synthesize(
        frequencies,
        config.amplitude_percent,
        num_samples,
        get_wave_function(config.wave),
        sample_rate_hz=config.sample_rate_hz,
    )


@dataclass(slots=True)
class SoundFileWriter:
    config: SynthConfig
    stdout: BinaryIO | None = field(default=None, repr=False)

    def write(self, samples: np.ndarray) -> container.WavHeader:
        with self._open() as stream:
            if self.config.append:
                return container.append(stream, samples, self.config.sample_rate_hz)
            return container.create(stream, samples, self.config.sample_rate_hz)

    @contextlib.contextmanager
    def _open(self) -> Iterator[CheckedStream]:
        name = self.config.output_name
        path = self.config.output_path
        if path is None:
            yield CheckedStream(self.stdout or sys.stdout.buffer, name)
            return

        if self.config.append and not path.exists():
            raise ConfigurationError(f"{name}: cannot append to a file that does not exist")

        mode = "r+b" if self.config.append else "wb"
        try:
            fileobj = open(path, mode)
        except OSError as exc:
            raise WriteFailure(name, exc.strerror or str(exc)) from exc
        with fileobj:
            yield CheckedStream(fileobj, name)


def run(config: SynthConfig, *, stdout: BinaryIO | None = None) -> container.WavHeader:
    """Synthesize ``config`` and write it, creating or appending as requested."""
    samples = render_samples(config)
    return SoundFileWriter(config, stdout=stdout).write(samples)
