from __future__ import annotations

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from tonewav.app.writer import run
from tonewav.config.paths import default_settings_path
from tonewav.config.settings import SynthSettings, load_settings
from tonewav.core.waves import WaveKind
from tonewav.domain.errors import ConfigurationError, ToneWavError
from tonewav.domain.models import (
    MAX_AMPLITUDE_PERCENT,
    MAX_FREQUENCY_HZ,
    MAX_OVERTONES,
    MAX_SAMPLE_RATE_HZ,
    MIN_AMPLITUDE_PERCENT,
    MIN_FREQUENCY_HZ,
    UINT32_MAX,
    SynthConfig,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 1024 * 1024

logger = logging.getLogger(__name__)

_installed_handlers: list[logging.Handler] = []


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> None:
    """Attach a stderr handler and optionally a rotating file handler to the root logger.

    Calling it again replaces the handlers from the previous call. The file
    always receives INFO; stderr only does with ``verbose``.
    """
    reset_logging()
    root = logging.getLogger()

    # stderr only: stdout may be carrying the WAV stream.
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    console.setLevel(logging.INFO if verbose else logging.WARNING)
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        file_handler = RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=0)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.INFO)
        handlers.append(file_handler)

    for handler in handlers:
        root.addHandler(handler)
        _installed_handlers.append(handler)
    root.setLevel(logging.INFO if verbose or log_file is not None else logging.WARNING)


def reset_logging() -> None:
    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tonewav",
        description="Synthesize tones and write them as 16-bit mono PCM WAVE files.",
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "--config",
        type=Path,
        default=default_settings_path(),
        help="Path to settings JSON with default values (default: user config dir)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file")

    target = parser.add_mutually_exclusive_group()
    target.add_argument("-f", "--file", type=Path, help="Create (or overwrite) this file (default: stdout)")
    target.add_argument("-A", "--append", type=Path, help="Append samples to this existing file")

    parser.add_argument("-d", "--duration", help="Duration in milliseconds")
    parser.add_argument("-a", "--amplitude", help="Volume as a percentage of full scale")
    parser.add_argument("-s", "--sample-rate", help="Samples per second")
    parser.add_argument(
        "-w",
        "--wave-function",
        help="One of: " + ", ".join(k.value for k in WaveKind),
    )
    parser.add_argument("-o", "--overtones", help="Overtones to add above each frequency")
    parser.add_argument("frequencies", nargs="*", metavar="frequency", help="Fundamental in Hz")
    return parser


def parse_int_opt(value: str, name: str, lo: int, hi: int) -> int:
    try:
        result = int(value, 10)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer.") from None
    if not (lo <= result <= hi):
        raise ConfigurationError(f"{name} must be in the range [{lo}, {hi}].")
    return result


def parse_float_opt(value: str, name: str, lo: float, hi: float) -> float:
    try:
        result = float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number.") from None
    if not (lo <= result <= hi):
        raise ConfigurationError(f"{name} must be in the range [{lo:f}, {hi:f}].")
    return result


def parse_wave_opt(value: str) -> WaveKind:
    try:
        return WaveKind(value)
    except ValueError:
        names = ", ".join(repr(k.value) for k in WaveKind)
        raise ConfigurationError(f"Wave function must be one of {names}.") from None


def build_config(args: argparse.Namespace, settings: SynthSettings) -> SynthConfig:
    if not args.frequencies:
        raise ConfigurationError("At least one frequency required.")

    duration = settings.duration_ms
    if args.duration is not None:
        duration = parse_int_opt(args.duration, "Duration", 1, UINT32_MAX)
    amplitude = settings.amplitude_percent
    if args.amplitude is not None:
        amplitude = parse_float_opt(
            args.amplitude, "Amplitude", MIN_AMPLITUDE_PERCENT, MAX_AMPLITUDE_PERCENT
        )
    sample_rate = settings.sample_rate_hz
    if args.sample_rate is not None:
        sample_rate = parse_int_opt(args.sample_rate, "Sample rate", 1, MAX_SAMPLE_RATE_HZ)
    wave = settings.wave
    if args.wave_function is not None:
        wave = parse_wave_opt(args.wave_function)
    overtones = settings.overtones
    if args.overtones is not None:
        overtones = parse_int_opt(args.overtones, "Overtones", 0, MAX_OVERTONES)

    frequencies = tuple(
        parse_float_opt(f, "Frequency", MIN_FREQUENCY_HZ, MAX_FREQUENCY_HZ) for f in args.frequencies
    )

    return SynthConfig(
        frequencies=frequencies,
        duration_ms=duration,
        amplitude_percent=amplitude,
        sample_rate_hz=sample_rate,
        overtones=overtones,
        wave=wave,
        output_path=args.append if args.append is not None else args.file,
        append=args.append is not None,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__

        print(__version__)
        return 0

    configure_logging(verbose=args.verbose, log_file=args.log_file)
    try:
        return _run(parser, args)
    finally:
        reset_logging()


def _run(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    try:
        settings = _load_settings_or_default(args.config)
    except (OSError, ValueError) as exc:
        print(f"Error: {args.config}: invalid settings file: {exc}", file=sys.stderr, flush=True)
        return 1

    try:
        config = build_config(args, settings)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr, flush=True)
        parser.print_usage(sys.stderr)
        return 1

    try:
        header = run(config)
    except ToneWavError as exc:
        print(f"Error: {exc}", file=sys.stderr, flush=True)
        return 1

    logger.info("%s now holds %d data bytes", config.output_name, header.subchunk2_size)
    return 0


def _load_settings_or_default(path: Path) -> SynthSettings:
    if path.exists():
        return load_settings(path)
    return SynthSettings()


if __name__ == "__main__":
    raise SystemExit(main())
