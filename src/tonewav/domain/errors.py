from __future__ import annotations


class ToneWavError(Exception):
    """Base class for every fatal condition raised by the library."""


class ConfigurationError(ToneWavError, ValueError):
    pass


class SampleCountOverflowError(ToneWavError, OverflowError):
    pass


class StreamIOError(ToneWavError, OSError):
    action = "I/O"

    def __init__(self, target: str, detail: str | None = None) -> None:
        self.target = target
        self.detail = detail
        message = f"{target}: {self.action} failed"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class ReadFailure(StreamIOError):
    action = "Read"


class WriteFailure(StreamIOError):
    action = "Write"


class SeekFailure(StreamIOError):
    action = "Seek"


class HeaderCorruptionError(ToneWavError):
    def __init__(self, field: str, expected: object, actual: object) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Corrupt header field {field!r}: expected {expected!r}, found {actual!r}")
