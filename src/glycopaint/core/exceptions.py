"""Exception classes for the Glyco-PAINT core module."""


class AnalysisError(Exception):
    """Base exception for all analysis-related errors."""


class ConfigurationError(AnalysisError):
    """Raised when an analysis configuration cannot be used for a recording."""

    def __init__(self, message: str, recording: str | None = None) -> None:
        msg = f"{recording}: {message}" if recording else message
        super().__init__(msg)
        self.recording = recording


class InvalidInputError(AnalysisError, ValueError):
    """Raised when a calculation receives a physically meaningless input."""


class RecordingNotFoundError(AnalysisError):
    """Raised when referencing a recording that has no tracks."""

    def __init__(self, name: str | None = None) -> None:
        msg = f"Recording not found: {name}" if name else "Recording not found"
        super().__init__(msg)
        self.name = name
