"""Error taxonomy shared by the transform pipeline and the analyzer."""

from typing import Optional


class ImageOptimizerError(Exception):
    """Base class; carries the name of the file being processed, if any."""

    def __init__(self, message: str, file_name: Optional[str] = None):
        self.file_name = file_name
        if file_name:
            message = f"{file_name}: {message}"
        super().__init__(message)


class DecodeError(ImageOptimizerError):
    """Input bytes could not be parsed as an image."""


class SurfaceError(ImageOptimizerError):
    """A drawing surface could not be allocated. Not retryable."""


class EncodeError(ImageOptimizerError):
    """The encoder rejected the target format/quality combination."""


class SettingsError(ImageOptimizerError, ValueError):
    """Optimization settings failed validation at the boundary."""
