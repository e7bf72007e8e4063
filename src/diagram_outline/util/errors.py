from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    MANIFEST_ERROR = 3
    FETCH_ERROR = 4
    RUNTIME_ERROR = 5


class OutlineError(Exception):
    """Base error for outline derivation."""


class ConfigError(OutlineError):
    """Raised for configuration or argument issues."""


class ManifestError(OutlineError):
    """Raised when the diagram manifest cannot be loaded or is malformed."""


class FetchError(OutlineError):
    """Raised when a diagram's source text cannot be retrieved."""


class RenderError(OutlineError):
    """Raised when the external rendering backend fails."""


class AggregateBuildError(OutlineError):
    """Raised when the combined outline build fails outside per-diagram handling."""


class ExportError(OutlineError):
    """Raised when writing outline artifacts fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, ManifestError):
        return int(ExitCode.MANIFEST_ERROR)
    if isinstance(exc, FetchError):
        return int(ExitCode.FETCH_ERROR)
    if isinstance(exc, (RenderError, AggregateBuildError, ExportError, OutlineError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
