"""ledgerbuild exception hierarchy.

Every fatal build condition derives from LedgerBuildError so the CLI can
turn it into a non-zero exit with one except clause.
"""

from __future__ import annotations

from pathlib import Path


class LedgerBuildError(Exception):
    """Base exception for all ledgerbuild errors."""

    def __init__(self, message: str = "", *, unit: str | None = None) -> None:
        super().__init__(message)
        self.unit = unit


class ConfigError(LedgerBuildError):
    """Invalid or missing configuration."""


class BundlerError(LedgerBuildError):
    """The underlying bundler failed, timed out or could not be started."""


class TemplateMissingError(LedgerBuildError):
    """A page's markup source or the shared template is missing."""


class ArtifactNotFoundError(LedgerBuildError):
    """A build finished without producing the expected file."""


class ServerSyntaxError(LedgerBuildError):
    """Transformed server code does not parse."""

    def __init__(
        self,
        message: str = "",
        *,
        unit: str | None = "server",
        diagnostic_path: Path | None = None,
    ) -> None:
        super().__init__(message, unit=unit)
        self.diagnostic_path = diagnostic_path


class ParserUnavailableError(LedgerBuildError):
    """tree-sitter or the JavaScript grammar cannot be loaded."""


class JsSyntaxError(LedgerBuildError):
    """The JavaScript parser reported an error."""

    def __init__(self, message: str = "", *, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line
