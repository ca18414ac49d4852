"""
Exception classes used by carddav-bridge.
"""
from __future__ import annotations


class Error(Exception):
    """Baseclass for all errors."""


class UserError(Error, ValueError):
    """Signifies the traceback should not be shown to the user."""

    def __init__(self, msg: str, problems: list[str] | None = None):
        super().__init__(msg)
        self.problems = problems or []

    def __str__(self) -> str:
        msg = Error.__str__(self)
        for problem in self.problems:
            msg += f"\n  - {problem}"
        return msg


class ConfigError(UserError):
    """Configuration is unusable."""


class ConversionError(UserError):
    """Input could not be converted (e.g. it is not a vCard)."""


class TransportError(Error):
    """A resource could not be fetched from the server."""

    def __init__(self, msg: str, uri: str | None = None, status: int | None = None):
        super().__init__(msg)
        self.uri = uri
        self.status = status
