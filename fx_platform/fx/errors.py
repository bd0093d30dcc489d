"""Error taxonomy for rate lookups.

None of these escape ``ConversionService``: each is caught by the tier that
raised it and turned into a fall-through to the next tier plus a log entry.
"""

from __future__ import annotations


class FxError(Exception):
    """Base class for recoverable rate-lookup failures."""


class NetworkError(FxError):
    """The provider request could not be sent, or came back with an unexpected status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RateUnavailableError(FxError):
    """The provider answered, but has no rates for the requested date."""


class InvalidResponseError(FxError):
    """The provider answered with a body that is not a usable rate map."""


class SettingsUnavailableError(FxError):
    """The target (reporting) currency could not be determined."""
