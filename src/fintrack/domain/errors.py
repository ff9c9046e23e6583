"""Error kinds surfaced to the user.

All of them are non-fatal: the shell shows the message and the next attempt
clears it.
"""

from __future__ import annotations

from enum import Enum


class FinTrackError(Exception):
    """Base class for user-visible FinTrack failures."""


class FileRejectedError(FinTrackError):
    """The chosen file is not a PDF."""


class FileReadError(FinTrackError):
    """The PDF could not be opened."""


class ExtractionErrorKind(str, Enum):
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_JSON = "malformed_json"
    SERVICE_FAILURE = "service_failure"  # network / auth / SDK errors


class ExtractionError(FinTrackError):
    def __init__(self, kind: ExtractionErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class SyncTransportError(FinTrackError):
    """DNS / connection level failure talking to the sheet endpoint."""


class InvalidEndpointError(FinTrackError):
    """The configured endpoint URL is not an http(s) address."""


class RemoteLoadError(FinTrackError):
    """The sheet's GET payload was not JSON or had an unknown shape."""


class OperationInProgress(FinTrackError):
    """The same kind of operation is already running."""
