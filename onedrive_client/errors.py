"""Exceptions raised by the OneDrive client.

An exhausted upload is not an exception: the transfer call returns ``None``.
"""

from __future__ import annotations


class OneDriveError(Exception):
    """Base class for all client exceptions."""


class NoCredentials(OneDriveError):
    """No access token, refresh token or authorization code is available.

    The caller has to run the interactive authorization flow first.
    """


class TokenRetrievalFailed(OneDriveError):
    """The token endpoint rejected an exchange."""

    def __init__(self, description: str | None = None, error: str | None = None) -> None:
        super().__init__(description or error or "Unable to retrieve an access token")
        self.description = description
        self.error = error


class InvalidResponse(OneDriveError):
    """A success response body could not be decoded into the expected shape."""

    def __init__(self, raw_text: str, error: Exception) -> None:
        super().__init__(f"Invalid response from OneDrive: {error}")
        self.raw_text = raw_text
        self.error = error


class Unauthorized(OneDriveError):
    """The service answered 401 while a transfer was running."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Unauthorized ({status_code}) for {url}")
        self.status_code = status_code
        self.url = url


class TransferCancelled(OneDriveError):
    """The cancellation event was set before the transfer finished."""
