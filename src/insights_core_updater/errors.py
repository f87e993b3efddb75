"""Exceptions raised while checking for and applying Core updates.

Every failure of an update run derives from ``UpdaterError``. The
``stage`` attribute names the step that failed (``fetch_core``,
``save_signature``, ...) so the orchestrator can log and report it.
"""

from __future__ import annotations


class UpdaterError(Exception):
    """Base exception for updater failures."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


class RemoteError(UpdaterError):
    """The remote origin could not provide what was asked for."""


class RemoteUnreachableError(RemoteError):
    """Transport-level failure: DNS, connect, TLS, protocol."""


class RemoteTimeoutError(RemoteUnreachableError):
    """A request did not complete within the configured timeout."""


class RemoteStatusError(RemoteError):
    """The origin answered with a non-success status code."""

    def __init__(self, message: str, status_code: int, stage: str | None = None) -> None:
        super().__init__(message, stage=stage)
        self.status_code = status_code


class RemoteBodyUnreadableError(RemoteError):
    """Headers or body could not be read after a successful connection."""


class HeaderDecodeError(RemoteBodyUnreadableError):
    """A header value is not visible ASCII."""


class LocalIOError(UpdaterError):
    """A local file could not be written."""


class CacheUnwritableError(LocalIOError):
    """The metadata cache record could not be written."""


class RegistrationUnknownError(UpdaterError):
    """Registration status could not be determined."""
