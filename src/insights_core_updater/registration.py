"""Host registration checks.

Core updates are only fetched for hosts registered through RHSM
(consumer certificate and key present) and insights-client (``.registered``
marker present).
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from insights_core_updater.logging import get_logger

log = get_logger("insights_core_updater.registration")

IDENTITY_FILES = ("cert.pem", "key.pem")
REGISTERED_MARKER = ".registered"


class RegistrationState(StrEnum):
    REGISTERED = "registered"
    NOT_REGISTERED = "not_registered"
    UNKNOWN = "unknown"


def _file_exists(path: Path) -> bool:
    """Return whether *path* exists; other OS errors propagate."""
    try:
        path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return False
    return True


def check_registration(identity_dir: Path, client_dir: Path) -> RegistrationState:
    """Determine whether this host may fetch Core updates."""
    try:
        for name in IDENTITY_FILES:
            if not _file_exists(identity_dir / name):
                log.debug("rhsm_identity_missing", path=str(identity_dir / name))
                return RegistrationState.NOT_REGISTERED
        log.debug("rhsm_identity_found", directory=str(identity_dir))

        marker = client_dir / REGISTERED_MARKER
        if not _file_exists(marker):
            log.debug("registered_marker_missing", path=str(marker))
            return RegistrationState.NOT_REGISTERED
        log.debug("registered_marker_found", path=str(marker))
    except OSError as exc:
        log.error("registration_check_failed", error=str(exc))
        return RegistrationState.UNKNOWN

    return RegistrationState.REGISTERED


def is_registered(identity_dir: Path, client_dir: Path) -> bool:
    """Return True if the system is registered and can fetch Core updates."""
    return check_registration(identity_dir, client_dir) is RegistrationState.REGISTERED
