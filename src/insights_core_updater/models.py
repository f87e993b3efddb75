"""Data models for the Core updater.

All models are plain dataclasses with to_dict/from_dict for serialisation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

import httpx

from insights_core_updater.errors import HeaderDecodeError

ETAG_HEADER = "ETag"
LAST_MODIFIED_HEADER = "Last-Modified"


# ------------------------------------------------------------------
# Metadata
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ArtifactMetadata:
    """Cache-validation identity of the egg at one point in time.

    ``etag`` is opaque and only compared for equality. ``last_modified``
    is informational.
    """

    etag: str | None = None
    last_modified: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.etag is None and self.last_modified is None

    def to_dict(self) -> dict[str, Any]:
        return {"etag": self.etag, "last_modified": self.last_modified}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArtifactMetadata:
        """Build metadata from a decoded cache record.

        Raises ``ValueError`` when a field is present but isn't a string.
        """
        values: dict[str, str | None] = {}
        for key in ("etag", "last_modified"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{key} must be a string or null, got {type(value).__name__}")
            values[key] = value
        return cls(etag=values["etag"], last_modified=values["last_modified"])


def _header_value(headers: httpx.Headers, name: str) -> str | None:
    raw = headers.get_list(name)
    if not raw:
        return None
    value = raw[0]
    if not all(c == "\t" or " " <= c <= "~" for c in value):
        raise HeaderDecodeError(f"{name} header is not visible ASCII: {value!r}")
    return value


def extract_metadata(headers: Mapping[str, str] | httpx.Headers) -> ArtifactMetadata:
    """Read ETag and Last-Modified from response headers.

    Lookup is case-insensitive; absent headers become ``None``.
    """
    if not isinstance(headers, httpx.Headers):
        headers = httpx.Headers(headers)
    return ArtifactMetadata(
        etag=_header_value(headers, ETAG_HEADER),
        last_modified=_header_value(headers, LAST_MODIFIED_HEADER),
    )


def needs_update(cached: ArtifactMetadata, remote: ArtifactMetadata) -> bool:
    """Return True unless both sides carry the same ETag.

    A missing ETag on either side means we can't tell whether the egg
    changed, so it counts as changed.
    """
    if cached.etag is None or remote.etag is None:
        return True
    return cached.etag != remote.etag


# ------------------------------------------------------------------
# Artifact
# ------------------------------------------------------------------


@dataclass
class Artifact:
    """The downloaded egg with the metadata of the response that carried it."""

    metadata: ArtifactMetadata
    payload: bytes
    signature: bytes = b""


# ------------------------------------------------------------------
# Run result
# ------------------------------------------------------------------


class UpdateStatus(StrEnum):
    """Outcome of one updater invocation."""

    NOT_REGISTERED = "not_registered"
    NO_UPDATE = "no_update"
    AVAILABLE = "available"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class UpdateResult:
    """Result of an update run or check."""

    status: UpdateStatus
    cached: ArtifactMetadata = field(default_factory=ArtifactMetadata)
    remote: ArtifactMetadata | None = None
    core_path: Path | None = None
    error: str | None = None
    failed_stage: str | None = None
    steps_completed: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.status is UpdateStatus.FAILED else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "cached": self.cached.to_dict(),
            "remote": self.remote.to_dict() if self.remote is not None else None,
            "core_path": str(self.core_path) if self.core_path is not None else None,
            "error": self.error,
            "failed_stage": self.failed_stage,
            "steps_completed": self.steps_completed,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }
