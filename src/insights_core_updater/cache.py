"""Local persistence for the egg, its signature and the metadata record.

Writes go to a temporary sibling file which is flushed, fsynced and then
renamed over the target, so a target is either the old content or the new
content, never a torn mix.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from insights_core_updater.errors import CacheUnwritableError, LocalIOError
from insights_core_updater.logging import get_logger
from insights_core_updater.models import ArtifactMetadata

log = get_logger("insights_core_updater.cache")


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        with open(tmp_path, "wb") as fp:
            fp.write(data)
            fp.flush()
            os.fsync(fp.fileno())
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def load_metadata(path: Path) -> ArtifactMetadata:
    """Read the cached metadata record.

    Never raises: a missing, unreadable or malformed record yields empty
    metadata, which makes the next comparison fetch the egg.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log.debug("cache_file_missing", path=str(path))
        return ArtifactMetadata()
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("cache_file_unreadable", path=str(path), error=str(exc))
        return ArtifactMetadata()

    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        metadata = ArtifactMetadata.from_dict(data)
    except (ValueError, RecursionError) as exc:
        log.warning("cache_file_unparsable", path=str(path), error=str(exc))
        return ArtifactMetadata()

    log.debug("cache_read", path=str(path), **metadata.to_dict())
    return metadata


def save_metadata(metadata: ArtifactMetadata, path: Path) -> None:
    """Write the metadata record, replacing any previous one."""
    content = json.dumps(metadata.to_dict(), indent=2, sort_keys=True) + "\n"
    try:
        _atomic_write(path, content.encode("utf-8"))
    except OSError as exc:
        raise CacheUnwritableError(
            f"Could not write cache file {path}: {exc}", stage="save_cache"
        ) from exc
    log.debug("cache_written", path=str(path), **metadata.to_dict())


def save_bytes(data: bytes, path: Path, stage: str = "save_bytes") -> None:
    """Write *data* to *path*, creating or replacing the file."""
    try:
        _atomic_write(path, data)
    except OSError as exc:
        raise LocalIOError(f"Could not write {path}: {exc}", stage=stage) from exc
    log.debug("file_written", path=str(path), size=len(data))
