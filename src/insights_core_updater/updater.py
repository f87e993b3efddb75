"""Check-and-update cycle for the Core egg.

One ``run()`` performs:

1. Registration gate, no network traffic unless the host is registered
2. Load the cached metadata record
3. Download the egg and read its ETag off the same response
4. Stop if the ETag matches the cached one
5. Download the detached signature
6. Save egg, signature and metadata record, in that order

Any failure aborts the run. The cache record is written last, so an
interrupted run leaves a stale record and the next run downloads again.
"""

from __future__ import annotations

from datetime import UTC, datetime

from insights_core_updater.cache import load_metadata, save_bytes, save_metadata
from insights_core_updater.client import CoreClient
from insights_core_updater.config import Settings
from insights_core_updater.errors import RegistrationUnknownError, UpdaterError
from insights_core_updater.logging import get_logger
from insights_core_updater.models import (
    Artifact,
    UpdateResult,
    UpdateStatus,
    needs_update,
)
from insights_core_updater.registration import RegistrationState, check_registration

log = get_logger("insights_core_updater.updater")


class CoreUpdater:
    """Keeps the local egg in sync with the origin."""

    def __init__(self, settings: Settings, client: CoreClient | None = None) -> None:
        self._settings = settings
        self._client = client

    def _get_client(self) -> CoreClient:
        if self._client is None:
            self._client = CoreClient(
                user_agent=self._settings.user_agent,
                timeout=self._settings.request_timeout,
                signature_suffix=self._settings.signature_suffix,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def run(self) -> UpdateResult:
        """Fetch the egg and save it if its ETag differs from the cached one."""
        result = UpdateResult(status=UpdateStatus.FAILED)
        stage = "registration"
        try:
            if not self._registered():
                result.status = UpdateStatus.NOT_REGISTERED
                return result
            result.steps_completed.append("registration")

            stage = "load_cache"
            result.cached = load_metadata(self._settings.cache_file_path)
            result.steps_completed.append("load_cache")

            stage = "fetch_core"
            core = await self._get_client().fetch_artifact(self._settings.artifact_url)
            result.remote = core.metadata
            result.steps_completed.append("fetch_core")

            if not needs_update(result.cached, core.metadata):
                log.info("etag_match", etag=core.metadata.etag)
                result.status = UpdateStatus.NO_UPDATE
                return result
            log.debug(
                "core_changed",
                last_modified=core.metadata.last_modified or "?",
                etag=core.metadata.etag or "?",
                cached_etag=result.cached.etag or "?",
            )

            stage = "fetch_signature"
            core.signature = await self._get_client().fetch_signature(self._settings.artifact_url)
            result.steps_completed.append("fetch_signature")

            stage = "save_core"
            self._commit(core, result)

            result.status = UpdateStatus.UPDATED
            result.core_path = self._settings.core_file_path
            log.info(
                "core_updated",
                path=str(self._settings.core_file_path),
                etag=core.metadata.etag,
            )
            return result

        except UpdaterError as exc:
            result.status = UpdateStatus.FAILED
            result.error = exc.message
            result.failed_stage = exc.stage or stage
            log.error(
                "core_update_failed",
                stage=result.failed_stage,
                error=exc.message,
                error_type=type(exc).__name__,
            )
            return result
        finally:
            result.completed_at = datetime.now(UTC).isoformat()

    def _commit(self, core: Artifact, result: UpdateResult) -> None:
        """Persist egg, then signature, then the metadata record."""
        save_bytes(core.payload, self._settings.core_file_path, stage="save_core")
        result.steps_completed.append("save_core")

        save_bytes(core.signature, self._settings.signature_file_path, stage="save_signature")
        result.steps_completed.append("save_signature")

        save_metadata(core.metadata, self._settings.cache_file_path)
        result.steps_completed.append("save_cache")

    # ------------------------------------------------------------------
    # Check
    # ------------------------------------------------------------------

    async def check(self) -> UpdateResult:
        """Report whether an update is available without downloading it."""
        result = UpdateResult(status=UpdateStatus.FAILED)
        stage = "registration"
        try:
            if not self._registered():
                result.status = UpdateStatus.NOT_REGISTERED
                return result
            result.steps_completed.append("registration")

            stage = "load_cache"
            result.cached = load_metadata(self._settings.cache_file_path)
            result.steps_completed.append("load_cache")

            stage = "probe"
            result.remote = await self._get_client().probe(self._settings.artifact_url)
            result.steps_completed.append("probe")

            if needs_update(result.cached, result.remote):
                result.status = UpdateStatus.AVAILABLE
            else:
                result.status = UpdateStatus.NO_UPDATE
            log.info("core_checked", status=result.status.value, etag=result.remote.etag)
            return result

        except UpdaterError as exc:
            result.status = UpdateStatus.FAILED
            result.error = exc.message
            result.failed_stage = exc.stage or stage
            log.error(
                "core_check_failed",
                stage=result.failed_stage,
                error=exc.message,
                error_type=type(exc).__name__,
            )
            return result
        finally:
            result.completed_at = datetime.now(UTC).isoformat()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _registered(self) -> bool:
        """Return True if registered, False if not; raise if undeterminable."""
        state = check_registration(
            self._settings.rhsm_identity_directory,
            self._settings.client_config_directory,
        )
        if state is RegistrationState.UNKNOWN:
            raise RegistrationUnknownError(
                "Could not determine registration status", stage="registration"
            )
        if state is RegistrationState.NOT_REGISTERED:
            log.info("not_registered")
            return False
        return True
