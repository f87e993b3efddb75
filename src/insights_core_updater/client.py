"""HTTP client for the Core release origin.

``probe`` issues a HEAD request and returns only the metadata.
``fetch_artifact`` and ``fetch_signature`` download full bodies into memory.
Failures are raised as ``RemoteError`` subclasses; nothing is retried.
"""

from __future__ import annotations

import asyncio
import time
from types import TracebackType

import httpx

from insights_core_updater.errors import (
    HeaderDecodeError,
    RemoteBodyUnreadableError,
    RemoteStatusError,
    RemoteTimeoutError,
    RemoteUnreachableError,
)
from insights_core_updater.logging import get_logger
from insights_core_updater.models import Artifact, ArtifactMetadata, extract_metadata

log = get_logger("insights_core_updater.client")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class CoreClient:
    """Talks to the origin that publishes the Core egg.

    Can be used as an async context manager. An ``http_client`` passed in
    is borrowed and not closed by ``close()``.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        signature_suffix: str = ".asc",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._user_agent = user_agent
        self._timeout = timeout
        self._signature_suffix = signature_suffix
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> CoreClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client if we created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._user_agent}

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def probe(self, url: str) -> ArtifactMetadata:
        """HEAD *url* and return the metadata from its headers."""
        log.debug("core_probe", url=url)
        client = self._get_client()
        try:
            async with asyncio.timeout(self._timeout):
                resp = await client.head(url, headers=self._headers)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteTimeoutError(
                f"Timed out after {self._timeout}s querying {url}", stage="probe"
            ) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise RemoteUnreachableError(f"Could not query {url}: {exc}", stage="probe") from exc

        self._check_status(resp, url, "probe")
        metadata = extract_metadata(resp.headers)
        log.info("core_probed", url=url, **metadata.to_dict())
        return metadata

    async def fetch_artifact(self, url: str) -> Artifact:
        """Download the egg at *url* together with its response metadata."""
        start = time.perf_counter()
        metadata, payload = await self._fetch_body(url, "fetch_core")
        log.info(
            "core_received",
            url=url,
            size=len(payload),
            duration_ms=_elapsed_ms(start),
            **metadata.to_dict(),
        )
        return Artifact(metadata=metadata, payload=payload)

    async def fetch_signature(self, url: str) -> bytes:
        """Download the detached signature of the egg at *url*."""
        signature_url = f"{url}{self._signature_suffix}"
        start = time.perf_counter()
        _, signature = await self._fetch_body(signature_url, "fetch_signature")
        log.info(
            "signature_received",
            url=signature_url,
            size=len(signature),
            duration_ms=_elapsed_ms(start),
        )
        return signature

    async def _fetch_body(self, url: str, stage: str) -> tuple[ArtifactMetadata, bytes]:
        log.debug("core_download", url=url, stage=stage)
        client = self._get_client()
        try:
            async with asyncio.timeout(self._timeout):
                async with client.stream("GET", url, headers=self._headers) as resp:
                    self._check_status(resp, url, stage)
                    try:
                        metadata = extract_metadata(resp.headers)
                    except HeaderDecodeError as exc:
                        raise HeaderDecodeError(exc.message, stage=stage) from exc
                    try:
                        body = await resp.aread()
                    except httpx.TimeoutException:
                        raise
                    except httpx.HTTPError as exc:
                        raise RemoteBodyUnreadableError(
                            f"Could not read data from {url}: {exc}", stage=stage
                        ) from exc
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteTimeoutError(
                f"Timed out after {self._timeout}s downloading {url}", stage=stage
            ) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise RemoteUnreachableError(f"Could not query {url}: {exc}", stage=stage) from exc

        return metadata, body

    @staticmethod
    def _check_status(resp: httpx.Response, url: str, stage: str) -> None:
        if resp.is_success:
            return
        raise RemoteStatusError(
            f"{url} answered {resp.status_code} {resp.reason_phrase}".rstrip(),
            status_code=resp.status_code,
            stage=stage,
        )
