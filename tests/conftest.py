"""Shared fixtures for the updater test suite."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from insights_core_updater.client import CoreClient
from insights_core_updater.config import Settings, get_settings

ORIGIN = "https://origin.test/api/v1/static/release/"
LAST_MODIFIED = "Wed, 01 Oct 2026 10:00:00 GMT"


class FakeOrigin:
    """In-memory stand-in for the release origin, served via MockTransport."""

    def __init__(self) -> None:
        self.etag: str | None = '"xyz"'
        self.last_modified: str | None = LAST_MODIFIED
        self.body = b"NEW-EGG"
        self.signature = b"NEW-SIG"
        self.core_status = 200
        self.signature_status = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith(".asc"):
            if self.signature_status != 200:
                return httpx.Response(self.signature_status)
            return httpx.Response(200, content=self.signature)

        if self.core_status != 200:
            return httpx.Response(self.core_status)
        headers = {}
        if self.etag is not None:
            headers["ETag"] = self.etag
        if self.last_modified is not None:
            headers["Last-Modified"] = self.last_modified
        if request.method == "HEAD":
            return httpx.Response(200, headers=headers)
        return httpx.Response(200, headers=headers, content=self.body)

    @property
    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings with every local path inside tmp_path."""
    return Settings(
        _env_file=None,
        rhsm_identity_directory=tmp_path / "pki" / "consumer",
        client_config_directory=tmp_path / "insights-client",
        api_uri=ORIGIN,
        core_file_path=tmp_path / "out" / "insights-core.egg",
        signature_file_path=tmp_path / "out" / "insights-core.egg.asc",
        cache_file_path=tmp_path / "out" / "insights-core-updater.cache",
        log_file_path=tmp_path / "log" / "insights-core-updater.log",
        request_timeout=5,
    )


@pytest.fixture()
def registered(settings: Settings) -> Settings:
    """Create RHSM identity files and the .registered marker."""
    settings.rhsm_identity_directory.mkdir(parents=True)
    (settings.rhsm_identity_directory / "cert.pem").write_text("cert")
    (settings.rhsm_identity_directory / "key.pem").write_text("key")
    settings.client_config_directory.mkdir(parents=True)
    (settings.client_config_directory / ".registered").touch()
    return settings


@pytest.fixture()
def origin() -> FakeOrigin:
    return FakeOrigin()


@pytest_asyncio.fixture
async def core_client(origin: FakeOrigin) -> AsyncIterator[CoreClient]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(origin.handler))
    yield CoreClient(user_agent="insights-core-updater/test", timeout=5, http_client=http_client)
    await http_client.aclose()
