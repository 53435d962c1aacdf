"""Start-or-connect orchestration.

The CLI (and any other entry point) asks for a client; this module decides
whether to download and launch a server or to use an already running one,
and guarantees the launched process is stopped afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable

import httpx

from adapters.archive_downloader import default_archive_path, download_server
from adapters.server import TikaServer
from adapters.tika_client import TikaClient
from core.config import AppSettings
from core.domain.errors import ConfigurationError
from core.interfaces.process import ProcessSpawner

logger = logging.getLogger(__name__)


@dataclass
class SessionRequest:
    """Where the server comes from."""

    server_url: str | None = None
    server_jar: Path | None = None
    download_version: str | None = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> SessionRequest:
        return cls(server_url=settings.server_url, server_jar=settings.server_jar)


@dataclass
class SessionHooks:
    """Optional callbacks for UI layers (status messages)."""

    status: Callable[[str], None] | None = None

    def emit(self, message: str) -> None:
        if self.status is not None:
            self.status(message)


def resolve_archive(request: SessionRequest, *, downloader=download_server) -> Path | None:
    """Download the archive if asked to and return the JAR to launch, if any."""

    jar = request.server_jar
    if request.download_version:
        jar = jar or default_archive_path(request.download_version)
        jar = downloader(request.download_version, jar)
    return jar


@asynccontextmanager
async def open_session(
    request: SessionRequest,
    settings: AppSettings | None = None,
    *,
    hooks: SessionHooks | None = None,
    spawner: ProcessSpawner | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[TikaClient]:
    """Yield a `TikaClient` connected to the requested server.

    A JAR (given or downloaded) takes precedence over `server_url`, as a
    fresh server is then launched and stopped on exit.
    """

    settings = settings or AppSettings()
    hooks = hooks or SessionHooks()

    jar = await asyncio.to_thread(resolve_archive, request)
    if jar is None and not request.server_url:
        raise ConfigurationError(
            "no server specified: set --server-url, --server-jar and/or --download-version"
        )

    if jar is None:
        logger.debug("using running server at %s", request.server_url)
        async with TikaClient(request.server_url or "", http_client, settings=settings) as client:
            yield client
        return

    server = TikaServer(
        jar,
        settings.server_config(),
        java=settings.java_path,
        spawner=spawner,
        http_client=http_client,
    )
    hooks.emit(f"Starting Tika server from {jar} on {server.url}")
    async with server:
        async with TikaClient(server.url, http_client, settings=settings) as client:
            yield client
