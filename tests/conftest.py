"""Shared fixtures.

Tests never touch the network or spawn Java: HTTP goes through
`httpx.MockTransport` and processes through a fake spawner.
"""

from __future__ import annotations

import asyncio
from typing import Callable

import httpx
import pytest

from adapters.tika_client import TikaClient

BASE_URL = "http://localhost:9998"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep developer .env files and TIKA_D2_* variables out of the tests."""

    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    for var in (
        "TIKA_D2_SERVER_URL",
        "TIKA_D2_SERVER_JAR",
        "TIKA_D2_PORT",
        "TIKA_D2_HOSTNAME",
        "TIKA_D2_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


def mock_http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def mock_client(handler: Callable[[httpx.Request], httpx.Response], base_url: str = BASE_URL) -> TikaClient:
    return TikaClient(base_url, mock_http(handler))


class FakeProcess:
    """Stands in for `asyncio.subprocess.Process`."""

    def __init__(self, stderr: bytes = b"", exit_code: int | None = None) -> None:
        self.pid = 4242
        self.returncode: int | None = None
        self.stderr = asyncio.StreamReader()
        self.stderr.feed_data(stderr)
        self.terminated = False
        self.killed = False
        self._exited = asyncio.Event()
        if exit_code is not None:
            self._exit(exit_code)

    def _exit(self, code: int) -> None:
        if self.returncode is None:
            self.returncode = code
            self.stderr.feed_eof()
            self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self._exit(-15)

    def kill(self) -> None:
        self.killed = True
        self._exit(-9)


class FakeSpawner:
    def __init__(self, factory: Callable[[], FakeProcess] = FakeProcess) -> None:
        self._factory = factory
        self.calls: list[tuple[str, ...]] = []
        self.kwargs: dict = {}
        self.process: FakeProcess | None = None

    async def __call__(self, program: str, *args: str, **kwargs) -> FakeProcess:
        self.calls.append((program, *args))
        self.kwargs = kwargs
        self.process = self._factory()
        return self.process


@pytest.fixture
def jar(tmp_path):
    path = tmp_path / "tika-server.jar"
    path.write_bytes(b"PK\x03\x04 fake jar")
    return path
