"""Lifecycle of a locally launched Tika server.

`TikaServer` spawns `java -jar <jar> -p <port>`, waits for `/version` to
answer and owns the process until `stop()`. There is no need for a
`TikaServer` when a server is already running: pass its URL straight to a
`TikaClient`.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from adapters.readiness import wait_until_ready
from adapters.tika_client import TikaClient
from core.config import AppSettings, ServerConfig
from core.domain.errors import ConfigurationError, ServerStateError, StartupError
from core.domain.models import ServerState
from core.interfaces.process import ManagedProcess, ProcessSpawner

logger = logging.getLogger(__name__)

_STDERR_LIMIT = 64 * 1024
_STDERR_DRAIN_TIMEOUT = 2.0


class TikaServer:
    """A Tika server process owned by this object.

    Usage::

        async with TikaServer("tika-server.jar") as server:
            async with server.client() as client:
                print(await client.version())

    `spawner` replaces `asyncio.create_subprocess_exec` (tests inject a
    fake). `http_client` is used for the readiness poll and left open.
    """

    def __init__(
        self,
        jar: str | Path,
        config: ServerConfig | None = None,
        *,
        java: str = "java",
        spawner: ProcessSpawner | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not jar:
            raise ConfigurationError("no jar file specified")
        self._jar = Path(jar)
        if not self._jar.is_file():
            raise ConfigurationError(f"jar file not found: {jar}")

        self._config = config or ServerConfig()
        url_string = f"http://{self._config.hostname}:{self._config.port}"
        try:
            url = httpx.URL(url_string)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"invalid url {url_string!r}: {exc}") from exc
        if not url.host:
            raise ConfigurationError(f"invalid url {url_string!r}: missing host")
        self._url = str(url).rstrip("/")

        self._java = java
        self._spawner: ProcessSpawner = spawner or asyncio.create_subprocess_exec
        self._http_client = http_client

        self._state = ServerState.CREATED
        self._process: ManagedProcess | None = None
        self._stderr = bytearray()
        self._stderr_task: asyncio.Task[None] | None = None
        self._exit_task: asyncio.Task[None] | None = None
        self._exited = asyncio.Event()
        self._stop_lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def stderr_output(self) -> str:
        """Most recent stderr output of the process (bounded)."""

        return self._stderr.decode("utf-8", errors="replace")

    def client(self, settings: AppSettings | None = None) -> TikaClient:
        return TikaClient(self._url, settings=settings)

    def command(self) -> list[str]:
        return [self._java, "-jar", str(self._jar), "-p", str(self._config.port)]

    async def start(self) -> str:
        """Spawn the process and wait until it answers; return its version.

        On failure the process is killed and `StartupError` carries both the
        poll failure and the captured stderr.
        """

        if self._state is not ServerState.CREATED:
            raise ServerStateError(f"start called on a {self._state.value} server")
        self._state = ServerState.STARTING

        argv = self.command()
        logger.info("starting server: %s", " ".join(argv))
        try:
            self._process = await self._spawner(
                argv[0],
                *argv[1:],
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            self._state = ServerState.FAILED
            raise StartupError(f"could not start {self._java}: {exc}") from exc

        self._stderr_task = asyncio.create_task(self._drain_stderr())
        self._exit_task = asyncio.create_task(self._watch_exit())

        client = TikaClient(self._url, self._http_client)
        try:
            version = await wait_until_ready(
                client,
                timeout=self._config.startup_timeout,
                interval=self._config.poll_interval,
                cancel=self._exited,
                cancel_reason="server process exited",
            )
        except StartupError as exc:
            reason = exc.reason
            if self._process.returncode is not None:
                reason = f"server process exited with code {self._process.returncode} before becoming ready"
            await self._kill()
            self._state = ServerState.FAILED
            stderr = await self._finish_tasks()
            logger.error("server at %s failed to start: %s", self._url, reason)
            raise StartupError(reason, stderr=stderr) from exc
        except BaseException:
            await self._kill()
            self._state = ServerState.FAILED
            await self._finish_tasks()
            raise
        finally:
            await client.aclose()

        self._state = ServerState.READY
        return version

    async def stop(self) -> int | None:
        """Terminate the process and wait for it; return its exit code.

        Calling `stop()` on a server that was never spawned raises
        `ServerStateError`. Repeated calls return the same exit code.
        """

        if self._process is None:
            raise ServerStateError("stop called on a server that was never started")

        async with self._stop_lock:
            if self._state is ServerState.STOPPED:
                return self._process.returncode

            if self._process.returncode is None:
                logger.info("stopping server at %s (pid %s)", self._url, self._process.pid)
                try:
                    self._process.terminate()
                except ProcessLookupError:
                    pass
                try:
                    await asyncio.wait_for(self._process.wait(), timeout=self._config.stop_timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        "server did not exit within %gs, killing it", self._config.stop_timeout
                    )
                    await self._kill()

            await self._finish_tasks()
            self._state = ServerState.STOPPED
            return self._process.returncode

    async def __aenter__(self) -> TikaServer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._process is not None:
            await self.stop()

    async def _kill(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()

    async def _drain_stderr(self) -> None:
        # Keep only the last _STDERR_LIMIT bytes.
        assert self._process is not None
        stream = self._process.stderr
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            self._stderr += chunk
            if len(self._stderr) > _STDERR_LIMIT:
                del self._stderr[:-_STDERR_LIMIT]

    async def _watch_exit(self) -> None:
        assert self._process is not None
        code = await self._process.wait()
        logger.debug("server process exited with code %s", code)
        self._exited.set()

    async def _finish_tasks(self) -> str:
        """Wait for the stderr pipe to reach EOF and return what it held."""

        if self._exit_task is not None and not self._exit_task.done():
            self._exit_task.cancel()
        if self._stderr_task is not None:
            try:
                await asyncio.wait_for(self._stderr_task, timeout=_STDERR_DRAIN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.debug("stderr of %s still open after exit", self._url)
        return self.stderr_output
