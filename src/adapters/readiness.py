"""Readiness polling for a freshly launched server."""

from __future__ import annotations

import asyncio
import logging

from adapters.tika_client import TikaClient
from core.domain.errors import StartupError, TikaError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


async def wait_until_ready(
    client: TikaClient,
    *,
    timeout: float,
    interval: float = DEFAULT_POLL_INTERVAL,
    cancel: asyncio.Event | None = None,
    cancel_reason: str = "readiness poll cancelled",
) -> str:
    """Poll `/version` until it answers 2xx and return the version string.

    Each attempt races `cancel`, and between attempts the poller waits
    `interval` seconds on it, so setting the event aborts the poll at once
    even while a request is in flight. On deadline the raised
    `StartupError` describes the last failed attempt (and chains it).
    """

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    cancel = cancel or asyncio.Event()
    last_error: TikaError | None = None
    attempts = 0

    while True:
        if cancel.is_set():
            raise StartupError(cancel_reason) from last_error

        attempts += 1
        attempt = asyncio.ensure_future(client.version())
        cancelled = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {attempt, cancelled},
                timeout=max(deadline - loop.time(), 0.001),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (attempt, cancelled):
                if not task.done():
                    task.cancel()
            await asyncio.wait({attempt, cancelled})

        if attempt in done:
            try:
                version = attempt.result()
            except TikaError as exc:
                last_error = exc
                logger.debug("readiness attempt %d against %s failed: %s", attempts, client.url, exc)
            else:
                logger.info("server at %s ready after %d attempt(s): %s", client.url, attempts, version.strip())
                return version
        elif cancelled in done:
            # Set while a request was still in flight.
            raise StartupError(cancel_reason) from last_error

        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        try:
            await asyncio.wait_for(cancel.wait(), timeout=min(interval, remaining))
        except asyncio.TimeoutError:
            pass

    if cancel.is_set():
        raise StartupError(cancel_reason) from last_error
    if last_error is None:
        raise StartupError(f"no response from {client.url} within {timeout:g}s")
    raise StartupError(
        f"server at {client.url} not ready after {timeout:g}s ({attempts} attempts): {last_error}"
    ) from last_error
