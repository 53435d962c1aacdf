"""Contracts for spawning the server process.

Why Protocol:
- `TikaServer` only needs a handful of operations from a child process.
- The spawning strategy is injected at construction, so tests provide a fake
  process instead of patching `asyncio` globally.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ManagedProcess(Protocol):
    """The subset of `asyncio.subprocess.Process` used by the launcher."""

    pid: int | None
    returncode: int | None
    stderr: asyncio.StreamReader | None

    async def wait(self) -> int:
        ...

    def terminate(self) -> None:
        ...

    def kill(self) -> None:
        ...


class ProcessSpawner(Protocol):
    """Starts `program` with `args`; same signature as
    `asyncio.create_subprocess_exec`."""

    async def __call__(self, program: str, *args: str, **kwargs: Any) -> ManagedProcess:
        ...
