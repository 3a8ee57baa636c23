"""Readiness wait over several descriptors, cancellable by a stop event."""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Mapping
from typing import Protocol


class ReadinessSource(Protocol):
    def fileno(self) -> int:
        """Descriptor to watch, or a negative value to skip the source."""
        ...

    def pending(self) -> bool:
        """True when data is already buffered and no wait is needed."""
        ...


class ReadinessMultiplexer:
    """One timed wait per call over every watched source.

    Readers are registered on the running loop for the duration of a single
    wait and removed afterwards, so descriptors that change between
    iterations (reconnects, reopened pipes) are always current. The stop
    event takes part in the same wait: a stop requested before or during
    the call ends it immediately.
    """

    def __init__(self, stop_event: asyncio.Event) -> None:
        self.stop_event = stop_event

    async def wait(
        self, sources: Mapping[Hashable, ReadinessSource], timeout: float | None
    ) -> set[Hashable]:
        """Return the keys of ready sources; empty on timeout or stop."""
        if self.stop_event.is_set():
            return set()

        ready = {key for key, source in sources.items() if source.pending()}
        if ready:
            return ready

        loop = asyncio.get_running_loop()
        wake = asyncio.Event()

        def mark(key: Hashable) -> None:
            ready.add(key)
            wake.set()

        watched: list[int] = []
        waiters: set[asyncio.Task] = set()
        try:
            for key, source in sources.items():
                fd = source.fileno()
                if fd < 0 or fd in watched:
                    continue
                try:
                    loop.add_reader(fd, mark, key)
                except PermissionError:
                    # Regular files cannot be polled; they always read immediately.
                    ready.add(key)
                    continue
                watched.append(fd)
            if not ready:
                waiters = {
                    asyncio.create_task(wake.wait()),
                    asyncio.create_task(self.stop_event.wait()),
                }
                await asyncio.wait(
                    waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
        finally:
            for fd in watched:
                loop.remove_reader(fd)
            for task in waiters:
                task.cancel()
            if waiters:
                await asyncio.gather(*waiters, return_exceptions=True)

        if self.stop_event.is_set():
            return set()
        return set(ready)
