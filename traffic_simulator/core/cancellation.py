"""Set-once stop token shared by the scheduler, workers and poll threads."""

from __future__ import annotations

import asyncio
import threading


def _resolve(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(True)


class StopToken:
    """Cooperative cancellation flag.

    Readable from any thread (``is_set``) and awaitable from the event loop
    (``wait``). Once set it stays set. Child tokens are set together with
    their parent but can also be set on their own, which is how a single
    worker is stopped without touching the rest of the population.
    """

    def __init__(self, name: str = "stop") -> None:
        self.name = name
        self._flag = threading.Event()
        self._lock = threading.Lock()
        self._children: list[StopToken] = []
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []

    def is_set(self) -> bool:
        return self._flag.is_set()

    def set(self) -> None:
        with self._lock:
            if self._flag.is_set():
                return
            self._flag.set()
            waiters, self._waiters = self._waiters, []
            children = list(self._children)
        for loop, fut in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, fut)
        for child in children:
            child.set()

    def wait_sync(self, timeout: float | None = None) -> bool:
        """Blocking wait for use from worker threads."""
        return self._flag.wait(timeout)

    def child(self, name: str | None = None) -> "StopToken":
        token = StopToken(name or f"{self.name}.child")
        with self._lock:
            already_set = self._flag.is_set()
            if not already_set:
                self._children.append(token)
        if already_set:
            token.set()
        return token

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until set or ``timeout`` elapses; returns ``is_set()``."""
        if self._flag.is_set():
            return True
        loop = asyncio.get_running_loop()
        fut = loop.create_future()
        entry = (loop, fut)
        with self._lock:
            if self._flag.is_set():
                return True
            self._waiters.append(entry)
        try:
            await asyncio.wait_for(fut, timeout)
        except asyncio.TimeoutError:
            pass
        finally:
            with self._lock:
                if entry in self._waiters:
                    self._waiters.remove(entry)
        return self._flag.is_set()

    def __repr__(self) -> str:
        return f"StopToken(name={self.name!r}, set={self.is_set()})"
