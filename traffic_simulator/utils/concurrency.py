import asyncio
from typing import Callable, TypeVar

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking broker-client call in the default executor.

    Broker polls, flushes and closes block the calling thread; every such call
    from the event loop goes through here.
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_blocking_bounded(
    timeout: float, func: Callable[..., T], *args, **kwargs
) -> T:
    """``run_blocking`` with an upper bound on how long the caller waits.

    The worker thread itself is not interruptible; on timeout it is abandoned
    and finishes in the background while ``asyncio.TimeoutError`` is raised.
    """
    return await asyncio.wait_for(run_blocking(func, *args, **kwargs), timeout)
