"""
Bridge from the event loop to blocking backend SDKs.

The Docker SDK and the pymilvus client only offer blocking calls. Status
probes, restarts and vector-database actions hand those calls to a shared
worker pool through ``run_sync`` so that one slow backend does not hold up
requests for the others.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

T = TypeVar("T")

# One worker per concurrent backend call; Docker and Milvus calls are I/O bound.
_WORKERS = min(32, (os.cpu_count() or 1) + 4)

_backend_pool = ThreadPoolExecutor(max_workers=_WORKERS, thread_name_prefix="drone-backend")


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """
    Await a blocking SDK call executed on the backend worker pool.

    A caller that abandons the request stops waiting, but a call already
    running keeps going until the SDK's own timeout ends it.
    """
    future = _backend_pool.submit(partial(func, *args, **kwargs))
    try:
        # Poll the worker future; the pool never calls back into the loop.
        while not future.done():
            await asyncio.sleep(0.001)
        return future.result()
    except asyncio.CancelledError:
        future.cancel()
        raise


__all__ = ["run_sync"]
