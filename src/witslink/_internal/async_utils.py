"""Asyncio utilities for the synchronous CLI layer."""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any], *, debug: bool = False) -> Any:
    """Run *coro* to completion from synchronous code.

    Inside an already running loop (notebooks, embedding applications) the
    coroutine gets its own loop on a worker thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro, debug=debug)

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro, debug=debug).result()
