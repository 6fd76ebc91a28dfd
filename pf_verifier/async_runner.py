# pf_verifier/async_runner.py

import asyncio
import functools
import logging
from typing import Any, Callable, Iterable, List, Optional, Tuple

from pf_verifier import config

logger = logging.getLogger("pf_verifier")

# (func, args, kwargs)
Call = Tuple[Callable[..., Any], tuple, dict]


async def run_verification(func: Callable[..., Any], *args, timeout: Optional[float] = None, **kwargs) -> Any:
    """
    Runs a synchronous verifier in a worker thread so hashing never blocks the event loop.

    Raises asyncio.TimeoutError if it takes longer than `timeout` seconds
    (PF_VERIFY_TIMEOUT by default). Verifier errors propagate unchanged.
    """
    if timeout is None:
        timeout = config.VERIFY_TIMEOUT
    try:
        return await asyncio.wait_for(asyncio.to_thread(functools.partial(func, *args, **kwargs)), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{getattr(func, '__name__', func)} timed out after {timeout}s")
        raise


async def verify_many(calls: Iterable[Call], timeout: Optional[float] = None) -> List[Any]:
    """Runs independent verifications concurrently; results keep the order of `calls`."""
    return await asyncio.gather(
        *(run_verification(func, *args, timeout=timeout, **kwargs) for func, args, kwargs in calls)
    )
