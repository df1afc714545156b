"""
Bounded concurrent fan-out for independent model calls.

Tasks run on a thread pool and are joined under one deadline. Results
come back in submission order. A task that raises fails the whole
fan-out; so does missing the deadline (UpstreamError), in which case
unfinished tasks are abandoned rather than waited for.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Sequence, TypeVar

from rag_gateway.core.errors import GatewayError, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_S = 60.0
DEFAULT_MAX_WORKERS = 8


def run_concurrently(
    tasks: Sequence[Callable[[], T]],
    timeout: float = DEFAULT_TIMEOUT_S,
    max_workers: int = DEFAULT_MAX_WORKERS,
    label: str = "fan-out",
) -> list[T]:
    """Run zero-argument callables concurrently; return their results in order."""
    if not tasks:
        return []

    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(tasks)),
        thread_name_prefix=label,
    )
    try:
        futures = [executor.submit(task) for task in tasks]
        done, pending = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)

        for future in futures:
            if future in done and future.exception() is not None:
                error = future.exception()
                if isinstance(error, GatewayError):
                    raise error
                raise UpstreamError(f"{label} failed: {error}") from error

        if pending:
            logger.warning(f"{label}: {len(pending)} of {len(futures)} tasks missed the {timeout}s deadline")
            raise UpstreamError(f"{label} timed out after {timeout}s")

        return [future.result() for future in futures]
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
