"""Opt-in wrappers for act operations.

The executor never times out or retries an act by itself. When an operation
needs either, wrap it before handing it to ``act``::

    f.act("fetch todos", with_timeout(with_retry(fetch_todos, attempts=3), 5.0))

The wrapped operation keeps the calling convention of the original: it
receives the context value only if the original accepts one.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

from qaflow.core.models import Operation, accepts_context
from qaflow.errors import OperationTimeoutError

logger = logging.getLogger(__name__)


def _describe(operation: Operation) -> str:
    return getattr(operation, "__name__", None) or type(operation).__name__


async def _invoke(operation: Operation, takes_context: bool, value: Any) -> Any:
    result = operation(value) if takes_context else operation()
    if inspect.isawaitable(result):
        result = await result
    return result


def with_timeout(
    operation: Operation,
    seconds: float,
    description: str | None = None,
) -> Callable[[Any], Any]:
    """Fail an operation that does not settle within ``seconds``.

    Raises:
        ValueError: If ``seconds`` is not positive.
        OperationTimeoutError: From the wrapped operation when it times out.
    """
    if seconds <= 0:
        raise ValueError("Timeout must be positive")

    takes_context = accepts_context(operation)
    what = description or _describe(operation)

    @functools.wraps(operation)
    async def wrapper(value: Any = None) -> Any:
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(_invoke(operation, takes_context, value), timeout=seconds)
        except asyncio.TimeoutError as e:
            elapsed = time.perf_counter() - start
            logger.warning(f"{what} timed out after {elapsed:.2f}s (limit {seconds}s)")
            raise OperationTimeoutError(
                timeout_seconds=seconds,
                elapsed_seconds=elapsed,
                operation_description=what,
                cause=e,
            ) from e

    # accepts_context must see the wrapper signature, not the original one
    del wrapper.__wrapped__
    return wrapper


def with_retry(
    operation: Operation,
    attempts: int = 3,
    delay: float = 0.5,
    backoff: float = 2.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Any], Any]:
    """Retry an operation that raises one of ``retry_on``.

    The delay before attempt n+1 is ``delay * backoff ** (n - 1)``. When every
    attempt fails, the last exception is raised unchanged so the act records
    its original reason.

    Raises:
        ValueError: If ``attempts`` is below 1 or a delay setting is negative.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    if delay < 0 or backoff < 0:
        raise ValueError("delay and backoff cannot be negative")

    takes_context = accepts_context(operation)
    what = _describe(operation)

    @functools.wraps(operation)
    async def wrapper(value: Any = None) -> Any:
        for attempt in range(1, attempts + 1):
            try:
                return await _invoke(operation, takes_context, value)
            except retry_on as e:
                if attempt == attempts:
                    raise
                wait = delay * (backoff ** (attempt - 1))
                logger.warning(
                    f"Retry {attempt}/{attempts - 1} of {what} after {wait:.2f}s due to: {e}"
                )
                await asyncio.sleep(wait)

    del wrapper.__wrapped__
    return wrapper
