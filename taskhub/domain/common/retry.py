from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from taskhub.domain.common.errors import DomainError, FatalError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    interval_seconds: float = 1.0


async def with_retry(operation: Callable[[], Awaitable[T]], policy: RetryPolicy = RetryPolicy()) -> T:
    """
    Run ``operation`` again after a fixed pause while it fails with TransientError.

    Any other error (validation, conflict, not found) is raised immediately.
    ``operation`` must start a fresh unit of work on every call.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientError as e:
            if attempt >= policy.max_attempts:
                raise
            logger.warning(f"Retry {attempt}/{policy.max_attempts} failed: {e}")
            attempt += 1
            await asyncio.sleep(policy.interval_seconds)


async def run_operation(
    name: str,
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
) -> T:
    """with_retry, plus: anything that is not a DomainError becomes an opaque FatalError."""
    try:
        return await with_retry(operation, policy)
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"{name} failed unexpectedly", exc_info=True)
        raise FatalError(f"{name} failed: {e}") from e
