"""Timeout and retry helpers shared by pipeline stages."""

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from .logging_config import get_logger
from .models import ErrorKind, StageError

logger = get_logger(__name__)

T = TypeVar("T")


async def call_capability(awaitable: Awaitable[T], timeout: float | None) -> T:
    """Await an external capability, mapping every failure to a StageError."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise StageError(ErrorKind.TIMEOUT, f"timed out after {timeout}s") from e
    except StageError:
        raise
    except Exception as e:
        raise StageError(ErrorKind.UNAVAILABLE, str(e)) from e


async def retry_storage(
    operation: Callable[[], Awaitable[T]],
    description: str,
    attempts: int = 3,
    delay: float = 0.2,
    timeout: float | None = None,
) -> T:
    """Run a storage write with exponential backoff; raise StageError(STORAGE) when exhausted."""
    attempts = max(1, attempts)
    last_error: Exception | None = None

    for attempt in range(attempts):
        try:
            return await asyncio.wait_for(operation(), timeout)
        except Exception as e:
            last_error = e
            logger.warning(
                f"{description} attempt {attempt + 1}/{attempts} failed: {e}"
            )
            if attempt < attempts - 1:
                await asyncio.sleep(delay * (2**attempt) + random.uniform(0, delay))

    raise StageError(
        ErrorKind.STORAGE, f"{description} failed after {attempts} attempts: {last_error}"
    ) from last_error
