"""
Primary/secondary fallback for async operations.

Used wherever an HTTP call falls back to the Ollama CLI, and where the CLI's
default invocation falls back to a platform-specific executable path.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_usable(result) -> bool:
    return bool(result)


async def try_primary_then_secondary(
    primary: Callable[[], Awaitable[T]],
    secondary: Callable[[], Awaitable[T]],
    description: str = "operation",
    accept: Optional[Callable[[T], bool]] = None,
) -> T:
    """
    Run `primary`; if it raises or its result is rejected, run `secondary`.

    Args:
        primary: Zero-argument coroutine function tried first
        secondary: Zero-argument coroutine function tried on failure
        description: Label used in log messages
        accept: Predicate deciding whether the primary result is usable
            (default: truthiness, so empty lists fall through)

    Returns:
        The primary result if accepted, otherwise the secondary result

    Raises:
        Whatever `secondary` raises. Primary errors are logged, never raised.
    """
    accept = accept or _is_usable

    try:
        result = await primary()
        if accept(result):
            return result
        logger.info(f"{description}: primary returned nothing usable, trying fallback")
    except Exception as e:
        logger.warning(f"{description}: primary failed ({e}), trying fallback")

    return await secondary()
