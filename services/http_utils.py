#!/usr/bin/env python3
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import aiohttp

from constants import C_RED, C_RESET, C_YELLOW

T = TypeVar('T')


def log_error(message: str) -> None:
    """Centralized error logging."""
    print(f"{C_RED}{message}{C_RESET}")


def log_warning(message: str) -> None:
    print(f"{C_YELLOW}{message}{C_RESET}")


async def api_get(
    url: str,
    session: aiohttp.ClientSession,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30,
) -> Any:
    """Makes an async GET request; non-2xx responses raise ``aiohttp.ClientResponseError``."""
    async with session.get(url, params=params, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
        response.raise_for_status()
        return await response.json()


async def api_post(
    url: str,
    session: aiohttp.ClientSession,
    json_data: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30,
) -> Any:
    """Makes an async POST request with a JSON body."""
    async with session.post(url, json=json_data, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
        response.raise_for_status()
        return await response.json()


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int = 2,
    delay: float = 1.0,
    backoff: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Calls ``fn`` up to ``retries + 1`` times, sleeping ``delay * backoff**attempt``
    between attempts, and re-raises the last error once exhausted."""
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception:
            if attempt >= retries:
                raise
            await sleep(delay * backoff ** attempt)
            attempt += 1
