#!/usr/bin/env python3
"""Naming lookups (ENS) backed by web3's async ENS module."""
from __future__ import annotations

import asyncio
from typing import Dict, Iterable, Optional

import aiohttp
from ens import AsyncENS
from web3 import AsyncHTTPProvider, AsyncWeb3

from constants import AVATAR_RECORD_KEY, DEFAULT_ENS_RPC_URL, ZERO_ADDRESS
from services.http_utils import log_error


class ENSClient:
    """Resolves handles and reads their text records.

    Lookup failures are logged and reported as ``None``; nothing is retried
    at this layer.
    """

    def __init__(self, rpc_url: str = DEFAULT_ENS_RPC_URL, *, ens: Optional[AsyncENS] = None, timeout: float = 15) -> None:
        if ens is None:
            w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={'timeout': aiohttp.ClientTimeout(total=timeout)}))
            ens = AsyncENS.from_web3(w3)
        self._ens = ens

    async def resolve(self, handle: str) -> Optional[str]:
        try:
            address = await self._ens.address(handle)
        except Exception as exc:
            log_error(f"Error resolving ENS name {handle}: {exc}")
            return None
        if not address or address == ZERO_ADDRESS:
            return None
        return str(address)

    async def reverse_resolve(self, address: str) -> Optional[str]:
        try:
            return await self._ens.name(address)
        except Exception as exc:
            log_error(f"Error looking up ENS name for {address}: {exc}")
            return None

    async def get_text(self, handle: str, key: str) -> Optional[str]:
        try:
            value = await self._ens.get_text(handle, key)
        except Exception as exc:
            log_error(f"Error getting text record {key} for {handle}: {exc}")
            return None
        return value or None

    async def get_text_records(self, handle: str, keys: Iterable[str]) -> Dict[str, str]:
        """Fetches ``keys`` concurrently; absent or empty records are omitted."""
        keys = list(keys)
        values = await asyncio.gather(*(self.get_text(handle, key) for key in keys))
        return {key: value for key, value in zip(keys, values) if value}

    async def get_avatar(self, handle: str) -> Optional[str]:
        return await self.get_text(handle, AVATAR_RECORD_KEY)
