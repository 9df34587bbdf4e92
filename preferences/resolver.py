#!/usr/bin/env python3
from __future__ import annotations

from typing import Dict, Optional, Protocol

from constants import PREFERENCE_RECORD_KEYS
from errors import InvalidHandleError
from preferences.models import Profile, UserPreferences
from preferences.records import is_valid_handle, normalize_handle, parse_preferences, record_key
from services.http_utils import log_warning


class NamingLookup(Protocol):
    async def resolve(self, handle: str) -> Optional[str]: ...

    async def get_text_records(self, handle: str, keys) -> Dict[str, str]: ...

    async def get_avatar(self, handle: str) -> Optional[str]: ...


class PreferenceResolver:
    """Turns a handle into a Profile.

    A ``strategyFollow`` record is followed exactly once: the delegate's own
    records are parsed in place of the caller's, and a delegate that itself
    follows someone else is not chased any further.
    """

    def __init__(self, lookup: NamingLookup) -> None:
        self.lookup = lookup

    async def fetch_records(self, handle: str) -> Dict[str, str]:
        return await self.lookup.get_text_records(handle, PREFERENCE_RECORD_KEYS)

    async def get_preferences(self, handle: str) -> UserPreferences:
        """Preferences as stored under ``handle`` itself, without following."""
        name = self._validated(handle)
        return parse_preferences(await self.fetch_records(name))

    async def resolve(self, handle: str) -> Optional[Profile]:
        """Returns None when the handle has no address."""
        name = self._validated(handle)

        address = await self.lookup.resolve(name)
        if not address:
            return None

        records = await self.fetch_records(name)
        delegate = self._delegate_handle(records, name)

        if delegate:
            preferences = parse_preferences(await self.fetch_records(delegate))
        else:
            preferences = parse_preferences(records)

        avatar = await self.lookup.get_avatar(name)

        return Profile(
            name=name,
            address=address,
            preferences=preferences,
            avatar=avatar,
            is_following_strategy=delegate is not None,
            followed_strategy_owner=delegate,
        )

    @staticmethod
    def _validated(handle: str) -> str:
        if not is_valid_handle(handle):
            raise InvalidHandleError(handle)
        return normalize_handle(handle)

    @staticmethod
    def _delegate_handle(records: Dict[str, str], own_name: str) -> Optional[str]:
        raw = records.get(record_key('strategyFollow'))
        if not raw or not raw.strip():
            return None
        delegate = normalize_handle(raw)
        if not is_valid_handle(delegate):
            log_warning(f"Ignoring strategyFollow '{raw}' on {own_name}: not a valid ENS name.")
            return None
        return delegate
