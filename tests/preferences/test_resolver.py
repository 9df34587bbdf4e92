import json

import pytest

from errors import InvalidHandleError
from preferences.models import RiskTolerance
from preferences.records import record_key
from preferences.resolver import PreferenceResolver


class FakeLookup:
    def __init__(self, addresses, records, avatars=None):
        self.addresses = addresses
        self.records = records
        self.avatars = avatars or {}
        self.calls = []

    async def resolve(self, handle):
        self.calls.append(('resolve', handle))
        return self.addresses.get(handle)

    async def get_text_records(self, handle, keys):
        self.calls.append(('records', handle))
        stored = self.records.get(handle, {})
        return {key: stored[key] for key in keys if stored.get(key)}

    async def get_avatar(self, handle):
        self.calls.append(('avatar', handle))
        return self.avatars.get(handle)


ALICE = '0x00000000000000000000000000000000000A11CE'
BOB = '0x0000000000000000000000000000000000000B0B'


@pytest.mark.asyncio
async def test_resolve_returns_profile_with_own_preferences():
    lookup = FakeLookup(
        {'alice.eth': ALICE},
        {'alice.eth': {record_key('riskTolerance'): 'aggressive', record_key('maxSlippageBps'): '30'}},
        {'alice.eth': 'ipfs://avatar'},
    )

    profile = await PreferenceResolver(lookup).resolve('Alice.eth')

    assert profile.name == 'alice.eth'
    assert profile.address == ALICE
    assert profile.avatar == 'ipfs://avatar'
    assert profile.preferences.risk_tolerance is RiskTolerance.AGGRESSIVE
    assert profile.preferences.max_slippage_bps == 30
    assert profile.is_following_strategy is False
    assert profile.followed_strategy_owner is None


@pytest.mark.asyncio
async def test_resolve_follows_strategy_delegate():
    lookup = FakeLookup(
        {'alice.eth': ALICE, 'bob.eth': BOB},
        {
            'alice.eth': {record_key('strategyFollow'): 'bob.eth', record_key('riskTolerance'): 'aggressive'},
            'bob.eth': {
                record_key('riskTolerance'): 'conservative',
                record_key('blacklistedProtocols'): json.dumps(['pendle']),
            },
        },
    )

    profile = await PreferenceResolver(lookup).resolve('alice.eth')

    assert profile.address == ALICE
    assert profile.is_following_strategy is True
    assert profile.followed_strategy_owner == 'bob.eth'
    assert profile.preferences.risk_tolerance is RiskTolerance.CONSERVATIVE
    assert profile.preferences.blacklisted_protocols == ['pendle']


@pytest.mark.asyncio
async def test_following_is_not_transitive():
    lookup = FakeLookup(
        {'alice.eth': ALICE},
        {
            'alice.eth': {record_key('strategyFollow'): 'bob.eth'},
            'bob.eth': {record_key('strategyFollow'): 'carol.eth', record_key('maxSlippageBps'): '20'},
            'carol.eth': {record_key('maxSlippageBps'): '900'},
        },
    )

    profile = await PreferenceResolver(lookup).resolve('alice.eth')

    assert profile.followed_strategy_owner == 'bob.eth'
    assert profile.preferences.max_slippage_bps == 20
    assert profile.preferences.strategy_follow == 'carol.eth'
    assert ('records', 'carol.eth') not in lookup.calls


@pytest.mark.asyncio
async def test_invalid_delegate_is_ignored(capsys):
    lookup = FakeLookup(
        {'alice.eth': ALICE},
        {'alice.eth': {record_key('strategyFollow'): 'not a name', record_key('maxSlippageBps'): '75'}},
    )

    profile = await PreferenceResolver(lookup).resolve('alice.eth')

    assert profile.is_following_strategy is False
    assert profile.preferences.max_slippage_bps == 75
    assert "Ignoring strategyFollow" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_invalid_handle_raises_before_lookup():
    lookup = FakeLookup({}, {})

    with pytest.raises(InvalidHandleError):
        await PreferenceResolver(lookup).resolve('alice')

    assert lookup.calls == []


@pytest.mark.asyncio
async def test_unregistered_handle_returns_none():
    lookup = FakeLookup({}, {'ghost.eth': {record_key('riskTolerance'): 'aggressive'}})

    assert await PreferenceResolver(lookup).resolve('ghost.eth') is None


@pytest.mark.asyncio
async def test_get_preferences_does_not_follow():
    lookup = FakeLookup(
        {},
        {
            'alice.eth': {record_key('strategyFollow'): 'bob.eth', record_key('maxSlippageBps'): '40'},
            'bob.eth': {record_key('maxSlippageBps'): '900'},
        },
    )

    prefs = await PreferenceResolver(lookup).get_preferences('alice.eth')

    assert prefs.max_slippage_bps == 40
    assert prefs.strategy_follow == 'bob.eth'
