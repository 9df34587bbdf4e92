"""Conversion between naming text records and UserPreferences.

Every field is parsed on its own: a malformed value (bad JSON, out of range
number, unknown enum member) leaves that field at its default and never
raises.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from constants import (
    MAX_SLIPPAGE_BPS,
    MIN_SLIPPAGE_BPS,
    RECORD_KEY_PREFIX,
    RISK_TOLERANCE_MAP,
    VALID_HANDLE_SUFFIXES,
)
from preferences.models import DefaultAction, RiskTolerance, UserPreferences


def record_key(field_name: str) -> str:
    return f"{RECORD_KEY_PREFIX}{field_name}"


def normalize_handle(handle: str) -> str:
    return (handle or '').strip().lower()


def is_valid_handle(handle: str) -> bool:
    name = normalize_handle(handle)
    for suffix in VALID_HANDLE_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            label = name[: -len(suffix)]
            return not label.startswith('.') and not label.endswith('.') and ' ' not in label
    return False


def _load_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def _parse_string_list(raw: str) -> Optional[List[str]]:
    value = _load_json(raw)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    return value


def _parse_int(raw: str) -> Optional[int]:
    try:
        return int(raw.strip())
    except (AttributeError, ValueError):
        return None


def parse_preferences(records: Mapping[str, Optional[str]]) -> UserPreferences:
    """Build preferences from raw records, falling back per field."""
    defaults = UserPreferences()
    values: Dict[str, Any] = {}

    def raw(field_name: str) -> Optional[str]:
        value = records.get(record_key(field_name))
        return value if value else None

    if (chains_raw := raw('preferredChains')) is not None:
        chains = _parse_string_list(chains_raw)
        if chains is not None:
            values['preferred_chains'] = [c.lower() for c in chains]

    if (risk_raw := raw('riskTolerance')) is not None:
        try:
            risk = RiskTolerance(risk_raw.strip().lower())
        except ValueError:
            risk = None
        if risk is not None:
            values['risk_tolerance'] = risk
            values['whitelisted_protocols'] = list(RISK_TOLERANCE_MAP[risk.value])

    if (slippage_raw := raw('maxSlippageBps')) is not None:
        slippage = _parse_int(slippage_raw)
        if slippage is not None and MIN_SLIPPAGE_BPS <= slippage <= MAX_SLIPPAGE_BPS:
            values['max_slippage_bps'] = slippage

    if (action_raw := raw('defaultAction')) is not None:
        try:
            values['default_action'] = DefaultAction(action_raw.strip().lower())
        except ValueError:
            pass

    # An explicit whitelist replaces the one derived from risk tolerance.
    if (whitelist_raw := raw('whitelistedProtocols')) is not None:
        whitelist = _parse_string_list(whitelist_raw)
        if whitelist is not None:
            values['whitelisted_protocols'] = whitelist

    if (blacklist_raw := raw('blacklistedProtocols')) is not None:
        blacklist = _parse_string_list(blacklist_raw)
        if blacklist is not None:
            values['blacklisted_protocols'] = blacklist

    if (liquidity_raw := raw('minLiquidityUsd')) is not None:
        liquidity = _parse_int(liquidity_raw)
        if liquidity is not None and liquidity >= 0:
            values['min_liquidity_usd'] = liquidity

    if (follow_raw := raw('strategyFollow')) is not None and follow_raw.strip():
        values['strategy_follow'] = normalize_handle(follow_raw)

    if (rebalance_raw := raw('autoRebalance')) is not None:
        values['auto_rebalance'] = rebalance_raw.strip() == 'true'

    if (notifs_raw := raw('notificationPrefs')) is not None:
        notifs = _load_json(notifs_raw)
        if isinstance(notifs, dict):
            values['notification_prefs'] = {str(k): str(v) for k, v in notifs.items()}

    if not values:
        return defaults
    return UserPreferences(**{**defaults.__dict__, **values})


def serialize_preferences(prefs: UserPreferences) -> Dict[str, str]:
    """Render preferences as the full record map an editor would write."""
    return {
        record_key('preferredChains'): json.dumps(prefs.preferred_chains),
        record_key('riskTolerance'): prefs.risk_tolerance.value,
        record_key('maxSlippageBps'): str(prefs.max_slippage_bps),
        record_key('defaultAction'): prefs.default_action.value,
        record_key('whitelistedProtocols'): json.dumps(prefs.whitelisted_protocols),
        record_key('blacklistedProtocols'): json.dumps(prefs.blacklisted_protocols),
        record_key('minLiquidityUsd'): str(prefs.min_liquidity_usd),
        record_key('strategyFollow'): prefs.strategy_follow or '',
        record_key('autoRebalance'): 'true' if prefs.auto_rebalance else 'false',
        record_key('notificationPrefs'): json.dumps(prefs.notification_prefs),
    }
