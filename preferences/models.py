#!/usr/bin/env python3
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class RiskTolerance(str, Enum):
    CONSERVATIVE = 'conservative'
    MODERATE = 'moderate'
    AGGRESSIVE = 'aggressive'


class DefaultAction(str, Enum):
    DEPOSIT = 'deposit'
    BRIDGE = 'bridge'
    SWAP = 'swap'


@dataclass(frozen=True)
class UserPreferences:
    """Preferences stored as text records under a handle."""
    preferred_chains: List[str] = field(default_factory=lambda: ['base', 'arbitrum', 'optimism'])
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    max_slippage_bps: int = 100
    default_action: DefaultAction = DefaultAction.DEPOSIT
    whitelisted_protocols: List[str] = field(default_factory=list)
    blacklisted_protocols: List[str] = field(default_factory=list)
    min_liquidity_usd: int = 100_000
    strategy_follow: Optional[str] = None
    auto_rebalance: bool = False
    notification_prefs: Dict[str, str] = field(default_factory=dict)

    @property
    def slippage(self) -> float:
        """Max slippage as a fraction (100 bps -> 0.01)."""
        return self.max_slippage_bps / 10_000

    def is_blacklisted(self, protocol_slug: str) -> bool:
        slug = protocol_slug.lower()
        return any(p.lower() == slug for p in self.blacklisted_protocols)


@dataclass(frozen=True)
class Profile:
    """A resolved handle. Built fresh on every resolution."""
    name: str
    address: str
    preferences: UserPreferences
    avatar: Optional[str] = None
    is_following_strategy: bool = False
    followed_strategy_owner: Optional[str] = None
